"""Profit/loss and cash-flow report commands."""

import click
from balancebook.cli.date_filters import date_range_options, resolve_cli_date_range
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.entities import CashFlowDirection
from balancebook.domain.errors import DomainError
from balancebook.domain.reports import ReportService


def _echo_flow(flow) -> None:
    for entry in flow.entries:
        amount = entry.debit_amount if flow.direction == CashFlowDirection.IN else entry.credit_amount
        click.echo(f"  {entry.date.isoformat()}  #{entry.id:<5d} {entry.description or '':<36} {amount:>16,d}")
    click.echo(f"  {'Total':<52} {flow.total:>16,d}")


@click.group()
def report_group():
    """Period reports."""
    pass


@report_group.command("profit-loss")
@date_range_options
@click.option("--user", "user_id", help="Another user's entries (privileged only)")
@click.option("--by-category", is_flag=True, help="Also break line items down by product category")
@click.pass_context
def profit_loss(ctx, start_date, end_date, period, user_id, by_category):
    """Show total inflow, total outflow and net result.

    Examples:
        balancebook report profit-loss --period last-month
        balancebook report profit-loss --by-category
    """
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        result = ReportService(ctx.obj["db"]).profit_loss(ctx.obj["caller"], start, end, user_id=user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Total inflow:  {result.total_inflow:>16,d}")
    click.echo(f"Total outflow: {result.total_outflow:>16,d}")
    click.echo(f"Net:           {result.net:>16,d}")

    if by_category:
        click.echo()
        if not result.categories:
            click.echo("No categorized items found.")
            return
        click.echo(f"{'Category':<24} {'Inflow':>14} {'Outflow':>14} {'Net':>14}")
        for flow in result.categories:
            name = flow.category_name or f"#{flow.category_id}"
            click.echo(f"{name:<24} {flow.inflow:>14,d} {flow.outflow:>14,d} {flow.net:>14,d}")


@report_group.command("cash-flow")
@click.argument("direction", type=click.Choice([d.value for d in CashFlowDirection], case_sensitive=False))
@date_range_options
@click.option("--user", "user_id", help="Another user's entries (privileged only)")
@click.pass_context
def cash_flow(ctx, direction, start_date, end_date, period, user_id):
    """List inflow ("in") or outflow ("out") entries with their total."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        flow = ReportService(ctx.obj["db"]).cash_flow(ctx.obj["caller"], direction, start, end, user_id=user_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not flow.entries:
        click.echo("No entries found.")
        return
    _echo_flow(flow)


@report_group.command("account-flow")
@click.argument("account_id", type=int)
@date_range_options
@click.pass_context
def account_flow(ctx, account_id, start_date, end_date, period):
    """Split the entries of one account into money in and money out."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        result = ReportService(ctx.obj["db"]).cash_flow_by_account(ctx.obj["caller"], account_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("In:")
    _echo_flow(result.inflow)
    click.echo("Out:")
    _echo_flow(result.outflow)
    click.echo(f"  {'Net':<52} {result.net:>16,d}")


def register_commands(cli: click.Group) -> None:
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
