"""Balance sheet commands."""

import click
from balancebook.cli.date_filters import date_range_options, resolve_cli_date_range
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.balance_sheet import BalanceSheetService
from balancebook.domain.entities import AggregationMode, ShareMode, Subgroup
from balancebook.domain.errors import DomainError

SUBGROUP_TITLES = {
    Subgroup.ASSET_CURRENT: "Current assets",
    Subgroup.ASSET_FIXED: "Fixed assets",
    Subgroup.LIABILITY_CURRENT: "Current liabilities",
    Subgroup.LIABILITY_LONGTERM: "Long-term liabilities",
}


def scope_options(command):
    """Attach the scope and date options shared by all balance sheet commands."""
    command = click.option("--user", "user_id", help="Another user's balance sheet (privileged only)")(command)
    command = click.option("--group", "group_id", help="Balance sheet of a group you belong to")(command)
    command = click.option(
        "--share",
        type=click.Choice([m.value for m in ShareMode], case_sensitive=False),
        default=ShareMode.ALL.value,
        show_default=True,
        help="Private rows only (own), shared rows only (group) or both (all)",
    )(command)
    return date_range_options(command)


def mode_option(command):
    return click.option(
        "--mode",
        type=click.Choice([m.value for m in AggregationMode], case_sensitive=False),
        default=AggregationMode.GROSS.value,
        show_default=True,
        help="gross: debit minus credit; directional: signed by asset/liability side",
    )(command)


def _scope(ctx, start_date, end_date, period, share, group_id, user_id) -> dict:
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    return {
        "user_id": user_id,
        "group_id": group_id,
        "start_date": start,
        "end_date": end,
        "share": ShareMode(share.lower()),
    }


def _amount_row(label: str, value: int, indent: int = 0) -> str:
    width = 50 - indent
    return f"{' ' * indent}{label:<{width}} {value:>18,d}"


@click.group()
def balance_sheet_group():
    """Aggregate ledger items into a balance sheet."""
    pass


@balance_sheet_group.command("summary")
@scope_options
@mode_option
@click.option("--items", "show_items", is_flag=True, help="List products inside each bucket")
@click.pass_context
def summary(ctx, start_date, end_date, period, share, group_id, user_id, mode, show_items):
    """Show the four-bucket balance sheet summary.

    Examples:
        balancebook balance-sheet summary --period this-year
        balancebook balance-sheet summary --group farm --share group --mode directional
    """
    scope = _scope(ctx, start_date, end_date, period, share, group_id, user_id)
    service = BalanceSheetService(ctx.obj["db"])
    try:
        result = service.summary(ctx.obj["caller"], mode=AggregationMode(mode.lower()), **scope)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    for subgroup, title in SUBGROUP_TITLES.items():
        bucket = result.buckets[subgroup]
        click.echo(f"{title:<32} debit {bucket.debit:>16,d}  credit {bucket.credit:>16,d}  saldo {bucket.saldo:>16,d}")
        if show_items:
            for line in bucket.items:
                click.echo(_amount_row(line.product_name or "(unknown product)", line.saldo, indent=4))

    click.echo("-" * 100)
    click.echo(_amount_row("Total assets", result.total_asset))
    click.echo(_amount_row("Total liabilities", result.total_liability))
    click.echo(_amount_row("Difference", result.difference))


@balance_sheet_group.command("by-product")
@scope_options
@click.pass_context
def by_product(ctx, start_date, end_date, period, share, group_id, user_id):
    """Show per-product totals across all buckets."""
    scope = _scope(ctx, start_date, end_date, period, share, group_id, user_id)
    service = BalanceSheetService(ctx.obj["db"])
    try:
        products = service.by_product(ctx.obj["caller"], **scope)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not products:
        click.echo("No items found.")
        return

    for product in products:
        name = product.product_name or "(unknown product)"
        click.echo(f"{name} [{product.category_name or 'uncategorized'}]")
        for bucket, totals in product.buckets.items():
            if totals.debit or totals.credit:
                click.echo(f"    {bucket:<20} debit {totals.debit:>16,d}  credit {totals.credit:>16,d}")
        click.echo(_amount_row("Saldo", product.total.saldo, indent=4))


def _echo_nodes(nodes) -> None:
    for node in nodes:
        code = f"{node.code:4d}" if node.code is not None else "   -"
        click.echo(_amount_row(f"{code}  {node.category_name or '(unnamed)'}", node.total, indent=2))
        for product in node.products:
            click.echo(_amount_row(product.name or f"product {product.product_id}", product.total, indent=10))


@balance_sheet_group.command("nested")
@scope_options
@mode_option
@click.pass_context
def nested(ctx, start_date, end_date, period, share, group_id, user_id, mode):
    """Show assets and liabilities as category trees ordered by sequence code."""
    scope = _scope(ctx, start_date, end_date, period, share, group_id, user_id)
    service = BalanceSheetService(ctx.obj["db"])
    try:
        sheet = service.nested_by_category(ctx.obj["caller"], mode=AggregationMode(mode.lower()), **scope)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo("Assets")
    _echo_nodes(sheet.assets)
    click.echo(_amount_row("Total assets", sheet.total_asset))
    click.echo("Liabilities")
    _echo_nodes(sheet.liabilities)
    click.echo(_amount_row("Total liabilities", sheet.total_liability))
    click.echo(_amount_row("Difference", sheet.difference))


@balance_sheet_group.command("subgroups")
@scope_options
@mode_option
@click.pass_context
def subgroups(ctx, start_date, end_date, period, share, group_id, user_id, mode):
    """Show category trees split into the four subgroups."""
    scope = _scope(ctx, start_date, end_date, period, share, group_id, user_id)
    service = BalanceSheetService(ctx.obj["db"])
    try:
        sheet = service.nested_by_subgroup(ctx.obj["caller"], mode=AggregationMode(mode.lower()), **scope)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    for subgroup, title in SUBGROUP_TITLES.items():
        click.echo(title)
        _echo_nodes(sheet.groups[subgroup])
        click.echo(_amount_row(f"Total {title.lower()}", sheet.totals[subgroup]))
    click.echo("-" * 70)
    click.echo(_amount_row("Difference", sheet.difference))


@balance_sheet_group.command("details")
@click.argument("bucket", type=click.Choice([s.value for s in Subgroup], case_sensitive=False))
@scope_options
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--limit", type=int, default=20, show_default=True, help="Products per page (max 100)")
@click.pass_context
def details(ctx, bucket, start_date, end_date, period, share, group_id, user_id, page, limit):
    """List the products inside one bucket, a page at a time."""
    scope = _scope(ctx, start_date, end_date, period, share, group_id, user_id)
    service = BalanceSheetService(ctx.obj["db"])
    try:
        result = service.details(ctx.obj["caller"], bucket, page=page, limit=limit, **scope)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"{bucket}: page {result.page}, {len(result.items)} of {result.total} products")
    for line in result.items:
        click.echo(
            f"  {line.product_name or '(unknown product)':<32} debit {line.debit:>16,d}  "
            f"credit {line.credit:>16,d}  saldo {line.saldo:>16,d}"
        )


def register_commands(cli: click.Group) -> None:
    """Register balance sheet commands with main CLI."""
    cli.add_command(balance_sheet_group, name="balance-sheet")
