"""Cash account commands."""

import click
from balancebook.cli.error_handling import handle_domain_error, parse_or_exit
from balancebook.domain.account import AccountService
from balancebook.domain.balance import BalanceService
from balancebook.domain.errors import DomainError
from balancebook.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage cash accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--description", help="Account description")
@click.option("--opening-balance", default="0", help="Opening balance (e.g., 'Rp 1.000.000')")
@click.option("--share", is_flag=True, help="Share the account with your group")
@click.pass_context
def create_account(ctx, name: str, description: str | None, opening_balance: str, share: bool):
    """Create a new cash account.

    The closing balance starts at the opening balance.

    Examples:
        balancebook account create "Cash"
        balancebook account create "Farm Wallet" --opening-balance 500000 --share
    """
    service = AccountService(ctx.obj["db"])
    opening = parse_or_exit(ctx, parse_amount, opening_balance, "opening balance")

    try:
        account = service.create_account(
            ctx.obj["caller"],
            name=name,
            description=description,
            opening_balance=opening,
            share_to_group=share,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created account '{account.name}' (ID: {account.id})")


@account_group.command("list")
@click.option("--search", help="Filter by name")
@click.pass_context
def list_accounts(ctx, search: str | None):
    """List your accounts and those shared with your group."""
    service = AccountService(ctx.obj["db"])

    accounts = service.list_accounts(ctx.obj["caller"], search=search)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        shared = f"group {acc.group_id}" if acc.group_id else "private"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | Opening: {acc.opening_balance:>14,d} "
            f"| Closing: {acc.closing_balance:>14,d} | {shared}"
        )


@account_group.command("update")
@click.argument("account_id", type=int)
@click.option("--name", help="New name")
@click.option("--description", help="New description")
@click.option("--opening-balance", help="New opening balance (shifts the closing balance too)")
@click.option("--share/--private", default=None, help="Share with your group or make private")
@click.pass_context
def update_account(
    ctx,
    account_id: int,
    name: str | None,
    description: str | None,
    opening_balance: str | None,
    share: bool | None,
):
    """Update an account.

    Examples:
        balancebook account update 1 --name "Petty Cash"
        balancebook account update 1 --opening-balance 750000
    """
    service = AccountService(ctx.obj["db"])
    opening = None
    if opening_balance is not None:
        opening = parse_or_exit(ctx, parse_amount, opening_balance, "opening balance")

    try:
        account = service.update_account(
            ctx.obj["caller"],
            account_id,
            name=name,
            description=description,
            opening_balance=opening,
            share_to_group=share,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Updated account '{account.name}' (closing balance: {account.closing_balance:,d})")


@account_group.command("check")
@click.argument("account_id", type=int)
@click.pass_context
def check_account(ctx, account_id: int):
    """Compare the stored closing balance with the one implied by entries."""
    try:
        AccountService(ctx.obj["db"]).get_account(ctx.obj["caller"], account_id)
        check = BalanceService(ctx.obj["db"]).check_balance(account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Stored closing balance:   {check.stored:>14,d}")
    click.echo(f"Expected closing balance: {check.expected:>14,d}")
    if check.consistent:
        click.echo("Balance is consistent.")
    else:
        click.echo(f"Balance drift: {check.stored - check.expected:,d}", err=True)
        ctx.exit(1)


@account_group.command("delete")
@click.argument("account_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account_id: int, yes: bool) -> None:
    """Delete an account.

    The account can only be deleted if no entry references it.

    Examples:
        balancebook account delete 1
    """
    service = AccountService(ctx.obj["db"])
    caller = ctx.obj["caller"]

    try:
        account = service.get_account(caller, account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not yes and not click.confirm(f"Are you sure you want to delete account '{account.name}' (ID: {account_id})?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(caller, account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted account '{account.name}'")


def register_commands(cli: click.Group) -> None:
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
