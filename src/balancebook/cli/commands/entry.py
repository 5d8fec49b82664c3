"""Ledger entry commands."""

import click
from balancebook.cli.date_filters import date_range_options, resolve_cli_date_range
from balancebook.cli.error_handling import handle_domain_error, parse_or_exit
from balancebook.domain.entities import EntryKind, ItemInput
from balancebook.domain.entry import EntryService
from balancebook.domain.errors import DomainError
from balancebook.utils.amount_parser import parse_amount
from balancebook.utils.date_parser import parse_date

KIND_CHOICE = click.Choice([k.value for k in EntryKind], case_sensitive=False)


def parse_item_spec(spec: str) -> ItemInput:
    """Parse an item given as PRODUCT_ID:QUANTITY:SUBTOTAL or PRODUCT_ID:QUANTITY@UNIT_PRICE.

    Raises:
        ValueError: If the spec is malformed
    """
    parts = spec.split(":", 2)
    if len(parts) == 2 and "@" in parts[1]:
        quantity_text, unit_text = parts[1].split("@", 1)
        subtotal = None
        unit_price = parse_amount(unit_text)
    elif len(parts) == 3:
        quantity_text = parts[1]
        subtotal = parse_amount(parts[2])
        unit_price = None
    else:
        raise ValueError(f"'{spec}' is not PRODUCT_ID:QUANTITY:SUBTOTAL or PRODUCT_ID:QUANTITY@UNIT_PRICE")

    try:
        product_id = int(parts[0].strip())
        quantity = int(quantity_text.strip())
    except ValueError:
        raise ValueError(f"'{spec}' needs a numeric product ID and quantity") from None
    return ItemInput(product_id=product_id, quantity=quantity, subtotal=subtotal, unit_price=unit_price)


def _parse_items(ctx, item_specs: tuple[str, ...]) -> list[ItemInput]:
    return [parse_or_exit(ctx, parse_item_spec, spec, "item") for spec in item_specs]


@click.group()
def entry_group():
    """Manage ledger entries."""
    pass


@entry_group.command("add")
@click.argument("kind", type=KIND_CHOICE)
@click.option("--debit", help="Debit amount (inflow entries)")
@click.option("--credit", help="Credit amount (outflow entries)")
@click.option("--account-id", type=int, help="Cash account to move")
@click.option("--date", "entry_date", help="Entry date (YYYY-MM-DD or relative like 'today', 'yesterday')")
@click.option("--description", help="Description")
@click.option(
    "--item",
    "item_specs",
    multiple=True,
    help="Line item PRODUCT_ID:QUANTITY:SUBTOTAL or PRODUCT_ID:QUANTITY@UNIT_PRICE (repeatable)",
)
@click.option("--share", is_flag=True, help="Share the entry with your group")
@click.pass_context
def add_entry(
    ctx,
    kind: str,
    debit: str | None,
    credit: str | None,
    account_id: int | None,
    entry_date: str | None,
    description: str | None,
    item_specs: tuple[str, ...],
    share: bool,
):
    """Record an inflow or outflow entry.

    When items are given their subtotals must add up to the debit of an
    inflow entry or the credit of an outflow entry.

    Examples:
        balancebook entry add inflow --debit 100000 --account-id 1 --item 3:10:100000
        balancebook entry add outflow --credit "Rp 50.000" --item 5:2@25000
    """
    debit_amount = parse_or_exit(ctx, parse_amount, debit, "debit amount") if debit else 0
    credit_amount = parse_or_exit(ctx, parse_amount, credit, "credit amount") if credit else 0
    parsed_date = parse_or_exit(ctx, parse_date, entry_date, "date") if entry_date else None
    items = _parse_items(ctx, item_specs)

    service = EntryService(ctx.obj["db"])
    try:
        entry = service.create_entry(
            ctx.obj["caller"],
            kind,
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            description=description,
            entry_date=parsed_date,
            account_id=account_id,
            share_to_group=share or None,
            items=items or None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Created {entry.kind.value} entry {entry.id} ({entry.net_effect:+,d})")


@entry_group.command("update")
@click.argument("entry_id", type=int)
@click.option("--kind", type=KIND_CHOICE, help="New kind")
@click.option("--debit", help="New debit amount")
@click.option("--credit", help="New credit amount")
@click.option("--account-id", type=int, help="Move the entry to this account")
@click.option("--clear-account", is_flag=True, help="Detach the entry from its account")
@click.option("--date", "entry_date", help="New entry date")
@click.option("--description", help="New description")
@click.option("--item", "item_specs", multiple=True, help="Replacement line items (repeatable)")
@click.option("--share/--private", default=None, help="Share with your group or make private")
@click.pass_context
def update_entry(
    ctx,
    entry_id: int,
    kind: str | None,
    debit: str | None,
    credit: str | None,
    account_id: int | None,
    clear_account: bool,
    entry_date: str | None,
    description: str | None,
    item_specs: tuple[str, ...],
    share: bool | None,
):
    """Update an entry.

    Updates only the fields that are provided. The account balance is
    re-attributed from the old values to the new ones.

    Examples:
        balancebook entry update 4 --debit 120000 --item 3:12:120000
        balancebook entry update 4 --account-id 2
    """
    if account_id is not None and clear_account:
        click.echo("Error: --account-id cannot be combined with --clear-account.", err=True)
        ctx.exit(1)

    debit_amount = parse_or_exit(ctx, parse_amount, debit, "debit amount") if debit is not None else None
    credit_amount = parse_or_exit(ctx, parse_amount, credit, "credit amount") if credit is not None else None
    parsed_date = parse_or_exit(ctx, parse_date, entry_date, "date") if entry_date else None
    items = _parse_items(ctx, item_specs)

    service = EntryService(ctx.obj["db"])
    try:
        entry = service.update_entry(
            ctx.obj["caller"],
            entry_id,
            kind=kind,
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            description=description,
            entry_date=parsed_date,
            account_id=account_id,
            clear_account=clear_account,
            share_to_group=share,
            items=items or None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Updated entry {entry.id} ({entry.net_effect:+,d})")


@entry_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show an entry with its line items."""
    service = EntryService(ctx.obj["db"])
    try:
        detail = service.get_entry(ctx.obj["caller"], entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    entry = detail.entry
    click.echo(f"Entry {entry.id} ({entry.kind.value}) on {entry.date}")
    click.echo(f"  Debit:   {entry.debit_amount:>14,d}")
    click.echo(f"  Credit:  {entry.credit_amount:>14,d}")
    if entry.account_id is not None:
        click.echo(f"  Account: {entry.account_id}")
    if entry.description:
        click.echo(f"  Description: {entry.description}")
    if detail.items:
        click.echo("  Items:")
        for item in detail.items:
            name = item.product_name or f"product {item.product_id}"
            click.echo(
                f"    {name:32s} {item.quantity:>6d} x {item.unit_price:>12,d} = {item.subtotal:>14,d}"
            )


@entry_group.command("list")
@date_range_options
@click.option("--kind", type=KIND_CHOICE, help="Only entries of this kind")
@click.option("--account-id", type=int, help="Only entries of this account")
@click.option("--group", "group_id", help="Only entries shared with this group")
@click.option("--user", "user_id", help="Another user's entries (privileged only)")
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    kind: str | None,
    account_id: int | None,
    group_id: str | None,
    user_id: str | None,
):
    """List entries, newest first."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)

    service = EntryService(ctx.obj["db"])
    try:
        entries = service.list_entries(
            ctx.obj["caller"],
            user_id=user_id,
            group_id=group_id,
            start_date=start,
            end_date=end,
            kind=kind,
            account_id=account_id,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not entries:
        click.echo("No entries found.")
        return

    click.echo(f"\n{'ID':>5} | {'Date':10} | {'Kind':7} | {'Debit':>14} | {'Credit':>14} | Description")
    click.echo("-" * 90)
    for entry in entries:
        click.echo(
            f"{entry.id:>5d} | {entry.date.isoformat():10} | {entry.kind.value:7} | "
            f"{entry.debit_amount:>14,d} | {entry.credit_amount:>14,d} | {entry.description or ''}"
        )


@entry_group.command("delete")
@click.argument("entry_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_entry(ctx, entry_id: int, yes: bool) -> None:
    """Delete an entry and reverse its effect on the account balance.

    Examples:
        balancebook entry delete 4
    """
    if not yes and not click.confirm(f"Are you sure you want to delete entry {entry_id}?"):
        click.echo("Deletion cancelled.")
        return

    service = EntryService(ctx.obj["db"])
    try:
        service.delete_entry(ctx.obj["caller"], entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted entry {entry_id}")


def register_commands(cli: click.Group) -> None:
    """Register entry commands with main CLI."""
    cli.add_command(entry_group, name="entry")
