"""Category and classification rule commands."""

import click
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.category import CategoryService
from balancebook.domain.entities import CategoryKind, Subgroup
from balancebook.domain.errors import DomainError

SUBGROUP_CHOICE = click.Choice([s.value for s in Subgroup], case_sensitive=False)
KIND_CHOICE = click.Choice([k.value for k in CategoryKind], case_sensitive=False)


def _format_category(cat) -> str:
    code = f"{cat.sequence_code:4d}" if cat.sequence_code is not None else "   -"
    subgroup = cat.subgroup.value if cat.subgroup else "-"
    shared = f"group {cat.group_id}" if cat.group_id else "private"
    return f"ID: {cat.id:3d} | {code} | {cat.name:28s} | {cat.kind.value:8s} | {subgroup:18s} | {shared}"


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("create")
@click.argument("name", metavar="CATEGORY_NAME")
@click.option("--kind", type=KIND_CHOICE, default="inflow", show_default=True, help="Category kind")
@click.option("--subgroup", type=SUBGROUP_CHOICE, help="Balance-sheet subgroup (allocates a sequence code)")
@click.option("--share", is_flag=True, help="Create in your group instead of privately")
@click.pass_context
def create_category(ctx, name: str, kind: str, subgroup: str | None, share: bool):
    """Create a category.

    Examples:
        balancebook category create "Seed Stock" --subgroup asset_current
        balancebook category create "Local Market" --kind market
    """
    service = CategoryService(ctx.obj["db"])
    try:
        category = service.create_category(
            ctx.obj["caller"], name=name, kind=kind, subgroup=subgroup, share_to_group=share or None
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if category.sequence_code is not None:
        click.echo(f"Created category '{category.name}' (ID: {category.id}, code {category.sequence_code})")
    else:
        click.echo(f"Created category '{category.name}' (ID: {category.id})")


@category_group.command("resolve")
@click.argument("name", metavar="CATEGORY_NAME")
@click.option("--subgroup", type=SUBGROUP_CHOICE, help="Subgroup hint, skips rule matching")
@click.option("--product", "product_name", help="Product name used when matching rules")
@click.option("--share", is_flag=True, help="Look up and create in your group")
@click.pass_context
def resolve_category(ctx, name: str, subgroup: str | None, product_name: str | None, share: bool):
    """Find a category by name, or classify and create it.

    Examples:
        balancebook category resolve "Tractor Installments"
        balancebook category resolve "Harvest" --subgroup asset_current
    """
    service = CategoryService(ctx.obj["db"])
    try:
        category = service.resolve_or_create_category(
            ctx.obj["caller"],
            name,
            share_to_group=share or None,
            subgroup=subgroup,
            product_name=product_name,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(_format_category(category))


@category_group.command("list")
@click.option("--kind", type=KIND_CHOICE, help="Only categories of this kind")
@click.option("--search", help="Filter by name")
@click.pass_context
def list_categories(ctx, kind: str | None, search: str | None):
    """List categories visible to you."""
    service = CategoryService(ctx.obj["db"])
    categories = service.list_categories(ctx.obj["caller"], kind=kind, search=search)
    if not categories:
        click.echo("No categories found.")
        return

    click.echo("\nCategories:")
    click.echo("-" * 100)
    for cat in categories:
        click.echo(_format_category(cat))


@category_group.command("delete")
@click.argument("category_id", type=int)
@click.pass_context
def delete_category(ctx, category_id: int):
    """Delete a category no product references."""
    service = CategoryService(ctx.obj["db"])
    try:
        service.delete_category(ctx.obj["caller"], category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted category {category_id}")


@click.group()
def rule_group():
    """Manage classification rules."""
    pass


@rule_group.command("add")
@click.argument("pattern")
@click.argument("subgroup", type=SUBGROUP_CHOICE)
@click.option("--priority", type=int, help="Lower wins within the same scope")
@click.option("--share", is_flag=True, help="Make it a rule for your group")
@click.option("--global", "global_rule", is_flag=True, help="Make it a rule for everyone (privileged only)")
@click.pass_context
def add_rule(ctx, pattern: str, subgroup: str, priority: int | None, share: bool, global_rule: bool):
    """Add a classification rule.

    PATTERN uses SQL LIKE syntax: '%' matches any run of characters,
    '_' matches one character. Matching ignores case.

    Examples:
        balancebook rule add "%installment%" liability_longterm --priority 10
        balancebook rule add "%tractor%" asset_fixed --share
    """
    service = CategoryService(ctx.obj["db"])
    try:
        rule = service.add_rule(
            ctx.obj["caller"],
            pattern,
            subgroup,
            priority=priority,
            share_to_group=share or None,
            global_rule=global_rule,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Added rule {rule.id}: '{rule.pattern}' -> {rule.target_subgroup.value}")


@rule_group.command("list")
@click.pass_context
def list_rules(ctx):
    """List the rules that apply to you, in matching order."""
    service = CategoryService(ctx.obj["db"])
    rules = service.list_rules(ctx.obj["caller"])
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 80)
    for rule in rules:
        if rule.group_id:
            scope = f"group {rule.group_id}"
        elif rule.owner_user_id:
            scope = f"user {rule.owner_user_id}"
        else:
            scope = "global"
        priority = "-" if rule.priority is None else str(rule.priority)
        click.echo(
            f"ID: {rule.id:3d} | {rule.pattern:24s} | {rule.target_subgroup.value:18s} | {priority:>4s} | {scope}"
        )


def register_commands(cli: click.Group) -> None:
    """Register category and rule commands with main CLI."""
    cli.add_command(category_group, name="category")
    cli.add_command(rule_group, name="rule")
