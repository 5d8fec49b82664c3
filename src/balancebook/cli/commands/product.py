"""Product commands."""

import click
from balancebook.cli.commands.category import SUBGROUP_CHOICE
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.errors import DomainError
from balancebook.domain.product import ProductService


@click.group()
def product_group():
    """Manage products."""
    pass


@product_group.command("create")
@click.argument("name", metavar="PRODUCT_NAME")
@click.option("--category-id", type=int, help="Existing category ID")
@click.option("--category", "category_name", help="Category name to find or create")
@click.option("--subgroup", type=SUBGROUP_CHOICE, help="Subgroup for a newly created category")
@click.option("--share", is_flag=True, help="Share the product with your group")
@click.pass_context
def create_product(
    ctx, name: str, category_id: int | None, category_name: str | None, subgroup: str | None, share: bool
):
    """Create a product.

    Without --category-id the category is looked up by name and created
    when missing, classified by --subgroup or by the matching rule.

    Examples:
        balancebook product create "Potato Harvest G0" --category "Potato Harvest"
        balancebook product create "Tractor" --category "Machinery" --subgroup asset_fixed
        balancebook product create "Hoe" --category-id 3
    """
    if category_id is not None and (category_name or subgroup):
        click.echo("Error: --category-id cannot be combined with --category or --subgroup.", err=True)
        ctx.exit(1)

    service = ProductService(ctx.obj["db"])
    try:
        product = service.create_product(
            ctx.obj["caller"],
            name,
            category_id=category_id,
            category_name=category_name,
            subgroup=subgroup,
            share_to_group=share or None,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if product.category_id is None:
        click.echo(f"Created product '{product.name}' (ID: {product.id}, uncategorized)")
    else:
        click.echo(f"Created product '{product.name}' (ID: {product.id}, category {product.category_id})")


@product_group.command("list")
@click.option("--category-id", type=int, help="Only products in this category")
@click.option("--search", help="Filter by name")
@click.pass_context
def list_products(ctx, category_id: int | None, search: str | None):
    """List products visible to you."""
    service = ProductService(ctx.obj["db"])
    products = service.list_products(ctx.obj["caller"], category_id=category_id, search=search)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\nProducts:")
    click.echo("-" * 72)
    for prod in products:
        category = str(prod.category_id) if prod.category_id is not None else "-"
        shared = f"group {prod.group_id}" if prod.group_id else "private"
        click.echo(f"ID: {prod.id:3d} | {prod.name:32s} | Category: {category:>4s} | {shared}")


@product_group.command("update")
@click.argument("product_id", type=int)
@click.option("--name", help="New name")
@click.option("--category-id", type=int, help="Move to this category")
@click.option("--clear-category", is_flag=True, help="Leave the product uncategorized")
@click.pass_context
def update_product(ctx, product_id: int, name: str | None, category_id: int | None, clear_category: bool):
    """Rename a product or change its category."""
    service = ProductService(ctx.obj["db"])
    try:
        product = service.update_product(
            ctx.obj["caller"], product_id, name=name, category_id=category_id, clear_category=clear_category
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Updated product '{product.name}'")


@product_group.command("delete")
@click.argument("product_id", type=int)
@click.pass_context
def delete_product(ctx, product_id: int):
    """Delete a product no line item references."""
    service = ProductService(ctx.obj["db"])
    try:
        service.delete_product(ctx.obj["caller"], product_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Deleted product {product_id}")


def register_commands(cli: click.Group) -> None:
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")
