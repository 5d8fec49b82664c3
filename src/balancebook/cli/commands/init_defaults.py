"""Seed default categories, products and rules."""

import click
from balancebook.cli.error_handling import handle_domain_error
from balancebook.domain.bootstrap import BootstrapService
from balancebook.domain.errors import DomainError


@click.command("init-defaults")
@click.option("--share", is_flag=True, help="Seed your group instead of your private scope")
@click.option("--no-rules", is_flag=True, help="Do not add the default classification rules")
@click.pass_context
def init_defaults(ctx, share: bool, no_rules: bool):
    """Create the default categories, products and classification rules.

    Records that already exist are left alone, so the command can be run
    more than once.
    """
    service = BootstrapService(ctx.obj["db"])

    click.echo("Creating default categories and products...")
    try:
        result = service.bootstrap_defaults(ctx.obj["caller"], share_to_group=share, include_rules=not no_rules)
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if result.categories_created == 0 and result.products_created == 0 and result.rules_created == 0:
        click.echo("Defaults already exist. Nothing to do.")
        return
    click.echo(
        f"Successfully created {result.categories_created} categories, "
        f"{result.products_created} products and {result.rules_created} rules."
    )


def register_commands(cli):
    """Register init-defaults command with main CLI."""
    cli.add_command(init_defaults)
