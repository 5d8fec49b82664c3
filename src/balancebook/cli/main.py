"""Main CLI entry point."""

import getpass
import logging

import click
from balancebook import __version__
from balancebook.database.factories import create_database
from balancebook.domain.entities import Caller
from balancebook.logging_config import configure_logging

# Import and register all commands at module level
from balancebook.cli.commands import (
    account,
    balance_sheet,
    category,
    entry,
    init_defaults,
    product,
    report,
)


@click.group()
@click.version_option(version=__version__, prog_name="balancebook")
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides BALANCEBOOK_DB_PATH environment variable)",
    envvar="BALANCEBOOK_DB_PATH",
)
@click.option(
    "--db-url",
    help="SQLAlchemy database URL, takes precedence over --db-path",
    envvar="BALANCEBOOK_DATABASE_URL",
)
@click.option("--user", "user_id", envvar="BALANCEBOOK_USER", help="Acting user ID (defaults to the login name)")
@click.option("--group", "group_id", envvar="BALANCEBOOK_GROUP", help="Acting user's group ID")
@click.option("--privileged", is_flag=True, help="Act as a privileged (admin) caller")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-json", is_flag=True, envvar="BALANCEBOOK_LOG_JSON", help="Emit log records as JSON lines")
@click.pass_context
def cli(
    ctx,
    db_path: str | None,
    db_url: str | None,
    user_id: str | None,
    group_id: str | None,
    privileged: bool,
    verbose: bool,
    log_json: bool,
):
    """Balancebook - Bookkeeping ledger and balance sheet.

    Record inflow and outflow entries with product line items, keep cash
    account balances in sync and aggregate them into a balance sheet.
    """
    ctx.ensure_object(dict)

    configure_logging(logging.DEBUG if verbose else logging.WARNING, json_output=log_json)

    ctx.obj["caller"] = Caller(
        user_id=user_id or getpass.getuser(),
        group_id=group_id or None,
        privileged=privileged,
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_database(database_url=db_url, database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
product.register_commands(cli)
entry.register_commands(cli)
balance_sheet.register_commands(cli)
report.register_commands(cli)
init_defaults.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
