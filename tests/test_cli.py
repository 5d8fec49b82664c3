"""Tests for CLI commands."""

from balancebook.cli.main import cli


def _args(temp_db, *args, user="alice", group="farm"):
    base = ["--db-path", temp_db.database_path, "--user", user]
    if group:
        base += ["--group", group]
    return base + list(args)


def test_cli_help(cli_runner):
    """Help works without a database."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "balance-sheet" in result.output
    assert "init-defaults" in result.output


def test_cli_version(cli_runner):
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_account_create_and_list(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash", "--opening-balance", "Rp 1.000"))
    assert result.exit_code == 0
    assert "Created account 'Cash' (ID: 1)" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "account", "list"))
    assert result.exit_code == 0
    assert "Cash" in result.output
    assert "1,000" in result.output
    assert "private" in result.output


def test_account_list_empty(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "account", "list"))
    assert result.exit_code == 0
    assert "No accounts found." in result.output


def test_account_invisible_to_other_user(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash"))

    result = cli_runner.invoke(cli, _args(temp_db, "account", "check", "1", user="carol", group=None))
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_account_invalid_opening_balance(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash", "--opening-balance", "lots"))
    assert result.exit_code == 1
    assert "Error: Invalid opening balance" in result.output


def test_account_delete_requires_confirmation(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash"))

    result = cli_runner.invoke(cli, _args(temp_db, "account", "delete", "1"), input="n\n")
    assert "Deletion cancelled." in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "account", "delete", "1", "--yes"))
    assert result.exit_code == 0
    assert "Deleted account 'Cash'" in result.output


def test_init_defaults_is_idempotent(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "init-defaults"))
    assert result.exit_code == 0
    assert "Successfully created 11 categories, 12 products and 10 rules." in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "init-defaults"))
    assert result.exit_code == 0
    assert "Defaults already exist. Nothing to do." in result.output


def test_category_create_with_subgroup(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "category", "create", "Machinery", "--subgroup", "asset_fixed"))
    assert result.exit_code == 0
    assert "code 2600" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "category", "create", "Loans", "--subgroup", "liability_longterm"))
    assert result.exit_code == 0
    assert "code 4500" in result.output


def test_category_resolve_without_rule_fails(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "category", "resolve", "Mystery"))
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_rule_add_and_resolve(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "rule", "add", "%payable%", "liability_current"))
    assert result.exit_code == 0
    assert "-> liability_current" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "category", "resolve", "Seed Payable"))
    assert result.exit_code == 0
    assert "4000" in result.output


def test_product_create(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "product", "create", "Hoe"))
    assert result.exit_code == 0
    assert "uncategorized" in result.output

    result = cli_runner.invoke(
        cli, _args(temp_db, "product", "create", "Tractor", "--category", "Farm Machinery", "--subgroup", "asset_fixed")
    )
    assert result.exit_code == 0
    assert "Created product 'Tractor' (ID: 2, category 1)" in result.output


def test_product_create_conflicting_category_options(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, _args(temp_db, "product", "create", "Tractor", "--category-id", "1", "--category", "Machinery")
    )
    assert result.exit_code == 1
    assert "cannot be combined" in result.output


def test_entry_add_with_items(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash", "--opening-balance", "1000"))
    cli_runner.invoke(cli, _args(temp_db, "product", "create", "Seed"))

    result = cli_runner.invoke(
        cli,
        _args(temp_db, "entry", "add", "inflow", "--debit", "500", "--account-id", "1", "--item", "1:5@100"),
    )
    assert result.exit_code == 0
    assert "Created inflow entry 1 (+500)" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "entry", "show", "1"))
    assert result.exit_code == 0
    assert "Items:" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "account", "check", "1"))
    assert result.exit_code == 0
    assert "Balance is consistent." in result.output
    assert "1,500" in result.output


def test_entry_add_items_must_match_amount(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "product", "create", "Seed"))

    result = cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "500", "--item", "1:1:400"))
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_entry_add_malformed_item(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "500", "--item", "oops"))
    assert result.exit_code == 1
    assert "Error: Invalid item" in result.output


def test_entry_list_empty(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "entry", "list"))
    assert result.exit_code == 0
    assert "No entries found." in result.output


def test_entry_list_rejects_period_with_dates(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, _args(temp_db, "entry", "list", "--period", "this-month", "--start-date", "2024-01-01")
    )
    assert result.exit_code == 1
    assert "--period cannot be combined" in result.output


def test_entry_delete_restores_balance(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "account", "create", "Cash", "--opening-balance", "1000"))
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "outflow", "--credit", "300", "--account-id", "1"))

    result = cli_runner.invoke(cli, _args(temp_db, "entry", "delete", "1", "--yes"))
    assert result.exit_code == 0

    result = cli_runner.invoke(cli, _args(temp_db, "account", "check", "1"))
    assert result.exit_code == 0
    assert "Balance is consistent." in result.output
    assert "700" not in result.output


def test_balance_sheet_summary(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "product", "create", "Tractor", "--subgroup", "asset_fixed"))
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "700", "--item", "1:1:700"))

    result = cli_runner.invoke(cli, _args(temp_db, "balance-sheet", "summary", "--items"))
    assert result.exit_code == 0
    fixed = next(line for line in result.output.splitlines() if line.startswith("Fixed assets"))
    assert "700" in fixed
    assert "Tractor" in result.output
    assert "Total assets" in result.output
    assert "Difference" in result.output


def test_balance_sheet_other_user_requires_privilege(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "balance-sheet", "summary", "--user", "bob"))
    assert result.exit_code == 1
    assert "Error:" in result.output

    result = cli_runner.invoke(cli, _args(temp_db, "--privileged", "balance-sheet", "summary", "--user", "bob"))
    assert result.exit_code == 0


def test_balance_sheet_details_pagination(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "balance-sheet", "details", "asset_current", "--limit", "5"))
    assert result.exit_code == 0
    assert "asset_current: page 1, 0 of 0 products" in result.output


def test_report_profit_loss(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "900"))
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "outflow", "--credit", "400"))

    result = cli_runner.invoke(cli, _args(temp_db, "report", "profit-loss"))
    assert result.exit_code == 0
    assert "Total inflow:" in result.output
    net = next(line for line in result.output.splitlines() if line.startswith("Net:"))
    assert net.split()[-1] == "500"


def test_report_profit_loss_by_category(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "product", "create", "Seed", "--category", "Seeds"))
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "500", "--item", "1:5"))
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "outflow", "--credit", "120", "--item", "1:1:120"))

    result = cli_runner.invoke(cli, _args(temp_db, "report", "profit-loss", "--by-category"))
    assert result.exit_code == 0
    row = next(line for line in result.output.splitlines() if line.startswith("Seeds"))
    assert row.split()[1:] == ["500", "120", "380"]


def test_report_profit_loss_by_category_without_items(cli_runner, temp_db):
    cli_runner.invoke(cli, _args(temp_db, "entry", "add", "inflow", "--debit", "900"))

    result = cli_runner.invoke(cli, _args(temp_db, "report", "profit-loss", "--by-category"))
    assert result.exit_code == 0
    assert "No categorized items found." in result.output


def test_report_cash_flow_empty(cli_runner, temp_db):
    result = cli_runner.invoke(cli, _args(temp_db, "report", "cash-flow", "in"))
    assert result.exit_code == 0
    assert "No entries found." in result.output
