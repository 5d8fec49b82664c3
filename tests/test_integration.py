"""Integration tests for end-to-end workflows."""

from balancebook.cli.main import cli


def _invoke(cli_runner, temp_db, *args, user="alice"):
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "--user", user, "--group", "farm", *args])
    assert result.exit_code == 0, result.output
    return result


def test_full_workflow(cli_runner, temp_db):
    """Seed defaults, record entries in a shared account and read the balance sheet."""
    _invoke(cli_runner, temp_db, "init-defaults", "--share")

    result = _invoke(cli_runner, temp_db, "account", "create", "Farm Wallet", "--opening-balance", "1000", "--share")
    assert "(ID: 1)" in result.output

    # Shared defaults: product 1 is "Potato Harvest G0", product 8 is "Tractor Installment"
    _invoke(
        cli_runner,
        temp_db,
        "entry",
        "add",
        "inflow",
        "--debit",
        "600",
        "--account-id",
        "1",
        "--item",
        "1:3@200",
        "--share",
    )
    _invoke(
        cli_runner,
        temp_db,
        "entry",
        "add",
        "outflow",
        "--credit",
        "250",
        "--account-id",
        "1",
        "--item",
        "8:1:250",
        "--share",
        user="bob",
    )

    result = _invoke(cli_runner, temp_db, "account", "check", "1")
    assert "Balance is consistent." in result.output
    assert "1,350" in result.output

    result = _invoke(cli_runner, temp_db, "balance-sheet", "summary", "--group", "farm", "--share", "group")
    lines = result.output.splitlines()
    current = next(line for line in lines if line.startswith("Current assets"))
    longterm = next(line for line in lines if line.startswith("Long-term liabilities"))
    assert "600" in current
    assert "250" in longterm

    result = _invoke(cli_runner, temp_db, "balance-sheet", "subgroups", "--group", "farm")
    assert "Potato Harvest" in result.output
    assert "Machinery Installments" in result.output

    result = _invoke(cli_runner, temp_db, "report", "account-flow", "1")
    assert "In:" in result.output
    assert "Out:" in result.output

    _invoke(cli_runner, temp_db, "entry", "delete", "1", "--yes")
    result = _invoke(cli_runner, temp_db, "account", "check", "1")
    assert "Balance is consistent." in result.output
    assert "750" in result.output
