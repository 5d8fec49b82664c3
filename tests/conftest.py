"""Shared pytest fixtures for balancebook tests."""

import logging
import os
import tempfile

import pytest
from click.testing import CliRunner

from balancebook.database.factories import create_sqlite_database
from balancebook.domain.account import AccountService
from balancebook.domain.balance import BalanceService
from balancebook.domain.balance_sheet import BalanceSheetService
from balancebook.domain.bootstrap import BootstrapService
from balancebook.domain.category import CategoryService
from balancebook.domain.entities import Caller, EntryKind, ExpandedRow, Subgroup
from balancebook.domain.entry import EntryService
from balancebook.domain.product import ProductService
from balancebook.domain.reports import ReportService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_app_logger():
    """Undo the handler and level the CLI installs on the balancebook logger."""
    logger = logging.getLogger("balancebook")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def alice():
    """Farm group member."""
    return Caller(user_id="alice", group_id="farm")


@pytest.fixture
def bob():
    """Another member of alice's group."""
    return Caller(user_id="bob", group_id="farm")


@pytest.fixture
def carol():
    """User without a group."""
    return Caller(user_id="carol")


@pytest.fixture
def admin():
    """Privileged caller."""
    return Caller(user_id="admin", privileged=True)


@pytest.fixture
def account_service(temp_db):
    return AccountService(temp_db)


@pytest.fixture
def category_service(temp_db):
    return CategoryService(temp_db)


@pytest.fixture
def product_service(temp_db, category_service):
    return ProductService(temp_db, category_service)


@pytest.fixture
def balance_service(temp_db):
    return BalanceService(temp_db)


@pytest.fixture
def entry_service(temp_db, balance_service):
    return EntryService(temp_db, balance_service)


@pytest.fixture
def balance_sheet_service(temp_db):
    return BalanceSheetService(temp_db)


@pytest.fixture
def report_service(temp_db):
    return ReportService(temp_db)


@pytest.fixture
def bootstrap_service(temp_db, category_service):
    return BootstrapService(temp_db, category_service)


@pytest.fixture
def sample_account(account_service, alice):
    """Private account of alice with an opening balance of 1000."""
    return account_service.create_account(alice, "Cash", opening_balance=1000)


@pytest.fixture
def sample_products(product_service, alice):
    """One private product of alice in each subgroup, keyed by subgroup."""
    names = {
        Subgroup.ASSET_CURRENT: ("Potato Harvest G0", "Potato Harvest"),
        Subgroup.ASSET_FIXED: ("Tractor", "Farm Machinery"),
        Subgroup.LIABILITY_CURRENT: ("Fertilizer Payable A", "Fertilizer Payable"),
        Subgroup.LIABILITY_LONGTERM: ("Tractor Installment", "Machinery Installments"),
    }
    return {
        subgroup: product_service.create_product(alice, name, category_name=category, subgroup=subgroup)
        for subgroup, (name, category) in names.items()
    }


def make_row(
    kind=EntryKind.INFLOW,
    subtotal=100,
    product_id=1,
    product_name="Product",
    category_id=1,
    category_name="Category",
    subgroup=None,
    sequence_code=None,
    group_id=None,
    owner_user_id="alice",
):
    """Build an ExpandedRow for pure aggregation tests."""
    return ExpandedRow(
        kind=kind,
        subtotal=subtotal,
        product_id=product_id,
        product_name=product_name,
        category_id=category_id,
        category_name=category_name,
        subgroup=subgroup,
        sequence_code=sequence_code,
        group_id=group_id,
        owner_user_id=owner_user_id,
    )


@pytest.fixture
def row_factory():
    """Expose make_row to tests."""
    return make_row
