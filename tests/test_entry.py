"""Tests for ledger entries and their effect on account balances."""

from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from balancebook.domain.entities import EntryKind, ItemInput, NewItem, Subgroup
from balancebook.domain.errors import (
    AuthorizationError,
    ConsistencyError,
    NotFoundError,
    RollbackFailedError,
    ValidationError,
)


@pytest.fixture
def harvest(sample_products):
    return sample_products[Subgroup.ASSET_CURRENT]


@pytest.fixture
def tractor(sample_products):
    return sample_products[Subgroup.ASSET_FIXED]


@pytest.fixture
def locked_tables(temp_db):
    """Table names whose INSERTs fail as if the database were locked."""
    tables = set()
    engine = temp_db._get_session().get_bind()

    def reject_insert(conn, cursor, statement, parameters, context, executemany):
        for table in tables:
            if statement.startswith(f"INSERT INTO {table}"):
                raise OperationalError(statement, parameters, Exception("database is locked"))

    event.listen(engine, "before_cursor_execute", reject_insert)
    yield tables
    event.remove(engine, "before_cursor_execute", reject_insert)


def _balance(account_service, caller, account_id):
    return account_service.get_account(caller, account_id).closing_balance


def test_inflow_with_items_raises_balance(entry_service, account_service, temp_db, alice, sample_account, harvest):
    entry = entry_service.create_entry(
        alice,
        "inflow",
        debit_amount=500,
        account_id=sample_account.id,
        entry_date=date(2024, 3, 1),
        items=[ItemInput(harvest.id, 3, subtotal=300), ItemInput(harvest.id, 2, subtotal=200)],
    )

    assert entry.kind == EntryKind.INFLOW
    assert entry.net_effect == 500
    assert entry.date == date(2024, 3, 1)
    assert [item.subtotal for item in temp_db.list_items(entry.id)] == [300, 200]
    assert _balance(account_service, alice, sample_account.id) == 1500


def test_outflow_lowers_balance(entry_service, account_service, alice, sample_account):
    entry_service.create_entry(alice, "outflow", credit_amount=200, account_id=sample_account.id)

    assert _balance(account_service, alice, sample_account.id) == 800


def test_entry_without_account_keeps_balances(entry_service, account_service, alice, sample_account):
    entry = entry_service.create_entry(alice, "inflow", debit_amount=50)

    assert entry.account_id is None
    assert entry.date == date.today()
    assert _balance(account_service, alice, sample_account.id) == 1000


@pytest.mark.parametrize(
    "kind,debit,credit",
    [
        ("inflow", 0, 0),
        ("inflow", 100, 50),
        ("inflow", 0, 100),
        ("outflow", 100, 0),
        ("outflow", 10, 10),
        ("outflow", 0, -5),
        ("inflow", -5, 0),
    ],
)
def test_amounts_must_match_kind(entry_service, alice, kind, debit, credit):
    with pytest.raises(ValidationError):
        entry_service.create_entry(alice, kind, debit_amount=debit, credit_amount=credit)


def test_unknown_kind(entry_service, alice):
    with pytest.raises(ValidationError, match="inflow"):
        entry_service.create_entry(alice, "transfer", debit_amount=10)


def test_items_must_add_up(entry_service, account_service, alice, sample_account, harvest):
    with pytest.raises(ValidationError, match="debit"):
        entry_service.create_entry(
            alice,
            "inflow",
            debit_amount=500,
            account_id=sample_account.id,
            items=[ItemInput(harvest.id, 1, subtotal=400)],
        )

    assert entry_service.list_entries(alice) == []
    assert _balance(account_service, alice, sample_account.id) == 1000


def test_outflow_items_add_up_to_credit(entry_service, alice, sample_products):
    payable = sample_products[Subgroup.LIABILITY_CURRENT]
    entry = entry_service.create_entry(
        alice, "outflow", credit_amount=90, items=[ItemInput(payable.id, 3, unit_price=30)]
    )

    detail = entry_service.get_entry(alice, entry.id)
    assert detail.items[0].subtotal == 90
    assert detail.items[0].unit_price == 30


def test_item_needs_existing_product(entry_service, alice):
    with pytest.raises(NotFoundError):
        entry_service.create_entry(alice, "inflow", debit_amount=10, items=[ItemInput(999, 1, subtotal=10)])


@pytest.mark.parametrize(
    "item",
    [
        ItemInput(None, 1, subtotal=10),
        ItemInput(1, 0, subtotal=10),
        ItemInput(1, 1),
        ItemInput(1, 1, subtotal=0),
    ],
)
def test_invalid_items(entry_service, alice, harvest, item):
    with pytest.raises(ValidationError):
        entry_service.create_entry(alice, "inflow", debit_amount=10, items=[item])


def test_display_unit_price_is_floored(entry_service, alice, harvest):
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=1000, items=[ItemInput(harvest.id, 3, subtotal=1000)]
    )

    detail = entry_service.get_entry(alice, entry.id)

    assert detail.items[0].unit_price == 333
    assert detail.items[0].product_name == harvest.name


def test_failed_balance_update_undoes_create(
    entry_service, balance_service, account_service, temp_db, alice, sample_account, harvest, monkeypatch
):
    def fail(account_id, delta):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(balance_service, "apply_delta", fail)

    with pytest.raises(ConsistencyError, match="store unavailable"):
        entry_service.create_entry(
            alice,
            "inflow",
            debit_amount=100,
            account_id=sample_account.id,
            items=[ItemInput(harvest.id, 1, subtotal=100)],
        )

    assert entry_service.list_entries(alice) == []
    assert temp_db.get_product_item_count(harvest.id) == 0
    assert _balance(account_service, alice, sample_account.id) == 1000


def test_failed_compensation_reports_rollback_failure(
    entry_service, balance_service, temp_db, alice, sample_account, monkeypatch
):
    def fail_balance(account_id, delta):
        raise RuntimeError("balance down")

    def fail_delete(entry_id):
        raise RuntimeError("delete down")

    monkeypatch.setattr(balance_service, "apply_delta", fail_balance)
    monkeypatch.setattr(temp_db, "delete_entry", fail_delete)

    with pytest.raises(RollbackFailedError) as excinfo:
        entry_service.create_entry(alice, "inflow", debit_amount=100, account_id=sample_account.id)

    assert "manual reconciliation" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_update_amount_on_same_account(entry_service, account_service, temp_db, alice, sample_account, harvest):
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=500, account_id=sample_account.id, items=[ItemInput(harvest.id, 5, subtotal=500)]
    )

    updated = entry_service.update_entry(
        alice, entry.id, debit_amount=700, items=[ItemInput(harvest.id, 7, subtotal=700)]
    )

    assert updated.debit_amount == 700
    assert [item.quantity for item in temp_db.list_items(entry.id)] == [7]
    assert _balance(account_service, alice, sample_account.id) == 1700


def test_update_kind_flips_effect(entry_service, account_service, alice, sample_account):
    entry = entry_service.create_entry(alice, "inflow", debit_amount=300, account_id=sample_account.id)

    entry_service.update_entry(alice, entry.id, kind="outflow", debit_amount=0, credit_amount=300)

    assert _balance(account_service, alice, sample_account.id) == 700


def test_update_moves_effect_between_accounts(entry_service, account_service, alice, sample_account):
    other = account_service.create_account(alice, "Bank", opening_balance=0)
    entry = entry_service.create_entry(alice, "inflow", debit_amount=500, account_id=sample_account.id)

    entry_service.update_entry(alice, entry.id, account_id=other.id)

    assert _balance(account_service, alice, sample_account.id) == 1000
    assert _balance(account_service, alice, other.id) == 500


def test_update_clear_account(entry_service, account_service, alice, sample_account):
    entry = entry_service.create_entry(alice, "outflow", credit_amount=400, account_id=sample_account.id)

    updated = entry_service.update_entry(alice, entry.id, clear_account=True)

    assert updated.account_id is None
    assert _balance(account_service, alice, sample_account.id) == 1000


def test_update_checks_stored_items(entry_service, alice, harvest):
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=500, items=[ItemInput(harvest.id, 5, subtotal=500)]
    )

    with pytest.raises(ValidationError):
        entry_service.update_entry(alice, entry.id, debit_amount=600)


def test_update_requires_owner(entry_service, alice, bob):
    entry = entry_service.create_entry(alice, "inflow", debit_amount=10, share_to_group=True)

    with pytest.raises(AuthorizationError):
        entry_service.update_entry(bob, entry.id, debit_amount=20)


def test_failed_update_restores_everything(
    entry_service, balance_service, account_service, temp_db, alice, sample_account, harvest, monkeypatch
):
    other = account_service.create_account(alice, "Bank", opening_balance=0)
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=500, account_id=sample_account.id, items=[ItemInput(harvest.id, 5, subtotal=500)]
    )

    real_apply = balance_service.apply_delta

    def fail_on_new_account(account_id, delta):
        if account_id == other.id:
            raise RuntimeError("store unavailable")
        return real_apply(account_id, delta)

    monkeypatch.setattr(balance_service, "apply_delta", fail_on_new_account)

    with pytest.raises(ConsistencyError):
        entry_service.update_entry(
            alice,
            entry.id,
            debit_amount=800,
            account_id=other.id,
            items=[ItemInput(harvest.id, 8, subtotal=800)],
        )

    restored = temp_db.get_entry(entry.id)
    assert restored.debit_amount == 500
    assert restored.account_id == sample_account.id
    assert [item.subtotal for item in temp_db.list_items(entry.id)] == [500]
    assert _balance(account_service, alice, sample_account.id) == 1500
    assert _balance(account_service, alice, other.id) == 0


def test_delete_reverses_balance(entry_service, account_service, temp_db, alice, sample_account, harvest):
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=500, account_id=sample_account.id, items=[ItemInput(harvest.id, 5, subtotal=500)]
    )

    entry_service.delete_entry(alice, entry.id)

    assert temp_db.get_entry(entry.id) is None
    assert temp_db.list_items(entry.id) == []
    assert _balance(account_service, alice, sample_account.id) == 1000


def test_failed_reversal_keeps_entry(
    entry_service, balance_service, account_service, temp_db, alice, sample_account, monkeypatch
):
    entry = entry_service.create_entry(alice, "outflow", credit_amount=300, account_id=sample_account.id)

    def fail(account_id, delta):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(balance_service, "apply_delta", fail)

    with pytest.raises(ConsistencyError):
        entry_service.delete_entry(alice, entry.id)

    assert temp_db.get_entry(entry.id) is not None
    assert _balance(account_service, alice, sample_account.id) == 700


def test_delete_missing_entry(entry_service, alice):
    with pytest.raises(NotFoundError):
        entry_service.delete_entry(alice, 404)


def test_entry_inherits_account_group(entry_service, account_service, alice, bob):
    shared = account_service.create_account(alice, "Farm Cash", opening_balance=0, share_to_group=True)

    entry = entry_service.create_entry(bob, "inflow", debit_amount=250, account_id=shared.id)

    assert entry.group_id == "farm"
    assert _balance(account_service, bob, shared.id) == 250


def test_foreign_account_is_rejected(entry_service, carol, sample_account):
    with pytest.raises(AuthorizationError):
        entry_service.create_entry(carol, "inflow", debit_amount=10, account_id=sample_account.id)


def test_group_mismatch_is_rejected(entry_service, account_service, admin, alice):
    shared = account_service.create_account(alice, "Farm Cash", share_to_group=True)

    with pytest.raises(AuthorizationError, match="does not match"):
        entry_service.create_entry(admin, "inflow", debit_amount=10, account_id=shared.id, group_id="other")


def test_list_entries_filters(entry_service, alice, sample_account):
    entry_service.create_entry(alice, "inflow", debit_amount=10, entry_date=date(2024, 1, 5))
    entry_service.create_entry(alice, "outflow", credit_amount=5, entry_date=date(2024, 2, 5))
    entry_service.create_entry(alice, "inflow", debit_amount=20, entry_date=date(2024, 3, 5), account_id=sample_account.id)

    assert [e.debit_amount for e in entry_service.list_entries(alice, kind="inflow")] == [20, 10]
    assert len(entry_service.list_entries(alice, start_date=date(2024, 2, 1), end_date=date(2024, 2, 29))) == 1
    assert len(entry_service.list_entries(alice, account_id=sample_account.id)) == 1


def test_list_other_users_entries_requires_privilege(entry_service, alice, bob, admin):
    entry_service.create_entry(alice, "inflow", debit_amount=10)

    with pytest.raises(AuthorizationError):
        entry_service.list_entries(bob, user_id="alice")
    assert len(entry_service.list_entries(admin, user_id="alice")) == 1


def test_balance_stays_consistent(entry_service, balance_service, alice, sample_account, harvest):
    first = entry_service.create_entry(alice, "inflow", debit_amount=500, account_id=sample_account.id)
    second = entry_service.create_entry(alice, "outflow", credit_amount=120, account_id=sample_account.id)
    entry_service.update_entry(alice, first.id, debit_amount=450)
    entry_service.delete_entry(alice, second.id)

    check = balance_service.check_balance(sample_account.id)

    assert check.consistent
    assert check.stored == 1450


def test_item_product_must_be_visible(entry_service, temp_db, carol, bob, harvest):
    with pytest.raises(AuthorizationError):
        entry_service.create_entry(carol, "inflow", debit_amount=5, items=[ItemInput(harvest.id, 1, subtotal=5)])
    with pytest.raises(AuthorizationError):
        entry_service.create_entry(bob, "inflow", debit_amount=5, items=[ItemInput(harvest.id, 1, subtotal=5)])

    assert temp_db.list_entries() == []
    assert temp_db.get_product_item_count(harvest.id) == 0


def test_group_product_is_usable_by_group_mate(entry_service, product_service, alice, bob):
    shared = product_service.create_product(alice, "Shared Seed", share_to_group=True)

    entry = entry_service.create_entry(bob, "inflow", debit_amount=5, items=[ItemInput(shared.id, 1, subtotal=5)])

    assert entry_service.get_entry(bob, entry.id).items[0].product_name == "Shared Seed"


def test_failed_item_insert_removes_header(
    entry_service, account_service, temp_db, alice, sample_account, harvest, locked_tables
):
    locked_tables.add("ledger_items")

    with pytest.raises(OperationalError):
        entry_service.create_entry(
            alice,
            "inflow",
            debit_amount=100,
            account_id=sample_account.id,
            items=[ItemInput(harvest.id, 1, subtotal=100)],
        )

    locked_tables.clear()
    assert entry_service.list_entries(alice) == []
    assert temp_db.get_product_item_count(harvest.id) == 0
    assert _balance(account_service, alice, sample_account.id) == 1000


def test_failed_item_replace_restores_header_and_items(
    entry_service, account_service, temp_db, alice, sample_account, harvest, locked_tables
):
    entry = entry_service.create_entry(
        alice, "inflow", debit_amount=500, account_id=sample_account.id, items=[ItemInput(harvest.id, 5, subtotal=500)]
    )
    locked_tables.add("ledger_items")

    with pytest.raises(OperationalError):
        entry_service.update_entry(alice, entry.id, debit_amount=800, items=[ItemInput(harvest.id, 8, subtotal=800)])

    locked_tables.clear()
    assert temp_db.get_entry(entry.id).debit_amount == 500
    assert [item.subtotal for item in temp_db.list_items(entry.id)] == [500]
    assert _balance(account_service, alice, sample_account.id) == 1500


def test_store_stays_usable_after_failed_write(temp_db, harvest, locked_tables):
    entry_id = temp_db.create_entry("alice", EntryKind.INFLOW, 10, 0, date(2024, 1, 1))
    locked_tables.add("ledger_items")

    with pytest.raises(OperationalError):
        temp_db.add_items(entry_id, [NewItem(harvest.id, 1, 10)])

    temp_db.delete_entry(entry_id)
    assert temp_db.get_entry(entry_id) is None
