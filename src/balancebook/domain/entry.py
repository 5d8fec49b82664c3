"""Ledger entry domain service.

Entries are written as a header plus line items, and an attached cash
account's closing balance is moved by the entry's net effect. The three
writes are independent, so every mutation runs as a saga (see
``balancebook.domain.saga``) that undoes completed writes when a later one
fails.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from balancebook.database.base import Database
from balancebook.domain.access import require_manage, require_owner, resolve_group
from balancebook.domain.balance import BalanceService
from balancebook.domain.entities import (
    Account,
    Caller,
    EntryDetail,
    EntryKind,
    ItemDetail,
    ItemInput,
    LedgerEntry,
    LedgerItem,
    NewItem,
)
from balancebook.domain.errors import (
    AuthorizationError,
    ConsistencyError,
    NotFoundError,
    ValidationError,
    account_not_found,
    entry_not_found,
    items_total_mismatch,
    product_not_found,
)
from balancebook.domain.saga import Saga

logger = logging.getLogger(__name__)


def parse_kind(kind) -> EntryKind:
    """Return the EntryKind for a kind value, raising ValidationError if unknown."""
    try:
        return EntryKind(str(getattr(kind, "value", kind)).strip().lower())
    except ValueError:
        raise ValidationError(f"Entry kind must be 'inflow' or 'outflow', got '{kind}'") from None


def validate_amounts(kind: EntryKind, debit_amount: int, credit_amount: int) -> None:
    """Check that exactly the amount matching the kind is positive.

    Raises:
        ValidationError: On negative amounts or a debit/credit pair that
            does not match the kind
    """
    if debit_amount < 0 or credit_amount < 0:
        raise ValidationError("Debit and credit amounts must not be negative")
    if kind == EntryKind.INFLOW and not (debit_amount > 0 and credit_amount == 0):
        raise ValidationError("Inflow entries need debit > 0 and credit = 0")
    if kind == EntryKind.OUTFLOW and not (credit_amount > 0 and debit_amount == 0):
        raise ValidationError("Outflow entries need credit > 0 and debit = 0")


def validate_items_total(kind: EntryKind, debit_amount: int, credit_amount: int, subtotals: Sequence[int]) -> None:
    """Check that item subtotals add up to the entry's positive amount."""
    if not subtotals:
        return
    total = sum(subtotals)
    if kind == EntryKind.INFLOW and total != debit_amount:
        raise ValidationError(items_total_mismatch(total, "debit", debit_amount))
    if kind == EntryKind.OUTFLOW and total != credit_amount:
        raise ValidationError(items_total_mismatch(total, "credit", credit_amount))


class EntryService:
    """Service for creating, changing and removing ledger entries."""

    def __init__(self, db: Database, balance_service: Optional[BalanceService] = None):
        """Initialize entry service.

        Args:
            db: Database instance
            balance_service: Balance synchronizer; defaults to one over db
        """
        self.db = db
        self.balance = balance_service or BalanceService(db)

    # Validation helpers
    def normalize_items(self, caller: Caller, items: Optional[Sequence[ItemInput]]) -> list[NewItem]:
        """Validate line items and freeze their subtotals.

        Args:
            caller: Acting caller, who must be able to see every product
            items: Items as supplied by the caller

        Returns:
            Items with a fixed subtotal each

        Raises:
            NotFoundError: If an item's product does not exist
            AuthorizationError: If an item's product is outside the caller's scope
            ValidationError: If quantity or subtotal is not positive, or an
                item has neither a subtotal nor a unit price
        """
        normalized = []
        for item in items or []:
            if item.product_id is None:
                raise ValidationError("Each item needs a product")
            product = self.db.get_product(item.product_id)
            if product is None:
                raise NotFoundError(product_not_found(item.product_id))
            require_manage(caller, product, f"product {item.product_id}")
            if item.quantity is None or item.quantity <= 0:
                raise ValidationError("Item quantity must be greater than 0")

            if item.subtotal is not None:
                subtotal = item.subtotal
            elif item.unit_price is not None:
                subtotal = item.unit_price * item.quantity
            else:
                raise ValidationError("Each item needs a subtotal or a unit price")
            if subtotal <= 0:
                raise ValidationError("Item subtotal must be greater than 0")

            normalized.append(NewItem(product_id=item.product_id, quantity=item.quantity, subtotal=subtotal))
        return normalized

    def _load_account(self, caller: Caller, account_id: int) -> Account:
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        require_manage(caller, account, f"account {account_id}")
        return account

    @staticmethod
    def _reconcile_group(entry_group: Optional[str], account: Optional[Account]) -> Optional[str]:
        """Return the entry group after matching it against the account's group."""
        if account is None or account.group_id is None:
            return entry_group
        if entry_group is None:
            return account.group_id
        if entry_group != account.group_id:
            raise AuthorizationError(
                f"Entry group '{entry_group}' does not match account {account.id} group '{account.group_id}'"
            )
        return entry_group

    def _balance_step(self, account_id: int, delta: int):
        """Build a saga action applying delta, reporting failures as ConsistencyError."""

        def action():
            try:
                return self.balance.apply_delta(account_id, delta)
            except Exception as e:
                raise ConsistencyError(f"Could not update balance of account {account_id}: {e}") from e

        return action

    def _get_entry_or_raise(self, entry_id: int) -> LedgerEntry:
        entry = self.db.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(entry_not_found(entry_id))
        return entry

    # Operations
    def create_entry(
        self,
        caller: Caller,
        kind,
        debit_amount: int = 0,
        credit_amount: int = 0,
        description: Optional[str] = None,
        entry_date: Optional[date] = None,
        account_id: Optional[int] = None,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
        items: Optional[Sequence[ItemInput]] = None,
    ) -> LedgerEntry:
        """Create a ledger entry with its items and move the account balance.

        Args:
            caller: Acting caller
            kind: "inflow" or "outflow"
            debit_amount: Debit (inflow) amount
            credit_amount: Credit (outflow) amount
            description: Optional description
            entry_date: Entry date, defaults to today
            account_id: Optional cash account to move
            share_to_group: Share with the caller's group (True) or keep private (False)
            group_id: Raw group ID, used when share_to_group is not given
            items: Optional line items

        Returns:
            The created entry

        Raises:
            ValidationError: If kind, amounts or items are invalid
            NotFoundError: If the account or a product does not exist
            AuthorizationError: If the caller may not use the account or group
            ConsistencyError: If the balance update failed; nothing remains written
        """
        kind = parse_kind(kind)
        validate_amounts(kind, debit_amount, credit_amount)

        entry_group = resolve_group(caller, share_to_group, group_id)
        account = self._load_account(caller, account_id) if account_id is not None else None
        entry_group = self._reconcile_group(entry_group, account)

        new_items = self.normalize_items(caller, items)
        validate_items_total(kind, debit_amount, credit_amount, [item.subtotal for item in new_items])

        delta = debit_amount - credit_amount
        written: dict[str, int] = {}

        def insert_header():
            written["entry_id"] = self.db.create_entry(
                owner_user_id=caller.user_id,
                kind=kind,
                debit_amount=debit_amount,
                credit_amount=credit_amount,
                date=entry_date or date.today(),
                group_id=entry_group,
                account_id=account_id,
                description=description,
            )
            return written["entry_id"]

        saga = Saga("create_entry")
        saga.step("header", insert_header, lambda: self.db.delete_entry(written["entry_id"]))
        if new_items:
            saga.step(
                "items",
                lambda: self.db.add_items(written["entry_id"], new_items),
                lambda: self.db.delete_items(written["entry_id"]),
            )
        if account is not None:
            saga.step("balance", self._balance_step(account.id, delta))
        saga.run()

        entry_id = written["entry_id"]
        logger.info(
            "entry_created",
            extra={"entry_id": entry_id, "kind": kind.value, "account_id": account_id, "delta": delta},
        )
        return self.db.get_entry(entry_id)

    def update_entry(
        self,
        caller: Caller,
        entry_id: int,
        kind=None,
        debit_amount: Optional[int] = None,
        credit_amount: Optional[int] = None,
        description: Optional[str] = None,
        entry_date: Optional[date] = None,
        account_id: Optional[int] = None,
        clear_account: bool = False,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
        items: Optional[Sequence[ItemInput]] = None,
    ) -> LedgerEntry:
        """Update an entry, re-attributing its balance effect.

        Unsupplied fields keep their stored values. When items are not
        supplied, the stored items must still add up to the new amount.

        Args:
            caller: Acting caller
            entry_id: Entry to update
            kind: New kind
            debit_amount: New debit amount
            credit_amount: New credit amount
            description: New description
            entry_date: New date
            account_id: New account
            clear_account: If True, detach the entry from its account
            share_to_group: Share with the caller's group (True) or make private (False)
            group_id: Raw group ID, used when share_to_group is not given
            items: Replacement line items; None leaves the stored items

        Returns:
            The updated entry

        Raises:
            NotFoundError: If the entry, account or a product does not exist
            AuthorizationError: If the caller is not the owner or may not use the account
            ValidationError: If the merged values are invalid
            ConsistencyError: If a balance update failed; header and items are restored
        """
        old = self._get_entry_or_raise(entry_id)
        require_owner(caller, old.owner_user_id, f"entry {entry_id}")

        new_kind = parse_kind(kind) if kind is not None else old.kind
        new_debit = debit_amount if debit_amount is not None else old.debit_amount
        new_credit = credit_amount if credit_amount is not None else old.credit_amount
        validate_amounts(new_kind, new_debit, new_credit)

        if share_to_group is None and group_id is None:
            new_group = old.group_id
        else:
            new_group = resolve_group(caller, share_to_group, group_id)

        if clear_account:
            new_account_id = None
        elif account_id is not None:
            new_account_id = account_id
        else:
            new_account_id = old.account_id

        new_account = None
        if new_account_id is not None:
            if new_account_id != old.account_id:
                new_account = self._load_account(caller, new_account_id)
            else:
                new_account = self.db.get_account(new_account_id)
        new_group = self._reconcile_group(new_group, new_account)

        old_items = self.db.list_items(entry_id)
        if items is not None:
            new_items = self.normalize_items(caller, items)
            validate_items_total(new_kind, new_debit, new_credit, [item.subtotal for item in new_items])
        else:
            new_items = None
            validate_items_total(new_kind, new_debit, new_credit, [item.subtotal for item in old_items])

        old_delta = old.net_effect
        new_delta = new_debit - new_credit

        saga = Saga("update_entry")
        saga.step(
            "header",
            lambda: self.db.update_entry(
                entry_id,
                kind=new_kind,
                debit_amount=new_debit,
                credit_amount=new_credit,
                date=entry_date or old.date,
                group_id=new_group,
                account_id=new_account_id,
                description=description if description is not None else old.description,
            ),
            lambda: self._restore_header(old),
        )
        if new_items is not None:
            saga.step(
                "items",
                lambda: self.db.replace_items(entry_id, new_items),
                lambda: self.db.replace_items(entry_id, _as_new_items(old_items)),
            )

        if new_account_id == old.account_id:
            if new_account_id is not None and new_delta != old_delta:
                saga.step("balance", self._balance_step(new_account_id, new_delta - old_delta))
        else:
            if old.account_id is not None:
                saga.step(
                    "reverse_old_balance",
                    self._balance_step(old.account_id, -old_delta),
                    lambda: self.balance.apply_delta(old.account_id, old_delta),
                )
            if new_account_id is not None:
                saga.step("apply_new_balance", self._balance_step(new_account_id, new_delta))
        saga.run()

        logger.info(
            "entry_updated",
            extra={
                "entry_id": entry_id,
                "old_account_id": old.account_id,
                "new_account_id": new_account_id,
                "old_delta": old_delta,
                "new_delta": new_delta,
            },
        )
        return self.db.get_entry(entry_id)

    def _restore_header(self, old: LedgerEntry) -> None:
        self.db.update_entry(
            old.id,
            kind=old.kind,
            debit_amount=old.debit_amount,
            credit_amount=old.credit_amount,
            date=old.date,
            group_id=old.group_id,
            account_id=old.account_id,
            description=old.description,
        )

    def delete_entry(self, caller: Caller, entry_id: int) -> None:
        """Delete an entry and its items, reversing its balance effect first.

        Args:
            caller: Acting caller
            entry_id: Entry to delete

        Raises:
            NotFoundError: If the entry does not exist
            AuthorizationError: If the caller is not the owner
            ConsistencyError: If the reversal failed; the entry is left in place
        """
        entry = self._get_entry_or_raise(entry_id)
        require_owner(caller, entry.owner_user_id, f"entry {entry_id}")

        old_items = self.db.list_items(entry_id)
        delta = entry.net_effect

        saga = Saga("delete_entry")
        if entry.account_id is not None:
            saga.step(
                "reverse_balance",
                self._balance_step(entry.account_id, -delta),
                lambda: self.balance.apply_delta(entry.account_id, delta),
            )
        if old_items:
            saga.step(
                "items",
                lambda: self.db.delete_items(entry_id),
                lambda: self.db.add_items(entry_id, _as_new_items(old_items)),
            )
        saga.step("header", lambda: self.db.delete_entry(entry_id))
        saga.run()

        logger.info("entry_deleted", extra={"entry_id": entry_id, "account_id": entry.account_id, "delta": delta})

    def get_entry(self, caller: Caller, entry_id: int) -> EntryDetail:
        """Get an entry with its items and their display unit prices.

        Raises:
            NotFoundError: If the entry does not exist
            AuthorizationError: If the caller is not the owner
        """
        entry = self._get_entry_or_raise(entry_id)
        require_owner(caller, entry.owner_user_id, f"entry {entry_id}")

        details = []
        for item in self.db.list_items(entry_id):
            product = self.db.get_product(item.product_id)
            details.append(
                ItemDetail(
                    product_id=item.product_id,
                    product_name=product.name if product is not None else None,
                    quantity=item.quantity,
                    subtotal=item.subtotal,
                    unit_price=item.subtotal // item.quantity if item.quantity else 0,
                )
            )
        return EntryDetail(entry=entry, items=tuple(details))

    def list_entries(
        self,
        caller: Caller,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind=None,
        account_id: Optional[int] = None,
    ) -> list[LedgerEntry]:
        """List entries, newest first.

        Non-privileged callers only see their own entries; privileged
        callers may name another user or leave it open.

        Raises:
            AuthorizationError: If a non-privileged caller names another user
        """
        if caller.privileged:
            owner = user_id
        else:
            if user_id is not None and user_id != caller.user_id:
                raise AuthorizationError("Only privileged callers may list other users' entries")
            owner = caller.user_id

        return self.db.list_entries(
            owner_user_id=owner,
            group_id=group_id,
            start_date=start_date,
            end_date=end_date,
            kind=parse_kind(kind) if kind is not None else None,
            account_id=account_id,
        )


def _as_new_items(items: Sequence[LedgerItem]) -> list[NewItem]:
    return [NewItem(product_id=i.product_id, quantity=i.quantity, subtotal=i.subtotal) for i in items]
