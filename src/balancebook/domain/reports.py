"""Profit/loss and cash-flow reports over ledger entries."""

from dataclasses import replace
from datetime import date
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.access import require_manage
from balancebook.domain.entities import (
    AccountCashFlow,
    Caller,
    CategoryFlow,
    CashFlow,
    CashFlowDirection,
    EntryKind,
    ExpandedRow,
    LedgerEntry,
    ProfitLoss,
)
from balancebook.domain.errors import AuthorizationError, NotFoundError, ValidationError, account_not_found


def parse_direction(value) -> CashFlowDirection:
    """Return the CashFlowDirection for a value, raising ValidationError if unknown."""
    try:
        return CashFlowDirection(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        raise ValidationError(f"Direction must be 'in' or 'out', got '{value}'") from None


def _flow(direction: CashFlowDirection, entries: list[LedgerEntry]) -> CashFlow:
    if direction == CashFlowDirection.IN:
        total = sum(entry.debit_amount for entry in entries)
    else:
        total = sum(entry.credit_amount for entry in entries)
    return CashFlow(direction=direction, entries=tuple(entries), total=total)


def _kind_for(direction: CashFlowDirection) -> EntryKind:
    return EntryKind.INFLOW if direction == CashFlowDirection.IN else EntryKind.OUTFLOW


def _category_flows(rows: list[ExpandedRow]) -> tuple[CategoryFlow, ...]:
    """Sum inflow and outflow item subtotals per category, ordered by category name."""
    flows: dict[int, CategoryFlow] = {}
    for row in rows:
        if row.category_id is None:
            continue
        flow = flows.get(row.category_id) or CategoryFlow(row.category_id, row.category_name)
        if row.kind == EntryKind.INFLOW:
            flows[row.category_id] = replace(flow, inflow=flow.inflow + row.subtotal)
        else:
            flows[row.category_id] = replace(flow, outflow=flow.outflow + row.subtotal)
    return tuple(sorted(flows.values(), key=lambda flow: ((flow.category_name or "").lower(), flow.category_id)))


class ReportService:
    """Service for period reports."""

    def __init__(self, db: Database):
        """Initialize report service.

        Args:
            db: Database instance
        """
        self.db = db

    def _owner_filter(self, caller: Caller, user_id: Optional[str]) -> Optional[str]:
        """Non-privileged callers only report on themselves."""
        if caller.privileged:
            return user_id
        if user_id is not None and user_id != caller.user_id:
            raise AuthorizationError("Only privileged callers may report on other users")
        return caller.user_id

    def profit_loss(
        self,
        caller: Caller,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> ProfitLoss:
        """Sum inflow debits and outflow credits for a period.

        Args:
            caller: Acting caller
            start_date: Inclusive start date
            end_date: Inclusive end date
            user_id: Another user's entries (privileged callers only)

        Returns:
            ProfitLoss with totals, net and the per-category breakdown
        """
        owner = self._owner_filter(caller, user_id)
        entries = self.db.list_entries(owner_user_id=owner, start_date=start_date, end_date=end_date)
        rows = self.db.list_expanded_rows(owner_user_id=owner, start_date=start_date, end_date=end_date)
        total_inflow = sum(e.debit_amount for e in entries if e.kind == EntryKind.INFLOW)
        total_outflow = sum(e.credit_amount for e in entries if e.kind == EntryKind.OUTFLOW)
        return ProfitLoss(
            start_date=start_date,
            end_date=end_date,
            total_inflow=total_inflow,
            total_outflow=total_outflow,
            categories=_category_flows(rows),
        )

    def cash_flow(
        self,
        caller: Caller,
        direction,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        user_id: Optional[str] = None,
    ) -> CashFlow:
        """List entries of one direction with their summed value.

        Raises:
            ValidationError: If direction is not "in" or "out"
        """
        direction = parse_direction(direction)
        entries = self.db.list_entries(
            owner_user_id=self._owner_filter(caller, user_id),
            start_date=start_date,
            end_date=end_date,
            kind=_kind_for(direction),
        )
        return _flow(direction, entries)

    def cash_flow_by_account(
        self,
        caller: Caller,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> AccountCashFlow:
        """Split the entries recorded against one account into in and out.

        Raises:
            NotFoundError: If the account does not exist
            AuthorizationError: If the caller may not see the account
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        require_manage(caller, account, f"account {account_id}")

        entries = self.db.list_entries(account_id=account_id, start_date=start_date, end_date=end_date)
        inflow = [e for e in entries if e.kind == EntryKind.INFLOW]
        outflow = [e for e in entries if e.kind == EntryKind.OUTFLOW]
        return AccountCashFlow(
            account_id=account_id,
            inflow=_flow(CashFlowDirection.IN, inflow),
            outflow=_flow(CashFlowDirection.OUT, outflow),
        )
