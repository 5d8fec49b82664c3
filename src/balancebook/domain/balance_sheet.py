"""Balance-sheet aggregation.

The fold functions are pure: they take ``ExpandedRow`` lists (one row per
ledger line item joined with its entry, product and category) and never
touch the store. ``BalanceSheetService`` loads and scopes the rows.

Two sign conventions exist:

- gross: subtotals are summed as absolute values into debit (inflow) and
  credit (outflow); a node's saldo is debit - credit.
- directional: each row is signed by its bucket (asset: inflow +, outflow -;
  liability: outflow +, inflow -) and summed into one running total, which
  is reported as the node's saldo.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Union

from balancebook.database.base import Database
from balancebook.domain.entities import (
    AggregationMode,
    BalanceSheetSummary,
    BucketDetails,
    BucketSummary,
    Caller,
    CategoryNode,
    DebitCredit,
    EntryKind,
    ExpandedRow,
    NestedBalanceSheet,
    ProductBalance,
    ProductLine,
    ProductNode,
    ShareMode,
    Subgroup,
    SubgroupBalanceSheet,
)
from balancebook.domain.errors import AuthorizationError, ValidationError
from balancebook.domain.ranges import classify, is_asset_code, is_liability_code

logger = logging.getLogger(__name__)

UNKNOWN_BUCKET = "unknown"
MAX_PAGE_SIZE = 100


def product_key(row: ExpandedRow) -> Union[int, str]:
    """Grouping key of a row's product; rows without one group by category."""
    if row.product_id is not None:
        return row.product_id
    return f"unknown:{row.category_id}"


def row_bucket(row: ExpandedRow) -> Optional[Subgroup]:
    return classify(row.subgroup, row.sequence_code)


def signed_value(is_asset: bool, kind: EntryKind, subtotal: int) -> int:
    """Return a row's directional value for an asset or liability node."""
    value = abs(subtotal)
    if is_asset:
        return -value if kind == EntryKind.OUTFLOW else value
    return -value if kind == EntryKind.INFLOW else value


def filter_rows(
    rows: Iterable[ExpandedRow], share: ShareMode = ShareMode.ALL, group_id: Optional[str] = None
) -> list[ExpandedRow]:
    """Keep rows matching a sharing mode.

    Args:
        rows: Rows to filter
        share: own keeps private rows, group keeps shared rows, all keeps everything
        group_id: With share=group, only keep rows of this group

    Returns:
        Filtered rows
    """
    share = ShareMode(share)
    if share == ShareMode.OWN:
        return [row for row in rows if row.group_id is None]
    if share == ShareMode.GROUP:
        if group_id is not None:
            return [row for row in rows if row.group_id == group_id]
        return [row for row in rows if row.group_id is not None]
    return list(rows)


@dataclass
class _Tally:
    """Mutable accumulator for one node."""

    debit: int = 0
    credit: int = 0
    signed: int = 0
    product_name: Optional[str] = None
    product_id: Optional[int] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    products: dict = field(default_factory=dict)

    def add(self, row: ExpandedRow, signed: int) -> None:
        if row.kind == EntryKind.INFLOW:
            self.debit += abs(row.subtotal)
        else:
            self.credit += abs(row.subtotal)
        self.signed += signed

    def saldo(self, mode: AggregationMode) -> int:
        if mode == AggregationMode.DIRECTIONAL:
            return self.signed
        return self.debit - self.credit


def _product_tally(products: dict, row: ExpandedRow) -> _Tally:
    key = product_key(row)
    if key not in products:
        products[key] = _Tally(
            product_id=row.product_id,
            product_name=row.product_name,
            category_id=row.category_id,
            category_name=row.category_name,
        )
    return products[key]


def _product_line(tally: _Tally, mode: AggregationMode) -> ProductLine:
    return ProductLine(
        product_id=tally.product_id,
        product_name=tally.product_name,
        category_id=tally.category_id,
        category_name=tally.category_name,
        debit=tally.debit,
        credit=tally.credit,
        saldo=tally.saldo(mode),
    )


def aggregate_summary(
    rows: Iterable[ExpandedRow], mode: AggregationMode = AggregationMode.GROSS
) -> BalanceSheetSummary:
    """Fold rows into the four balance-sheet buckets.

    Rows that classify to no bucket are dropped.

    Args:
        rows: Expanded rows
        mode: gross or directional

    Returns:
        Per-bucket debit/credit/saldo with per-product lines, and totals
    """
    mode = AggregationMode(mode)
    tallies = {subgroup: _Tally() for subgroup in Subgroup}

    for row in rows:
        bucket = row_bucket(row)
        if bucket is None:
            continue
        signed = signed_value(bucket.is_asset, row.kind, row.subtotal)
        tallies[bucket].add(row, signed)
        _product_tally(tallies[bucket].products, row).add(row, signed)

    buckets = {
        subgroup: BucketSummary(
            debit=tally.debit,
            credit=tally.credit,
            saldo=tally.saldo(mode),
            items=tuple(_product_line(p, mode) for p in tally.products.values()),
        )
        for subgroup, tally in tallies.items()
    }
    total_asset = sum(b.saldo for s, b in buckets.items() if s.is_asset)
    total_liability = sum(b.saldo for s, b in buckets.items() if s.is_liability)
    return BalanceSheetSummary(mode=mode, buckets=buckets, total_asset=total_asset, total_liability=total_liability)


def aggregate_by_product(rows: Iterable[ExpandedRow]) -> list[ProductBalance]:
    """Total each product across buckets.

    Unclassifiable rows are kept under the "unknown" bucket column.

    Returns:
        One ProductBalance per product, in first-seen order
    """
    columns = [subgroup.value for subgroup in Subgroup] + [UNKNOWN_BUCKET]
    products: dict = {}

    for row in rows:
        bucket = row_bucket(row)
        column = bucket.value if bucket is not None else UNKNOWN_BUCKET
        tally = _product_tally(products, row)
        per_bucket = tally.products.setdefault(column, _Tally())
        per_bucket.add(row, 0)
        tally.add(row, 0)

    result = []
    for tally in products.values():
        buckets = {}
        for column in columns:
            cell = tally.products.get(column)
            buckets[column] = DebitCredit(cell.debit, cell.credit) if cell else DebitCredit()
        result.append(
            ProductBalance(
                product_id=tally.product_id,
                product_name=tally.product_name,
                category_id=tally.category_id,
                category_name=tally.category_name,
                buckets=buckets,
                total=DebitCredit(tally.debit, tally.credit),
            )
        )
    return result


def _node_total(tally: _Tally, mode: AggregationMode) -> int:
    """Tree totals: signed running total, or the sum of absolute subtotals."""
    if mode == AggregationMode.DIRECTIONAL:
        return tally.signed
    return tally.debit + tally.credit


def _category_node(code: Optional[int], tally: _Tally, mode: AggregationMode) -> CategoryNode:
    products = sorted(
        (
            ProductNode(product_id=p.product_id, name=p.product_name, total=_node_total(p, mode))
            for p in tally.products.values()
        ),
        key=lambda node: -node.total,
    )
    return CategoryNode(
        code=code, category_name=tally.category_name, total=_node_total(tally, mode), products=tuple(products)
    )


def _add_to_category(nodes: dict, key, row: ExpandedRow, signed: int) -> None:
    if key not in nodes:
        nodes[key] = _Tally(category_id=row.category_id, category_name=row.category_name)
    nodes[key].add(row, signed)
    if row.product_id is not None:
        _product_tally(nodes[key].products, row).add(row, signed)


def aggregate_nested_by_category(
    rows: Iterable[ExpandedRow], mode: AggregationMode = AggregationMode.GROSS
) -> NestedBalanceSheet:
    """Build the category tree split by the coarse asset/liability code cut.

    Rows are grouped by their category's sequence code; rows without a
    code are skipped. Codes 0-3599 are assets and 4000-4999 liabilities.
    In gross mode a node's total is the sum of absolute subtotals.

    Returns:
        Asset and liability category nodes sorted by code, products by
        descending total
    """
    mode = AggregationMode(mode)
    nodes: dict = {}

    for row in rows:
        code = row.sequence_code
        if code is None:
            continue
        signed = abs(row.subtotal)
        if is_asset_code(code):
            signed = signed_value(True, row.kind, row.subtotal)
        elif is_liability_code(code):
            signed = signed_value(False, row.kind, row.subtotal)
        _add_to_category(nodes, code, row, signed)

    assets = []
    liabilities = []
    for code in sorted(nodes):
        node = _category_node(code, nodes[code], mode)
        if is_asset_code(code):
            assets.append(node)
        elif is_liability_code(code):
            liabilities.append(node)
    return NestedBalanceSheet(mode=mode, assets=tuple(assets), liabilities=tuple(liabilities))


def aggregate_nested_by_subgroup(
    rows: Iterable[ExpandedRow], mode: AggregationMode = AggregationMode.GROSS
) -> SubgroupBalanceSheet:
    """Build the category tree split into the four buckets.

    Unlike the coarse tree this uses the same classification as the
    summary, so a category with an explicit subgroup but no code is kept.
    """
    mode = AggregationMode(mode)
    nodes: dict[Subgroup, dict] = {subgroup: {} for subgroup in Subgroup}

    for row in rows:
        bucket = row_bucket(row)
        if bucket is None:
            continue
        key = row.sequence_code if row.sequence_code is not None else f"category:{row.category_id}"
        _add_to_category(nodes[bucket], key, row, signed_value(bucket.is_asset, row.kind, row.subtotal))

    groups = {}
    totals = {}
    for subgroup, by_code in nodes.items():
        built = [
            _category_node(key if isinstance(key, int) else None, tally, mode) for key, tally in by_code.items()
        ]
        built.sort(key=lambda node: (node.code is None, node.code or 0))
        groups[subgroup] = tuple(built)
        totals[subgroup] = sum(node.total for node in built)
    return SubgroupBalanceSheet(mode=mode, groups=groups, totals=totals)


def bucket_details(
    rows: Iterable[ExpandedRow], bucket, page: int = 1, limit: int = 20
) -> BucketDetails:
    """Return one page of per-product lines for a single bucket.

    Args:
        rows: Expanded rows
        bucket: Subgroup to list
        page: 1-based page number (values below 1 are treated as 1)
        limit: Page size, clamped to 1-100

    Returns:
        The page with the total number of product lines in the bucket
    """
    try:
        bucket = Subgroup(getattr(bucket, "value", bucket))
    except ValueError:
        raise ValidationError(f"Unknown bucket '{bucket}'") from None
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    products: dict = {}
    for row in rows:
        if row_bucket(row) != bucket:
            continue
        _product_tally(products, row).add(row, 0)

    lines = [_product_line(tally, AggregationMode.GROSS) for tally in products.values()]
    offset = (page - 1) * limit
    return BucketDetails(
        bucket=bucket, page=page, limit=limit, total=len(lines), items=tuple(lines[offset : offset + limit])
    )


class BalanceSheetService:
    """Loads scoped rows from the store and folds them into reports."""

    def __init__(self, db: Database):
        """Initialize balance sheet service.

        Args:
            db: Database instance
        """
        self.db = db

    def load_rows(
        self,
        caller: Caller,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        share: ShareMode = ShareMode.ALL,
    ) -> list[ExpandedRow]:
        """Load rows for one user or one group, then apply the share filter.

        With group_id the rows of that group's entries are loaded; the
        caller must belong to it or be privileged. Otherwise the caller's
        own rows are loaded; privileged callers may name another user or
        omit it to load everything.

        Raises:
            AuthorizationError: If the caller asks for another user or group
        """
        if group_id is not None:
            if not caller.privileged and group_id != caller.group_id:
                raise AuthorizationError(f"Not allowed to view group '{group_id}'")
            rows = self.db.list_expanded_rows(group_id=group_id, start_date=start_date, end_date=end_date)
        else:
            if caller.privileged:
                owner = user_id
            elif user_id is not None and user_id != caller.user_id:
                raise AuthorizationError("Only privileged callers may view other users' balance sheets")
            else:
                owner = caller.user_id
            rows = self.db.list_expanded_rows(owner_user_id=owner, start_date=start_date, end_date=end_date)

        filtered = filter_rows(rows, share, group_id)
        logger.debug("balance_sheet_rows_loaded", extra={"loaded": len(rows), "kept": len(filtered)})
        return filtered

    def summary(self, caller: Caller, mode: AggregationMode = AggregationMode.GROSS, **scope) -> BalanceSheetSummary:
        """Four-bucket summary for a scope; scope keywords as in load_rows."""
        return aggregate_summary(self.load_rows(caller, **scope), mode)

    def by_product(self, caller: Caller, **scope) -> list[ProductBalance]:
        return aggregate_by_product(self.load_rows(caller, **scope))

    def nested_by_category(
        self, caller: Caller, mode: AggregationMode = AggregationMode.GROSS, **scope
    ) -> NestedBalanceSheet:
        return aggregate_nested_by_category(self.load_rows(caller, **scope), mode)

    def nested_by_subgroup(
        self, caller: Caller, mode: AggregationMode = AggregationMode.GROSS, **scope
    ) -> SubgroupBalanceSheet:
        return aggregate_nested_by_subgroup(self.load_rows(caller, **scope), mode)

    def details(self, caller: Caller, bucket, page: int = 1, limit: int = 20, **scope) -> BucketDetails:
        """One page of product lines in a bucket; scope keywords as in load_rows."""
        return bucket_details(self.load_rows(caller, **scope), bucket, page, limit)
