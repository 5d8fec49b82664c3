"""Domain model entities for balancebook.

These are pure data classes representing business concepts, independent of
database schema. Amounts are integers in the smallest currency unit.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from enum import Enum
from typing import Optional


class EntryKind(str, Enum):
    """Direction of a ledger entry."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


class CategoryKind(str, Enum):
    """Kind of a bookkeeping category."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"
    PRODUCT = "product"
    MARKET = "market"


class Subgroup(str, Enum):
    """Balance-sheet bucket a category belongs to."""

    ASSET_CURRENT = "asset_current"
    ASSET_FIXED = "asset_fixed"
    LIABILITY_CURRENT = "liability_current"
    LIABILITY_LONGTERM = "liability_longterm"

    @property
    def is_asset(self) -> bool:
        return self in (Subgroup.ASSET_CURRENT, Subgroup.ASSET_FIXED)

    @property
    def is_liability(self) -> bool:
        return not self.is_asset


class ShareMode(str, Enum):
    """Row filter applied before balance-sheet aggregation."""

    OWN = "own"
    GROUP = "group"
    ALL = "all"


class AggregationMode(str, Enum):
    """How subtotals are folded into balance-sheet nodes."""

    GROSS = "gross"
    DIRECTIONAL = "directional"


class CashFlowDirection(str, Enum):
    """Cash flow direction; in maps to inflow entries, out to outflow."""

    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class Caller:
    """Authenticated context supplied by the request layer."""

    user_id: str
    group_id: Optional[str] = None
    privileged: bool = False


@dataclass(frozen=True)
class Scope:
    """Visibility boundary: a group when group_id is set, else one user."""

    user_id: Optional[str]
    group_id: Optional[str] = None

    @property
    def key(self) -> str:
        if self.group_id is not None:
            return f"group:{self.group_id}"
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class Account:
    """Cash account domain entity."""

    id: int
    name: str
    description: Optional[str]
    opening_balance: int
    closing_balance: int
    owner_user_id: str
    group_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Category:
    """Bookkeeping category domain entity."""

    id: int
    name: str
    kind: CategoryKind
    subgroup: Optional[Subgroup]
    sequence_code: Optional[int]
    owner_user_id: Optional[str]
    group_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Product:
    """Product domain entity."""

    id: int
    name: str
    category_id: Optional[int]
    owner_user_id: Optional[str]
    group_id: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class ClassificationRule:
    """Keyword rule mapping category/product text to a subgroup."""

    id: int
    pattern: str
    target_subgroup: Subgroup
    priority: Optional[int]
    owner_user_id: Optional[str]
    group_id: Optional[str]


@dataclass(frozen=True)
class LedgerEntry:
    """Ledger entry header domain entity."""

    id: int
    owner_user_id: str
    group_id: Optional[str]
    kind: EntryKind
    debit_amount: int
    credit_amount: int
    account_id: Optional[int]
    description: Optional[str]
    date: date
    created_at: datetime

    @property
    def net_effect(self) -> int:
        """Signed effect of this entry on an attached account."""
        return self.debit_amount - self.credit_amount


@dataclass(frozen=True)
class LedgerItem:
    """Ledger line item domain entity."""

    id: int
    entry_id: int
    product_id: int
    quantity: int
    subtotal: int


@dataclass(frozen=True)
class NewItem:
    """Validated line item ready to be written."""

    product_id: int
    quantity: int
    subtotal: int


@dataclass(frozen=True)
class ItemInput:
    """Line item as supplied by a caller, before normalization."""

    product_id: int
    quantity: int
    subtotal: Optional[int] = None
    unit_price: Optional[int] = None


@dataclass(frozen=True)
class ItemDetail:
    """Line item with its product name and derived display unit price."""

    product_id: int
    product_name: Optional[str]
    quantity: int
    subtotal: int
    unit_price: int


@dataclass(frozen=True)
class EntryDetail:
    """Entry header together with its line items."""

    entry: LedgerEntry
    items: tuple[ItemDetail, ...]


@dataclass(frozen=True)
class ExpandedRow:
    """One line item joined with its entry, product and category."""

    kind: EntryKind
    subtotal: int
    product_id: Optional[int]
    product_name: Optional[str]
    category_id: Optional[int]
    category_name: Optional[str]
    subgroup: Optional[Subgroup]
    sequence_code: Optional[int]
    group_id: Optional[str]
    owner_user_id: str


@dataclass(frozen=True)
class BalanceCheck:
    """Stored closing balance against the balance implied by entries."""

    account_id: int
    stored: int
    expected: int

    @property
    def consistent(self) -> bool:
        return self.stored == self.expected


@dataclass(frozen=True)
class ProductLine:
    """Per-product debit/credit totals inside one bucket."""

    product_id: Optional[int]
    product_name: Optional[str]
    category_id: Optional[int]
    category_name: Optional[str]
    debit: int
    credit: int
    saldo: int


@dataclass(frozen=True)
class BucketSummary:
    """Totals of one balance-sheet bucket."""

    debit: int
    credit: int
    saldo: int
    items: tuple[ProductLine, ...] = ()


@dataclass(frozen=True)
class BalanceSheetSummary:
    """Four-bucket balance sheet with overall totals."""

    mode: AggregationMode
    buckets: dict[Subgroup, BucketSummary]
    total_asset: int
    total_liability: int

    @property
    def total(self) -> int:
        return self.total_asset + self.total_liability

    @property
    def difference(self) -> int:
        """Difference between assets and liabilities."""
        return self.total_asset - self.total_liability


@dataclass(frozen=True)
class DebitCredit:
    """A debit/credit pair."""

    debit: int = 0
    credit: int = 0

    @property
    def saldo(self) -> int:
        return self.debit - self.credit


@dataclass(frozen=True)
class ProductBalance:
    """Cross-bucket totals for one product."""

    product_id: Optional[int]
    product_name: Optional[str]
    category_id: Optional[int]
    category_name: Optional[str]
    buckets: dict[str, DebitCredit]
    total: DebitCredit


@dataclass(frozen=True)
class ProductNode:
    """Product total inside a category node."""

    product_id: int
    name: Optional[str]
    total: int


@dataclass(frozen=True)
class CategoryNode:
    """Category total with its products, keyed by sequence code."""

    code: Optional[int]
    category_name: Optional[str]
    total: int
    products: tuple[ProductNode, ...] = ()


@dataclass(frozen=True)
class NestedBalanceSheet:
    """Category tree split into assets and liabilities."""

    mode: AggregationMode
    assets: tuple[CategoryNode, ...]
    liabilities: tuple[CategoryNode, ...]

    @property
    def total_asset(self) -> int:
        return sum(node.total for node in self.assets)

    @property
    def total_liability(self) -> int:
        return sum(node.total for node in self.liabilities)

    @property
    def difference(self) -> int:
        return self.total_asset - self.total_liability


@dataclass(frozen=True)
class SubgroupBalanceSheet:
    """Category tree split into the four buckets."""

    mode: AggregationMode
    groups: dict[Subgroup, tuple[CategoryNode, ...]]
    totals: dict[Subgroup, int]

    @property
    def total_asset(self) -> int:
        return sum(total for sub, total in self.totals.items() if sub.is_asset)

    @property
    def total_liability(self) -> int:
        return sum(total for sub, total in self.totals.items() if sub.is_liability)

    @property
    def difference(self) -> int:
        return self.total_asset - self.total_liability


@dataclass(frozen=True)
class BucketDetails:
    """One page of per-product lines for a single bucket."""

    bucket: Subgroup
    page: int
    limit: int
    total: int
    items: tuple[ProductLine, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CategoryFlow:
    """Line-item inflow and outflow of one category."""

    category_id: int
    category_name: Optional[str]
    inflow: int = 0
    outflow: int = 0

    @property
    def net(self) -> int:
        return self.inflow - self.outflow


@dataclass(frozen=True)
class ProfitLoss:
    """Inflow and outflow totals for a period.

    categories breaks the line items of those entries down by product
    category; items without a category are left out of it.
    """

    start_date: Optional[date]
    end_date: Optional[date]
    total_inflow: int
    total_outflow: int
    categories: tuple[CategoryFlow, ...] = ()

    @property
    def net(self) -> int:
        return self.total_inflow - self.total_outflow


@dataclass(frozen=True)
class CashFlow:
    """Entries of one direction and their summed value."""

    direction: CashFlowDirection
    entries: tuple[LedgerEntry, ...]
    total: int


@dataclass(frozen=True)
class AccountCashFlow:
    """Inflows and outflows recorded against one account."""

    account_id: int
    inflow: CashFlow
    outflow: CashFlow

    @property
    def net(self) -> int:
        return self.inflow.total - self.outflow.total
