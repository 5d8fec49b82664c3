"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional
from datetime import date

# Import entities directly to avoid circular import through domain/__init__.py
from balancebook.domain.entities import (
    Account,
    Category,
    ClassificationRule,
    EntryKind,
    ExpandedRow,
    LedgerEntry,
    LedgerItem,
    NewItem,
    Product,
    Scope,
)


class Database(ABC):
    """Abstract database interface for balancebook.

    Writes that hit a unique constraint raise ``DuplicateKeyError``; updates
    and deletes of a missing record raise ``NotFoundError``.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        name: str,
        owner_user_id: str,
        opening_balance: int = 0,
        closing_balance: int = 0,
        description: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> int:
        """Create a new cash account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_balance(self, account_id: int) -> Optional[int]:
        """Get an account's closing balance, or None if the account is missing."""
        pass

    @abstractmethod
    def increment_account_balance(self, account_id: int, delta: int) -> int:
        """Atomically add delta to an account's closing balance.

        Returns:
            The new closing balance
        """
        pass

    @abstractmethod
    def list_accounts(
        self, user_id: Optional[str] = None, group_id: Optional[str] = None, search: Optional[str] = None
    ) -> list[Account]:
        """List accounts visible to a user (own private plus the group's)."""
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        opening_balance: Optional[int] = None,
        closing_balance: Optional[int] = None,
        closing_delta: int = 0,
        group_id: Optional[str] = None,
        update_group: bool = False,
    ) -> None:
        """Update account fields.

        Args:
            closing_delta: Amount added to the stored closing balance in the same write
            update_group: If True, set group_id even if it's None (to make private)
        """
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_entry_count(self, account_id: int) -> int:
        """Get count of ledger entries pointing at an account."""
        pass

    @abstractmethod
    def get_account_entry_net(self, account_id: int) -> int:
        """Get the summed debit minus credit of entries pointing at an account."""
        pass

    # Category operations
    @abstractmethod
    def create_category(
        self,
        name: str,
        kind: str,
        owner_user_id: Optional[str],
        group_id: Optional[str] = None,
        subgroup: Optional[str] = None,
        sequence_code: Optional[int] = None,
    ) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str, scope: Scope) -> Optional[Category]:
        """Get category by case-insensitive exact name within a scope."""
        pass

    @abstractmethod
    def get_max_sequence_code(self, scope: Scope, minimum: int, maximum: int) -> Optional[int]:
        """Get the highest sequence code in [minimum, maximum] used in a scope."""
        pass

    @abstractmethod
    def list_categories(
        self,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        kind: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Category]:
        """List categories visible to a user, optionally filtered."""
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        """Delete a category."""
        pass

    @abstractmethod
    def get_category_product_count(self, category_id: int) -> int:
        """Get count of products referencing a category."""
        pass

    # Product operations
    @abstractmethod
    def create_product(
        self,
        name: str,
        owner_user_id: Optional[str],
        group_id: Optional[str] = None,
        category_id: Optional[int] = None,
    ) -> int:
        """Create a product. Returns product ID."""
        pass

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def get_product_by_name(self, name: str, scope: Scope) -> Optional[Product]:
        """Get product by case-insensitive exact name within a scope."""
        pass

    @abstractmethod
    def list_products(
        self,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[Product]:
        """List products visible to a user, optionally filtered."""
        pass

    @abstractmethod
    def update_product(
        self,
        product_id: int,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        update_category: bool = False,
    ) -> None:
        """Update product fields.

        Args:
            update_category: If True, set category_id even if it's None (to clear it)
        """
        pass

    @abstractmethod
    def delete_product(self, product_id: int) -> None:
        """Delete a product."""
        pass

    @abstractmethod
    def get_product_item_count(self, product_id: int) -> int:
        """Get count of ledger items referencing a product."""
        pass

    # Ledger entry operations
    @abstractmethod
    def create_entry(
        self,
        owner_user_id: str,
        kind: EntryKind,
        debit_amount: int,
        credit_amount: int,
        date: date,
        group_id: Optional[str] = None,
        account_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        """Create a ledger entry header. Returns entry ID."""
        pass

    @abstractmethod
    def get_entry(self, entry_id: int) -> Optional[LedgerEntry]:
        """Get ledger entry header by ID."""
        pass

    @abstractmethod
    def update_entry(
        self,
        entry_id: int,
        kind: EntryKind,
        debit_amount: int,
        credit_amount: int,
        date: date,
        group_id: Optional[str],
        account_id: Optional[int],
        description: Optional[str],
    ) -> None:
        """Overwrite every mutable field of an entry header."""
        pass

    @abstractmethod
    def delete_entry(self, entry_id: int) -> None:
        """Delete a ledger entry header."""
        pass

    @abstractmethod
    def list_entries(
        self,
        owner_user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        kind: Optional[EntryKind] = None,
        account_id: Optional[int] = None,
    ) -> list[LedgerEntry]:
        """List entry headers with optional filters."""
        pass

    @abstractmethod
    def add_items(self, entry_id: int, items: list[NewItem]) -> list[int]:
        """Insert line items for an entry. Returns item IDs."""
        pass

    @abstractmethod
    def replace_items(self, entry_id: int, items: list[NewItem]) -> list[int]:
        """Replace all line items of an entry. Returns new item IDs."""
        pass

    @abstractmethod
    def delete_items(self, entry_id: int) -> int:
        """Delete all line items of an entry. Returns number deleted."""
        pass

    @abstractmethod
    def list_items(self, entry_id: int) -> list[LedgerItem]:
        """List line items of an entry."""
        pass

    @abstractmethod
    def list_expanded_rows(
        self,
        owner_user_id: Optional[str] = None,
        group_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[ExpandedRow]:
        """List line items joined with entry, product and category.

        Filters by entry owner and/or entry group; end_date is inclusive.
        """
        pass

    # Classification rule operations
    @abstractmethod
    def create_rule(
        self,
        pattern: str,
        target_subgroup: str,
        priority: Optional[int] = None,
        owner_user_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> int:
        """Create a classification rule. Returns rule ID."""
        pass

    @abstractmethod
    def list_rules(self, user_id: Optional[str] = None, group_id: Optional[str] = None) -> list[ClassificationRule]:
        """List rules applicable to a user: own, the group's, and global."""
        pass
