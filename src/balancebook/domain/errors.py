"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class AuthorizationError(DomainError):
    """Caller may not act on the requested record."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DuplicateKeyError(ConflictError):
    """A unique constraint rejected a write in the store."""


class RangeExhaustedError(ConflictError):
    """No sequence code is left in a subgroup range for a scope."""

    def __init__(self, subgroup: str, minimum: int, maximum: int):
        self.subgroup = subgroup
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(range_exhausted(subgroup, minimum, maximum))


class NoRuleMatchedError(ValidationError):
    """No classification rule applies to a category."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConsistencyError(DomainError):
    """Balance synchronization failed after records were written."""


class RollbackFailedError(ConsistencyError):
    """A compensating action failed; manual reconciliation is required."""


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def product_not_found(product_id: int) -> str:
    """Return message for missing product."""
    return f"Product {product_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing ledger entry."""
    return f"Entry {entry_id} not found"


def range_exhausted(subgroup: str, minimum: int, maximum: int) -> str:
    """Return message when a subgroup range has no free code left."""
    return f"Range {minimum}-{maximum} for '{subgroup}' is full for this scope"


def no_rule_matched(text: str) -> str:
    """Return message when no classification rule matches."""
    return f"No classification rule matches '{text}'"


def items_total_mismatch(total: int, field: str, amount: int) -> str:
    """Return message when item subtotals disagree with the entry amount."""
    return f"Total of item subtotals ({total}) must equal {field} ({amount})"


def delete_blocked(kind: str, record_id: int, count: int, dependent: str, plural: str | None = None) -> str:
    """Return message when a record is still referenced."""
    noun = dependent if count == 1 else (plural or f"{dependent}s")
    return (
        f"Cannot delete {kind} {record_id}: it is referenced by {count} {noun}. "
        "Please reassign or delete them first."
    )
