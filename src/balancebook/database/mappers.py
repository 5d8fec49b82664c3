"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the string-to-enum
conversion of kinds and subgroups stored as plain text columns.
"""

from typing import Optional

from balancebook.domain import entities as domain
from balancebook.database.models import (
    Account as ORMAccount,
    Category as ORMCategory,
    ClassificationRule as ORMClassificationRule,
    LedgerEntry as ORMLedgerEntry,
    LedgerItem as ORMLedgerItem,
    Product as ORMProduct,
)


def _subgroup(value: Optional[str]) -> Optional[domain.Subgroup]:
    return domain.Subgroup(value) if value else None


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        description=orm_account.description,
        opening_balance=orm_account.opening_balance,
        closing_balance=orm_account.closing_balance,
        owner_user_id=orm_account.owner_user_id,
        group_id=orm_account.group_id,
        created_at=orm_account.created_at,
    )


def category_to_domain(orm_category: ORMCategory) -> domain.Category:
    """Convert SQLAlchemy Category model to domain Category entity."""
    return domain.Category(
        id=orm_category.id,
        name=orm_category.name,
        kind=domain.CategoryKind(orm_category.kind),
        subgroup=_subgroup(orm_category.subgroup),
        sequence_code=orm_category.sequence_code,
        owner_user_id=orm_category.owner_user_id,
        group_id=orm_category.group_id,
        created_at=orm_category.created_at,
    )


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain Product entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        category_id=orm_product.category_id,
        owner_user_id=orm_product.owner_user_id,
        group_id=orm_product.group_id,
        created_at=orm_product.created_at,
    )


def entry_to_domain(orm_entry: ORMLedgerEntry) -> domain.LedgerEntry:
    """Convert SQLAlchemy LedgerEntry model to domain LedgerEntry entity."""
    return domain.LedgerEntry(
        id=orm_entry.id,
        owner_user_id=orm_entry.owner_user_id,
        group_id=orm_entry.group_id,
        kind=domain.EntryKind(orm_entry.kind),
        debit_amount=orm_entry.debit_amount,
        credit_amount=orm_entry.credit_amount,
        account_id=orm_entry.account_id,
        description=orm_entry.description,
        date=orm_entry.date,
        created_at=orm_entry.created_at,
    )


def item_to_domain(orm_item: ORMLedgerItem) -> domain.LedgerItem:
    """Convert SQLAlchemy LedgerItem model to domain LedgerItem entity."""
    return domain.LedgerItem(
        id=orm_item.id,
        entry_id=orm_item.entry_id,
        product_id=orm_item.product_id,
        quantity=orm_item.quantity,
        subtotal=orm_item.subtotal,
    )


def rule_to_domain(orm_rule: ORMClassificationRule) -> domain.ClassificationRule:
    """Convert SQLAlchemy ClassificationRule model to domain entity."""
    return domain.ClassificationRule(
        id=orm_rule.id,
        pattern=orm_rule.pattern,
        target_subgroup=domain.Subgroup(orm_rule.target_subgroup),
        priority=orm_rule.priority,
        owner_user_id=orm_rule.owner_user_id,
        group_id=orm_rule.group_id,
    )


def expanded_row_to_domain(
    orm_item: ORMLedgerItem,
    orm_entry: ORMLedgerEntry,
    orm_product: Optional[ORMProduct],
    orm_category: Optional[ORMCategory],
) -> domain.ExpandedRow:
    """Flatten one joined item/entry/product/category tuple into an ExpandedRow."""
    return domain.ExpandedRow(
        kind=domain.EntryKind(orm_entry.kind),
        subtotal=orm_item.subtotal,
        product_id=orm_item.product_id,
        product_name=orm_product.name if orm_product is not None else None,
        category_id=orm_category.id if orm_category is not None else None,
        category_name=orm_category.name if orm_category is not None else None,
        subgroup=_subgroup(orm_category.subgroup) if orm_category is not None else None,
        sequence_code=orm_category.sequence_code if orm_category is not None else None,
        group_id=orm_entry.group_id,
        owner_user_id=orm_entry.owner_user_id,
    )
