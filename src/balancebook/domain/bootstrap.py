"""Default categories, products and classification rules for a new scope."""

import logging
from dataclasses import dataclass
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.access import resolve_group, scope_for
from balancebook.domain.category import CategoryService
from balancebook.domain.entities import Caller, Subgroup

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES = [
    # Assets
    ("Potato Harvest", Subgroup.ASSET_CURRENT),
    ("Seed Stock", Subgroup.ASSET_CURRENT),
    ("Unsold Harvest", Subgroup.ASSET_CURRENT),
    ("Farm Tools", Subgroup.ASSET_FIXED),
    ("Farm Machinery", Subgroup.ASSET_FIXED),
    ("Rice Fields", Subgroup.ASSET_FIXED),
    # Liabilities
    ("Tool Installments", Subgroup.LIABILITY_LONGTERM),
    ("Machinery Installments", Subgroup.LIABILITY_LONGTERM),
    ("Seed Payable", Subgroup.LIABILITY_CURRENT),
    ("Fertilizer Payable", Subgroup.LIABILITY_CURRENT),
    ("Payable to Middlemen", Subgroup.LIABILITY_CURRENT),
]

# (product name, category name)
DEFAULT_PRODUCTS = [
    ("Potato Harvest G0", "Potato Harvest"),
    ("Potato Harvest G2", "Potato Harvest"),
    ("Potato Harvest G3", "Potato Harvest"),
    ("Potato Harvest G4", "Potato Harvest"),
    ("Potato Seed Stock", "Seed Stock"),
    ("Unsold Potato Harvest", "Unsold Harvest"),
    ("Rice Field A", "Rice Fields"),
    ("Tractor Installment", "Machinery Installments"),
    ("Hoe Installment A", "Tool Installments"),
    ("G0 Potato Seed Payable", "Seed Payable"),
    ("Fertilizer Purchase Payable A", "Fertilizer Payable"),
    ("Payable to Middleman A", "Payable to Middlemen"),
]

# (LIKE pattern, subgroup, priority)
DEFAULT_RULES = [
    ("%installment%", Subgroup.LIABILITY_LONGTERM, 10),
    ("%loan%", Subgroup.LIABILITY_LONGTERM, 20),
    ("%payable%", Subgroup.LIABILITY_CURRENT, 10),
    ("%debt%", Subgroup.LIABILITY_CURRENT, 20),
    ("%machine%", Subgroup.ASSET_FIXED, 30),
    ("%tool%", Subgroup.ASSET_FIXED, 30),
    ("%field%", Subgroup.ASSET_FIXED, 30),
    ("%land%", Subgroup.ASSET_FIXED, 30),
    ("%harvest%", Subgroup.ASSET_CURRENT, 40),
    ("%stock%", Subgroup.ASSET_CURRENT, 40),
]


@dataclass(frozen=True)
class BootstrapResult:
    """Counts of records created by a bootstrap run."""

    categories_created: int
    products_created: int
    rules_created: int


class BootstrapService:
    """Idempotently seeds a scope with default records."""

    def __init__(self, db: Database, category_service: Optional[CategoryService] = None):
        """Initialize bootstrap service.

        Args:
            db: Database instance
            category_service: Classifier used to create categories
        """
        self.db = db
        self.categories = category_service or CategoryService(db)

    def bootstrap_defaults(
        self, caller: Caller, share_to_group: bool = False, include_rules: bool = True
    ) -> BootstrapResult:
        """Ensure the default categories, products and rules exist in a scope.

        Existing records (matched by name, or by pattern for rules) are left
        alone, so running it twice creates nothing the second time.

        Args:
            caller: Acting caller
            share_to_group: Seed the caller's group instead of the caller's private scope
            include_rules: Also seed classification rules

        Returns:
            Counts of created records
        """
        group_id = resolve_group(caller, share_to_group=share_to_group)
        scope = scope_for(caller, group_id)

        category_ids = {}
        categories_created = 0
        for name, subgroup in DEFAULT_CATEGORIES:
            existing = self.db.get_category_by_name(name, scope)
            if existing is None:
                existing = self.categories.resolve_or_create_category(
                    caller, name, group_id=group_id, subgroup=subgroup
                )
                categories_created += 1
            category_ids[name] = existing.id

        products_created = 0
        for name, category_name in DEFAULT_PRODUCTS:
            if self.db.get_product_by_name(name, scope) is not None:
                continue
            self.db.create_product(
                name=name,
                owner_user_id=caller.user_id,
                group_id=group_id,
                category_id=category_ids.get(category_name),
            )
            products_created += 1

        rules_created = 0
        if include_rules:
            owner = None if group_id is not None else caller.user_id
            existing_patterns = {
                rule.pattern.lower()
                for rule in self.db.list_rules(user_id=owner, group_id=group_id)
                if rule.owner_user_id == owner and rule.group_id == group_id
            }
            for pattern, subgroup, priority in DEFAULT_RULES:
                if pattern in existing_patterns:
                    continue
                self.db.create_rule(
                    pattern=pattern,
                    target_subgroup=subgroup.value,
                    priority=priority,
                    owner_user_id=owner,
                    group_id=group_id,
                )
                rules_created += 1

        result = BootstrapResult(categories_created, products_created, rules_created)
        logger.info(
            "defaults_bootstrapped",
            extra={"scope": scope.key, "categories": categories_created, "products": products_created},
        )
        return result
