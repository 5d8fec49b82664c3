"""Product domain service."""

import logging
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.access import require_manage, resolve_group
from balancebook.domain.category import CategoryService
from balancebook.domain.entities import Caller, Product as ProductEntity
from balancebook.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    category_not_found,
    delete_blocked,
    product_not_found,
)

logger = logging.getLogger(__name__)


class ProductService:
    """Service for managing products and their categories."""

    def __init__(self, db: Database, category_service: Optional[CategoryService] = None):
        """Initialize product service.

        Args:
            db: Database instance
            category_service: Classifier used to auto-create categories
        """
        self.db = db
        self.categories = category_service or CategoryService(db)

    def create_product(
        self,
        caller: Caller,
        name: str,
        category_id: Optional[int] = None,
        category_name: Optional[str] = None,
        subgroup=None,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
    ) -> ProductEntity:
        """Create a product, resolving or creating its category on the way.

        An explicit category ID must exist and be visible to the caller.
        Otherwise a category name or a subgroup hint resolves the category
        by name in the product's scope, creating and classifying it when
        missing; without a name the product's own name is used. With none
        of these the product stays uncategorized.

        Args:
            caller: Acting caller
            name: Product name
            category_id: Existing category ID
            category_name: Category to find or create
            subgroup: Subgroup hint for a created category
            share_to_group: Share with the caller's group
            group_id: Raw group ID, used when share_to_group is not given

        Returns:
            The created product

        Raises:
            ValidationError: If the name is empty
            NotFoundError: If category_id does not exist
            NoRuleMatchedError: If a category must be created and no rule matches
            RangeExhaustedError: If the category's subgroup range is full
        """
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        name = name.strip()
        group = resolve_group(caller, share_to_group, group_id)

        if category_id is not None:
            category = self.db.get_category(category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))
            require_manage(caller, category, f"category {category_id}")
        elif category_name or subgroup is not None:
            category = self.categories.resolve_or_create_category(
                caller,
                category_name or name,
                group_id=group,
                subgroup=subgroup,
                product_name=name,
            )
            category_id = category.id

        product_id = self.db.create_product(
            name=name, owner_user_id=caller.user_id, group_id=group, category_id=category_id
        )
        logger.info("product_created", extra={"product_id": product_id, "category_id": category_id})
        return self.db.get_product(product_id)

    def get_product(self, caller: Caller, product_id: int) -> ProductEntity:
        """Get a product visible to the caller.

        Raises:
            NotFoundError: If the product does not exist
            AuthorizationError: If the product is outside the caller's scope
        """
        product = self.db.get_product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        require_manage(caller, product, f"product {product_id}")
        return product

    def list_products(
        self, caller: Caller, category_id: Optional[int] = None, search: Optional[str] = None
    ) -> list[ProductEntity]:
        """List the caller's own products plus those of the caller's group."""
        return self.db.list_products(
            user_id=caller.user_id, group_id=caller.group_id, category_id=category_id, search=search
        )

    def update_product(
        self,
        caller: Caller,
        product_id: int,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        clear_category: bool = False,
    ) -> ProductEntity:
        """Rename a product or move it to another category.

        Args:
            caller: Acting caller
            product_id: Product to update
            name: New name
            category_id: New category
            clear_category: If True, leave the product uncategorized

        Raises:
            NotFoundError: If the product or category does not exist
            AuthorizationError: If the caller may not manage the product or category
            ValidationError: If nothing is to be updated
        """
        self.get_product(caller, product_id)

        if name is not None and not name.strip():
            raise ValidationError("Product name is required")
        if name is None and category_id is None and not clear_category:
            raise ValidationError("Nothing to update")

        if category_id is not None and not clear_category:
            category = self.db.get_category(category_id)
            if category is None:
                raise NotFoundError(category_not_found(category_id))
            require_manage(caller, category, f"category {category_id}")

        self.db.update_product(
            product_id,
            name=name.strip() if name is not None else None,
            category_id=None if clear_category else category_id,
            update_category=clear_category,
        )
        logger.info("product_updated", extra={"product_id": product_id})
        return self.db.get_product(product_id)

    def delete_product(self, caller: Caller, product_id: int) -> None:
        """Delete a product no line item references.

        Raises:
            NotFoundError: If the product does not exist
            AuthorizationError: If the caller may not manage the product
            DependencyError: If ledger items still reference the product
        """
        self.get_product(caller, product_id)

        count = self.db.get_product_item_count(product_id)
        if count > 0:
            raise DependencyError(delete_blocked("product", product_id, count, "ledger item"))

        self.db.delete_product(product_id)
        logger.info("product_deleted", extra={"product_id": product_id})
