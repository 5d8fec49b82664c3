"""Category domain service.

Categories that land on the balance sheet carry a sequence code from their
subgroup's range (see ``balancebook.domain.ranges``). Codes are allocated
per scope as current maximum + 1; the store's unique
``(scope, sequence_code)`` constraint catches concurrent allocations.
"""

import logging
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.access import require_manage, resolve_group, scope_for
from balancebook.domain.entities import (
    Caller,
    Category,
    CategoryKind,
    ClassificationRule,
    Scope,
    Subgroup,
)
from balancebook.domain.errors import (
    AuthorizationError,
    ConflictError,
    DependencyError,
    DuplicateKeyError,
    NoRuleMatchedError,
    NotFoundError,
    RangeExhaustedError,
    ValidationError,
    category_not_found,
    delete_blocked,
    no_rule_matched,
)
from balancebook.domain.ranges import classify_bucket, range_for
from balancebook.domain.rules import infer_subgroup, order_rules

logger = logging.getLogger(__name__)

ALLOCATION_ATTEMPTS = 2


def parse_subgroup(value) -> Subgroup:
    """Return the Subgroup for a value, raising ValidationError if unknown."""
    try:
        return Subgroup(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        choices = ", ".join(s.value for s in Subgroup)
        raise ValidationError(f"Unknown subgroup '{value}'. Expected one of: {choices}") from None


def parse_category_kind(value) -> CategoryKind:
    """Return the CategoryKind for a value, raising ValidationError if unknown."""
    try:
        return CategoryKind(str(getattr(value, "value", value)).strip().lower())
    except ValueError:
        choices = ", ".join(k.value for k in CategoryKind)
        raise ValidationError(f"Unknown category kind '{value}'. Expected one of: {choices}") from None


def kind_for_subgroup(subgroup: Subgroup) -> CategoryKind:
    """Liability categories record outflows; asset categories record inflows."""
    return CategoryKind.OUTFLOW if subgroup.is_liability else CategoryKind.INFLOW


class CategoryService:
    """Service for classifying categories and allocating their codes."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def next_sequence_code(self, scope: Scope, subgroup) -> int:
        """Return the next free sequence code for a subgroup in a scope.

        Args:
            scope: Allocation scope (a group, or a user's private records)
            subgroup: Subgroup whose range to allocate from

        Returns:
            Current maximum + 1, or the range minimum when the range is empty

        Raises:
            RangeExhaustedError: If the range maximum is already used
        """
        code_range = range_for(parse_subgroup(subgroup))
        current = self.db.get_max_sequence_code(scope, code_range.minimum, code_range.maximum)
        next_code = code_range.minimum if current is None else current + 1
        if next_code > code_range.maximum:
            raise RangeExhaustedError(code_range.subgroup.value, code_range.minimum, code_range.maximum)
        return next_code

    def _insert_with_code(self, name: str, kind: CategoryKind, subgroup: Subgroup, scope: Scope) -> int:
        """Allocate a code and insert, retrying once on a duplicate code."""
        for attempt in range(ALLOCATION_ATTEMPTS):
            code = self.next_sequence_code(scope, subgroup)
            try:
                category_id = self.db.create_category(
                    name=name,
                    kind=kind.value,
                    owner_user_id=scope.user_id,
                    group_id=scope.group_id,
                    subgroup=subgroup.value,
                    sequence_code=code,
                )
            except DuplicateKeyError:
                logger.warning(
                    "sequence_code_collision",
                    extra={"scope": scope.key, "subgroup": subgroup.value, "code": code, "attempt": attempt + 1},
                )
                continue
            logger.info(
                "category_allocated",
                extra={"category_id": category_id, "scope": scope.key, "subgroup": subgroup.value, "code": code},
            )
            return category_id
        raise ConflictError(f"Could not allocate a sequence code for '{name}' in {scope.key}; retry later")

    def create_category(
        self,
        caller: Caller,
        name: str,
        kind,
        subgroup=None,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
    ) -> Category:
        """Create a category explicitly.

        Inflow and outflow categories with a subgroup get the next sequence
        code of that subgroup; product and market categories never do.

        Args:
            caller: Acting caller
            name: Category name
            kind: One of inflow, outflow, product, market
            subgroup: Optional balance-sheet subgroup
            share_to_group: Share with the caller's group
            group_id: Raw group ID, used when share_to_group is not given

        Returns:
            The created category

        Raises:
            ValidationError: If name, kind or subgroup is invalid
            RangeExhaustedError: If the subgroup range is full for the scope
            ConflictError: If allocation collided twice
        """
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        name = name.strip()
        kind = parse_category_kind(kind)
        scope = scope_for(caller, resolve_group(caller, share_to_group, group_id))

        if subgroup is not None:
            subgroup = parse_subgroup(subgroup)
            if kind not in (CategoryKind.INFLOW, CategoryKind.OUTFLOW):
                raise ValidationError(f"Only inflow and outflow categories carry a subgroup, not '{kind.value}'")
            category_id = self._insert_with_code(name, kind, subgroup, scope)
        else:
            category_id = self.db.create_category(
                name=name, kind=kind.value, owner_user_id=scope.user_id, group_id=scope.group_id
            )
            logger.info("category_created", extra={"category_id": category_id, "scope": scope.key})
        return self.db.get_category(category_id)

    def resolve_or_create_category(
        self,
        caller: Caller,
        name: str,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
        subgroup=None,
        product_name: Optional[str] = None,
    ) -> Category:
        """Find a category by name in scope, or classify and create it.

        The subgroup comes from the explicit hint if given, otherwise from
        the first applicable classification rule matching the category and
        product names.

        Args:
            caller: Acting caller
            name: Category name (matched case-insensitively)
            share_to_group: Look up and create in the caller's group
            group_id: Raw group ID, used when share_to_group is not given
            subgroup: Optional subgroup hint
            product_name: Product name used as extra rule text

        Returns:
            The existing or newly created category

        Raises:
            NoRuleMatchedError: If no hint is given and no rule matches
            RangeExhaustedError: If the subgroup range is full for the scope
            ConflictError: If allocation collided twice
        """
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        name = name.strip()
        scope = scope_for(caller, resolve_group(caller, share_to_group, group_id))

        existing = self.db.get_category_by_name(name, scope)
        if existing is not None:
            return existing

        if subgroup is not None:
            inferred = parse_subgroup(subgroup)
        else:
            rules = self.db.list_rules(user_id=caller.user_id, group_id=scope.group_id)
            inferred = infer_subgroup(rules, [name, product_name], caller.user_id, scope.group_id)
            if inferred is None:
                raise NoRuleMatchedError(no_rule_matched(" ".join(t for t in (name, product_name) if t)))

        category_id = self._insert_with_code(name, kind_for_subgroup(inferred), inferred, scope)
        return self.db.get_category(category_id)

    def classify_bucket(self, category: Category) -> Optional[Subgroup]:
        """Return the balance-sheet bucket of a category, or None."""
        return classify_bucket(category)

    def get_category(self, caller: Caller, category_id: int) -> Category:
        """Get a category visible to the caller.

        Raises:
            NotFoundError: If the category does not exist
            AuthorizationError: If the category is outside the caller's scope
        """
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        require_manage(caller, category, f"category {category_id}")
        return category

    def list_categories(self, caller: Caller, kind=None, search: Optional[str] = None) -> list[Category]:
        """List the caller's own categories plus those of the caller's group."""
        return self.db.list_categories(
            user_id=caller.user_id,
            group_id=caller.group_id,
            kind=parse_category_kind(kind).value if kind is not None else None,
            search=search,
        )

    def delete_category(self, caller: Caller, category_id: int) -> None:
        """Delete a category that no product references.

        Raises:
            NotFoundError: If the category does not exist
            AuthorizationError: If the caller may not manage the category
            DependencyError: If products still reference the category
        """
        category = self.get_category(caller, category_id)
        count = self.db.get_category_product_count(category.id)
        if count > 0:
            raise DependencyError(delete_blocked("category", category_id, count, "product"))
        self.db.delete_category(category_id)
        logger.info("category_deleted", extra={"category_id": category_id})

    def add_rule(
        self,
        caller: Caller,
        pattern: str,
        target_subgroup,
        priority: Optional[int] = None,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
        global_rule: bool = False,
    ) -> ClassificationRule:
        """Add a classification rule for the caller, the caller's group, or everyone.

        Args:
            caller: Acting caller
            pattern: LIKE pattern (``%`` any run, ``_`` one character)
            target_subgroup: Subgroup the rule assigns
            priority: Lower wins within a scope rank; None sorts last
            share_to_group: Make it a group rule for the caller's group
            group_id: Raw group ID, used when share_to_group is not given
            global_rule: Make it a rule for everyone (privileged callers only)

        Raises:
            ValidationError: If the pattern or subgroup is invalid
            AuthorizationError: If a non-privileged caller adds a global rule
        """
        if not pattern or not pattern.strip():
            raise ValidationError("Rule pattern is required")
        subgroup = parse_subgroup(target_subgroup)

        if global_rule:
            if not caller.privileged:
                raise AuthorizationError("Only privileged callers may add global rules")
            owner, group = None, None
        else:
            group = resolve_group(caller, share_to_group, group_id)
            owner = None if group is not None else caller.user_id

        rule_id = self.db.create_rule(
            pattern=pattern.strip(),
            target_subgroup=subgroup.value,
            priority=priority,
            owner_user_id=owner,
            group_id=group,
        )
        logger.info("rule_added", extra={"rule_id": rule_id, "pattern": pattern, "subgroup": subgroup.value})
        return next(rule for rule in self.db.list_rules(owner, group) if rule.id == rule_id)

    def list_rules(self, caller: Caller) -> list[ClassificationRule]:
        """List the rules that apply to the caller, in matching order."""
        rules = self.db.list_rules(user_id=caller.user_id, group_id=caller.group_id)
        return order_rules(rules, caller.user_id, caller.group_id)
