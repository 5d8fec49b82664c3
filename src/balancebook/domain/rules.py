"""Keyword rules that infer a category's subgroup.

Matching is a pure function over an explicit rule list; callers load the
rules that apply to a scope and pass them in.
"""

import re
from typing import Iterable, Optional

from balancebook.domain.entities import ClassificationRule, Subgroup

# Sort key for rules without a priority
MISSING_PRIORITY = 9999

USER_RANK = 0
GROUP_RANK = 1
GLOBAL_RANK = 2


def like_to_regex(pattern: str) -> re.Pattern:
    """Compile a SQL LIKE pattern into an anchored, case-insensitive regex.

    ``%`` matches any run of characters and ``_`` exactly one character;
    everything else is literal.

    Args:
        pattern: LIKE pattern such as ``%hutang%``

    Returns:
        Compiled regular expression matching the whole text
    """
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def like_match(pattern: str, text: str) -> bool:
    """Return True if text matches the LIKE pattern."""
    return like_to_regex(pattern).match(text) is not None


def rule_rank(rule: ClassificationRule, user_id: Optional[str], group_id: Optional[str]) -> int:
    """Return how specific a rule is for a caller (lower is more specific)."""
    if rule.owner_user_id is not None and rule.owner_user_id == user_id:
        return USER_RANK
    if rule.group_id is not None and rule.group_id == group_id:
        return GROUP_RANK
    return GLOBAL_RANK


def is_applicable(rule: ClassificationRule, user_id: Optional[str], group_id: Optional[str]) -> bool:
    """Return True if a rule is the caller's own, the caller's group's, or global."""
    if rule.owner_user_id is None and rule.group_id is None:
        return True
    if rule.owner_user_id is not None and rule.owner_user_id == user_id:
        return True
    return rule.group_id is not None and rule.group_id == group_id


def order_rules(
    rules: Iterable[ClassificationRule],
    user_id: Optional[str],
    group_id: Optional[str],
) -> list[ClassificationRule]:
    """Drop rules that do not apply and sort the rest by rank, then priority."""
    applicable = [rule for rule in rules if is_applicable(rule, user_id, group_id)]
    return sorted(
        applicable,
        key=lambda rule: (
            rule_rank(rule, user_id, group_id),
            rule.priority if rule.priority is not None else MISSING_PRIORITY,
            rule.id,
        ),
    )


def infer_subgroup(
    rules: Iterable[ClassificationRule],
    texts: Iterable[Optional[str]],
    user_id: Optional[str] = None,
    group_id: Optional[str] = None,
) -> Optional[Subgroup]:
    """Return the subgroup of the first rule matching the combined text.

    The non-empty texts are joined with a single space and matched as one
    string. Rules are tried in order of specificity (user, group, global)
    and then by priority.

    Args:
        rules: Candidate rules
        texts: Category name, product name, etc. Empty values are skipped
        user_id: Caller's user ID
        group_id: Caller's group ID

    Returns:
        Matched subgroup or None
    """
    text = " ".join(part.strip() for part in texts if part and part.strip())
    if not text:
        return None

    for rule in order_rules(rules, user_id, group_id):
        if like_match(rule.pattern, text):
            return rule.target_subgroup
    return None
