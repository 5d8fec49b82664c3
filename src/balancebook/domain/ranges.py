"""Sequence-code ranges for balance-sheet subgroups.

Every category that lands on the balance sheet carries a numeric code in
0-4999. The code alone is enough to place it in one of the four subgroups,
so all range lookups go through the single ordered table below.
"""

from dataclasses import dataclass
from typing import Optional

from balancebook.domain.entities import Category, Subgroup


@dataclass(frozen=True)
class SubgroupRange:
    """Inclusive code range owned by one subgroup."""

    subgroup: Subgroup
    minimum: int
    maximum: int

    def contains(self, code: int) -> bool:
        return self.minimum <= code <= self.maximum


SUBGROUP_RANGES: tuple[SubgroupRange, ...] = (
    SubgroupRange(Subgroup.ASSET_CURRENT, 0, 2599),
    SubgroupRange(Subgroup.ASSET_FIXED, 2600, 3599),
    SubgroupRange(Subgroup.LIABILITY_CURRENT, 4000, 4499),
    SubgroupRange(Subgroup.LIABILITY_LONGTERM, 4500, 4999),
)

# Coarse split used by the nested category tree
ASSET_CODES = (0, 3599)
LIABILITY_CODES = (4000, 4999)


def range_for(subgroup: Subgroup) -> SubgroupRange:
    """Return the code range for a subgroup.

    Args:
        subgroup: Subgroup to look up

    Returns:
        The subgroup's range
    """
    subgroup = Subgroup(subgroup)
    for entry in SUBGROUP_RANGES:
        if entry.subgroup == subgroup:
            return entry
    raise KeyError(subgroup)


def subgroup_for_code(code: Optional[int]) -> Optional[Subgroup]:
    """Return the subgroup whose range contains a code, or None.

    Codes 3600-3999 belong to no range and classify to None.
    """
    if code is None:
        return None
    for entry in SUBGROUP_RANGES:
        if entry.contains(code):
            return entry.subgroup
    return None


def classify(subgroup: Optional[Subgroup], sequence_code: Optional[int]) -> Optional[Subgroup]:
    """Place a subgroup/code pair into a bucket.

    An explicit subgroup wins; otherwise the code decides.
    """
    if subgroup is not None:
        return Subgroup(subgroup)
    return subgroup_for_code(sequence_code)


def classify_bucket(category: Category) -> Optional[Subgroup]:
    """Return the balance-sheet bucket of a category, or None."""
    return classify(category.subgroup, category.sequence_code)


def is_asset_code(code: Optional[int]) -> bool:
    return code is not None and ASSET_CODES[0] <= code <= ASSET_CODES[1]


def is_liability_code(code: Optional[int]) -> bool:
    return code is not None and LIABILITY_CODES[0] <= code <= LIABILITY_CODES[1]
