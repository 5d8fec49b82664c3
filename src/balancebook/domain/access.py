"""Ownership, group visibility and sharing rules shared by the services."""

from typing import Optional

from balancebook.domain.entities import Caller, Scope
from balancebook.domain.errors import AuthorizationError, ValidationError


def can_manage(caller: Caller, owner_user_id: Optional[str], group_id: Optional[str]) -> bool:
    """Return True if the caller owns the record, shares its group, or is privileged."""
    if caller.privileged:
        return True
    if owner_user_id is not None and owner_user_id == caller.user_id:
        return True
    return group_id is not None and group_id == caller.group_id


def require_manage(caller: Caller, record, label: str) -> None:
    """Raise AuthorizationError unless the caller may act on a scoped record.

    Args:
        caller: Acting caller
        record: Any entity with owner_user_id and group_id
        label: Human-readable record label for the message, e.g. "account 3"
    """
    if not can_manage(caller, record.owner_user_id, record.group_id):
        raise AuthorizationError(f"Not allowed to access {label}")


def require_owner(caller: Caller, owner_user_id: Optional[str], label: str) -> None:
    """Raise AuthorizationError unless the caller owns the record or is privileged."""
    if caller.privileged or owner_user_id == caller.user_id:
        return
    raise AuthorizationError(f"Only the owner may modify {label}")


def resolve_group(
    caller: Caller, share_to_group: Optional[bool] = None, group_id: Optional[str] = None
) -> Optional[str]:
    """Resolve which group a new record is shared with.

    An explicit share flag wins over a raw group ID, which wins over the
    private default.

    Args:
        caller: Acting caller
        share_to_group: True shares with the caller's group, False keeps private
        group_id: Raw group ID; non-privileged callers may only name their own

    Returns:
        Group ID, or None for a private record

    Raises:
        ValidationError: If sharing is requested but the caller has no group
        AuthorizationError: If a non-privileged caller names another group
    """
    if share_to_group is not None:
        if not share_to_group:
            return None
        if caller.group_id is None:
            raise ValidationError("Cannot share to group: caller has no group")
        return caller.group_id

    if group_id is not None:
        if not caller.privileged and group_id != caller.group_id:
            raise AuthorizationError(f"Not allowed to share with group '{group_id}'")
        return group_id

    return None


def scope_for(caller: Caller, group_id: Optional[str]) -> Scope:
    """Return the scope a record owned by the caller falls in."""
    return Scope(user_id=caller.user_id, group_id=group_id)
