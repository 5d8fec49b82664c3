"""Cash account domain service."""

import logging
from typing import Optional

from balancebook.database.base import Database
from balancebook.domain.access import require_manage, resolve_group
from balancebook.domain.entities import Account as AccountEntity, Caller
from balancebook.domain.errors import (
    DependencyError,
    NotFoundError,
    ValidationError,
    account_not_found,
    delete_blocked,
)

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing cash accounts."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        caller: Caller,
        name: str,
        description: Optional[str] = None,
        opening_balance: int = 0,
        closing_balance: Optional[int] = None,
        share_to_group: bool = False,
    ) -> AccountEntity:
        """Create a new cash account.

        Args:
            caller: Acting caller, who becomes the owner
            name: Account name
            description: Optional description
            opening_balance: Opening balance
            closing_balance: Closing balance, defaults to the opening balance
            share_to_group: Share the account with the caller's group

        Returns:
            The created account

        Raises:
            ValidationError: If the name is empty or sharing is impossible
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")

        group_id = resolve_group(caller, share_to_group=share_to_group)
        account_id = self.db.create_account(
            name=name.strip(),
            owner_user_id=caller.user_id,
            opening_balance=opening_balance,
            closing_balance=opening_balance if closing_balance is None else closing_balance,
            description=description,
            group_id=group_id,
        )
        logger.info("account_created", extra={"account_id": account_id, "group_id": group_id})
        return self.db.get_account(account_id)

    def get_account(self, caller: Caller, account_id: int) -> AccountEntity:
        """Get an account the caller may see.

        Raises:
            NotFoundError: If the account does not exist
            AuthorizationError: If the caller is not owner, group-mate or privileged
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        require_manage(caller, account, f"account {account_id}")
        return account

    def list_accounts(self, caller: Caller, search: Optional[str] = None) -> list[AccountEntity]:
        """List the caller's own accounts plus those shared with the caller's group."""
        return self.db.list_accounts(user_id=caller.user_id, group_id=caller.group_id, search=search)

    def update_account(
        self,
        caller: Caller,
        account_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        opening_balance: Optional[int] = None,
        share_to_group: Optional[bool] = None,
        group_id: Optional[str] = None,
    ) -> AccountEntity:
        """Update an account.

        Changing the opening balance shifts the closing balance by the same
        difference, so the closing balance keeps matching the entries.

        Args:
            caller: Acting caller
            account_id: Account to update
            name: New name
            description: New description
            opening_balance: New opening balance
            share_to_group: True shares with the caller's group, False makes private
            group_id: Raw group ID, used when share_to_group is not given

        Raises:
            NotFoundError: If the account does not exist
            AuthorizationError: If the caller may not manage the account or group
            ValidationError: If nothing is to be updated or the name is empty
        """
        account = self.get_account(caller, account_id)

        if name is not None and not name.strip():
            raise ValidationError("Account name is required")

        update_group = share_to_group is not None or group_id is not None
        new_group = resolve_group(caller, share_to_group, group_id) if update_group else None

        if name is None and description is None and opening_balance is None and not update_group:
            raise ValidationError("Nothing to update")

        self.db.update_account(
            account_id,
            name=name.strip() if name is not None else None,
            description=description,
            opening_balance=opening_balance,
            closing_delta=opening_balance - account.opening_balance if opening_balance is not None else 0,
            group_id=new_group,
            update_group=update_group,
        )

        logger.info("account_updated", extra={"account_id": account_id})
        return self.db.get_account(account_id)

    def delete_account(self, caller: Caller, account_id: int) -> None:
        """Delete an account no entry points at.

        Raises:
            NotFoundError: If the account does not exist
            AuthorizationError: If the caller may not manage the account
            DependencyError: If entries still reference the account
        """
        self.get_account(caller, account_id)

        entry_count = self.db.get_account_entry_count(account_id)
        if entry_count > 0:
            raise DependencyError(delete_blocked("account", account_id, entry_count, "entry", "entries"))

        self.db.delete_account(account_id)
        logger.info("account_deleted", extra={"account_id": account_id})
