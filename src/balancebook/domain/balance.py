"""Account balance synchronization."""

import logging

from balancebook.database.base import Database
from balancebook.domain.entities import BalanceCheck
from balancebook.domain.errors import NotFoundError, account_not_found

logger = logging.getLogger(__name__)


class BalanceService:
    """Keeps cash account closing balances in step with ledger entries."""

    def __init__(self, db: Database):
        """Initialize balance service.

        Args:
            db: Database instance
        """
        self.db = db

    def apply_delta(self, account_id: int, delta: int) -> int:
        """Add a signed delta to an account's closing balance.

        Args:
            account_id: Account ID
            delta: Signed amount (debit minus credit of an entry)

        Returns:
            The new closing balance

        Raises:
            NotFoundError: If the account does not exist
        """
        balance = self.db.increment_account_balance(account_id, delta)
        logger.debug("balance_applied", extra={"account_id": account_id, "delta": delta, "balance": balance})
        return balance

    def reverse(self, account_id: int, delta: int) -> int:
        """Undo a previously applied delta."""
        return self.apply_delta(account_id, -delta)

    def get_balance(self, account_id: int) -> int:
        balance = self.db.get_account_balance(account_id)
        if balance is None:
            raise NotFoundError(account_not_found(account_id))
        return balance

    def check_balance(self, account_id: int) -> BalanceCheck:
        """Compare the stored balance with opening balance plus entry effects.

        Args:
            account_id: Account ID

        Returns:
            BalanceCheck with stored and expected closing balance

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        expected = account.opening_balance + self.db.get_account_entry_net(account_id)
        check = BalanceCheck(account_id=account_id, stored=account.closing_balance, expected=expected)
        if not check.consistent:
            logger.warning(
                "balance_drift_detected",
                extra={"account_id": account_id, "stored": check.stored, "expected": check.expected},
            )
        return check
