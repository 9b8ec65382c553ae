"""Ledger - wallet balances charged for scripts and renders."""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Optional

from promo_video.core.exceptions import AccountNotFoundError, InsufficientFundsError


class Ledger(ABC):
    """Account balances in wallet units."""

    @abstractmethod
    def get_balance(self, account_id: str) -> int:
        """
        Return the current balance.

        Raises:
            AccountNotFoundError: If the account does not exist
        """

    @abstractmethod
    def deduct_if_sufficient(self, account_id: str, amount: int) -> int:
        """
        Atomically subtract ``amount`` if the balance covers it.

        Returns:
            Remaining balance

        Raises:
            AccountNotFoundError: If the account does not exist
            InsufficientFundsError: If the balance is below ``amount`` (nothing is deducted)
        """

    def ensure_sufficient(self, account_id: str, amount: int) -> int:
        """Pre-flight check; returns the balance or raises InsufficientFundsError."""
        balance = self.get_balance(account_id)
        if balance < amount:
            raise InsufficientFundsError(balance=balance, required=amount)
        return balance


class InMemoryLedger(Ledger):
    """Thread-safe ledger kept in process memory."""

    def __init__(self, balances: Optional[dict[str, int]] = None):
        self._balances = dict(balances or {})
        self._lock = Lock()

    def get_balance(self, account_id: str) -> int:
        with self._lock:
            if account_id not in self._balances:
                raise AccountNotFoundError(f"Account {account_id} not found")
            return self._balances[account_id]

    def deduct_if_sufficient(self, account_id: str, amount: int) -> int:
        with self._lock:
            if account_id not in self._balances:
                raise AccountNotFoundError(f"Account {account_id} not found")
            balance = self._balances[account_id]
            if balance < amount:
                raise InsufficientFundsError(balance=balance, required=amount)
            self._balances[account_id] = balance - amount
            return self._balances[account_id]
