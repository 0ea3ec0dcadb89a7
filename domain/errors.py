from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error reported by the wallet core."""


class AccountNotFoundError(LedgerError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"Account {user_id} not found.")
        self.user_id = user_id


class RecipientNotFoundError(AccountNotFoundError):
    def __init__(self, recipient_ref: str) -> None:
        LedgerError.__init__(self, f"Recipient {recipient_ref} not found.")
        self.user_id = recipient_ref
        self.recipient_ref = recipient_ref


class InsufficientBalanceError(LedgerError):
    def __init__(self, user_id: str, balance: int, amount: int) -> None:
        super().__init__(
            f"Insufficient balance: {balance} available, {-amount} required."
        )
        self.user_id = user_id
        self.balance = balance
        self.amount = amount


class InvalidRequestError(LedgerError):
    """Input rejected at the boundary before anything was read or written."""


class InvalidAmountError(InvalidRequestError):
    pass


class InvalidRecordError(LedgerError):
    """A stored record could not be mapped back to a domain object."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Malformed record at {key!r}: {reason}")
        self.key = key
        self.reason = reason
