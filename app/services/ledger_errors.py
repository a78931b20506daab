# app/services/ledger_errors.py
"""
Error taxonomy of the event finance ledger.

- LedgerValidationError: user-correctable input problem; the whole mutation is rejected.
- LedgerNotFoundError: update/delete referenced an id that no longer exists.
- LedgerStorageError: the database failed; the caller may resubmit the mutation.
"""


class LedgerError(Exception):
    """Base class; message is safe to show to back-office operators."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LedgerValidationError(LedgerError):
    pass


class LedgerNotFoundError(LedgerError):
    pass


class LedgerStorageError(LedgerError):
    pass
