"""Descriptor ledger: append-only metadata for stored objects."""

from filehub.ledger.models import UNKNOWN_OWNER, FileDescriptor
from filehub.ledger.sink import InMemoryLedger, JsonlFileLedger, Ledger, LedgerError

__all__ = [
    "FileDescriptor",
    "InMemoryLedger",
    "JsonlFileLedger",
    "Ledger",
    "LedgerError",
    "UNKNOWN_OWNER",
]
