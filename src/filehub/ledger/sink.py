"""Metadata ledger implementations.

The ledger maps storage keys to FileDescriptors. It is an append-only log:
uploads append a ``put`` record, deletions append a ``delete`` tombstone,
and the current state is the fold of all records in order.

Design requirements:
- Append-only: never truncate/overwrite
- Fail closed: any IO failure raises LedgerError
- Deterministic: sorted keys, compact separators, one record per line
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from filehub.ledger.models import FileDescriptor

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_PATH = "./var/ledger/files.jsonl"

OP_PUT = "put"
OP_DELETE = "delete"


class LedgerError(Exception):
    """Raised when a ledger read or append fails.

    Upload and delete flows convert this into a storage failure response.
    """

    pass


@runtime_checkable
class Ledger(Protocol):
    """Protocol for descriptor ledgers."""

    def append(self, descriptor: FileDescriptor) -> None:
        """Record a new descriptor.

        Raises:
            LedgerError: If the key already has a descriptor or the write fails.
        """
        ...

    def remove(self, key: str) -> bool:
        """Remove the descriptor for ``key``.

        Returns:
            True if a descriptor was removed, False if none existed.

        Raises:
            LedgerError: If the write fails.
        """
        ...

    def get(self, key: str) -> FileDescriptor | None:
        """Return the descriptor for ``key`` or None."""
        ...

    def list_all(self) -> list[FileDescriptor]:
        """Return all live descriptors in upload order."""
        ...

    def list_by_owner(self, owner: str) -> list[FileDescriptor]:
        """Return live descriptors uploaded by ``owner`` in upload order."""
        ...


def _apply_record(state: dict[str, FileDescriptor], record: dict[str, Any]) -> None:
    """Apply one ledger record to a folded key -> descriptor mapping."""
    op = record["op"]
    if op == OP_PUT:
        descriptor = FileDescriptor.from_dict(record["descriptor"])
        state[descriptor.key] = descriptor
    elif op == OP_DELETE:
        state.pop(str(record["key"]), None)
    else:
        raise ValueError(f"unknown ledger op {op!r}")


class JsonlFileLedger:
    """Append-only JSONL file ledger.

    Record format (one per line):
        {"descriptor": {...}, "op": "put"}
        {"at": "<iso8601>", "key": "<key>", "op": "delete"}

    Lines that fail to parse (e.g. a torn final line after a crash) are
    skipped with a warning. Thread-safe within a process.

    The folded state is cached and reused until the file's inode, size or
    modification time changes. Records written by this instance are applied
    to the cache directly when the file grew by exactly that record, so a
    sequence of appends does not rescan the log.
    """

    def __init__(self, file_path: str | Path = DEFAULT_LEDGER_PATH) -> None:
        self._file_path = Path(file_path)
        self._lock = threading.Lock()
        self._state: dict[str, FileDescriptor] = {}
        self._stamp: tuple[int, int, int] | None = None

    @property
    def file_path(self) -> Path:
        """Return the configured file path."""
        return self._file_path

    def _ensure_parent_directory(self) -> None:
        parent = self._file_path.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LedgerError(f"Failed to create ledger directory {parent}: {e}") from e

    def _file_stamp(self) -> tuple[int, int, int] | None:
        """(inode, size, mtime_ns) of the ledger file, None if it does not exist."""
        try:
            st = self._file_path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LedgerError(f"Failed to stat ledger {self._file_path}: {e}") from e
        return (st.st_ino, st.st_size, st.st_mtime_ns)

    def _write_record(self, record: dict[str, Any]) -> None:
        """Append one record. Callers hold the lock and have just called _load()."""
        try:
            line = json.dumps(record, sort_keys=True, separators=(",", ":")) + "\n"
        except (TypeError, ValueError) as e:
            raise LedgerError(f"Failed to serialize ledger record: {e}") from e

        self._ensure_parent_directory()

        previous = self._stamp
        expected_size = (previous[1] if previous else 0) + len(line.encode("utf-8"))

        try:
            with open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
        except OSError as e:
            raise LedgerError(f"Failed to append to ledger {self._file_path}: {e}") from e

        try:
            stamp = self._file_stamp()
        except LedgerError:
            stamp = None

        same_file = previous is None or (stamp is not None and stamp[0] == previous[0])
        if stamp is not None and same_file and stamp[1] == expected_size:
            _apply_record(self._state, record)
            self._stamp = stamp
        else:
            # Someone else touched the file; refold on the next read.
            self._stamp = None

    def _fold(self) -> dict[str, FileDescriptor]:
        """Fold all records into the current key -> descriptor mapping."""
        state: dict[str, FileDescriptor] = {}
        try:
            with open(self._file_path, encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    if not line.strip():
                        continue
                    try:
                        _apply_record(state, json.loads(line))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                        logger.warning("Skipping malformed ledger line %d: %s", lineno, e)
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise LedgerError(f"Failed to read ledger {self._file_path}: {e}") from e

        return state

    def _load(self) -> dict[str, FileDescriptor]:
        """Return the current state, refolding only if the file has changed."""
        stamp = self._file_stamp()
        if stamp is None:
            self._state = {}
            self._stamp = None
        elif stamp != self._stamp:
            self._state = self._fold()
            self._stamp = stamp
        return self._state

    def append(self, descriptor: FileDescriptor) -> None:
        """Append a ``put`` record for a new descriptor."""
        with self._lock:
            if descriptor.key in self._load():
                raise LedgerError(f"Descriptor already recorded for key {descriptor.key}")
            self._write_record({"op": OP_PUT, "descriptor": descriptor.to_dict()})

    def remove(self, key: str) -> bool:
        """Append a ``delete`` tombstone if the key has a descriptor."""
        with self._lock:
            if key not in self._load():
                return False
            self._write_record(
                {"op": OP_DELETE, "key": key, "at": datetime.now(UTC).isoformat()}
            )
            return True

    def get(self, key: str) -> FileDescriptor | None:
        with self._lock:
            return self._load().get(key)

    def list_all(self) -> list[FileDescriptor]:
        with self._lock:
            return list(self._load().values())

    def list_by_owner(self, owner: str) -> list[FileDescriptor]:
        return [d for d in self.list_all() if d.owner == owner]


class InMemoryLedger:
    """In-memory ledger for testing (no disk writes).

    Thread-safe for concurrent test usage.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._descriptors: dict[str, FileDescriptor] = {}

    def append(self, descriptor: FileDescriptor) -> None:
        with self._lock:
            if descriptor.key in self._descriptors:
                raise LedgerError(f"Descriptor already recorded for key {descriptor.key}")
            self._descriptors[descriptor.key] = descriptor

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._descriptors.pop(key, None) is not None

    def get(self, key: str) -> FileDescriptor | None:
        with self._lock:
            return self._descriptors.get(key)

    def list_all(self) -> list[FileDescriptor]:
        with self._lock:
            return list(self._descriptors.values())

    def list_by_owner(self, owner: str) -> list[FileDescriptor]:
        return [d for d in self.list_all() if d.owner == owner]

    def clear(self) -> None:
        """Remove all descriptors."""
        with self._lock:
            self._descriptors.clear()
