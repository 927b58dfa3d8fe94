"""Tests for the descriptor ledgers.

JsonlFileLedger requirements:
- Append-only: records are added, never rewritten
- Delete is a tombstone; the folded state drops the descriptor
- One descriptor per key
- Fail closed: IO failures raise LedgerError
- Folded state is reused until the file changes
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from filehub.ledger import FileDescriptor, InMemoryLedger, JsonlFileLedger, Ledger, LedgerError


def _descriptor(key: str, owner: str = "alice@example.com") -> FileDescriptor:
    return FileDescriptor(
        key=key,
        original_name=key.split("-", 1)[-1],
        size_bytes=42,
        content_type="video/mp4",
        url=f"http://files.test/files/{key}",
        owner=owner,
        created_at=datetime(2026, 1, 7, 10, 0, tzinfo=UTC),
        sha256="ab" * 32,
        fields={"projectId": "p-1"},
    )


@pytest.fixture(params=["jsonl", "memory"])
def any_ledger(request: pytest.FixtureRequest, tmp_path: Path) -> Ledger:
    """Each ledger implementation in turn."""
    if request.param == "jsonl":
        return JsonlFileLedger(tmp_path / "ledger" / "files.jsonl")
    return InMemoryLedger()


class TestLedgerContract:
    """Behavior shared by all ledgers."""

    def test_implements_protocol(self, any_ledger: Ledger) -> None:
        assert isinstance(any_ledger, Ledger)

    def test_append_then_get(self, any_ledger: Ledger) -> None:
        d = _descriptor("1-a.mp4")
        any_ledger.append(d)
        assert any_ledger.get("1-a.mp4") == d

    def test_get_unknown_is_none(self, any_ledger: Ledger) -> None:
        assert any_ledger.get("1-nope.mp4") is None

    def test_duplicate_key_rejected(self, any_ledger: Ledger) -> None:
        any_ledger.append(_descriptor("1-a.mp4"))
        with pytest.raises(LedgerError):
            any_ledger.append(_descriptor("1-a.mp4"))

    def test_list_all_in_upload_order(self, any_ledger: Ledger) -> None:
        for key in ["3-c.mp4", "1-a.mp4", "2-b.mp4"]:
            any_ledger.append(_descriptor(key))
        assert [d.key for d in any_ledger.list_all()] == ["3-c.mp4", "1-a.mp4", "2-b.mp4"]

    def test_remove(self, any_ledger: Ledger) -> None:
        any_ledger.append(_descriptor("1-a.mp4"))

        assert any_ledger.remove("1-a.mp4") is True
        assert any_ledger.get("1-a.mp4") is None
        assert any_ledger.list_all() == []

    def test_remove_unknown_returns_false(self, any_ledger: Ledger) -> None:
        assert any_ledger.remove("1-nope.mp4") is False

    def test_key_can_be_recorded_again_after_removal(self, any_ledger: Ledger) -> None:
        any_ledger.append(_descriptor("1-a.mp4"))
        any_ledger.remove("1-a.mp4")
        any_ledger.append(_descriptor("1-a.mp4", owner="bob@example.com"))
        assert any_ledger.get("1-a.mp4").owner == "bob@example.com"

    def test_list_by_owner(self, any_ledger: Ledger) -> None:
        any_ledger.append(_descriptor("1-a.mp4", owner="alice@example.com"))
        any_ledger.append(_descriptor("2-b.mp4", owner="bob@example.com"))
        any_ledger.append(_descriptor("3-c.mp4", owner="alice@example.com"))

        assert [d.key for d in any_ledger.list_by_owner("alice@example.com")] == [
            "1-a.mp4",
            "3-c.mp4",
        ]
        assert any_ledger.list_by_owner("carol@example.com") == []


class TestJsonlFileLedger:
    """File format and failure behavior."""

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "deep" / "dir" / "files.jsonl"
        JsonlFileLedger(path).append(_descriptor("1-a.mp4"))
        assert path.exists()

    def test_records_are_appended_not_rewritten(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        ledger = JsonlFileLedger(path)
        ledger.append(_descriptor("1-a.mp4"))
        first_line = path.read_text(encoding="utf-8").splitlines()[0]

        ledger.append(_descriptor("2-b.mp4"))
        ledger.remove("1-a.mp4")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert lines[0] == first_line
        assert json.loads(lines[2])["op"] == "delete"
        assert json.loads(lines[2])["key"] == "1-a.mp4"

    def test_lines_are_deterministic_json(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        JsonlFileLedger(path).append(_descriptor("1-a.mp4"))
        line = path.read_text(encoding="utf-8").splitlines()[0]
        record = json.loads(line)

        assert line == json.dumps(record, sort_keys=True, separators=(",", ":"))
        assert record["op"] == "put"
        assert record["descriptor"]["fields"] == {"projectId": "p-1"}

    def test_state_survives_new_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        JsonlFileLedger(path).append(_descriptor("1-a.mp4"))

        reopened = JsonlFileLedger(path)
        assert reopened.get("1-a.mp4") == _descriptor("1-a.mp4")

    def test_malformed_lines_are_skipped(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        ledger = JsonlFileLedger(path)
        ledger.append(_descriptor("1-a.mp4"))
        with open(path, "a", encoding="utf-8") as f:
            f.write('{"op": "put", "descriptor": {"key": "torn"\n')
            f.write("\n")
        ledger.append(_descriptor("2-b.mp4"))

        assert [d.key for d in ledger.list_all()] == ["1-a.mp4", "2-b.mp4"]

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert JsonlFileLedger(tmp_path / "absent.jsonl").list_all() == []

    def test_unwritable_path_raises_ledger_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way", encoding="utf-8")
        ledger = JsonlFileLedger(blocker / "files.jsonl")

        with pytest.raises(LedgerError):
            ledger.append(_descriptor("1-a.mp4"))

    def test_appends_reuse_folded_state(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        ledger = JsonlFileLedger(tmp_path / "files.jsonl")
        folds = []
        real_fold = ledger._fold

        def counting_fold() -> dict[str, FileDescriptor]:
            folds.append(1)
            return real_fold()

        monkeypatch.setattr(ledger, "_fold", counting_fold)

        for i in range(20):
            ledger.append(_descriptor(f"{i}-a.mp4"))
        ledger.remove("0-a.mp4")

        assert len(ledger.list_all()) == 19
        assert ledger.get("5-a.mp4") == _descriptor("5-a.mp4")
        assert folds == []

    def test_writes_from_another_instance_are_seen(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        reader = JsonlFileLedger(path)
        writer = JsonlFileLedger(path)

        writer.append(_descriptor("1-a.mp4"))
        assert [d.key for d in reader.list_all()] == ["1-a.mp4"]

        writer.append(_descriptor("2-b.mp4"))
        writer.remove("1-a.mp4")
        assert [d.key for d in reader.list_all()] == ["2-b.mp4"]

    def test_own_append_after_foreign_append(self, tmp_path: Path) -> None:
        path = tmp_path / "files.jsonl"
        first = JsonlFileLedger(path)
        second = JsonlFileLedger(path)

        first.append(_descriptor("1-a.mp4"))
        second.append(_descriptor("2-b.mp4"))
        first.append(_descriptor("3-c.mp4"))

        assert [d.key for d in first.list_all()] == ["1-a.mp4", "2-b.mp4", "3-c.mp4"]
        with pytest.raises(LedgerError):
            first.append(_descriptor("2-b.mp4"))


class TestFileDescriptor:
    """Descriptor serialization."""

    def test_dict_roundtrip(self) -> None:
        d = _descriptor("1-a.mp4")
        assert FileDescriptor.from_dict(d.to_dict()) == d

    def test_missing_owner_becomes_unknown(self) -> None:
        data = _descriptor("1-a.mp4").to_dict()
        data["owner"] = None
        assert FileDescriptor.from_dict(data).owner == "unknown"
