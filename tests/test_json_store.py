"""
Tests for JSONDuelStore implementation.

Focus on persistence, atomic record files and data integrity.
"""

import json
import tempfile
from pathlib import Path

import pytest

from shadow_duel.exceptions import StoreUnavailableError, ValidationError
from shadow_duel.models import Duel
from shadow_duel.registry import DuelRegistry
from shadow_duel.storage.json_store import JSONDuelStore


class TestJSONDuelStore:
    """Test JSONDuelStore behavior through public interface."""

    def test_set_and_get_round_trip(self) -> None:
        """Write and read one record should work correctly."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            store = JSONDuelStore(Path(temp_dir))
            duel = Duel(id="duel_1", creator="A", stake=100, created_at=10.0)

            # Act
            store.set(duel.id, duel.to_dict())
            loaded = store.get(duel.id)

            # Assert
            assert loaded is not None, "Should load the record"
            assert Duel.from_dict(loaded) == duel
            assert list(store.keys()) == ["duel_1"]
            assert not list((Path(temp_dir) / "duels").glob("*.tmp")), "No temp files should remain"
            store.close()

    def test_records_survive_reopen(self) -> None:
        """A new store over the same directory sees earlier writes."""
        with tempfile.TemporaryDirectory() as temp_dir:
            # Arrange
            first = DuelRegistry(JSONDuelStore(Path(temp_dir)))
            duel = first.create("A", 250)
            first.store.close()

            # Act
            reopened = DuelRegistry(JSONDuelStore(Path(temp_dir)))

            # Assert
            assert reopened.get(duel.id) == duel
            assert reopened.create("B", 1).sequence == duel.sequence + 1
            reopened.store.close()

    def test_journal_records_every_change(self) -> None:
        """Set and delete events are appended to changes.jsonl."""
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            record = Duel(id="duel_j", creator="A", stake=1, created_at=1.0).to_dict()

            store.set("duel_j", record)
            assert store.delete("duel_j")
            assert not store.delete("duel_j")

            entries = list(store.load_journal())
            assert [e["kind"] for e in entries] == ["set", "delete"]
            assert entries[0]["record"] == record
            store.close()

    def test_corrupt_journal_lines_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            store.set("duel_c", Duel(id="duel_c", creator="A", stake=1).to_dict())
            store.flush()

            with open(Path(temp_dir) / "changes.jsonl", "a") as f:
                _ = f.write("corrupted line\n")

            assert len(list(store.load_journal())) == 1
            store.close()

    def test_corrupt_record_raises_on_get_and_is_skipped_in_listing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            registry = DuelRegistry(store)
            good = registry.create("A", 5)
            (Path(temp_dir) / "duels" / "duel_bad.json").write_text("{not json")

            with pytest.raises(ValidationError, match="Corrupt duel record"):
                _ = store.get("duel_bad")
            assert [d.id for d in registry.list_open()] == [good.id]
            store.close()

    def test_record_with_unconvertible_field_is_skipped_in_listing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            registry = DuelRegistry(store)
            good = registry.create("A", 5)
            record = Duel(id="duel_bad", creator="B", stake=1).to_dict()
            record["created_at"] = "yesterday"
            with open(Path(temp_dir) / "duels" / "duel_bad.json", "w") as f:
                json.dump(record, f)

            with pytest.raises(ValidationError, match="Malformed duel record"):
                _ = registry.get("duel_bad")
            assert [d.id for d in registry.list_open()] == [good.id]
            assert registry.list_for("B") == []
            store.close()

    def test_record_with_broken_invariant_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            record = Duel(id="duel_x", creator="A", stake=1).to_dict()
            record["winner"] = "A"
            with open(Path(temp_dir) / "duels" / "duel_x.json", "w") as f:
                json.dump(record, f)

            with pytest.raises(ValidationError, match="winner must be set exactly"):
                _ = DuelRegistry(store).get("duel_x")
            store.close()

    def test_unsafe_keys_are_never_found(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))

            assert store.get("../escape") is None
            with pytest.raises(ValueError, match="Invalid duel key"):
                store.set("../escape", {})
            store.close()

    def test_closed_store_is_unavailable(self) -> None:
        """Access after close surfaces the transient store error."""
        with tempfile.TemporaryDirectory() as temp_dir:
            store = JSONDuelStore(Path(temp_dir))
            store.close()

            with pytest.raises(StoreUnavailableError) as excinfo:
                store.set("duel_1", {})
            assert excinfo.value.retryable
            with pytest.raises(StoreUnavailableError):
                _ = store.get("duel_1")

    def test_unwritable_root_is_unavailable(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = Path(temp_dir) / "file"
            _ = blocker.write_text("x")

            with pytest.raises(StoreUnavailableError, match="Cannot open duel store"):
                _ = JSONDuelStore(blocker / "store")
