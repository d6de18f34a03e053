"""
Tests for the client-side secret stores and DuelClient.
"""

import stat
import tempfile
from pathlib import Path

import pytest

from shadow_duel.client import DuelClient
from shadow_duel.commitment import commit
from shadow_duel.engine import DuelEngine
from shadow_duel.exceptions import (
    DuplicateCommitmentError,
    InvalidAllocationError,
    ValidationError,
    WrongPhaseError,
)
from shadow_duel.models import DuelStatus
from shadow_duel.storage.memory_store import MemoryDuelStore
from shadow_duel.storage.secret_store import JSONSecretStore, MemorySecretStore


class TestSecretStores:
    """Test put/get/discard on both implementations."""

    def test_memory_store_round_trip(self) -> None:
        store = MemorySecretStore()

        store.put("duel_1", (6, 2, 2), "sA")

        assert store.get("duel_1") == ((6, 2, 2), "sA")
        store.discard("duel_1")
        assert store.get("duel_1") is None

    def test_json_store_persists_privately(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "secrets" / "A.json"
            JSONSecretStore(path).put("duel_1", (6, 2, 2), "sA")

            reopened = JSONSecretStore(path)

            assert reopened.get("duel_1") == ((6, 2, 2), "sA")
            assert stat.S_IMODE(path.stat().st_mode) == 0o600
            reopened.discard("duel_1")
            assert reopened.get("duel_1") is None

    def test_json_store_rejects_corrupt_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "A.json"
            _ = path.write_text("[]")

            with pytest.raises(ValidationError):
                _ = JSONSecretStore(path).get("duel_1")


class TestDuelClient:
    """Test the party-side commit/reveal helper."""

    def test_commit_then_reveal_from_stored_secret(self) -> None:
        engine = DuelEngine(MemoryDuelStore())
        alice = DuelClient(engine, "A", MemorySecretStore())
        bob = DuelClient(engine, "B", MemorySecretStore())
        duel = alice.create(100)
        _ = bob.join(duel.id)

        # Act
        _ = alice.commit(duel.id, [7, 2, 1])
        _ = bob.commit(duel.id, [3, 3, 4])
        _ = alice.reveal(duel.id)
        revealed = bob.reveal(duel.id)

        # Assert
        assert revealed.status == DuelStatus.SHOWDOWN
        assert engine.play_out(duel.id).winner == "B"
        assert [d.id for d in alice.my_duels()] == [duel.id]
        alice.forget(duel.id)
        assert alice.secrets.get(duel.id) is None

    def test_invalid_allocation_never_reaches_engine(self) -> None:
        engine = DuelEngine(MemoryDuelStore())
        secrets = MemorySecretStore()
        alice = DuelClient(engine, "A", secrets)
        duel = alice.create(100)
        _ = engine.join_duel(duel.id, "B")

        with pytest.raises(InvalidAllocationError):
            _ = alice.commit(duel.id, [3, 3, 3])

        assert engine.get_duel(duel.id).creator_commit is None
        assert secrets.get(duel.id) is None

    def test_reveal_without_secret(self) -> None:
        engine = DuelEngine(MemoryDuelStore())
        alice = DuelClient(engine, "A", MemorySecretStore())

        with pytest.raises(WrongPhaseError, match="holds no secret"):
            _ = alice.reveal("duel_unknown")

    def test_repeated_commit_keeps_the_secret_behind_the_stored_commitment(self) -> None:
        """A second commit is rejected without disturbing the first secret."""
        engine = DuelEngine(MemoryDuelStore())
        alice = DuelClient(engine, "A", MemorySecretStore())
        bob = DuelClient(engine, "B", MemorySecretStore())
        duel = alice.create(100)
        _ = bob.join(duel.id)
        _ = alice.commit(duel.id, (6, 2, 2))
        stored = alice.secrets.get(duel.id)

        with pytest.raises(DuplicateCommitmentError):
            _ = alice.commit(duel.id, (6, 2, 2))
        with pytest.raises(DuplicateCommitmentError):
            _ = alice.commit(duel.id, (2, 2, 6))

        assert alice.secrets.get(duel.id) == stored
        _ = bob.commit(duel.id, (4, 3, 3))
        _ = alice.reveal(duel.id)
        assert bob.reveal(duel.id).status == DuelStatus.SHOWDOWN

    def test_rejected_commit_leaves_no_secret(self) -> None:
        engine = DuelEngine(MemoryDuelStore())
        secrets = MemorySecretStore()
        alice = DuelClient(engine, "A", secrets)
        duel = alice.create(100)

        with pytest.raises(WrongPhaseError):
            _ = alice.commit(duel.id, (6, 2, 2))

        assert secrets.get(duel.id) is None

    def test_commit_retry_reuses_stored_secret(self) -> None:
        """A secret written before a lost submission is reused on retry."""
        engine = DuelEngine(MemoryDuelStore())
        secrets = MemorySecretStore()
        alice = DuelClient(engine, "A", secrets)
        duel = alice.create(100)
        _ = engine.join_duel(duel.id, "B")
        secrets.put(duel.id, (6, 2, 2), "earlier-secret")

        _ = alice.commit(duel.id, [6, 2, 2])

        assert secrets.get(duel.id) == ((6, 2, 2), "earlier-secret")
        assert engine.get_duel(duel.id).creator_commit == commit((6, 2, 2), "earlier-secret")
