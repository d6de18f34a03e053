"""
Core dataclasses for the shadow duel engine.

Duel snapshots are immutable values: state transitions build a new Duel via
dataclasses.replace and the registry persists it. Invariants are checked on
construction so a snapshot that violates them cannot exist.
"""

import dataclasses
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .allocation import Allocation, ROUND_COUNT
from .exceptions import ValidationError


class DuelStatus(str, Enum):
    """Lifecycle of a duel. Joined is folded into COMMITTING."""

    WAITING = "waiting"
    COMMITTING = "committing"
    REVEALING = "revealing"
    SHOWDOWN = "showdown"
    COMPLETED = "completed"


class Side(str, Enum):
    """Which seat a party occupies in a duel."""

    CREATOR = "creator"
    OPPONENT = "opponent"


class RoundOutcome(str, Enum):
    """Result of a single round."""

    CREATOR = "creator"
    OPPONENT = "opponent"
    TIE = "tie"


_PAST_REVEALING = (DuelStatus.SHOWDOWN, DuelStatus.COMPLETED)
_PAST_COMMITTING = (DuelStatus.REVEALING,) + _PAST_REVEALING


@dataclass(frozen=True)
class Reveal:
    """Disclosed allocation and the secret it was committed with."""

    allocation: Allocation
    secret: str

    def to_dict(self) -> dict[str, Any]:
        return {"allocation": list(self.allocation), "secret": self.secret}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Reveal":
        allocation = data.get("allocation")
        secret = data.get("secret")
        if not isinstance(allocation, list) or len(allocation) != ROUND_COUNT:
            raise ValidationError(f"reveal allocation must be a list of {ROUND_COUNT} ints")
        if not isinstance(secret, str):
            raise ValidationError("reveal secret must be a string")
        try:
            powers = (int(allocation[0]), int(allocation[1]), int(allocation[2]))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"reveal allocation entries must be integers: {e}") from e
        return cls(allocation=powers, secret=secret)


@dataclass(frozen=True)
class RoundResult:
    """Powers both parties put into one round."""

    creator_power: int
    opponent_power: int

    @property
    def outcome(self) -> RoundOutcome:
        if self.creator_power > self.opponent_power:
            return RoundOutcome.CREATOR
        if self.opponent_power > self.creator_power:
            return RoundOutcome.OPPONENT
        return RoundOutcome.TIE


@dataclass(frozen=True)
class LobbyEntry:
    """Summary row for an open duel."""

    id: str
    creator: str
    stake: int
    created_at: float


@dataclass(frozen=True)
class Duel:
    """A single two-party commit-reveal duel."""

    id: str
    creator: str
    stake: int
    created_at: float = field(default_factory=time.time)
    sequence: int = 0
    opponent: str | None = None
    creator_commit: str | None = None
    opponent_commit: str | None = None
    creator_reveal: Reveal | None = None
    opponent_reveal: Reveal | None = None
    current_round: int = 0
    revealed_rounds: tuple[RoundResult, ...] = ()
    winner: str | None = None
    status: DuelStatus = DuelStatus.WAITING

    def __post_init__(self) -> None:
        """Validate duel invariants."""
        if not self.id:
            raise ValidationError("id cannot be empty")
        if not self.creator:
            raise ValidationError("creator cannot be empty")
        if self.opponent is not None and self.opponent == self.creator:
            raise ValidationError("opponent cannot be the creator")
        if isinstance(self.stake, bool) or not isinstance(self.stake, int) or self.stake < 0:
            raise ValidationError(f"stake must be a non-negative integer, got {self.stake!r}")
        if not (0 <= self.current_round <= ROUND_COUNT + 1):
            raise ValidationError(f"current_round out of range: {self.current_round}")
        if len(self.revealed_rounds) != max(0, self.current_round - 1):
            raise ValidationError(
                f"revealed_rounds ({len(self.revealed_rounds)}) out of step with current_round ({self.current_round})"
            )
        completed = self.status == DuelStatus.COMPLETED
        if completed != (self.winner is not None):
            raise ValidationError("winner must be set exactly when the duel is completed")
        if completed and len(self.revealed_rounds) != ROUND_COUNT:
            raise ValidationError("a completed duel must have all rounds revealed")
        if self.winner is not None and self.winner not in (self.creator, self.opponent):
            raise ValidationError(f"winner {self.winner!r} is not a participant")
        if self.status != DuelStatus.WAITING and self.opponent is None:
            raise ValidationError(f"status {self.status.value} requires an opponent")

        for side, commit, reveal in (
            ("creator", self.creator_commit, self.creator_reveal),
            ("opponent", self.opponent_commit, self.opponent_reveal),
        ):
            if reveal is not None and commit is None:
                raise ValidationError(f"{side} reveal stored without a commitment")
        if self.status == DuelStatus.WAITING and (self.creator_commit or self.opponent_commit):
            raise ValidationError("a waiting duel cannot hold commitments")
        if self.status == DuelStatus.COMMITTING and (self.both_committed or self.creator_reveal or self.opponent_reveal):
            raise ValidationError("committing status cannot hold both commitments or any reveal")
        if self.status in _PAST_COMMITTING and not self.both_committed:
            raise ValidationError(f"status {self.status.value} requires both commitments")
        if self.status == DuelStatus.REVEALING and self.both_revealed:
            raise ValidationError("revealing status must move on once both parties reveal")
        if self.status in _PAST_REVEALING and not self.both_revealed:
            raise ValidationError(f"status {self.status.value} requires both reveals")
        if self.status not in _PAST_REVEALING and self.current_round != 0:
            raise ValidationError(f"status {self.status.value} cannot have a current round")

    def side_of(self, party: str) -> Side | None:
        """Return the seat a party occupies, or None for outsiders."""
        if party == self.creator:
            return Side.CREATOR
        if self.opponent is not None and party == self.opponent:
            return Side.OPPONENT
        return None

    def commitment_of(self, side: Side) -> str | None:
        return self.creator_commit if side == Side.CREATOR else self.opponent_commit

    def reveal_of(self, side: Side) -> Reveal | None:
        return self.creator_reveal if side == Side.CREATOR else self.opponent_reveal

    def party_for(self, outcome: RoundOutcome) -> str | None:
        if outcome == RoundOutcome.CREATOR:
            return self.creator
        if outcome == RoundOutcome.OPPONENT:
            return self.opponent
        return None

    @property
    def both_committed(self) -> bool:
        return self.creator_commit is not None and self.opponent_commit is not None

    @property
    def both_revealed(self) -> bool:
        return self.creator_reveal is not None and self.opponent_reveal is not None

    def lobby_entry(self) -> LobbyEntry:
        return LobbyEntry(id=self.id, creator=self.creator, stake=self.stake, created_at=self.created_at)

    def replace(self, **changes: Any) -> "Duel":
        """Return a new snapshot with the given fields changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible record."""
        return {
            "id": self.id,
            "creator": self.creator,
            "stake": self.stake,
            "created_at": self.created_at,
            "sequence": self.sequence,
            "opponent": self.opponent,
            "creator_commit": self.creator_commit,
            "opponent_commit": self.opponent_commit,
            "creator_reveal": self.creator_reveal.to_dict() if self.creator_reveal else None,
            "opponent_reveal": self.opponent_reveal.to_dict() if self.opponent_reveal else None,
            "current_round": self.current_round,
            "revealed_rounds": [
                {"creator": r.creator_power, "opponent": r.opponent_power} for r in self.revealed_rounds
            ],
            "winner": self.winner,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Duel":
        """Rebuild a snapshot from a stored record."""
        for key in ("id", "creator", "stake", "created_at", "status"):
            if key not in data:
                raise ValidationError(f"Missing required field: {key}")
        try:
            status = DuelStatus(data["status"])
        except (TypeError, ValueError):
            raise ValidationError(f"Unknown duel status: {data['status']!r}") from None

        rounds_data = data.get("revealed_rounds") or []
        if not isinstance(rounds_data, list):
            raise ValidationError("revealed_rounds must be a list")
        try:
            rounds = tuple(
                RoundResult(creator_power=int(r["creator"]), opponent_power=int(r["opponent"])) for r in rounds_data
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed revealed_rounds entry: {e}") from e

        creator_reveal = data.get("creator_reveal")
        opponent_reveal = data.get("opponent_reveal")
        try:
            return cls(
                id=data["id"],
                creator=data["creator"],
                stake=data["stake"],
                created_at=float(data["created_at"]),
                sequence=int(data.get("sequence", 0)),
                opponent=data.get("opponent"),
                creator_commit=data.get("creator_commit"),
                opponent_commit=data.get("opponent_commit"),
                creator_reveal=Reveal.from_dict(creator_reveal) if creator_reveal else None,
                opponent_reveal=Reveal.from_dict(opponent_reveal) if opponent_reveal else None,
                current_round=int(data.get("current_round", 0)),
                revealed_rounds=rounds,
                winner=data.get("winner"),
                status=status,
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed duel record {data['id']!r}: {e}") from e


@dataclass(frozen=True)
class DuelChange:
    """Change-feed event emitted after a persisted write."""

    kind: str  # "saved" or "deleted"
    duel_id: str
    duel: Duel | None = None
