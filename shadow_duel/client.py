"""
Per-party duel client.

Handles the secret-keeping side of the protocol: generates a secret,
remembers it alongside the allocation, submits only the commitment, and
later reveals from what it remembered.
"""

from collections.abc import Sequence

from . import commitment as commitment_scheme
from .allocation import validate
from .engine import DuelEngine
from .exceptions import DuelError, WrongPhaseError
from .interfaces import SecretStore
from .logging_config import get_logger
from .models import Duel

logger = get_logger("client")


class DuelClient:
    """Acts on behalf of one party."""

    def __init__(self, engine: DuelEngine, party: str, secrets: SecretStore):
        if not party:
            raise ValueError("party cannot be empty")
        self.engine = engine
        self.party = party
        self.secrets = secrets

    def create(self, stake: int) -> Duel:
        return self.engine.create_duel(self.party, stake)

    def join(self, duel_id: str) -> Duel:
        return self.engine.join_duel(duel_id, self.party)

    def commit(self, duel_id: str, allocation: Sequence[int]) -> Duel:
        """
        Commit to an allocation.

        The allocation is validated before anything leaves the client. The
        secret is stored before the commitment is submitted so a crash in
        between never leaves an unrevealable commitment behind. A retry with
        the same allocation reuses the stored secret, and a rejected
        submission puts back whatever entry was there before.
        """
        normalized = validate(allocation)
        previous = self.secrets.get(duel_id)
        if previous is not None and tuple(previous[0]) == normalized:
            secret = previous[1]
        else:
            secret = commitment_scheme.generate_secret()
            self.secrets.put(duel_id, normalized, secret)

        try:
            duel = self.engine.submit_commitment(duel_id, self.party, commitment_scheme.commit(normalized, secret))
        except DuelError:
            if previous is None:
                self.secrets.discard(duel_id)
            elif previous[1] != secret:
                self.secrets.put(duel_id, previous[0], previous[1])
            raise
        logger.info(f"{self.party} committed to duel {duel_id}")
        return duel

    def reveal(self, duel_id: str) -> Duel:
        """Reveal the remembered allocation and secret."""
        entry = self.secrets.get(duel_id)
        if entry is None:
            raise WrongPhaseError(f"{self.party} holds no secret for duel {duel_id}")
        allocation, secret = entry
        duel = self.engine.submit_reveal(duel_id, self.party, allocation, secret)
        logger.info(f"{self.party} revealed in duel {duel_id}")
        return duel

    def forget(self, duel_id: str) -> None:
        """Drop the stored secret once the duel no longer needs it."""
        self.secrets.discard(duel_id)

    def my_duels(self) -> list[Duel]:
        return self.engine.list_duels_for(self.party)
