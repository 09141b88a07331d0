"""Write authority over the shared playback state.

A single slot names the producer allowed to write. Every assignment bumps an
epoch so a holder can tell, from its own grant, whether someone else took the
slot since.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorityToken:
    """Grant returned to a producer when it takes the authority slot."""

    producer_id: str
    epoch: int


class AuthorityArbiter:
    """Tracks which producer currently owns write access."""

    def __init__(self) -> None:
        self._holder: str | None = None
        self._epoch = 0

    @property
    def holder(self) -> str | None:
        return self._holder

    @property
    def epoch(self) -> int:
        return self._epoch

    def set_authority(
        self, producer_id: str, *, expected_epoch: int | None = None
    ) -> AuthorityToken | None:
        """Assign the slot to `producer_id`.

        Without `expected_epoch` the assignment is unconditional. With it, the
        assignment only happens if nobody moved the epoch since the caller
        last observed it; otherwise None is returned and the slot is untouched.
        """
        if expected_epoch is not None and expected_epoch != self._epoch:
            logger.info(
                "Authority claim by %s rejected: epoch %d is stale "
                "(current %d, holder %s)",
                producer_id,
                expected_epoch,
                self._epoch,
                self._holder,
            )
            return None
        previous = self._holder
        self._holder = producer_id or None
        self._epoch += 1
        if previous is not None and previous != self._holder:
            logger.info(
                "Authority moved from %s to %s (epoch %d)",
                previous,
                self._holder,
                self._epoch,
            )
        else:
            logger.debug("Authority set to %s (epoch %d)", self._holder, self._epoch)
        return AuthorityToken(producer_id, self._epoch)

    def allows(self, producer_id: str) -> bool:
        """Whether a write from `producer_id` passes the gate."""
        return self._holder is None or self._holder == producer_id

    def is_superseded(self, token: AuthorityToken) -> bool:
        """Whether another producer took the slot after `token` was granted.

        A holder re-claiming its own slot bumps the epoch but does not
        supersede its earlier grants.
        """
        return token.producer_id != self._holder
