# =============================================================================
# DDP Client -- Latency Harness
# =============================================================================
#
# Correlates issue / ack / deliver timestamps per operation key.  Phases may
# arrive in any order; a record is emitted once all three are present.
# =============================================================================

from __future__ import annotations

import time
from typing import Any, Callable

from ._logging import logger
from .types import LatencyRecord, Phase

_PHASES = (Phase.ISSUE, Phase.ACK, Phase.DELIVER)


class LatencyHarness:
    """Collect per-key timestamp triples and report completed ones.

    Args:
        on_complete: Called once per key with the finished
            :class:`~ddp_client.types.LatencyRecord`.
        clock: Time source in seconds (default ``time.monotonic``).
    """

    def __init__(
        self,
        on_complete: Callable[[LatencyRecord], Any] | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._on_complete = on_complete
        self._clock = clock
        self._timings: dict[str, float] = {}
        self._completed = 0

    @property
    def pending(self) -> int:
        """Number of keys with at least one timestamp recorded."""
        keys = {entry.split("-", 1)[1] for entry in self._timings}
        return len(keys)

    @property
    def completed(self) -> int:
        return self._completed

    def is_pending(self, key: str) -> bool:
        return any(_slot(phase, key) in self._timings for phase in _PHASES)

    def mark(
        self,
        key: str,
        phase: Phase | str,
        at: float | None = None,
    ) -> LatencyRecord | None:
        """Record *phase* for *key*.  Returns the record if this completed it."""
        phase = Phase(phase)
        self._timings[_slot(phase, key)] = self._clock() if at is None else at
        return self._complete(key)

    def discard(self, key: str) -> None:
        """Forget a partially recorded key."""
        for phase in _PHASES:
            self._timings.pop(_slot(phase, key), None)

    def _complete(self, key: str) -> LatencyRecord | None:
        slots = [_slot(phase, key) for phase in _PHASES]
        if not all(slot in self._timings for slot in slots):
            return None

        issued_at, acked_at, delivered_at = (self._timings.pop(slot) for slot in slots)
        record = LatencyRecord(
            key=key,
            issued_at=issued_at,
            acked_at=acked_at,
            delivered_at=delivered_at,
        )
        self._completed += 1
        logger.debug(
            "Latency %s: ack=%.1fms deliver=%.1fms",
            key,
            record.ack_ms,
            record.deliver_ms,
        )
        if self._on_complete:
            self._on_complete(record)
        return record


def _slot(phase: Phase, key: str) -> str:
    return f"{phase.value}-{key}"
