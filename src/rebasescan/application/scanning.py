from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Sequence

from ..domain.decoding import REBASE_T0, DecodeError, decode_rebase
from ..domain.models import RebaseEvent, ScanState
from ..domain.value_types import Address
from ..ports.rpc import RPCClient

logger = logging.getLogger(__name__)

MIN_BATCH_SIZE = 1_000


class ScanAborted(RuntimeError):
    """Retry budget at the minimum batch size ran out."""


@dataclass(slots=True, frozen=True)
class ScanPolicy:
    initial_batch_size: int = 1_000_000
    min_batch_size: int = MIN_BATCH_SIZE
    # None: retry forever at the floor
    max_floor_retries: Optional[int] = None

    def __post_init__(self) -> None:
        if self.min_batch_size < 1:
            raise ValueError(f"min_batch_size must be >= 1, got {self.min_batch_size}")
        if self.initial_batch_size < self.min_batch_size:
            raise ValueError(
                f"initial_batch_size ({self.initial_batch_size}) must be >= min_batch_size ({self.min_batch_size})"
            )
        if self.max_floor_retries is not None and self.max_floor_retries < 0:
            raise ValueError(f"max_floor_retries must be >= 0, got {self.max_floor_retries}")


# ---------------------------- state transitions -------------------------------

def initial_state(start_block: int, policy: ScanPolicy) -> ScanState:
    return ScanState(from_block=start_block, batch_size=policy.initial_batch_size)

def next_range(state: ScanState, end_block: int) -> tuple[int, int]:
    return state.from_block, min(state.from_block + state.batch_size - 1, end_block)

def advance(state: ScanState, to_block: int, events: Sequence[RebaseEvent]) -> ScanState:
    """Commit a drained batch. Batch size is kept as is; it never grows back."""
    return replace(
        state,
        from_block=to_block + 1,
        results=state.results + tuple(events),
        floor_failures=0,
    )

def back_off(state: ScanState, policy: ScanPolicy) -> ScanState:
    """Halve the batch size (floored at the policy minimum); the cursor stays put."""
    at_floor = state.batch_size <= policy.min_batch_size
    return replace(
        state,
        batch_size=max(state.batch_size // 2, policy.min_batch_size),
        floor_failures=state.floor_failures + 1 if at_floor else state.floor_failures,
    )

def floor_retries_exhausted(state: ScanState, policy: ScanPolicy) -> bool:
    if policy.max_floor_retries is None:
        return False
    return state.floor_failures > policy.max_floor_retries


# ---------------------------- scan loop ---------------------------------------

async def _stamp(rpc: RPCClient, events: list[RebaseEvent]) -> list[RebaseEvent]:
    out: list[RebaseEvent] = []
    for ev in events:
        ts = await rpc.block_timestamp(ev.block_number)
        out.append(replace(ev, block_timestamp=ts))
    return out

async def scan_rebases(
    rpc: RPCClient,
    address: Address,
    start_block: int,
    end_block: int,
    policy: ScanPolicy | None = None,
    *,
    on_event: Callable[[RebaseEvent], None] | None = None,
) -> list[RebaseEvent]:
    """
    Scan [start_block, end_block] sequentially for Rebase logs.

    Any failure of the range query or of a timestamp lookup halves the batch
    size and retries the same cursor. A batch is only committed once every
    event in it has a timestamp. DecodeError, whether raised by the decoder
    or for an unreadable log record, propagates without a retry.
    """
    policy = policy or ScanPolicy()
    state = initial_state(start_block, policy)

    while state.from_block <= end_block:
        fb, tb = next_range(state, end_block)
        logger.info("Scanning blocks %s to %s...", f"{fb:,}", f"{tb:,}")

        try:
            logs = await rpc.get_logs(address, [REBASE_T0], fb, tb)
        except DecodeError:
            raise
        except Exception as e:
            state = _on_failure(state, policy, fb, tb, e)
            continue

        events = [decode_rebase(log) for log in logs]

        try:
            events = await _stamp(rpc, events)
        except Exception as e:
            state = _on_failure(state, policy, fb, tb, e)
            continue

        state = advance(state, tb, events)
        if events:
            logger.info("Found %d rebase event(s) in blocks %s to %s", len(events), f"{fb:,}", f"{tb:,}")
        if on_event is not None:
            for ev in events:
                on_event(ev)

    return list(state.results)

def _on_failure(state: ScanState, policy: ScanPolicy, fb: int, tb: int, err: Exception) -> ScanState:
    logger.warning("Error fetching logs for blocks %s to %s: %s: %s", f"{fb:,}", f"{tb:,}", type(err).__name__, err)
    state = back_off(state, policy)
    if floor_retries_exhausted(state, policy):
        raise ScanAborted(
            f"giving up on blocks {fb}..{tb} after {policy.max_floor_retries} retries "
            f"at minimum batch size {policy.min_batch_size}"
        ) from err
    logger.warning("Reduced batch size to %s", f"{state.batch_size:,}")
    return state
