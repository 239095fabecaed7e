from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Callable, Optional

from ..config import ScanConfig
from ..domain.models import EnrichedEvent, RebaseEvent, RebaseSummary
from ..ports.rpc import RPCClient
from .analysis import analyze
from .enrichment import enrich, enrich_all
from .scanning import scan_rebases

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TrackResult:
    current_block: Optional[int]   # None when the end block was given explicitly
    start_block: int
    end_block: int
    summary: RebaseSummary


async def track_rebases(
    *,
    rpc: RPCClient,
    config: ScanConfig,
    tz: Optional[tzinfo] = None,
    on_event: Callable[[EnrichedEvent], None] | None = None,
) -> TrackResult:
    """
    Scan the configured contract for Rebase events, enrich them and reduce
    them to a summary. `on_event` sees each enriched event as soon as its
    batch has been fetched. The chain head is only queried when the config
    leaves the end block open.
    """
    current_block: Optional[int] = None
    end_block = config.end_block
    if end_block is None:
        end_block = current_block = await rpc.latest_block()
        logger.info("Current block: %s", current_block)
    logger.info("Starting from block: %s", config.start_block)
    if config.start_block > end_block:
        logger.warning("start block %s is past end block %s; nothing to scan", config.start_block, end_block)

    def emit(ev: RebaseEvent) -> None:
        if on_event is not None:
            on_event(enrich(ev, ev.block_timestamp, tz))

    events = await scan_rebases(
        rpc, config.address, config.start_block, end_block, config.policy(), on_event=emit,
    )
    summary = analyze(enrich_all(events, tz))
    return TrackResult(
        current_block=current_block,
        start_block=config.start_block,
        end_block=end_block,
        summary=summary,
    )
