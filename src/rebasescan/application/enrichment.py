from __future__ import annotations

from datetime import tzinfo
from typing import Iterable, Optional

from ..domain.models import EnrichedEvent, RebaseEvent
from ..domain.valuation import format_date, percent_increase, token_value


def enrich(event: RebaseEvent, timestamp: int, tz: Optional[tzinfo] = None) -> EnrichedEvent:
    old_value = token_value(event.old_divisor)
    new_value = token_value(event.new_divisor)
    return EnrichedEvent(
        event=event,
        timestamp=timestamp,
        formatted_date=format_date(timestamp, tz),
        old_value=old_value,
        new_value=new_value,
        percent_increase=percent_increase(old_value, new_value),
    )


def enrich_all(events: Iterable[RebaseEvent], tz: Optional[tzinfo] = None) -> list[EnrichedEvent]:
    """Enrich scanned events using the block timestamp each one carries."""
    out: list[EnrichedEvent] = []
    for ev in events:
        if ev.block_timestamp is None:
            raise ValueError(f"event in block {ev.block_number} ({ev.tx_hash}) has no block timestamp")
        out.append(enrich(ev, ev.block_timestamp, tz))
    return out
