from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ..domain.models import AnalyzedEvent, Cadence, EnrichedEvent, RebaseSummary
from ..domain.valuation import growth_percent

SECONDS_PER_DAY = 86_400
SECONDS_PER_HOUR = 3_600
SECONDS_PER_MINUTE = 60


def percentage_change(old_divisor: int, new_divisor: int) -> Decimal:
    """(old - new) / old * 100 at basis-point precision, truncated toward zero."""
    if old_divisor == 0:
        return Decimal(0).scaleb(-2)
    diff = old_divisor - new_divisor
    bps = abs(diff) * 10_000 // old_divisor
    return Decimal(-bps if diff < 0 else bps).scaleb(-2)


def average_cadence(events: Sequence[EnrichedEvent]) -> Cadence:
    """Mean gap between consecutive events; needs at least two events in block order."""
    if len(events) < 2:
        raise ValueError("cadence needs at least two events")
    gaps = [b.timestamp - a.timestamp for a, b in zip(events, events[1:])]
    avg = sum(gaps) / len(gaps)
    return Cadence(
        average_seconds=avg,
        days=int(avg // SECONDS_PER_DAY),
        hours=int((avg % SECONDS_PER_DAY) // SECONDS_PER_HOUR),
        minutes=int((avg % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE),
    )


def analyze(events: Sequence[EnrichedEvent]) -> RebaseSummary:
    analyzed = tuple(
        AnalyzedEvent(enriched=e, percentage_change=percentage_change(e.old_divisor, e.new_divisor))
        for e in events
    )
    if not analyzed:
        return RebaseSummary(count=0)

    first, last = events[0], events[-1]
    return RebaseSummary(
        count=len(analyzed),
        events=analyzed,
        first_date=first.formatted_date,
        first_block=first.block_number,
        last_date=last.formatted_date,
        last_block=last.block_number,
        initial_value=first.old_value,
        current_value=last.new_value,
        total_value_growth=growth_percent(first.old_value, last.new_value),
        cadence=average_cadence(events) if len(events) > 1 else None,
    )
