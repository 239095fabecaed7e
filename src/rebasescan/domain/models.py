from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from .value_types import Address

@dataclass(slots=True, frozen=True)
class EventLog:
    address: Address
    topics: tuple[str, ...]            # all topics, lowercased with 0x
    data_hex: str                      # hex with 0x (or "0x")
    block_number: int
    tx_hash: str                       # lowercased hex with 0x
    log_index: int

@dataclass(slots=True, frozen=True)
class RebaseEvent:
    tx_hash: str
    block_number: int
    log_index: int
    old_divisor: int
    new_divisor: int
    block_timestamp: Optional[int] = None   # filled in by the scanner

@dataclass(slots=True, frozen=True)
class EnrichedEvent:
    event: RebaseEvent
    timestamp: int
    formatted_date: str
    old_value: str           # 4 dp
    new_value: str           # 4 dp
    percent_increase: str    # 2 dp or "NaN"

    @property
    def tx_hash(self) -> str: return self.event.tx_hash
    @property
    def block_number(self) -> int: return self.event.block_number
    @property
    def old_divisor(self) -> int: return self.event.old_divisor
    @property
    def new_divisor(self) -> int: return self.event.new_divisor

@dataclass(slots=True, frozen=True)
class AnalyzedEvent:
    enriched: EnrichedEvent
    percentage_change: Decimal

@dataclass(slots=True, frozen=True)
class ScanState:
    from_block: int
    batch_size: int
    results: tuple[RebaseEvent, ...] = ()
    floor_failures: int = 0   # consecutive failures while already at the minimum batch size

@dataclass(slots=True, frozen=True)
class Cadence:
    average_seconds: float
    days: int
    hours: int
    minutes: int

    def __str__(self) -> str:
        return f"{self.days}d {self.hours}h {self.minutes}m"

@dataclass(slots=True, frozen=True)
class RebaseSummary:
    count: int
    events: tuple[AnalyzedEvent, ...] = ()
    first_date: Optional[str] = None
    first_block: Optional[int] = None
    last_date: Optional[str] = None
    last_block: Optional[int] = None
    initial_value: Optional[str] = None
    current_value: Optional[str] = None
    total_value_growth: Optional[str] = None   # 4 dp or "NaN"
    cadence: Optional[Cadence] = None
