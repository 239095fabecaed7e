from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

import pytest

from rebasescan.domain.decoding import REBASE_T0
from rebasescan.domain.models import EventLog
from rebasescan.domain.value_types import Address

USDN = Address("0xde17a000ba631c5d7c2bd9fb692efea52d90dee2")
ONE = 10**18


def rebase_log(block: int, old: int, new: int, *, log_index: int = 0, topic0: str = REBASE_T0,
               data_hex: Optional[str] = None) -> EventLog:
    return EventLog(
        address=USDN,
        topics=(topic0,),
        data_hex=data_hex if data_hex is not None else "0x" + f"{old:064x}{new:064x}",
        block_number=block,
        tx_hash="0x" + f"{block:064x}",
        log_index=log_index,
    )


@dataclass
class FakeRPC:
    """In-memory RPCClient: serves `logs` by block range, timestamps = block * block_time."""
    logs: list[EventLog] = field(default_factory=list)
    head: int = 3_000
    block_time: int = 12
    # called with (from_block, to_block); raise to simulate a failed query
    fail_when: Optional[Callable[[int, int], bool]] = None
    timestamp_failures: int = 0
    calls: list[tuple[int, int]] = field(default_factory=list)
    timestamp_calls: list[int] = field(default_factory=list)
    head_calls: int = 0

    async def get_logs(self, address: Address, topic0s: Sequence[str], from_block: int, to_block: int) -> list[EventLog]:
        self.calls.append((from_block, to_block))
        if self.fail_when is not None and self.fail_when(from_block, to_block):
            raise RuntimeError(f"query returned more than 10000 results ({from_block}..{to_block})")
        return [l for l in self.logs if from_block <= l.block_number <= to_block]

    async def block_timestamp(self, block_number: int) -> int:
        self.timestamp_calls.append(block_number)
        if self.timestamp_failures > 0:
            self.timestamp_failures -= 1
            raise RuntimeError("429 Too Many Requests")
        return block_number * self.block_time

    async def latest_block(self) -> int:
        self.head_calls += 1
        return self.head


@pytest.fixture
def fake_rpc() -> FakeRPC:
    return FakeRPC()
