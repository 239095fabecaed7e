# rebasescan/ports/rpc.py
from __future__ import annotations

from typing import Protocol, Sequence
from ..domain.models import EventLog
from ..domain.value_types import Address, Topic0


class RPCError(RuntimeError):
    """The remote endpoint refused or failed a request."""

    def __init__(self, message: str, *, code: int | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class RPCClient(Protocol):
    """Port defining the contract for an Ethereum JSON-RPC logs client."""

    async def get_logs(
        self,
        address: Address,
        topic0s: Sequence[Topic0],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Return logs for [from_block, to_block] inclusive, in block order. No retries.
        Raises DecodeError for a record that cannot be read."""

    async def block_timestamp(self, block_number: int) -> int:
        """Return the unix timestamp (seconds) of `block_number`."""

    async def latest_block(self) -> int:
        """Return the latest block number as an integer."""
