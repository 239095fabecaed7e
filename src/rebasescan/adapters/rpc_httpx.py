from __future__ import annotations
import itertools
import logging
from typing import Any, Sequence

import httpx

from ..domain.decoding import DecodeError
from ..domain.models import EventLog
from ..domain.value_types import Address, Topic0
from ..ports.rpc import RPCClient, RPCError

logger = logging.getLogger(__name__)

def _to_hex_block(n: int) -> str: return hex(int(n))
def _is_topic_hash(x: str) -> bool: return isinstance(x, str) and x.startswith("0x") and len(x)==66
def _normalize_topic0_list(t0s: Sequence[Topic0]) -> list[str]:
    return [str(t).strip().lower() for t in t0s]

def _build_topics_param(topic0s: Sequence[Topic0]) -> list[list[str]]:
    t0s = _normalize_topic0_list(topic0s)
    if not all(_is_topic_hash(x) for x in t0s):
        raise ValueError(f"Invalid topic0(s): {t0s}")
    return [t0s]

def _to_int(v: Any) -> int:
    if isinstance(v, int): return v
    s = str(v).lower()
    return int(s, 16) if s.startswith("0x") else int(s)

def _parse_log(rl: Any) -> EventLog:
    """One eth_getLogs record; a record we cannot read is a DecodeError, not a fetch failure."""
    try:
        return EventLog(
            address=Address(rl["address"].lower()),
            topics=tuple(t.lower() for t in rl.get("topics", [])),
            data_hex=str(rl.get("data") or "0x"),
            block_number=_to_int(rl["blockNumber"]),
            tx_hash=(rl.get("transactionHash") or "").lower(),
            log_index=_to_int(rl.get("logIndex", 0)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise DecodeError(f"malformed log record {rl!r}: {type(e).__name__}: {e}") from e

class HttpxRPC(RPCClient):
    """
    JSON-RPC client over httpx. Every failure (HTTP status, transport, JSON-RPC
    error payload, missing result) surfaces as RPCError; retry policy belongs
    to the caller. A log record that cannot be read raises DecodeError.
    Block timestamps are cached per block number.
    """
    def __init__(self, rpc_url: str, timeout_s: int = 20, max_conn: int = 8,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.AsyncClient(
            http2=True,
            timeout=httpx.Timeout(timeout_s),
            limits=httpx.Limits(max_connections=max_conn, max_keepalive_connections=max(1, max_conn//2)),
            transport=transport,
        )
        self._ids = itertools.count(1)
        self._timestamps: dict[int, int] = {}

    async def _call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc":"2.0","id":next(self._ids),"method":method,"params":params}
        try:
            r = await self.client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise RPCError(f"{method} transport error: {type(e).__name__}: {e}") from e
        if r.status_code >= 400:
            raise RPCError(f"{method} HTTP {r.status_code}", status_code=r.status_code)
        try:
            data = r.json()
        except ValueError as e:
            raise RPCError(f"{method} returned invalid JSON: {r.text[:200]!r}") from e
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict):
                raise RPCError(f"{method} RPC error code={err.get('code')} message={err.get('message')}",
                               code=err.get("code"))
            raise RPCError(f"{method} RPC error: {err}")
        if "result" not in data:
            raise RPCError(f"{method} response has neither result nor error")
        return data["result"]

    async def latest_block(self) -> int:
        return _to_int(await self._call("eth_blockNumber", []))

    async def block_timestamp(self, block_number: int) -> int:
        cached = self._timestamps.get(block_number)
        if cached is not None:
            return cached
        block = await self._call("eth_getBlockByNumber", [_to_hex_block(block_number), False])
        if not block:
            raise RPCError(f"block {block_number} not found")
        ts = _to_int(block["timestamp"])
        self._timestamps[block_number] = ts
        return ts

    async def get_logs(self, address: Address, topic0s: Sequence[Topic0], from_block: int, to_block: int) -> list[EventLog]:
        res = await self._call("eth_getLogs", [{
            "address": str(address).lower(),
            "fromBlock": _to_hex_block(from_block),
            "toBlock": _to_hex_block(to_block),
            "topics": _build_topics_param(topic0s),
        }])
        if not isinstance(res, list):
            raise RPCError(f"eth_getLogs result is {type(res).__name__}, expected a list")
        typed = [_parse_log(rl) for rl in res]
        logger.debug("eth_getLogs %s..%s -> %d logs", from_block, to_block, len(typed))
        return typed

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "HttpxRPC":
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()
