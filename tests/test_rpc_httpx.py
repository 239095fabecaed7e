import json

import httpx
import pytest

from rebasescan.adapters.rpc_httpx import HttpxRPC
from rebasescan.domain.decoding import REBASE_T0
from rebasescan.application.scanning import ScanPolicy, scan_rebases
from rebasescan.domain.decoding import DecodeError
from rebasescan.ports.rpc import RPCError
from conftest import USDN

RPC_URL = "https://rpc.example.invalid"


def _rpc(handler) -> HttpxRPC:
    return HttpxRPC(RPC_URL, transport=httpx.MockTransport(handler))


def _result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.asyncio
async def test_get_logs_sends_filter_and_parses_records():
    seen = {}
    def handler(request):
        seen.update(json.loads(request.content))
        return _result(request, [{
            "address": USDN.upper().replace("0X", "0x"),
            "topics": [REBASE_T0.upper().replace("0X", "0x")],
            "data": "0x" + "00" * 64,
            "blockNumber": "0x10",
            "transactionHash": "0xABCD",
            "logIndex": "0x2",
        }])

    async with _rpc(handler) as rpc:
        logs = await rpc.get_logs(USDN, [REBASE_T0], 16, 4_095)

    assert seen["method"] == "eth_getLogs"
    assert seen["params"] == [{
        "address": USDN,
        "fromBlock": "0x10",
        "toBlock": "0xfff",
        "topics": [[REBASE_T0]],
    }]
    [log] = logs
    assert log.address == USDN
    assert log.topics == (REBASE_T0,)
    assert log.block_number == 16
    assert log.tx_hash == "0xabcd"
    assert log.log_index == 2


@pytest.mark.asyncio
async def test_rpc_error_payload_raises():
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1,
                                         "error": {"code": -32005, "message": "query returned more than 10000 results"}})
    async with _rpc(handler) as rpc:
        with pytest.raises(RPCError) as ei:
            await rpc.get_logs(USDN, [REBASE_T0], 0, 10**6)
    assert ei.value.code == -32005
    assert "more than 10000" in str(ei.value)


@pytest.mark.asyncio
async def test_rate_limit_is_not_retried():
    calls = []
    def handler(request):
        calls.append(request)
        return httpx.Response(429, headers={"Retry-After": "1"})
    async with _rpc(handler) as rpc:
        with pytest.raises(RPCError) as ei:
            await rpc.get_logs(USDN, [REBASE_T0], 0, 1)
    assert ei.value.status_code == 429
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    async with _rpc(handler) as rpc:
        with pytest.raises(RPCError, match="transport error"):
            await rpc.latest_block()


@pytest.mark.asyncio
async def test_latest_block():
    async with _rpc(lambda r: _result(r, "0x1471f45")) as rpc:
        assert await rpc.latest_block() == 0x1471F45


@pytest.mark.asyncio
async def test_block_timestamp_is_cached_per_block():
    calls = []
    def handler(request):
        body = json.loads(request.content)
        calls.append(body["params"])
        return _result(request, {"number": body["params"][0], "timestamp": "0x6774a480"})

    async with _rpc(handler) as rpc:
        assert await rpc.block_timestamp(100) == 0x6774A480
        assert await rpc.block_timestamp(100) == 0x6774A480
        await rpc.block_timestamp(101)

    assert calls == [["0x64", False], ["0x65", False]]


@pytest.mark.asyncio
async def test_missing_block_raises():
    async with _rpc(lambda r: _result(r, None)) as rpc:
        with pytest.raises(RPCError, match="not found"):
            await rpc.block_timestamp(1)


@pytest.mark.asyncio
async def test_response_without_result_raises():
    def handler(request):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": json.loads(request.content)["id"]})
    async with _rpc(handler) as rpc:
        with pytest.raises(RPCError, match="neither result nor error"):
            await rpc.get_logs(USDN, [REBASE_T0], 0, 1)


@pytest.mark.asyncio
async def test_non_list_logs_result_raises():
    async with _rpc(lambda r: _result(r, None)) as rpc:
        with pytest.raises(RPCError, match="expected a list"):
            await rpc.get_logs(USDN, [REBASE_T0], 0, 1)


@pytest.mark.parametrize("record", [
    {"address": USDN, "topics": [REBASE_T0], "data": "0x", "transactionHash": "0x1", "logIndex": "0x0"},
    {"topics": [REBASE_T0], "data": "0x", "blockNumber": "0x1", "transactionHash": "0x1", "logIndex": "0x0"},
    {"address": USDN, "topics": [REBASE_T0], "data": "0x", "blockNumber": "0x1", "transactionHash": "0x1",
     "logIndex": "0xzz"},
])
@pytest.mark.asyncio
async def test_malformed_log_record_is_a_decode_error(record):
    async with _rpc(lambda r: _result(r, [record])) as rpc:
        with pytest.raises(DecodeError, match="malformed log record"):
            await rpc.get_logs(USDN, [REBASE_T0], 0, 1)


@pytest.mark.asyncio
async def test_scan_stops_on_malformed_record_without_retrying():
    calls = []
    def handler(request):
        calls.append(json.loads(request.content)["method"])
        return _result(request, [{"address": USDN, "topics": [REBASE_T0], "data": "0x", "logIndex": "0x0"}])

    async with _rpc(handler) as rpc:
        with pytest.raises(DecodeError):
            await scan_rebases(rpc, USDN, 0, 9_999, ScanPolicy(initial_batch_size=10_000))

    assert calls == ["eth_getLogs"]
