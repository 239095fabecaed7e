from __future__ import annotations

from eth_utils import encode_hex, keccak

from rebasescan.domain.models import EventLog, RebaseEvent
from rebasescan.domain.value_types import Topic0


REBASE_SIGNATURE = "Rebase(uint256,uint256)"
REBASE_T0 = Topic0(encode_hex(keccak(text=REBASE_SIGNATURE)))   # lowercase, with 0x


class DecodeError(ValueError):
    """Raised when a log does not have the Rebase(uint256,uint256) shape."""


# --------- 32B word slicing (fast, no eth_abi) --------------------------------
def _word(b: bytes, i: int) -> bytes:
    return b[i*32:(i+1)*32]

def _u256(w: bytes) -> int:
    return int.from_bytes(w, "big")

def _hexstr_to_bytes(s: str) -> bytes:
    h = s[2:] if s[:2].lower() == "0x" else s
    if len(h) % 2: h = "0" + h
    return bytes.fromhex(h) if h else b""


def decode_rebase(log: EventLog) -> RebaseEvent:
    """
    Decode a raw Rebase log into a RebaseEvent.
    data = [uint256 oldDivisor, uint256 newDivisor]; neither argument is indexed.
    """
    if not log.topics:
        raise DecodeError(f"log {log.tx_hash}#{log.log_index} has no topics")
    t0 = log.topics[0].lower()
    if t0 != REBASE_T0:
        raise DecodeError(f"log {log.tx_hash}#{log.log_index} has topic0 {t0}, expected {REBASE_T0}")

    try:
        data = _hexstr_to_bytes(log.data_hex)
    except ValueError as e:
        raise DecodeError(f"log {log.tx_hash}#{log.log_index} has non-hex data") from e
    if len(data) < 32 * 2:
        raise DecodeError(f"log {log.tx_hash}#{log.log_index} data is {len(data)} bytes, need 64")

    return RebaseEvent(
        tx_hash=log.tx_hash,
        block_number=log.block_number,
        log_index=log.log_index,
        old_divisor=_u256(_word(data, 0)),
        new_divisor=_u256(_word(data, 1)),
    )
