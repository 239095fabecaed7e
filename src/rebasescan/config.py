# rebasescan/config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from eth_utils import is_address

from .application.scanning import MIN_BATCH_SIZE, ScanPolicy
from .domain.value_types import Address

USDN_CONTRACT = "0xde17a000ba631c5d7c2bd9fb692efea52d90dee2"
USDN_START_BLOCK = 21_436_997
DEFAULT_BATCH_SIZE = 1_000_000


@dataclass(slots=True, frozen=True)
class ScanConfig:
    rpc_url: str
    contract: str = USDN_CONTRACT
    start_block: int = USDN_START_BLOCK
    end_block: Optional[int] = None         # None -> chain head at start of run
    batch_size: int = DEFAULT_BATCH_SIZE
    min_batch_size: int = MIN_BATCH_SIZE
    max_floor_retries: Optional[int] = None
    timeout_s: int = 20

    def validate(self) -> "ScanConfig":
        if not self.rpc_url:
            raise ValueError("rpc_url is required")
        if not is_address(self.contract):
            raise ValueError(f"invalid contract address: {self.contract}")
        if self.start_block < 0:
            raise ValueError(f"start_block must be >= 0, got {self.start_block}")
        if self.end_block is not None and self.end_block < 0:
            raise ValueError(f"end_block must be >= 0, got {self.end_block}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")
        self.policy()
        return self

    @property
    def address(self) -> Address:
        return Address(self.contract.lower())

    def policy(self) -> ScanPolicy:
        return ScanPolicy(
            initial_batch_size=self.batch_size,
            min_batch_size=self.min_batch_size,
            max_floor_retries=self.max_floor_retries,
        )
