from dataclasses import dataclass
from typing import Optional

STOP_POLICIES = ("immediate", "complete_hop")


@dataclass
class Settings:
    probes_per_hop: int = 3
    wait_s: float = 5.0
    max_ttl: int = 64        # IANA recommended default TTL
    first_ttl: int = 1
    numeric: bool = False

    # "immediate": stop on the first echo reply
    # "complete_hop": finish the remaining probes of that hop first
    stop_policy: str = "immediate"

    # honour the inner IPv4 header length in Time Exceeded payloads
    # instead of assuming a 20-byte header without options
    parse_inner_ihl: bool = False

    payload: bytes = b"hello"
    recv_bufsize: int = 1500
    run_token: Optional[int] = None   # None -> random 16-bit token per run

    def validate(self):
        if self.probes_per_hop < 1:
            raise ValueError("probes_per_hop must be >= 1")
        if self.wait_s <= 0:
            raise ValueError("wait_s must be > 0")
        if not 1 <= self.max_ttl <= 255:
            raise ValueError("max_ttl must be in 1..255")
        if not 1 <= self.first_ttl <= self.max_ttl:
            raise ValueError("first_ttl must be in 1..max_ttl")
        if self.stop_policy not in STOP_POLICIES:
            raise ValueError(f"stop_policy must be one of {STOP_POLICIES}")
        if not self.payload:
            raise ValueError("payload must not be empty")
        if self.run_token is not None and not 0 <= self.run_token <= 0xFFFF:
            raise ValueError("run_token must fit in 16 bits")
        return self
