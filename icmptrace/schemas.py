# icmptrace/schemas.py
from dataclasses import dataclass
from typing import Literal, Optional

MessageKind = Literal["echo_reply", "time_exceeded", "unrecognized"]
OutcomeKind = Literal["echo_reply", "time_exceeded", "timeout", "transport_error"]


@dataclass(frozen=True)
class ProbeIdentity:
    run_token: int
    sequence: int


@dataclass(frozen=True)
class Probe:
    ttl: int
    identity: ProbeIdentity
    sent_at: float


@dataclass(frozen=True)
class RawICMPMessage:
    kind: MessageKind
    icmp_type: Optional[int] = None
    icmp_code: Optional[int] = None
    echo_identity: Optional[ProbeIdentity] = None
    embedded_identity: Optional[ProbeIdentity] = None   # time_exceeded only

    def matches(self, identity: ProbeIdentity) -> bool:
        if self.kind == "echo_reply":
            return self.echo_identity == identity
        if self.kind == "time_exceeded":
            return self.embedded_identity == identity
        return False


@dataclass(frozen=True)
class ProbeOutcome:
    kind: OutcomeKind
    responder: Optional[str] = None
    rtt: Optional[float] = None        # seconds
    error: Optional[str] = None        # transport_error only

    @classmethod
    def timeout(cls) -> "ProbeOutcome":
        return cls("timeout")

    @classmethod
    def transport_error(cls, err) -> "ProbeOutcome":
        return cls("transport_error", error=str(err))

    @property
    def answered(self) -> bool:
        return self.kind in ("echo_reply", "time_exceeded")

    @property
    def rtt_ms(self) -> Optional[float]:
        return None if self.rtt is None else self.rtt * 1000.0
