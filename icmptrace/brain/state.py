# icmptrace/brain/state.py
import random
from dataclasses import dataclass, field
from typing import Optional

from icmptrace.schemas import ProbeIdentity, ProbeOutcome


def new_run_token(rng=random) -> int:
    """Random 16-bit echo identifier for one run."""
    return rng.getrandbits(16)


@dataclass
class SequenceCounter:
    """Per-run echo sequence; one step per probe, never reset between TTLs."""
    run_token: int
    next_seq: int = 1
    issued: int = 0

    def next_identity(self) -> ProbeIdentity:
        identity = ProbeIdentity(self.run_token, self.next_seq)
        self.next_seq = (self.next_seq + 1) & 0xFFFF
        self.issued += 1
        return identity


@dataclass
class HopState:
    ttl: int
    sequences: list = field(default_factory=list)
    outcomes: list = field(default_factory=list)

    def record(self, identity: ProbeIdentity, outcome: ProbeOutcome):
        self.sequences.append(identity.sequence)
        self.outcomes.append(outcome)

    @property
    def first_responder(self) -> Optional[str]:
        for o in self.outcomes:
            if o.responder:
                return o.responder
        return None


@dataclass
class RunState:
    max_ttl: int
    run_token: int
    first_ttl: int = 1
    ttl: int = 0
    stop_reason: Optional[str] = None    # "reached" | "exhausted"
    counter: SequenceCounter = None
    hops: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.counter is None:
            self.counter = SequenceCounter(self.run_token)
        if not self.ttl:
            self.ttl = self.first_ttl

    @property
    def probes_used(self) -> int:
        return self.counter.issued

    def hop(self, ttl: int) -> HopState:
        if ttl not in self.hops:
            self.hops[ttl] = HopState(ttl)
        return self.hops[ttl]
