# icmptrace/prober/base.py
from abc import ABC, abstractmethod

from icmptrace.schemas import Probe, ProbeIdentity, ProbeOutcome


class Prober(ABC):
    """One probe at a time: send, then wait for its outcome."""

    @abstractmethod
    def send(self, ttl: int, identity: ProbeIdentity) -> Probe:
        """Transmit one Echo Request with the given TTL."""
        raise NotImplementedError

    @abstractmethod
    def await_response(self, probe: Probe, deadline: float) -> ProbeOutcome:
        """Block until probe is answered or deadline (absolute) passes."""
        raise NotImplementedError

    @abstractmethod
    def probe_once(self, ttl: int, identity: ProbeIdentity, wait: float) -> ProbeOutcome:
        """Send exactly one probe and return its outcome."""
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
