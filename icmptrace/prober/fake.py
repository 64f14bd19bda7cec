# icmptrace/prober/fake.py
from collections import deque

from icmptrace.prober.base import Prober
from icmptrace.schemas import Probe, ProbeIdentity, ProbeOutcome


class FakeProber(Prober):
    """
    script: dict[ttl] -> sequence of ProbeOutcome to return, one per call.
    If no scripted outcome is left, returns a timeout.
    Every probe sent is recorded in self.sent.
    """
    def __init__(self, script=None):
        self.script = {}
        self.sent = []
        self._pending = {}
        if script:
            for k, v in script.items():
                self.script[k] = deque(v)

    def send(self, ttl: int, identity: ProbeIdentity) -> Probe:
        probe = Probe(ttl=ttl, identity=identity, sent_at=0.0)
        self.sent.append(probe)
        dq = self.script.get(ttl)
        self._pending[identity] = dq.popleft() if dq else ProbeOutcome.timeout()
        return probe

    def await_response(self, probe: Probe, deadline: float) -> ProbeOutcome:
        return self._pending.pop(probe.identity, ProbeOutcome.timeout())

    def probe_once(self, ttl: int, identity: ProbeIdentity, wait: float) -> ProbeOutcome:
        probe = self.send(ttl, identity)
        return self.await_response(probe, probe.sent_at + wait)
