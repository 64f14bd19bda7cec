# icmptrace/brain/controller.py
import logging

from icmptrace.brain.rules import exhausted, hop_reached, stop_within_hop
from icmptrace.brain.state import RunState, new_run_token

log = logging.getLogger(__name__)


class TraceController:
    """Escalates TTL from first_ttl until an echo reply or max_ttl."""

    def __init__(self, prober, settings, on_probe=None, on_hop=None):
        self.prober = prober
        self.s = settings
        self.on_probe = on_probe    # (ttl, index, outcome)
        self.on_hop = on_hop        # (HopState)

    def run(self, dest: str):
        token = self.s.run_token if self.s.run_token is not None else new_run_token()
        run = RunState(max_ttl=self.s.max_ttl, run_token=token, first_ttl=self.s.first_ttl)
        log.info("tracing %s, run token %#06x, max ttl %d", dest, token, run.max_ttl)

        while not exhausted(run):
            ttl = run.ttl
            hop = run.hop(ttl)

            for index in range(self.s.probes_per_hop):
                identity = run.counter.next_identity()
                outcome = self.prober.probe_once(ttl, identity, self.s.wait_s)
                hop.record(identity, outcome)
                if outcome.kind == "transport_error":
                    log.warning("ttl %d probe %d: %s", ttl, index + 1, outcome.error)
                if self.on_probe:
                    self.on_probe(ttl, index, outcome)
                if stop_within_hop(self.s.stop_policy, outcome):
                    break

            if self.on_hop:
                self.on_hop(hop)

            if hop_reached(hop):
                run.stop_reason = "reached"
                break
            run.ttl += 1

        if run.stop_reason is None:
            run.stop_reason = "exhausted"
        log.info("trace to %s finished: %s after %d probes", dest, run.stop_reason, run.probes_used)

        return {
            "target": dest,
            "run_token": run.run_token,
            "stop_reason": run.stop_reason,
            "probes_used": run.probes_used,
            "last_ttl": min(run.ttl, run.max_ttl),
            "path": {
                k: (h.first_responder or "*") for k, h in run.hops.items()
            },
            "hops": {
                k: [
                    {
                        "seq": seq,
                        "kind": o.kind,
                        "responder": o.responder,
                        "rtt_ms": o.rtt_ms,
                    }
                    for seq, o in zip(h.sequences, h.outcomes)
                ]
                for k, h in run.hops.items()
            },
        }
