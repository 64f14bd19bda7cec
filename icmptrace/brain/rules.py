# icmptrace/brain/rules.py
from icmptrace.schemas import ProbeOutcome


def reached(outcome: ProbeOutcome) -> bool:
    return outcome.kind == "echo_reply"


def hop_reached(hop) -> bool:
    return any(reached(o) for o in hop.outcomes)


def stop_within_hop(policy: str, outcome: ProbeOutcome) -> bool:
    """
    "immediate" skips the rest of the hop's quota once the destination
    answers; "complete_hop" always sends the full quota.
    """
    return policy == "immediate" and reached(outcome)


def exhausted(run) -> bool:
    return run.ttl > run.max_ttl
