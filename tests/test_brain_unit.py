# tests/test_brain_unit.py
import pytest

from icmptrace.brain.controller import TraceController
from icmptrace.brain.state import SequenceCounter, new_run_token
from icmptrace.config import Settings
from icmptrace.prober.fake import FakeProber
from icmptrace.schemas import ProbeOutcome

DEST = "8.8.8.8"


def hop_reply(ip, rtt=0.01):
    return ProbeOutcome("time_exceeded", responder=ip, rtt=rtt)


def dest_reply(rtt=0.03):
    return ProbeOutcome("echo_reply", responder=DEST, rtt=rtt)


def test_controller_initialization():
    s = Settings(probes_per_hop=2, wait_s=1.0, max_ttl=10)
    ctrl = TraceController(FakeProber(script={}), s)
    assert ctrl.s.probes_per_hop == 2
    assert ctrl.s.max_ttl == 10


def test_destination_reached_at_hop_3():
    script = {
        1: [hop_reply("10.0.0.1")] * 3,
        2: [hop_reply("10.0.0.2")] * 3,
        3: [dest_reply(), dest_reply(), dest_reply()],
    }
    fake = FakeProber(script=script)
    res = TraceController(fake, Settings(max_ttl=30, run_token=7)).run(DEST)

    assert res["stop_reason"] == "reached"
    assert res["path"] == {1: "10.0.0.1", 2: "10.0.0.2", 3: DEST}
    assert res["probes_used"] == 7
    assert [p.ttl for p in fake.sent] == [1, 1, 1, 2, 2, 2, 3]
    assert res["hops"][3][0]["kind"] == "echo_reply"
    assert res["hops"][3][0]["rtt_ms"] == pytest.approx(30.0)


def test_complete_hop_policy_finishes_quota():
    script = {1: [hop_reply("10.0.0.1")] * 3, 2: [dest_reply()]}
    fake = FakeProber(script=script)
    res = TraceController(fake, Settings(max_ttl=30, stop_policy="complete_hop")).run(DEST)

    assert res["stop_reason"] == "reached"
    assert [p.ttl for p in fake.sent] == [1, 1, 1, 2, 2, 2]
    assert [r["kind"] for r in res["hops"][2]] == ["echo_reply", "timeout", "timeout"]


def test_total_loss_hop_continues():
    script = {
        1: [hop_reply("10.0.0.1")] * 3,
        3: [dest_reply()],
    }
    res = TraceController(FakeProber(script=script), Settings(max_ttl=30)).run(DEST)

    assert res["path"][2] == "*"
    assert [r["kind"] for r in res["hops"][2]] == ["timeout"] * 3
    assert all(r["responder"] is None for r in res["hops"][2])
    assert res["stop_reason"] == "reached"
    assert res["last_ttl"] == 3


def test_max_ttl_exhausted():
    script = {ttl: [hop_reply(f"10.0.0.{ttl}"), ProbeOutcome.timeout()] for ttl in range(1, 5)}
    fake = FakeProber(script=script)
    res = TraceController(fake, Settings(max_ttl=4, probes_per_hop=2)).run(DEST)

    assert res["stop_reason"] == "exhausted"
    assert res["probes_used"] == 8
    assert res["last_ttl"] == 4
    assert max(p.ttl for p in fake.sent) == 4


def test_sequences_unique_across_run():
    fake = FakeProber(script={})
    res = TraceController(fake, Settings(max_ttl=5, probes_per_hop=3)).run(DEST)

    seqs = [p.identity.sequence for p in fake.sent]
    assert len(seqs) == 15
    assert len(set(seqs)) == 15
    assert seqs == sorted(seqs)
    assert len({p.identity.run_token for p in fake.sent}) == 1
    assert res["stop_reason"] == "exhausted"


def test_settings_token_used():
    fake = FakeProber(script={1: [dest_reply()]})
    res = TraceController(fake, Settings(run_token=0xBEEF)).run(DEST)
    assert res["run_token"] == 0xBEEF
    assert fake.sent[0].identity.run_token == 0xBEEF


def test_transport_error_does_not_abort():
    script = {
        1: [ProbeOutcome.transport_error(OSError("boom"))],
        2: [dest_reply()],
    }
    res = TraceController(FakeProber(script=script), Settings(probes_per_hop=1)).run(DEST)
    assert res["hops"][1][0]["kind"] == "transport_error"
    assert res["stop_reason"] == "reached"


def test_first_ttl_and_callbacks():
    seen, hops = [], []
    fake = FakeProber(script={4: [hop_reply("10.0.0.4")], 5: [dest_reply()]})
    ctrl = TraceController(fake, Settings(first_ttl=4, probes_per_hop=1),
                           on_probe=lambda ttl, i, o: seen.append((ttl, i, o.kind)),
                           on_hop=hops.append)
    ctrl.run(DEST)
    assert seen == [(4, 0, "time_exceeded"), (5, 0, "echo_reply")]
    assert [h.ttl for h in hops] == [4, 5]


def test_sequence_counter_wraps():
    c = SequenceCounter(run_token=1, next_seq=0xFFFF)
    assert c.next_identity().sequence == 0xFFFF
    assert c.next_identity().sequence == 0
    assert c.issued == 2


def test_new_run_token_is_16_bit():
    assert all(0 <= new_run_token() <= 0xFFFF for _ in range(50))


@pytest.mark.parametrize("kw", [
    {"probes_per_hop": 0},
    {"wait_s": 0},
    {"max_ttl": 0},
    {"max_ttl": 256},
    {"first_ttl": 10, "max_ttl": 5},
    {"stop_policy": "never"},
    {"payload": b""},
    {"run_token": 0x10000},
])
def test_settings_validate_rejects(kw):
    with pytest.raises(ValueError):
        Settings(**kw).validate()
