# tools/trace.py
# Usage examples:
#   sudo python3 -m tools.trace 8.8.8.8
#   sudo python3 -m tools.trace example.com -q 1 -w 2 -m 30 -n
#   python3 -m tools.trace fake
import argparse
import json
import logging
import sys

from icmptrace.brain.controller import TraceController
from icmptrace.config import STOP_POLICIES, Settings
from icmptrace.errors import TraceSetupError
from icmptrace.net import resolve_ipv4, reverse_lookup
from icmptrace.schemas import ProbeOutcome

log = logging.getLogger("icmptrace")

FAKE_TARGET = "192.0.2.1"


def positive_int(value):
    n = int(value)
    if n < 1:
        raise argparse.ArgumentTypeError(f"{value} must be >= 1")
    return n


def positive_float(value):
    f = float(value)
    if f <= 0:
        raise argparse.ArgumentTypeError(f"{value} must be > 0")
    return f


def token16(value):
    n = int(value, 0)
    if not 0 <= n <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"{value} does not fit in 16 bits")
    return n


def build_argparser():
    ap = argparse.ArgumentParser(description="ICMP Echo traceroute")
    ap.add_argument("target", help="Destination host/IP (or 'fake' for a scripted dry run)")
    ap.add_argument("-q", dest="probes", type=positive_int, default=3, help="Number of probes per hop")
    ap.add_argument("-w", dest="wait", type=positive_float, default=5.0,
                    help="Time (seconds) to wait for a response to a probe")
    ap.add_argument("-m", dest="max_ttl", type=positive_int, default=64, help="Max time-to-live (max hops)")
    ap.add_argument("-f", dest="first_ttl", type=positive_int, default=1, help="First TTL to probe")
    ap.add_argument("-n", dest="numeric", action="store_true",
                    help="Print hop addresses numerically (skip address-to-name lookup)")
    ap.add_argument("--stop-policy", choices=STOP_POLICIES, default="immediate",
                    help="Stop on the first echo reply, or after finishing that hop")
    ap.add_argument("--parse-inner-ihl", action="store_true",
                    help="Honour IP options in quoted headers of Time Exceeded messages")
    ap.add_argument("--token", type=token16, default=None, help="Echo identifier to use (default: random)")
    ap.add_argument("--json", action="store_true", help="Print the run summary as JSON instead of hop lines")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    return ap


def settings_from_args(args) -> Settings:
    return Settings(
        probes_per_hop=args.probes,
        wait_s=args.wait,
        max_ttl=args.max_ttl,
        first_ttl=args.first_ttl,
        numeric=args.numeric,
        stop_policy=args.stop_policy,
        parse_inner_ihl=args.parse_inner_ihl,
        run_token=args.token,
    ).validate()


def display_name(ip: str, numeric: bool) -> str:
    if numeric:
        return ip
    name = reverse_lookup(ip)
    return f"{name} ({ip})" if name else ip


def format_probe(outcome: ProbeOutcome, numeric: bool) -> str:
    if not outcome.answered:
        return "  *"
    return f"  {display_name(outcome.responder, numeric):<32} {outcome.rtt_ms:.3f} ms"


def fake_prober():
    from icmptrace.prober.fake import FakeProber
    script = {}
    for ttl in range(1, 5):
        script[ttl] = [ProbeOutcome("time_exceeded", responder=f"10.0.0.{ttl}", rtt=0.010 + ttl / 1000)] * 3
    script[3] = [ProbeOutcome.timeout()] * 3
    script[5] = [ProbeOutcome("echo_reply", responder=FAKE_TARGET, rtt=0.040)]
    return FakeProber(script=script)


def run(args) -> int:
    settings = settings_from_args(args)

    if args.target == "fake":
        dest = FAKE_TARGET
        prober = fake_prober()
    else:
        from icmptrace.prober.icmp import IcmpProber
        dest = resolve_ipv4(args.target)
        prober = IcmpProber.from_settings(dest, settings)

    def on_probe(ttl, index, outcome):
        if index == 0:
            print(f"Hop {ttl}:")
        print(format_probe(outcome, settings.numeric), flush=True)

    with prober:
        if not args.json:
            print(f"traceroute to {args.target} ({dest}), {settings.max_ttl} hops max, "
                  f"{settings.probes_per_hop} probes per hop")
        ctrl = TraceController(prober, settings, on_probe=None if args.json else on_probe)
        res = ctrl.run(dest)

    if args.json:
        print(json.dumps(res, indent=2))
    return 0


def main(argv=None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    if args.first_ttl > args.max_ttl:
        ap.error("-f must not exceed -m")
    if args.max_ttl > 255:
        ap.error("-m must be <= 255")
    try:
        return run(args)
    except TraceSetupError as e:
        log.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
