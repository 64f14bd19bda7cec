# icmptrace/prober/icmp.py
import logging
import socket
import time

from icmptrace.errors import DecodeError, SocketSetupError
from icmptrace.prober import codec
from icmptrace.prober.base import Prober
from icmptrace.schemas import Probe, ProbeIdentity, ProbeOutcome

log = logging.getLogger(__name__)


class IcmpProber(Prober):
    """
    Probe engine over a single raw ICMP socket.

    The socket sees every ICMP message delivered to the host, so each
    datagram is decoded and matched against the awaited probe's identity;
    everything else is dropped and the read continues against the same
    deadline. TTL and read timeout are socket-wide, so probes must not
    overlap.
    """

    def __init__(self, dest_ip: str, sock=None,
                 clock=time.monotonic,
                 payload: bytes = b"hello",
                 recv_bufsize: int = 1500,
                 parse_inner_ihl: bool = False):
        self.dest_ip = dest_ip
        self.sock = sock if sock is not None else self.open_socket()
        self.clock = clock
        self.payload = payload
        self.recv_bufsize = recv_bufsize
        self.parse_inner_ihl = parse_inner_ihl

    @classmethod
    def from_settings(cls, dest_ip: str, settings, **kw) -> "IcmpProber":
        return cls(dest_ip,
                   payload=settings.payload,
                   recv_bufsize=settings.recv_bufsize,
                   parse_inner_ihl=settings.parse_inner_ihl,
                   **kw)

    @staticmethod
    def open_socket():
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
        except PermissionError as e:
            raise SocketSetupError(
                f"cannot open raw ICMP socket (root or CAP_NET_RAW required): {e}") from e
        except OSError as e:
            raise SocketSetupError(f"cannot open raw ICMP socket: {e}") from e
        try:
            sock.bind(("0.0.0.0", 0))
        except OSError as e:
            sock.close()
            raise SocketSetupError(f"cannot bind raw ICMP socket: {e}") from e
        return sock

    def send(self, ttl: int, identity: ProbeIdentity) -> Probe:
        packet = codec.encode(identity, self.payload)
        # TTL must be in place before the datagram is written
        self.sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)
        sent_at = self.clock()
        self.sock.sendto(packet, (self.dest_ip, 0))
        log.debug("sent ttl=%d id=%d seq=%d", ttl, identity.run_token, identity.sequence)
        return Probe(ttl=ttl, identity=identity, sent_at=sent_at)

    def await_response(self, probe: Probe, deadline: float) -> ProbeOutcome:
        while True:
            remaining = deadline - self.clock()
            if remaining <= 0:
                return ProbeOutcome.timeout()

            self.sock.settimeout(remaining)
            try:
                datagram, addr = self.sock.recvfrom(self.recv_bufsize)
            except socket.timeout:
                return ProbeOutcome.timeout()
            except OSError as e:
                return ProbeOutcome.transport_error(e)

            rtt = self.clock() - probe.sent_at
            try:
                msg = codec.decode(codec.strip_ipv4_header(datagram), self.parse_inner_ihl)
            except DecodeError as e:
                log.debug("dropping undecodable packet from %s: %s", addr[0], e)
                continue

            if not msg.matches(probe.identity):
                log.debug("ignoring %s (type %s) from %s", msg.kind, msg.icmp_type, addr[0])
                continue

            return ProbeOutcome(msg.kind, responder=addr[0], rtt=rtt)

    def probe_once(self, ttl: int, identity: ProbeIdentity, wait: float) -> ProbeOutcome:
        try:
            probe = self.send(ttl, identity)
        except OSError as e:
            return ProbeOutcome.transport_error(e)
        return self.await_response(probe, probe.sent_at + wait)

    def close(self):
        if self.sock is not None:
            self.sock.close()
            self.sock = None
