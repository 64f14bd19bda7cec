# tests/conftest.py
import socket
import struct
from collections import deque

import pytest

IPV4_HEADER = bytes([0x45]) + bytes(19)


def echo_reply(ident, seq, payload=b"hello"):
    return struct.pack("!BBHHH", 0, 0, 0, ident, seq) + payload


def time_exceeded(ident, seq, inner_ip=None):
    inner_ip = inner_ip if inner_ip is not None else bytes([0x45]) + bytes(19)
    return (struct.pack("!BBHI", 11, 0, 0, 0) + inner_ip
            + struct.pack("!BBHHH", 8, 0, 0xBEEF, ident, seq))


def datagram(icmp):
    return IPV4_HEADER + icmp


class FakeClock:
    def __init__(self, t=100.0):
        self.t = t

    def __call__(self):
        return self.t


class FakeSocket:
    """
    arrivals: (arrive_at, icmp_bytes, src_ip) or (arrive_at, exception).
    recvfrom advances the clock to the arrival, or by the full timeout.
    """
    def __init__(self, clock, arrivals=()):
        self.clock = clock
        self.arrivals = deque(arrivals)
        self.calls = []
        self.sent = []
        self.timeout = None
        self.closed = False

    def setsockopt(self, level, opt, value):
        self.calls.append(("setsockopt", level, opt, value))

    def sendto(self, data, addr):
        self.calls.append(("sendto", addr))
        self.sent.append((data, addr))
        return len(data)

    def settimeout(self, value):
        self.timeout = value

    def recvfrom(self, bufsize):
        if self.arrivals and self.arrivals[0][0] <= self.clock.t + self.timeout:
            item = self.arrivals.popleft()
            self.clock.t = max(self.clock.t, item[0])
            if isinstance(item[1], BaseException):
                raise item[1]
            return datagram(item[1])[:bufsize], (item[2], 0)
        self.clock.t += self.timeout
        raise socket.timeout("timed out")

    def close(self):
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()
