# icmptrace/prober/codec.py
"""
ICMP Echo encoding and inbound ICMP decoding (IPv4 only).

Time Exceeded layout, as seen after the outer IPv4 header is stripped:

    outer ICMP header (type 11)        bytes 0-7
    inner IPv4 header (expired probe)  bytes 8-27   (20 bytes, no options)
    inner ICMP header, first 8 bytes   bytes 28-35
        +4..+5  original identifier
        +6..+7  original sequence
"""
import struct

from icmptrace.errors import DecodeError, EncodeError
from icmptrace.schemas import ProbeIdentity, RawICMPMessage

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

ICMP_MIN_HEADER_LEN = 4      # type, code, checksum
ICMP_ECHO_HEADER_LEN = 8
IPV4_HEADER_LEN = 20

_ECHO_HEADER = struct.Struct("!BBHHH")
_ID_SEQ = struct.Struct("!HH")


def checksum(data: bytes) -> int:
    """RFC 1071 Internet checksum over big-endian 16-bit words."""
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


def encode(identity: ProbeIdentity, payload: bytes = b"hello") -> bytes:
    """Build an Echo Request carrying identity as (identifier, sequence)."""
    if not payload:
        raise EncodeError("echo payload must not be empty")
    try:
        header = _ECHO_HEADER.pack(ICMP_ECHO_REQUEST, 0, 0,
                                   identity.run_token, identity.sequence)
    except struct.error as e:
        raise EncodeError(f"cannot encode {identity}: {e}") from e
    csum = checksum(header + payload)
    header = _ECHO_HEADER.pack(ICMP_ECHO_REQUEST, 0, csum,
                               identity.run_token, identity.sequence)
    return header + payload


def ipv4_header_len(datagram: bytes) -> int:
    return (datagram[0] & 0x0F) * 4


def strip_ipv4_header(datagram: bytes) -> bytes:
    """Raw AF_INET sockets hand us the IPv4 header too; drop it."""
    if len(datagram) < IPV4_HEADER_LEN:
        return b""
    return datagram[ipv4_header_len(datagram):]


def decode(data: bytes, parse_inner_ihl: bool = False) -> RawICMPMessage:
    """
    Decode one ICMP message (no outer IP header).

    Raises DecodeError only when data is shorter than the minimum ICMP
    header. Anything else we cannot use comes back as kind="unrecognized".
    """
    if len(data) < ICMP_MIN_HEADER_LEN:
        raise DecodeError(f"{len(data)} bytes is too short for an ICMP header")

    icmp_type, icmp_code = data[0], data[1]

    if icmp_type == ICMP_ECHO_REPLY:
        if len(data) < ICMP_ECHO_HEADER_LEN:
            return RawICMPMessage("unrecognized", icmp_type, icmp_code)
        ident, seq = _ID_SEQ.unpack_from(data, 4)
        return RawICMPMessage("echo_reply", icmp_type, icmp_code,
                              echo_identity=ProbeIdentity(ident, seq))

    if icmp_type == ICMP_TIME_EXCEEDED:
        inner = data[ICMP_ECHO_HEADER_LEN:]
        inner_ip_len = IPV4_HEADER_LEN
        if parse_inner_ihl and inner:
            inner_ip_len = ipv4_header_len(inner)
            if inner_ip_len < IPV4_HEADER_LEN:
                return RawICMPMessage("unrecognized", icmp_type, icmp_code)
        if len(inner) < inner_ip_len + ICMP_ECHO_HEADER_LEN:
            return RawICMPMessage("unrecognized", icmp_type, icmp_code)
        ident, seq = _ID_SEQ.unpack_from(inner, inner_ip_len + 4)
        return RawICMPMessage("time_exceeded", icmp_type, icmp_code,
                              embedded_identity=ProbeIdentity(ident, seq))

    return RawICMPMessage("unrecognized", icmp_type, icmp_code)
