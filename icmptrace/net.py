# icmptrace/net.py
import logging
import socket
from typing import Optional

from icmptrace.errors import ResolveError

log = logging.getLogger(__name__)


def resolve_ipv4(host: str) -> str:
    """Resolve host to a single IPv4 address, once, no fallback."""
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_INET)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolveError(f"cannot resolve {host}: {e}") from e
    if not infos:
        raise ResolveError(f"cannot resolve {host}: no IPv4 address")
    return infos[0][4][0]


def reverse_lookup(ip: str) -> Optional[str]:
    try:
        return socket.gethostbyaddr(ip)[0]
    except OSError as e:
        log.debug("no PTR for %s: %s", ip, e)
        return None
