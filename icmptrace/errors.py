# icmptrace/errors.py


class TraceSetupError(Exception):
    """Fatal: the run cannot start (or continue) at all."""


class ResolveError(TraceSetupError):
    pass


class SocketSetupError(TraceSetupError):
    pass


class EncodeError(TraceSetupError):
    pass


class DecodeError(ValueError):
    """Inbound bytes are too short to be any ICMP message."""
