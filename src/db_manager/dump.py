from enum import Enum
from itertools import islice
from pathlib import Path

POSTGRESQL_DUMP_SIGNATURE = "-- PostgreSQL database dump"
HEADER_LINES = 10


class DumpKind(Enum):
    """Dump formats the manager can tell apart."""

    POSTGRESQL = "postgresql"
    UNSUPPORTED = "unsupported"


def detect_dump_kind(path: str | Path) -> DumpKind:
    """
    Identify a SQL dump by the signature in its first lines.

    Only plain-text dumps written by pg_dump are recognized: one of the first
    ten lines has to start with ``-- PostgreSQL database dump``.

    Args:
        path: Host path of the dump file

    Returns:
        DumpKind: POSTGRESQL when the signature is found, UNSUPPORTED otherwise
                  (including missing, unreadable or binary files)
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            header = list(islice(f, HEADER_LINES))
    except (OSError, UnicodeDecodeError):
        return DumpKind.UNSUPPORTED

    if any(line.startswith(POSTGRESQL_DUMP_SIGNATURE) for line in header):
        return DumpKind.POSTGRESQL
    return DumpKind.UNSUPPORTED
