from __future__ import annotations

import itertools
import os

_counter = itertools.count(1)


def make_conn_id(prefix: str = "c") -> str:
    """Process-unique connection id, e.g. ``c4711-000001``."""
    return f"{prefix}{os.getpid()}-{next(_counter):06d}"
