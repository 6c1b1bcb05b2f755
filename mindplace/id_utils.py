"""ID generation utilities for locally created entities.

Local IDs: {prefix}-{millisecond timestamp}-{base36 suffix}

The "local" prefix is used for snippets and "topic" for topics. Remote IDs
are opaque and assigned by the backend, so the prefixes also let readers
tell not-yet-synced entities apart from remote ones.
"""

from __future__ import annotations

import re
import secrets
import time

SNIPPET_PREFIX = "local"
TOPIC_PREFIX = "topic"

_SUFFIX_LENGTH = 7
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

_LOCAL_ID_RE = re.compile(rf"^(?:{SNIPPET_PREFIX}|{TOPIC_PREFIX})-\d+(?:-[0-9a-z]+)?$")


def _random_suffix(length: int = _SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_local_id(prefix: str) -> str:
    """Generate a local ID with the given prefix."""
    return f"{prefix}-{time.time_ns() // 1_000_000}-{_random_suffix()}"


def local_snippet_id() -> str:
    """Generate a local snippet ID."""
    return generate_local_id(SNIPPET_PREFIX)


def local_topic_id() -> str:
    """Generate a local topic ID."""
    return generate_local_id(TOPIC_PREFIX)


def is_local_id(entity_id: str) -> bool:
    """Check whether an ID was produced by the local generators.

    Seed topics (``topic-1`` and so on) count as local too.
    """
    return bool(_LOCAL_ID_RE.match(entity_id))
