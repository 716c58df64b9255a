"""Helpers for turning iteration ids into file names."""

import re

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_key(key: str) -> str:
    """Replace every character outside ``[a-zA-Z0-9_-]`` with a dash.

    ``gid://gitlab/Iteration/123`` becomes ``gid---gitlab-Iteration-123``.
    """
    return _UNSAFE_CHARS.sub("-", key)
