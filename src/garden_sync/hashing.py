"""Content addressing compatible with git blob object ids.

GitHub reports the ``sha`` of every file as the git blob id of its bytes,
so computing the same digest locally lets publish status and template
sync detect changes without downloading remote content.
"""

from __future__ import annotations

import hashlib


def content_address(content: bytes) -> str:
    """Return the git blob id (hex SHA-1) of *content*.

    The digest covers the header ``blob <size>\\0`` followed by the raw
    bytes, exactly as ``git hash-object`` computes it.  No newline or
    encoding normalisation is applied.
    """
    header = b"blob %d\0" % len(content)
    return hashlib.sha1(header + content).hexdigest()
