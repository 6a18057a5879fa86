"""Comment stripping applied to raw scene bytes before grammar parsing."""

from __future__ import annotations

_HASH = ord("#")
_NEWLINE = ord("\n")


def strip_comments(data: bytes) -> bytes:
    """Replace every ``#`` ... newline run with a single newline.

    A comment that runs to the end of the buffer without a newline is also
    replaced by a newline. Text outside comments is copied unchanged, so the
    function is the identity on comment-free input.
    """
    out = bytearray()
    in_comment = False
    start = 0
    for i, byte in enumerate(data):
        if in_comment:
            if byte == _NEWLINE:
                in_comment = False
                start = i + 1
        elif byte == _HASH:
            out += data[start:i]
            out.append(_NEWLINE)
            in_comment = True
    if in_comment:
        return bytes(out)
    out += data[start:]
    return bytes(out)
