import secrets
import time


def time_based_id(prefix: str) -> str:
    """Build a synthetic, time-ordered identifier such as ``exp_1733312000123_9f3a``.

    The millisecond timestamp keeps ids sortable by creation; the short random
    suffix keeps two ids minted within the same millisecond apart.
    """
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(2)}"


def file_extension(filename: str) -> str:
    """Return the text after the last dot of a file name (the whole name when there is none)."""
    return filename.rsplit(".", 1)[-1]
