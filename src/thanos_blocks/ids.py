"""
Block identifier parsing.

Block IDs are ULIDs in their canonical 26-character Crockford base32 form.
The ID doubles as the block directory name and the bucket prefix, so anything
walking a namespace uses these helpers to tell blocks from other entries.
"""
from __future__ import annotations

import re
from pathlib import PurePath
from typing import Optional, Tuple, Union

from ulid import ULID

from .errors import BlockValidationError

__all__ = ["BlockID", "parse_block_id", "is_block_dir"]

# Upper-case Crockford alphabet; a leading digit above 7 would overflow 128 bits.
_ULID_RE = re.compile(r"^[0-7][0-9A-HJKMNP-TV-Z]{25}$")

BlockID = Union[ULID, str]


def parse_block_id(value: BlockID) -> ULID:
    """
    Parse a block ID.

    Args:
        value: ULID instance or its canonical string form

    Returns:
        Parsed ULID

    Raises:
        BlockValidationError: If value is not a canonical ULID string

    Examples:
        >>> str(parse_block_id("01ARZ3NDEKTSV4RRFFQ69G5FAV"))
        '01ARZ3NDEKTSV4RRFFQ69G5FAV'

        >>> parse_block_id("01arz3ndektsv4rrffq69g5fav")
        BlockValidationError: not a block ID: '01arz3ndektsv4rrffq69g5fav'
    """
    if isinstance(value, ULID):
        return value
    if not isinstance(value, str) or not _ULID_RE.match(value):
        raise BlockValidationError(f"not a block ID: {value!r}")
    try:
        return ULID.from_str(value)
    except ValueError as e:
        raise BlockValidationError(f"not a block ID: {value!r}: {e}") from e


def is_block_dir(path: Union[str, PurePath]) -> Tuple[Optional[ULID], bool]:
    """
    Check whether the last element of a path (or bucket key) is a block ID.

    Trailing separators are ignored, so bucket directory keys such as
    ``"01ARZ3NDEKTSV4RRFFQ69G5FAV/"`` are accepted.

    Returns:
        ``(id, True)`` for block directories, ``(None, False)`` otherwise
    """
    name = PurePath(path).name
    try:
        return parse_block_id(name), True
    except BlockValidationError:
        return None, False
