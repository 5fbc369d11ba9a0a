"""Parsing of --count / --layout arguments into a split specification."""

from __future__ import annotations

import re
from typing import List, Optional

from disk_slice.domain.models import EqualCount, PercentageList, SplitSpec
from disk_slice.storage.exceptions import InvalidSpecError

_COUNT_PATTERN = re.compile(r"^[1-9][0-9]*$")
_PERCENT_PATTERN = re.compile(r"^([0-9]{1,3})%$")


def parse_count(value: str) -> EqualCount:
    """Parse ``--count N``; N must be a positive integer without sign or padding."""
    text = str(value).strip()
    if not _COUNT_PATTERN.match(text):
        raise InvalidSpecError("--count must be a positive integer")
    return EqualCount(int(text))


def parse_layout(value: str) -> PercentageList:
    """Parse ``--layout 50%,30%,20%``.

    Raises:
        InvalidSpecError: Malformed entries, values outside 1-100, or a total
            other than 100
    """
    weights: List[int] = []
    for raw in str(value).split(","):
        item = raw.strip()
        match = _PERCENT_PATTERN.match(item)
        if not match:
            raise InvalidSpecError(f"invalid percent {item!r} (use e.g. 50%)")
        weight = int(match.group(1))
        if not 1 <= weight <= 100:
            raise InvalidSpecError(f"percent out of range: {item}")
        weights.append(weight)
    return PercentageList(tuple(weights))


def split_from_args(count: Optional[str], layout: Optional[str]) -> SplitSpec:
    """Build the split from CLI values; exactly one of them must be given."""
    if count is not None and layout is not None:
        raise InvalidSpecError("use either --count or --layout, not both")
    if count is None and layout is None:
        raise InvalidSpecError("specify --count or --layout")
    if count is not None:
        return parse_count(count)
    return parse_layout(layout)
