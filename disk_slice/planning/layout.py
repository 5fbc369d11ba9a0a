"""Partition layout planning.

Turns a disk geometry plus a split specification into an ordered list of
inclusive MiB extents. This is pure arithmetic: nothing here touches a device.

Layout Rules:
    - The first ``align_mib`` MiB are left free so the first partition starts
      on the alignment boundary.
    - Equal split: every partition gets ``usable // count`` MiB.
    - Percentage split: every partition gets ``usable * pct // 100`` MiB,
      each computed from the full usable span (not a running remainder).
    - The last partition always ends at ``total_mib - 1`` and so absorbs all
      rounding slack. This keeps on-disk results stable between releases.

Example:
    >>> from disk_slice.domain.models import DiskGeometry, EqualCount
    >>> geometry = DiskGeometry(total_bytes=1_000_000 * 2**20, sector_bytes=512)
    >>> [(e.start_mib, e.end_mib) for e in plan_extents(geometry, EqualCount(3), 1)]
    [(1, 333333), (333334, 666666), (666667, 999999)]
"""

from __future__ import annotations

from typing import List, Sequence

from disk_slice.domain.models import (
    DiskGeometry,
    EqualCount,
    PartitionExtent,
    PercentageList,
    SplitSpec,
)
from disk_slice.logging import LoggerFactory
from disk_slice.storage.exceptions import (
    DegenerateSpanError,
    InvalidSpecError,
    LayoutInvariantError,
    SizeTooSmallError,
)

log = LoggerFactory.for_planner()

# Smallest partition the equal split will produce.
MIN_EXTENT_MIB = 10


def validate_alignment(align_mib) -> None:
    """Raises InvalidSpecError unless align_mib is a whole number of MiB >= 1."""
    if isinstance(align_mib, bool) or not isinstance(align_mib, int) or align_mib < 1:
        raise InvalidSpecError(f"alignment must be a positive number of MiB, got {align_mib!r}")


def _plan_equal(total_mib: int, usable: int, count: int, align_mib: int) -> List[PartitionExtent]:
    each = usable // count
    if each < MIN_EXTENT_MIB:
        raise SizeTooSmallError(
            total_mib,
            f"{count} partition(s) of {each} MiB after {align_mib} MiB alignment "
            f"(minimum {MIN_EXTENT_MIB} MiB each)",
        )

    extents = []
    for index in range(1, count + 1):
        start = align_mib + (index - 1) * each
        end = start + each - 1
        if index == count:
            end = total_mib - 1
        extents.append(PartitionExtent(index=index, start_mib=start, end_mib=end))
    return extents


def _plan_percentages(
    total_mib: int, usable: int, weights: Sequence[int], align_mib: int
) -> List[PartitionExtent]:
    extents = []
    start = align_mib
    last = len(weights)
    for index, weight in enumerate(weights, start=1):
        span = usable * weight // 100
        end = start + span - 1
        if index == last:
            end = total_mib - 1
        elif end <= start:
            raise DegenerateSpanError(index, start, end)
        extents.append(PartitionExtent(index=index, start_mib=start, end_mib=end))
        start = end + 1
    return extents


def verify_extents(extents: Sequence[PartitionExtent], total_mib: int, align_mib: int) -> None:
    """Check the plan invariants independently of the arithmetic that built it.

    Raises:
        LayoutInvariantError: On empty plans, bad indices, inverted or
            overlapping extents, gaps, or extents outside the disk.
    """
    if not extents:
        raise LayoutInvariantError("layout produced no partitions")

    if extents[0].start_mib != align_mib:
        raise LayoutInvariantError(
            f"first partition starts at {extents[0].start_mib} MiB, expected {align_mib} MiB"
        )
    if extents[-1].end_mib != total_mib - 1:
        raise LayoutInvariantError(
            f"last partition ends at {extents[-1].end_mib} MiB, expected {total_mib - 1} MiB"
        )

    previous = None
    for position, extent in enumerate(extents, start=1):
        if extent.index != position:
            raise LayoutInvariantError(
                f"partition at position {position} has index {extent.index}"
            )
        if extent.start_mib > extent.end_mib:
            raise LayoutInvariantError(
                f"partition {extent.index} is inverted "
                f"({extent.start_mib}MiB -> {extent.end_mib}MiB)"
            )
        if previous is not None:
            if extent.start_mib <= previous.end_mib:
                raise LayoutInvariantError(
                    f"partitions {previous.index} and {extent.index} overlap"
                )
            if extent.start_mib != previous.end_mib + 1:
                raise LayoutInvariantError(
                    f"gap between partitions {previous.index} and {extent.index}"
                )
        previous = extent


def plan_extents(geometry: DiskGeometry, split: SplitSpec, align_mib: int) -> List[PartitionExtent]:
    """Compute partition extents for a disk.

    Args:
        geometry: Disk size snapshot
        split: EqualCount or PercentageList
        align_mib: Alignment granularity; also the offset of the first partition

    Returns:
        Extents ordered by index, covering [align_mib, total_mib - 1]

    Raises:
        InvalidSpecError: Bad alignment, percentages not summing to 100, or a
            percentage resolving to an empty partition (DegenerateSpanError)
        SizeTooSmallError: Not enough usable space
    """
    validate_alignment(align_mib)

    # Re-checked here so a hand-built split cannot skip validation.
    if isinstance(split, PercentageList):
        total_pct = sum(split.weights)
        if total_pct != 100:
            raise InvalidSpecError(f"percentages must sum to 100 (got {total_pct})")
    elif not isinstance(split, EqualCount):
        raise InvalidSpecError(f"unknown split specification: {split!r}")

    total_mib = geometry.total_mib
    usable = total_mib - align_mib
    if usable <= 0:
        raise SizeTooSmallError(
            total_mib, f"no usable space after {align_mib} MiB alignment"
        )

    if isinstance(split, EqualCount):
        extents = _plan_equal(total_mib, usable, split.count, align_mib)
    else:
        extents = _plan_percentages(total_mib, usable, split.weights, align_mib)

    verify_extents(extents, total_mib, align_mib)

    log.debug(
        "Planned {} partition(s) on {} MiB (usable {} MiB, align {} MiB)",
        len(extents),
        total_mib,
        usable,
        align_mib,
    )
    return extents
