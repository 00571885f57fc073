"""In-place strand and track-order transforms over an :class:`AlignmentModel`.

Both transforms mutate the model they are given; the caller owns the model
and re-renders afterwards.
"""
from __future__ import annotations

import logging
from typing import List

from .model import STRAND_FORWARD, AlignmentModel, toggle_strand

logger = logging.getLogger(__name__)


def set_reference(model: AlignmentModel, track_index: int) -> List[int]:
    """Make ``track_index`` read forward in every group it belongs to.

    Flipping is decided group by group: a group is only touched when the
    reference track has a member there on the reverse strand. Returns the
    ids of the groups that were flipped.
    """
    if not model.has_track(track_index):
        logger.debug("Ignoring reference request for missing track %s", track_index)
        return []

    flipped: List[int] = []
    for group_id, members in model.groups.items():
        reference = None
        for region in members:
            if region.track_index == track_index:
                reference = region
                break
        if reference is None or reference.strand == STRAND_FORWARD:
            continue

        reference.strand = STRAND_FORWARD
        for region in members:
            if region is not reference:
                region.strand = toggle_strand(region.strand)
        flipped.append(group_id)

    logger.debug("Reference set to track %d; flipped %d groups", track_index, len(flipped))
    return flipped


def swap_tracks(model: AlignmentModel, a: int, b: int) -> bool:
    """Exchange the vertical slots of tracks ``a`` and ``b``.

    Every region on ``a`` moves to ``b`` and vice versa in all groups, the
    track records trade places, and each group is re-sorted by track index.
    """
    if a == b or not model.has_track(a) or not model.has_track(b):
        logger.debug("Ignoring swap of tracks %s and %s", a, b)
        return False

    for members in model.groups.values():
        for region in members:
            if region.track_index == a:
                region.track_index = b
            elif region.track_index == b:
                region.track_index = a
        members.sort(key=lambda r: r.track_index)

    track_a, track_b = model.tracks[a - 1], model.tracks[b - 1]
    model.tracks[a - 1], model.tracks[b - 1] = track_b, track_a
    track_a.index, track_b.index = b, a

    logger.debug("Swapped tracks %d and %d", a, b)
    return True


def move_track_up(model: AlignmentModel, track_index: int) -> bool:
    target = track_index - 1
    if target < 1 or not model.has_track(track_index):
        return False
    return swap_tracks(model, track_index, target)


def move_track_down(model: AlignmentModel, track_index: int) -> bool:
    target = track_index + 1
    if target > model.track_count or not model.has_track(track_index):
        return False
    return swap_tracks(model, track_index, target)
