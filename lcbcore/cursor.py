"""Cross-track cursor mapping.

Given a pointer position over one region, work out where the same aligned
column sits on every other member of the region's alignment group. The
functions here are pure over ``(model, region, position, scales)`` so they
run without any rendering surface.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .model import AlignmentModel, Region
from .scale import LinearScale, nearest_position


@dataclass
class HoverMapping:
    positions: Dict[int, float] = field(default_factory=dict)
    group_id: Optional[int] = None
    track_index: Optional[int] = None
    sequence_position: Optional[int] = None
    lcb_length: Optional[int] = None
    relative_offsets: Dict[int, float] = field(default_factory=dict)
    target_sequence_positions: Dict[int, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "HoverMapping":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.group_id is None

    def visible(self, model: AlignmentModel) -> "HoverMapping":
        """Copy without the tracks that are currently hidden."""
        if self.is_empty:
            return self
        shown = {
            idx for idx in self.positions if model.has_track(idx) and not model.track(idx).hidden
        }
        return HoverMapping(
            positions={idx: pos for idx, pos in self.positions.items() if idx in shown},
            group_id=self.group_id,
            track_index=self.track_index,
            sequence_position=self.sequence_position,
            lcb_length=self.lcb_length,
            relative_offsets={idx: off for idx, off in self.relative_offsets.items() if idx in shown},
            target_sequence_positions={
                idx: pos for idx, pos in self.target_sequence_positions.items() if idx in shown
            },
        )

    def to_dict(self) -> Dict[str, object]:
        # JSON object keys are strings
        return {
            "positions": {str(idx): pos for idx, pos in sorted(self.positions.items())},
            "group_id": self.group_id,
            "track_index": self.track_index,
            "sequence_position": self.sequence_position,
            "lcb_length": self.lcb_length,
            "relative_offsets": {str(idx): off for idx, off in sorted(self.relative_offsets.items())},
            "target_sequence_positions": {
                str(idx): pos for idx, pos in sorted(self.target_sequence_positions.items())
            },
        }


def map_hover(
    model: AlignmentModel,
    hovered: Region,
    raw_position: float,
    scales: Mapping[int, LinearScale],
) -> HoverMapping:
    hover_scale = scales[hovered.track_index]
    sequence_position = nearest_position(hover_scale, raw_position)
    snapped = hover_scale(sequence_position)
    rel_offset = snapped - hover_scale(hovered.start)

    mapping = HoverMapping(
        group_id=hovered.group_id,
        track_index=hovered.track_index,
        sequence_position=sequence_position,
        lcb_length=hovered.length,
    )

    for region in model.group_members(hovered.group_id):
        if region.track_index == hovered.track_index:
            continue
        target_scale = scales[region.track_index]
        if region.strand == hovered.strand:
            target = target_scale(region.start) + rel_offset
        else:
            # mirrored block: measure back from its end
            target = target_scale(region.end) - rel_offset
        mapping.positions[region.track_index] = target
        mapping.relative_offsets[region.track_index] = snapped - target + 1
        mapping.target_sequence_positions[region.track_index] = nearest_position(target_scale, target)

    mapping.positions[hovered.track_index] = snapped
    mapping.relative_offsets[hovered.track_index] = 0.0
    mapping.target_sequence_positions[hovered.track_index] = sequence_position
    return mapping


def hit_test(
    model: AlignmentModel,
    track_index: int,
    raw_position: float,
    scale: LinearScale,
) -> Optional[Region]:
    """The visible region on ``track_index`` drawn under ``raw_position``."""
    if not model.has_track(track_index):
        return None
    for region in model.regions_for_track(track_index):
        if region.hidden:
            continue
        left, right = scale(region.start), scale(region.end)
        if left > right:
            left, right = right, left
        if left <= raw_position <= right:
            return region
    return None


def hover_track(
    model: AlignmentModel,
    track_index: int,
    raw_position: float,
    scales: Mapping[int, LinearScale],
) -> HoverMapping:
    if track_index not in scales:
        return HoverMapping.empty()
    region = hit_test(model, track_index, raw_position, scales[track_index])
    if region is None:
        return HoverMapping.empty()
    return map_hover(model, region, raw_position, scales)
