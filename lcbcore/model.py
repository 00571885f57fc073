from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

STRAND_FORWARD = "+"
STRAND_REVERSE = "-"
STRANDS = (STRAND_FORWARD, STRAND_REVERSE)


class LoadError(ValueError):
    """Malformed alignment input; fatal for the load that raised it."""


@dataclass
class Track:
    index: int
    name: str
    label: str = ""
    hidden: bool = False


@dataclass
class Region:
    region_id: int
    start: int
    end: int
    strand: str
    track_index: int
    group_id: int
    hidden: bool = False

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def to_dict(self) -> Dict[str, object]:
        return {
            "region_id": self.region_id,
            "start": self.start,
            "end": self.end,
            "strand": self.strand,
            "track_index": self.track_index,
            "group_id": self.group_id,
            "hidden": self.hidden,
        }


def toggle_strand(strand: str) -> str:
    return STRAND_FORWARD if strand == STRAND_REVERSE else STRAND_REVERSE


@dataclass
class AlignmentModel:
    tracks: List[Track]
    regions: List[Region]
    groups: Dict[int, List[Region]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.groups:
            for region in self.regions:
                self.groups.setdefault(region.group_id, []).append(region)
        for members in self.groups.values():
            members.sort(key=lambda r: r.track_index)

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    def has_track(self, track_index: int) -> bool:
        return 1 <= track_index <= len(self.tracks)

    def track(self, track_index: int) -> Track:
        if not self.has_track(track_index):
            raise IndexError(f"track {track_index} does not exist")
        return self.tracks[track_index - 1]

    def regions_for_track(self, track_index: int) -> List[Region]:
        return [region for region in self.regions if region.track_index == track_index]

    def group_members(self, group_id: int) -> List[Region]:
        return list(self.groups.get(group_id, []))

    def member_for_track(self, group_id: int, track_index: int) -> Optional[Region]:
        for region in self.groups.get(group_id, []):
            if region.track_index == track_index:
                return region
        return None

    def set_hidden(self, track_index: int, hidden: bool) -> None:
        if not self.has_track(track_index):
            return
        self.track(track_index).hidden = hidden
        for region in self.regions_for_track(track_index):
            region.hidden = hidden

    def hidden_tracks(self) -> List[int]:
        return [track.index for track in self.tracks if track.hidden]

    def x_extent(self) -> int:
        return max((region.end for region in self.regions), default=0)

    def snapshot(self) -> List[Dict[str, object]]:
        return [region.to_dict() for region in self.regions]
