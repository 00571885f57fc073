from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .model import STRANDS, AlignmentModel, LoadError, Region, Track

logger = logging.getLogger(__name__)

_NAME_KEYS = ("name", "trackName", "track_name")


def _record_name(record: Mapping[str, Any], where: str) -> str:
    for key in _NAME_KEYS:
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    raise LoadError(f"{where}: region record is missing a track name")


def _record_coordinate(record: Mapping[str, Any], key: str, where: str) -> int:
    value = record.get(key)
    if isinstance(value, bool) or value is None:
        raise LoadError(f"{where}: '{key}' must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise LoadError(f"{where}: '{key}' must be an integer")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise LoadError(f"{where}: '{key}' must be an integer") from exc


def _parse_region(record: Any, where: str) -> Tuple[str, int, int, str]:
    if not isinstance(record, Mapping):
        raise LoadError(f"{where}: region record must be an object")
    name = _record_name(record, where)
    start = _record_coordinate(record, "start", where)
    end = _record_coordinate(record, "end", where)
    if start > end:
        raise LoadError(f"{where}: start ({start}) is greater than end ({end})")
    strand = str(record.get("strand", "")).strip()
    if strand not in STRANDS:
        raise LoadError(f"{where}: strand must be '+' or '-', got '{strand}'")
    return name, start, end, strand


def load_alignment(
    groups: Sequence[Sequence[Mapping[str, Any]]],
    track_names: Optional[Sequence[str]] = None,
    labels: Optional[Mapping[str, str]] = None,
) -> AlignmentModel:
    """Build an :class:`AlignmentModel` from grouped region records.

    Track indices follow ``track_names`` when it is given; otherwise tracks
    are numbered in order of first appearance. Any malformed record raises
    :class:`LoadError` and nothing is returned.
    """
    if isinstance(groups, (str, bytes)) or not isinstance(groups, Sequence):
        raise LoadError("alignment data must be a list of groups")
    if not groups:
        raise LoadError("alignment data contains no groups")

    index_by_name: Dict[str, int] = {}
    fixed_tracks = track_names is not None
    if fixed_tracks:
        for name in track_names:
            key = str(name).strip()
            if not key:
                raise LoadError("track names must not be empty")
            if key in index_by_name:
                raise LoadError(f"duplicate track name '{key}'")
            index_by_name[key] = len(index_by_name) + 1

    regions: List[Region] = []
    for group_id, group in enumerate(groups):
        if isinstance(group, (str, bytes)) or not isinstance(group, Sequence):
            raise LoadError(f"group {group_id}: must be a list of region records")
        seen_tracks = set()
        for position, record in enumerate(group):
            where = f"group {group_id}, region {position}"
            name, start, end, strand = _parse_region(record, where)
            if name not in index_by_name:
                if fixed_tracks:
                    raise LoadError(f"{where}: track '{name}' does not exist")
                index_by_name[name] = len(index_by_name) + 1
            track_index = index_by_name[name]
            if track_index in seen_tracks:
                raise LoadError(f"{where}: track '{name}' already has a region in this group")
            seen_tracks.add(track_index)
            regions.append(
                Region(
                    region_id=len(regions) + 1,
                    start=start,
                    end=end,
                    strand=strand,
                    track_index=track_index,
                    group_id=group_id,
                )
            )

    if not index_by_name:
        raise LoadError("alignment data contains no tracks")

    labels = labels or {}
    tracks = [
        Track(index=index, name=name, label=str(labels.get(name, "") or ""))
        for name, index in sorted(index_by_name.items(), key=lambda item: item[1])
    ]
    model = AlignmentModel(tracks=tracks, regions=regions)
    logger.info(
        "Loaded %d regions in %d groups across %d tracks",
        len(regions),
        len(model.groups),
        model.track_count,
    )
    return model


def load_alignment_json(path: Path) -> AlignmentModel:
    try:
        with path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
    except json.JSONDecodeError as exc:
        raise LoadError(f"'{path.name}' is not valid JSON: {exc}") from exc
    groups, track_names, labels = split_document(document)
    return load_alignment(groups, track_names=track_names, labels=labels)


def split_document(document: Any) -> Tuple[Any, Optional[List[str]], Optional[Dict[str, str]]]:
    """Accept either a bare group list or ``{"groups", "track_names", "labels"}``."""
    if isinstance(document, list):
        return document, None, None
    if not isinstance(document, dict):
        raise LoadError("alignment document must be a list of groups or an object")
    if "groups" not in document:
        raise LoadError("alignment document is missing 'groups'")
    track_names = document.get("track_names")
    if track_names is not None and not isinstance(track_names, list):
        raise LoadError("'track_names' must be a list")
    labels = document.get("labels")
    if labels is not None and not isinstance(labels, dict):
        raise LoadError("'labels' must be an object")
    return document["groups"], track_names, labels
