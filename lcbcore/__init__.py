"""Shared core APIs for the multi-genome LCB viewer."""

from .cursor import HoverMapping, hit_test, hover_track, map_hover
from .inputs import load_alignment, load_alignment_json
from .model import AlignmentModel, LoadError, Region, Track
from .params import ViewerParams
from .scale import LinearScale, ZoomTransform
from .service import (
    RenderResult,
    ViewerSession,
    describe_session,
    hover_session,
    prepare_session,
    render_session,
)
from .transforms import move_track_down, move_track_up, set_reference, swap_tracks

__all__ = [
    "AlignmentModel",
    "HoverMapping",
    "LinearScale",
    "LoadError",
    "Region",
    "RenderResult",
    "Track",
    "ViewerParams",
    "ViewerSession",
    "ZoomTransform",
    "describe_session",
    "hit_test",
    "hover_session",
    "hover_track",
    "load_alignment",
    "load_alignment_json",
    "map_hover",
    "move_track_down",
    "move_track_up",
    "prepare_session",
    "render_session",
    "set_reference",
    "swap_tracks",
]
