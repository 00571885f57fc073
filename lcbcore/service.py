from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .cursor import HoverMapping, hover_track
from .inputs import load_alignment, split_document
from .model import AlignmentModel
from .params import ViewerParams, to_float, to_int
from .render import LaneLayout, render_bytes
from .scale import IDENTITY, LinearScale, ZoomTransform, constrain_transform
from .transforms import move_track_down, move_track_up, set_reference

logger = logging.getLogger(__name__)


@dataclass
class ViewerSession:
    token: str
    params: ViewerParams
    model: AlignmentModel
    x_length: int
    base_scale: LinearScale
    reference_track: int
    transform: ZoomTransform = IDENTITY
    last_hover: HoverMapping = field(default_factory=HoverMapping.empty)


@dataclass
class RenderResult:
    token: str
    fmt: str
    content: bytes
    svg_width_px: float
    svg_height_px: float
    lanes: List[Dict[str, object]] = field(default_factory=list)

    @property
    def svg(self) -> str:
        return self.content.decode("utf-8")


SESSION_CACHE: Dict[str, ViewerSession] = {}
MAX_SESSIONS = 12
PAN_OVERSHOOT_PX = 100.0


def _trim_cache() -> None:
    while len(SESSION_CACHE) > MAX_SESSIONS:
        first_key = next(iter(SESSION_CACHE))
        del SESSION_CACHE[first_key]


def prepare_session(
    *,
    groups: Sequence[Sequence[Mapping[str, Any]]],
    params: ViewerParams,
    labels: Optional[Mapping[str, str]] = None,
    track_names: Optional[Sequence[str]] = None,
) -> ViewerSession:
    model = load_alignment(groups, track_names=track_names, labels=labels)
    return session_for_model(model, params)


def session_for_model(model: AlignmentModel, params: ViewerParams) -> ViewerSession:
    x_length = model.x_extent() + params.domain_padding
    base_scale = LinearScale((0, max(1, x_length)), (0, params.width))

    reference = params.reference_track if model.has_track(params.reference_track) else 1
    set_reference(model, reference)

    session = ViewerSession(
        token=uuid.uuid4().hex,
        params=params,
        model=model,
        x_length=x_length,
        base_scale=base_scale,
        reference_track=reference,
    )
    SESSION_CACHE[session.token] = session
    _trim_cache()
    logger.info("Prepared viewer session %s with %d tracks", session.token, model.track_count)
    return session


def session_from_payload(payload: Dict[str, Any]) -> ViewerSession:
    if "groups" not in payload:
        raise ValueError("groups is required")
    params_payload = payload.get("params") or {}
    if not isinstance(params_payload, dict):
        raise ValueError("params must be an object")
    groups, track_names, labels = split_document(
        {key: payload[key] for key in ("groups", "track_names", "labels") if key in payload}
    )
    return prepare_session(
        groups=groups,
        params=ViewerParams.from_payload(params_payload),
        labels=labels,
        track_names=track_names,
    )


def get_session(token: str) -> ViewerSession:
    try:
        return SESSION_CACHE[token]
    except KeyError as exc:
        raise ValueError("Unknown or expired viewer token") from exc


def track_scales(session: ViewerSession) -> Dict[int, LinearScale]:
    # all tracks share one base scale and one transform
    zoomed = session.base_scale.rescaled(session.transform)
    return {track.index: zoomed for track in session.model.tracks}


def zoom_session(session: ViewerSession, k: float, x: float) -> ZoomTransform:
    width = float(session.params.width)
    requested = ZoomTransform(to_float(k, positive=True, name="k"), to_float(x, name="x"))
    session.transform = constrain_transform(
        requested,
        viewport=(0.0, width),
        translate_extent=(-width, width + PAN_OVERSHOOT_PX),
        scale_extent=(session.params.min_zoom, session.params.resolve_max_zoom(session.x_length)),
    )
    # cursor positions were computed against the previous scales
    clear_hover(session)
    return session.transform


def reset_zoom(session: ViewerSession) -> ZoomTransform:
    session.transform = IDENTITY
    clear_hover(session)
    return session.transform


def hover_session(session: ViewerSession, track_index: Any, raw_position: Any) -> Dict[str, object]:
    track = to_int(track_index, name="track_index")
    position = to_float(raw_position, name="position")
    mapping = hover_track(session.model, track, position, track_scales(session))
    session.last_hover = mapping
    payload = mapping.visible(session.model).to_dict()
    payload["highlight_group"] = mapping.group_id
    return payload


def clear_hover(session: ViewerSession) -> None:
    session.last_hover = HoverMapping.empty()


def set_reference_track(session: ViewerSession, track_index: Any) -> List[int]:
    track = to_int(track_index, name="track_index")
    if not session.model.has_track(track):
        return []
    flipped = set_reference(session.model, track)
    session.reference_track = track
    clear_hover(session)
    return flipped


def move_track(session: ViewerSession, track_index: Any, direction: str) -> bool:
    track = to_int(track_index, name="track_index")
    key = str(direction).strip().lower()
    if key not in {"up", "down"}:
        raise ValueError("direction must be 'up' or 'down'")
    target = track - 1 if key == "up" else track + 1
    moved = move_track_up(session.model, track) if key == "up" else move_track_down(session.model, track)
    if moved:
        if session.reference_track == track:
            session.reference_track = target
        elif session.reference_track == target:
            session.reference_track = track
        clear_hover(session)
    return moved


def hide_track(session: ViewerSession, track_index: Any) -> None:
    session.model.set_hidden(to_int(track_index, name="track_index"), True)
    clear_hover(session)


def show_track(session: ViewerSession, track_index: Any) -> None:
    session.model.set_hidden(to_int(track_index, name="track_index"), False)
    clear_hover(session)


def track_layout(session: ViewerSession) -> List[LaneLayout]:
    params = session.params
    lanes: List[LaneLayout] = []
    y_pos = params.margin_top
    for track in session.model.tracks:
        if track.index > 1:
            y_pos += params.hidden_track_offset if track.hidden else params.track_offset
        lanes.append(
            LaneLayout(
                track_index=track.index,
                name=track.name,
                label=track.label,
                y=y_pos,
                hidden=track.hidden,
                is_reference=track.index == session.reference_track,
            )
        )
    return lanes


def describe_session(session: ViewerSession) -> Dict[str, object]:
    zoomed = session.base_scale.rescaled(session.transform)
    return {
        "token": session.token,
        "reference_track": session.reference_track,
        "track_count": session.model.track_count,
        "x_length": session.x_length,
        "transform": session.transform.to_dict(),
        "visible_domain": list(zoomed.domain),
        "tracks": [lane.to_dict() for lane in track_layout(session)],
        "regions": session.model.snapshot(),
    }


def render_session(
    session: ViewerSession,
    fmt: str = "svg",
    cursor: Optional[HoverMapping] = None,
) -> RenderResult:
    lanes = track_layout(session)
    content, metadata = render_bytes(
        fmt=fmt,
        model=session.model,
        lanes=lanes,
        scales=track_scales(session),
        params=session.params,
        x_length=session.x_length,
        cursor=cursor,
    )
    return RenderResult(
        token=session.token,
        fmt=fmt,
        content=content,
        svg_width_px=float(metadata.get("svg_width_px", 0.0)),
        svg_height_px=float(metadata.get("svg_height_px", 0.0)),
        lanes=[lane.to_dict() for lane in lanes],
    )
