from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

AUTO_ZOOM_TOKEN = "auto"
DEFAULT_SURFACE_WIDTH = 1000
DEFAULT_TRACK_OFFSET = 140
DEFAULT_HIDDEN_TRACK_OFFSET = 40
DEFAULT_MARGIN_TOP = 20
DEFAULT_Y_POS = 50  # distance of regions from the lane axis
DEFAULT_LCB_HEIGHT = 20
DEFAULT_DOMAIN_PADDING = 100


@dataclass(frozen=True)
class ViewerParams:
    width: int = DEFAULT_SURFACE_WIDTH
    track_offset: float = DEFAULT_TRACK_OFFSET
    hidden_track_offset: float = DEFAULT_HIDDEN_TRACK_OFFSET
    margin_top: float = DEFAULT_MARGIN_TOP
    y_pos: float = DEFAULT_Y_POS
    lcb_height: float = DEFAULT_LCB_HEIGHT
    domain_padding: int = DEFAULT_DOMAIN_PADDING
    min_zoom: float = 0.05
    max_zoom: Optional[float] = None
    reference_track: int = 1
    dpi: int = 100
    tick_count: int = 8

    def resolve_max_zoom(self, domain_length: float) -> float:
        if self.max_zoom is not None:
            return self.max_zoom
        return max(1.0, domain_length / 10.0)

    @classmethod
    def from_cli_args(cls, args: Any) -> "ViewerParams":
        return cls(
            width=int(args.width),
            dpi=int(args.dpi),
            reference_track=int(args.reference),
            max_zoom=parse_optional_zoom(args.max_zoom, "max_zoom"),
        )

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ViewerParams":
        def require(name: str, default: Any) -> Any:
            return payload.get(name, default)

        params = cls(
            width=to_int(require("width", DEFAULT_SURFACE_WIDTH), positive=True, name="width"),
            track_offset=to_float(require("track_offset", DEFAULT_TRACK_OFFSET), positive=True, name="track_offset"),
            hidden_track_offset=to_float(require("hidden_track_offset", DEFAULT_HIDDEN_TRACK_OFFSET), positive=True, name="hidden_track_offset"),
            margin_top=to_float(require("margin_top", DEFAULT_MARGIN_TOP), min_value=0.0, name="margin_top"),
            y_pos=to_float(require("y_pos", DEFAULT_Y_POS), min_value=0.0, name="y_pos"),
            lcb_height=to_float(require("lcb_height", DEFAULT_LCB_HEIGHT), positive=True, name="lcb_height"),
            domain_padding=to_int(require("domain_padding", DEFAULT_DOMAIN_PADDING), min_value=0, name="domain_padding"),
            min_zoom=to_float(require("min_zoom", 0.05), positive=True, name="min_zoom"),
            max_zoom=parse_optional_zoom(require("max_zoom", AUTO_ZOOM_TOKEN), "max_zoom"),
            reference_track=to_int(require("reference_track", 1), positive=True, name="reference_track"),
            dpi=to_int(require("dpi", 100), positive=True, name="dpi"),
            tick_count=to_int(require("tick_count", 8), min_value=0, name="tick_count"),
        )
        if params.max_zoom is not None and params.max_zoom < params.min_zoom:
            raise ValueError("max_zoom must be >= min_zoom")
        return params


def parse_optional_zoom(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in {AUTO_ZOOM_TOKEN, "null", ""}:
        return None
    return to_float(value, positive=True, name=name)


def to_float(
    value: Any,
    *,
    name: str,
    positive: bool = False,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a floating-point number") from exc
    if parsed != parsed:
        raise ValueError(f"{name} must be a floating-point number")
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    if max_value is not None and parsed > max_value:
        raise ValueError(f"{name} must be <= {max_value}")
    return parsed


def to_int(
    value: Any,
    *,
    name: str,
    positive: bool = False,
    min_value: Optional[int] = None,
) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be an integer")
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if positive and parsed <= 0:
        raise ValueError(f"{name} must be positive")
    if min_value is not None and parsed < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    return parsed
