from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .cursor import HoverMapping
from .model import STRAND_REVERSE, AlignmentModel, Region
from .params import ViewerParams
from .scale import LinearScale

CURSOR_HALF_HEIGHT = 30.0
HOVER_BOX_WIDTH = 10.0
LANE_COLOR = "#555555"
CURSOR_COLOR = "#222222"
HIDDEN_LABEL_COLOR = "#999999"


@dataclass
class LaneLayout:
    track_index: int
    name: str
    label: str
    y: float
    hidden: bool
    is_reference: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "track_index": self.track_index,
            "name": self.name,
            "label": self.label,
            "y": self.y,
            "hidden": self.hidden,
            "is_reference": self.is_reference,
        }


def configure_headless_matplotlib() -> None:
    """Pin matplotlib to Agg before pyplot is imported anywhere."""

    if not os.environ.get("MPLBACKEND", "").strip():
        os.environ["MPLBACKEND"] = "Agg"
    if not os.environ.get("MPLCONFIGDIR"):
        os.environ["MPLCONFIGDIR"] = os.path.join(tempfile.gettempdir(), "lcbviz_mplconfig")

    import matplotlib

    if "agg" not in str(matplotlib.get_backend()).lower():
        matplotlib.use("Agg", force=True)


def region_top(lane_y: float, strand: str, params: ViewerParams) -> float:
    offset = params.y_pos + params.lcb_height if strand == STRAND_REVERSE else params.y_pos
    return lane_y + offset


def lane_axis_y(lane_y: float, params: ViewerParams) -> float:
    return lane_y + params.y_pos + params.lcb_height


def surface_height(lanes: Sequence[LaneLayout], params: ViewerParams) -> float:
    if not lanes:
        return params.margin_top + params.track_offset
    return max(
        len(lanes) * (params.track_offset + 25),
        lanes[-1].y + params.track_offset,
    )


def _group_color(group_id: int):
    import matplotlib

    palette = matplotlib.colormaps["tab20"]
    return palette(group_id % palette.N)


def _draw_lane(ax, lane: LaneLayout, scale: LinearScale, x_length: int, params: ViewerParams) -> None:
    from matplotlib.ticker import MaxNLocator

    axis_y = lane_axis_y(lane.y, params)
    marker = " (reference)" if lane.is_reference else ""
    title = lane.label or lane.name
    if lane.hidden:
        ax.text(5, lane.y + params.y_pos / 2, f"{title}{marker} [hidden]", fontsize=8, color=HIDDEN_LABEL_COLOR, va="center")
        return

    ax.text(5, lane.y + params.y_pos / 2, f"{title}{marker}", fontsize=9, va="center")
    ax.hlines(axis_y, 0, params.width, colors=LANE_COLOR, linewidth=0.8)

    lo = max(0.0, min(scale.domain))
    hi = min(float(x_length), max(scale.domain))
    if params.tick_count <= 0 or hi <= lo:
        return
    ticks = MaxNLocator(nbins=params.tick_count, integer=True).tick_values(lo, hi)
    ticks = ticks[(ticks >= lo) & (ticks <= hi)]
    xs = scale(ticks)
    ax.vlines(xs, axis_y, axis_y + 4, colors=LANE_COLOR, linewidth=0.6)
    for x_pos, tick in zip(xs, ticks):
        ax.text(x_pos, axis_y + 6, f"{int(tick):,}", fontsize=6, ha="center", va="top", color=LANE_COLOR)


def _draw_regions(
    ax,
    regions: Sequence[Region],
    lane: LaneLayout,
    scale: LinearScale,
    params: ViewerParams,
    highlight_group: Optional[int],
) -> None:
    from matplotlib.collections import PatchCollection
    from matplotlib.patches import Rectangle

    visible = [region for region in regions if not region.hidden]
    if not visible:
        return
    starts = scale(np.array([region.start for region in visible], dtype=float))
    ends = scale(np.array([region.end for region in visible], dtype=float))
    patches = [
        Rectangle((x0, region_top(lane.y, region.strand, params)), x1 - x0, params.lcb_height)
        for region, x0, x1 in zip(visible, starts, ends)
    ]
    edges = ["#222222" if region.group_id == highlight_group else "none" for region in visible]
    widths = [2.0 if region.group_id == highlight_group else 0.0 for region in visible]
    collection = PatchCollection(
        patches,
        facecolors=[_group_color(region.group_id) for region in visible],
        edgecolors=edges,
        linewidths=widths,
    )
    ax.add_collection(collection)


def _draw_backbone(
    ax,
    model: AlignmentModel,
    lanes: Mapping[int, LaneLayout],
    scales: Mapping[int, LinearScale],
    params: ViewerParams,
    highlight_group: Optional[int],
) -> None:
    from matplotlib.collections import LineCollection

    segments: List[Tuple[Tuple[float, float], Tuple[float, float]]] = []
    colors = []
    widths = []
    for group_id, members in model.groups.items():
        shown = [region for region in members if not region.hidden]
        for upper, lower in zip(shown, shown[1:]):
            upper_scale, lower_scale = scales[upper.track_index], scales[lower.track_index]
            x_top = upper_scale((upper.start + upper.end) / 2.0)
            x_bottom = lower_scale((lower.start + lower.end) / 2.0)
            y_top = region_top(lanes[upper.track_index].y, upper.strand, params) + params.lcb_height
            y_bottom = region_top(lanes[lower.track_index].y, lower.strand, params)
            segments.append(((x_top, y_top), (x_bottom, y_bottom)))
            colors.append(_group_color(group_id))
            widths.append(3.0 if group_id == highlight_group else 1.0)
    if segments:
        ax.add_collection(LineCollection(segments, colors=colors, linewidths=widths, alpha=0.6))


def _draw_cursor(ax, cursor: HoverMapping, lanes: Mapping[int, LaneLayout], params: ViewerParams) -> None:
    from matplotlib.patches import Rectangle

    for track_index, x_pos in cursor.positions.items():
        lane = lanes.get(track_index)
        if lane is None or lane.hidden:
            continue
        axis_y = lane_axis_y(lane.y, params)
        ax.vlines(x_pos, axis_y - CURSOR_HALF_HEIGHT, axis_y + CURSOR_HALF_HEIGHT, colors=CURSOR_COLOR, linewidth=1.0)
        ax.add_patch(
            Rectangle(
                (x_pos - HOVER_BOX_WIDTH / 2, axis_y - CURSOR_HALF_HEIGHT),
                HOVER_BOX_WIDTH,
                2 * CURSOR_HALF_HEIGHT,
                fill=False,
                edgecolor=CURSOR_COLOR,
                linewidth=0.8,
            )
        )


def plot_viewer(
    *,
    model: AlignmentModel,
    lanes: Sequence[LaneLayout],
    scales: Mapping[int, LinearScale],
    params: ViewerParams,
    x_length: int,
    output: Path,
    cursor: Optional[HoverMapping] = None,
) -> Dict[str, float]:
    configure_headless_matplotlib()
    import matplotlib.pyplot as plt

    width_px = float(params.width)
    height_px = float(surface_height(lanes, params))
    lanes_by_track = {lane.track_index: lane for lane in lanes}
    highlight_group = None if cursor is None or cursor.is_empty else cursor.group_id

    fig = plt.figure(figsize=(width_px / params.dpi, height_px / params.dpi), dpi=params.dpi)
    ax = fig.add_axes([0.0, 0.0, 1.0, 1.0])
    ax.set_xlim(0, width_px)
    ax.set_ylim(height_px, 0)
    ax.axis("off")

    for lane in lanes:
        _draw_lane(ax, lane, scales[lane.track_index], x_length, params)
        if not lane.hidden:
            _draw_regions(
                ax,
                model.regions_for_track(lane.track_index),
                lane,
                scales[lane.track_index],
                params,
                highlight_group,
            )
    _draw_backbone(ax, model, lanes_by_track, scales, params, highlight_group)
    if cursor is not None and not cursor.is_empty:
        _draw_cursor(ax, cursor, lanes_by_track, params)

    output.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output, dpi=params.dpi)
    plt.close(fig)
    return {"svg_width_px": width_px, "svg_height_px": height_px}


def render_bytes(
    *,
    fmt: str,
    model: AlignmentModel,
    lanes: Sequence[LaneLayout],
    scales: Mapping[int, LinearScale],
    params: ViewerParams,
    x_length: int,
    cursor: Optional[HoverMapping] = None,
) -> Tuple[bytes, Dict[str, float]]:
    if fmt not in {"svg", "png"}:
        raise ValueError("Export format must be 'svg' or 'png'")
    suffix = ".svg" if fmt == "svg" else ".png"
    with NamedTemporaryFile(suffix=suffix, delete=True) as handle:
        metadata = plot_viewer(
            model=model,
            lanes=lanes,
            scales=scales,
            params=params,
            x_length=x_length,
            output=Path(handle.name),
            cursor=cursor,
        )
        handle.seek(0)
        return handle.read(), metadata
