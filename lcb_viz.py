#!/usr/bin/env python3
"""Command line renderer for multi-genome LCB alignment comparisons.

The tool expects a JSON document holding grouped region records (either a
bare list of groups or an object with ``groups``, ``labels`` and
``track_names``). Every track is drawn as a lane; regions of the same
locally collinear block share a colour and are joined by backbone lines.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from lcbcore.inputs import load_alignment_json
from lcbcore.params import ViewerParams
from lcbcore.render import plot_viewer
from lcbcore.service import session_for_model, track_layout, track_scales, zoom_session


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render multi-genome LCB alignments as stacked genome lanes."
    )
    parser.add_argument("input", type=Path, help="JSON file with grouped region records")
    parser.add_argument("output", type=Path, help="Output file (.svg, .pdf, .png, etc.)")
    parser.add_argument("--reference", type=int, default=1, help="Track index used as the orientation reference")
    parser.add_argument("--hide", type=int, action="append", default=[], help="Track index to hide (repeatable)")
    parser.add_argument("--width", type=int, default=1000, help="Surface width in pixels")
    parser.add_argument("--dpi", type=int, default=100, help="Output resolution in dots per inch")
    parser.add_argument("--zoom", type=float, default=1.0, help="Zoom factor applied around the surface centre")
    parser.add_argument("--pan", type=float, default=0.0, help="Horizontal pan in surface pixels")
    parser.add_argument("--max-zoom", default="auto", help="Upper zoom bound ('auto' = domain length / 10)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        params = ViewerParams.from_cli_args(args)
        model = load_alignment_json(args.input)
    except Exception as exc:  # pragma: no cover - user input validation
        print(f"Error while loading alignment: {exc}", file=sys.stderr)
        return 1

    try:
        session = session_for_model(model, params)
        for track_index in args.hide:
            session.model.set_hidden(track_index, True)
        if args.zoom != 1.0 or args.pan:
            centre = params.width / 2.0
            transform = session.transform.zoom_at(args.zoom, centre)
            zoom_session(session, transform.k, transform.x + args.pan)
        plot_viewer(
            model=session.model,
            lanes=track_layout(session),
            scales=track_scales(session),
            params=params,
            x_length=session.x_length,
            output=args.output,
        )
    except Exception as exc:  # pragma: no cover - runtime safety
        print(f"Error while creating visualization: {exc}", file=sys.stderr)
        return 1

    return 0


def cli() -> None:  # pragma: no cover - console script
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    cli()
