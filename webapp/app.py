from __future__ import annotations

import logging

from flask import Flask, jsonify, make_response, request

from lcbcore.render import configure_headless_matplotlib
from lcbcore.service import (
    clear_hover,
    describe_session,
    get_session,
    hide_track,
    hover_session,
    move_track,
    render_session,
    reset_zoom,
    session_from_payload,
    set_reference_track,
    show_track,
    zoom_session,
)

configure_headless_matplotlib()

app = Flask(__name__)


def _to_bool(value: object, *, default: bool = False, name: str = "value") -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in {0, 1}:
            return bool(value)
        raise ValueError(f"{name} must be a boolean")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "y", "on"}:
            return True
        if normalized in {"false", "0", "no", "n", "off", ""}:
            return False
    raise ValueError(f"{name} must be a boolean")


def _payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _token(payload: dict) -> str:
    return str(payload.get("token", "")).strip()


@app.post("/api/load")
def api_load():
    payload = _payload()
    try:
        session = session_from_payload(payload)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(describe_session(session))


@app.get("/api/state/<token>")
def api_state(token: str):
    try:
        session = get_session(token)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(describe_session(session))


@app.post("/api/hover")
def api_hover():
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400
    if payload.get("track_index") is None:
        return jsonify({"error": "track_index is required"}), 400
    if payload.get("position") is None:
        return jsonify({"error": "position is required"}), 400

    try:
        session = get_session(token)
        result = hover_session(session, payload["track_index"], payload["position"])
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(result)


@app.post("/api/hover/clear")
def api_hover_clear():
    payload = _payload()
    try:
        session = get_session(_token(payload))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    clear_hover(session)
    return jsonify({"positions": {}, "group_id": None})


@app.post("/api/zoom")
def api_zoom():
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400
    if payload.get("k") is None:
        return jsonify({"error": "k is required"}), 400

    try:
        session = get_session(token)
        transform = zoom_session(session, payload["k"], payload.get("x", 0.0))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    state = describe_session(session)
    return jsonify({"transform": transform.to_dict(), "visible_domain": state["visible_domain"]})


@app.post("/api/zoom/reset")
def api_zoom_reset():
    payload = _payload()
    try:
        session = get_session(_token(payload))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    transform = reset_zoom(session)
    return jsonify({"transform": transform.to_dict()})


@app.post("/api/reference")
def api_reference():
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400

    try:
        session = get_session(token)
        flipped = set_reference_track(session, payload.get("track_index"))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    state = describe_session(session)
    state["flipped_groups"] = flipped
    return jsonify(state)


@app.post("/api/tracks/move")
def api_tracks_move():
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400

    try:
        session = get_session(token)
        moved = move_track(session, payload.get("track_index"), payload.get("direction", ""))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    state = describe_session(session)
    state["moved"] = moved
    return jsonify(state)


@app.post("/api/tracks/hide")
def api_tracks_hide():
    return _toggle_track(hide_track)


@app.post("/api/tracks/show")
def api_tracks_show():
    return _toggle_track(show_track)


def _toggle_track(action):
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400

    try:
        session = get_session(token)
        action(session, payload.get("track_index"))
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(describe_session(session))


@app.post("/api/render")
def api_render():
    payload = _payload()
    token = _token(payload)
    if not token:
        return jsonify({"error": "token is required"}), 400

    try:
        session = get_session(token)
        with_cursor = _to_bool(payload.get("with_cursor"), default=False, name="with_cursor")
        result = render_session(session, "svg", cursor=session.last_hover if with_cursor else None)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    return jsonify(
        {
            "token": result.token,
            "svg": result.svg,
            "svg_width_px": result.svg_width_px,
            "svg_height_px": result.svg_height_px,
            "tracks": result.lanes,
        }
    )


@app.post("/api/export")
def api_export():
    payload = _payload()
    token = _token(payload)
    fmt = str(payload.get("format", "svg")).strip().lower()

    if not token:
        return jsonify({"error": "token is required"}), 400

    try:
        session = get_session(token)
        result = render_session(session, fmt)
    except Exception as exc:
        return jsonify({"error": str(exc)}), 400

    mime = "image/svg+xml" if fmt == "svg" else "image/png"
    filename = f"lcb_viewer_export.{fmt}"

    response = make_response(result.content)
    response.headers["Content-Type"] = mime
    response.headers["Content-Disposition"] = f"attachment; filename={filename}"
    return response


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="127.0.0.1", port=5000, debug=True, threaded=False)
