from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

import matplotlib

from lcb_viz import main as cli_main
from lcbcore.model import LoadError
from lcbcore.params import ViewerParams, to_int
from lcbcore.render import configure_headless_matplotlib
from lcbcore.service import (
    SESSION_CACHE,
    describe_session,
    get_session,
    hide_track,
    hover_session,
    move_track,
    prepare_session,
    render_session,
    reset_zoom,
    set_reference_track,
    show_track,
    track_layout,
    track_scales,
    zoom_session,
)
from webapp.app import app

from tests.test_model import three_genome_groups


class CoreTests(unittest.TestCase):
    def setUp(self):
        self.session = prepare_session(groups=three_genome_groups(), params=ViewerParams())

    def test_backend_configuration_is_agg_and_idempotent(self):
        configure_headless_matplotlib()
        configure_headless_matplotlib()
        self.assertIn("agg", str(matplotlib.get_backend()).lower())

    def test_params_payload_parsing(self):
        params = ViewerParams.from_payload({"width": "800", "max_zoom": "auto", "reference_track": 2})
        self.assertEqual(params.width, 800)
        self.assertIsNone(params.max_zoom)
        self.assertEqual(params.reference_track, 2)
        with self.assertRaisesRegex(ValueError, "width must be positive"):
            ViewerParams.from_payload({"width": 0})
        with self.assertRaisesRegex(ValueError, "dpi must be an integer"):
            ViewerParams.from_payload({"dpi": "high"})

    def test_session_is_cached_and_reference_applied(self):
        self.assertIs(get_session(self.session.token), self.session)
        self.assertEqual(self.session.reference_track, 1)
        self.assertTrue(all(r.strand == "+" for r in self.session.model.regions_for_track(1)))

    def test_unknown_token_raises(self):
        with self.assertRaisesRegex(ValueError, "Unknown or expired"):
            get_session("missing")

    def test_base_scale_spans_padded_domain(self):
        self.assertEqual(self.session.x_length, 1110)
        self.assertEqual(self.session.base_scale.domain, (0.0, 1110.0))
        self.assertEqual(self.session.base_scale.range, (0.0, 1000.0))

    def test_zoom_rescales_every_track_and_reset_restores(self):
        zoom_session(self.session, 2.0, -500.0)
        scales = track_scales(self.session)
        self.assertEqual(set(scales), {1, 2, 3})
        self.assertAlmostEqual(scales[1](555), 2.0 * self.session.base_scale(555) - 500.0)
        self.assertEqual(scales[2], scales[3])

        reset_zoom(self.session)
        self.assertEqual(track_scales(self.session)[1], self.session.base_scale)

    def test_zoom_is_clamped_to_extent(self):
        transform = zoom_session(self.session, 10_000, 0.0)
        self.assertEqual(transform.k, 111.0)

    def test_hover_payload_and_miss(self):
        scale = track_scales(self.session)[1]
        hit = hover_session(self.session, 1, scale(150))
        self.assertEqual(hit["group_id"], 0)
        self.assertEqual(hit["highlight_group"], 0)
        self.assertEqual(hit["sequence_position"], 150)
        self.assertEqual(hit["lcb_length"], 101)
        self.assertEqual(set(hit["positions"]), {"1", "2", "3"})

        miss = hover_session(self.session, 1, scale(250))
        self.assertEqual(miss["positions"], {})
        self.assertIsNone(miss["group_id"])

    def _hover_ecoli(self):
        hover_session(self.session, 1, track_scales(self.session)[1](150))
        self.assertFalse(self.session.last_hover.is_empty)

    def test_zoom_and_reset_clear_hover_cursor(self):
        self._hover_ecoli()
        zoom_session(self.session, 2.0, -500.0)
        self.assertTrue(self.session.last_hover.is_empty)

        self._hover_ecoli()
        reset_zoom(self.session)
        self.assertTrue(self.session.last_hover.is_empty)

    def test_hide_and_show_clear_hover_cursor(self):
        self._hover_ecoli()
        hide_track(self.session, 2)
        self.assertTrue(self.session.last_hover.is_empty)

        self._hover_ecoli()
        show_track(self.session, 2)
        self.assertTrue(self.session.last_hover.is_empty)

    def test_fractional_track_index_is_rejected(self):
        self.assertEqual(to_int(2.0, name="track_index"), 2)
        self.assertEqual(to_int("3", name="track_index"), 3)
        with self.assertRaisesRegex(ValueError, "track_index must be an integer"):
            to_int(1.9, name="track_index")
        with self.assertRaises(ValueError):
            hover_session(self.session, 1.9, 10.0)
        with self.assertRaises(ValueError):
            hide_track(self.session, 2.5)
        self.assertEqual(self.session.model.hidden_tracks(), [])

    def test_reference_follows_genome_when_moved(self):
        set_reference_track(self.session, 3)
        self.assertTrue(move_track(self.session, 3, "up"))
        self.assertEqual(self.session.reference_track, 2)
        self.assertEqual(self.session.model.track(2).name, "shigella")
        self.assertFalse(move_track(self.session, 1, "up"))
        with self.assertRaises(ValueError):
            move_track(self.session, 1, "sideways")

    def test_out_of_range_reference_is_ignored(self):
        self.assertEqual(set_reference_track(self.session, 12), [])
        self.assertEqual(self.session.reference_track, 1)

    def test_layout_uses_hidden_offset(self):
        self.session.model.set_hidden(2, True)
        lanes = track_layout(self.session)
        self.assertEqual([lane.y for lane in lanes], [20, 60, 200])
        self.assertTrue(lanes[0].is_reference)

    def test_render_svg(self):
        zoom_session(self.session, 1.5, -100.0)
        result = render_session(self.session, "svg", cursor=self.session.last_hover)
        self.assertIn("<svg", result.svg)
        self.assertEqual(result.svg_width_px, 1000.0)
        self.assertEqual(len(result.lanes), 3)

    def test_render_rejects_unknown_format(self):
        with self.assertRaises(ValueError):
            render_session(self.session, "gif")

    def test_describe_session(self):
        state = describe_session(self.session)
        self.assertEqual(state["track_count"], 3)
        self.assertEqual(len(state["regions"]), 7)
        self.assertEqual(state["visible_domain"], [0.0, 1110.0])

    def test_malformed_groups_raise_load_error(self):
        with self.assertRaises(LoadError):
            prepare_session(
                groups=[[{"name": "a", "start": 9, "end": 1, "strand": "+"}]],
                params=ViewerParams(),
            )


class ApiTests(unittest.TestCase):
    def setUp(self):
        self.client = app.test_client()

    def _load(self, **extra):
        payload = {"groups": three_genome_groups(), "params": {"width": 1000}}
        payload.update(extra)
        resp = self.client.post("/api/load", json=payload)
        self.assertEqual(resp.status_code, 200)
        return resp.get_json()

    def test_load_hover_render_export(self):
        state = self._load(labels={"ecoli": "E. coli"})
        token = state["token"]
        self.assertEqual(state["tracks"][0]["label"], "E. coli")

        x_pos = 150 * 1000 / 1110
        hover = self.client.post("/api/hover", json={"token": token, "track_index": 1, "position": x_pos})
        self.assertEqual(hover.status_code, 200)
        hover_json = hover.get_json()
        self.assertEqual(hover_json["group_id"], 0)
        self.assertEqual(hover_json["sequence_position"], 150)

        render = self.client.post("/api/render", json={"token": token, "with_cursor": True})
        self.assertEqual(render.status_code, 200)
        self.assertIn("<svg", render.get_json()["svg"])

        export = self.client.post("/api/export", json={"token": token, "format": "png"})
        self.assertEqual(export.status_code, 200)
        self.assertIn("image/png", export.headers["Content-Type"])
        self.assertTrue(export.data.startswith(b"\x89PNG"))

    def test_load_rejects_malformed_region(self):
        groups = [[{"name": "a", "start": 50, "end": 10, "strand": "+"}]]
        resp = self.client.post("/api/load", json={"groups": groups})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("greater than end", resp.get_json()["error"])

    def test_load_requires_groups(self):
        resp = self.client.post("/api/load", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("groups is required", resp.get_json()["error"])

    def test_hover_validation_errors(self):
        token = self._load()["token"]
        missing_token = self.client.post("/api/hover", json={"track_index": 1, "position": 1.0})
        self.assertEqual(missing_token.status_code, 400)
        self.assertIn("token is required", missing_token.get_json()["error"])

        missing_position = self.client.post("/api/hover", json={"token": token, "track_index": 1})
        self.assertEqual(missing_position.status_code, 400)
        self.assertIn("position is required", missing_position.get_json()["error"])

        bad_token = self.client.post("/api/hover", json={"token": "nope", "track_index": 1, "position": 1.0})
        self.assertEqual(bad_token.status_code, 400)

        fractional = self.client.post("/api/hover", json={"token": token, "track_index": 1.9, "position": 1.0})
        self.assertEqual(fractional.status_code, 400)
        self.assertIn("track_index must be an integer", fractional.get_json()["error"])

    def test_reference_move_hide_show(self):
        token = self._load()["token"]

        ref = self.client.post("/api/reference", json={"token": token, "track_index": 3})
        self.assertEqual(ref.status_code, 200)
        self.assertEqual(ref.get_json()["reference_track"], 3)
        # group 1 was flipped to make track 1 forward at load time
        self.assertEqual(ref.get_json()["flipped_groups"], [0, 1])

        moved = self.client.post("/api/tracks/move", json={"token": token, "track_index": 3, "direction": "up"})
        self.assertEqual(moved.status_code, 200)
        self.assertTrue(moved.get_json()["moved"])
        self.assertEqual(moved.get_json()["tracks"][1]["name"], "shigella")

        edge = self.client.post("/api/tracks/move", json={"token": token, "track_index": 1, "direction": "up"})
        self.assertFalse(edge.get_json()["moved"])

        hidden = self.client.post("/api/tracks/hide", json={"token": token, "track_index": 1})
        self.assertTrue(hidden.get_json()["tracks"][0]["hidden"])
        shown = self.client.post("/api/tracks/show", json={"token": token, "track_index": 1})
        self.assertFalse(shown.get_json()["tracks"][0]["hidden"])

    def test_zoom_and_reset(self):
        token = self._load()["token"]
        zoom = self.client.post("/api/zoom", json={"token": token, "k": 2.0, "x": -200.0})
        self.assertEqual(zoom.status_code, 200)
        self.assertEqual(zoom.get_json()["transform"], {"k": 2.0, "x": -200.0})

        bad = self.client.post("/api/zoom", json={"token": token, "k": 0})
        self.assertEqual(bad.status_code, 400)

        reset = self.client.post("/api/zoom/reset", json={"token": token})
        self.assertEqual(reset.get_json()["transform"], {"k": 1.0, "x": 0.0})

    def test_state_endpoint(self):
        token = self._load()["token"]
        resp = self.client.get(f"/api/state/{token}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["token"], token)
        self.assertIn(token, SESSION_CACHE)


class CliTests(unittest.TestCase):
    def test_cli_writes_svg(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "lcbs.json"
            source.write_text(json.dumps({"groups": three_genome_groups()}), encoding="utf-8")
            output = Path(tmp) / "out" / "viewer.svg"
            code = cli_main([str(source), str(output), "--reference", "2", "--hide", "3", "--zoom", "2"])
            self.assertEqual(code, 0)
            self.assertIn("<svg", output.read_text(encoding="utf-8"))

    def test_cli_reports_load_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "bad.json"
            source.write_text("{}", encoding="utf-8")
            code = cli_main([str(source), str(Path(tmp) / "viewer.svg")])
            self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
