"""Tests for the editing session: mapping table, custom cell edits and the
confirmation gate that protects them from silent loss.

Confirmation ports are plain callables, so canned answers stand in for the
host UI.
"""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from artype.config import CONFIRM_MESSAGE, DEFAULT_MAPPING, TransformParams
from artype.converter import convert
from artype.mapping import MappingTable
from artype.overrides import ConfirmationGate, ConfirmationState, OverrideStore, StaticConfirm
from artype.session import ArtypeSession, RecomputeOutcome

SMALL = dict(columns=4, cell_width=4, cell_height=4)


def _uniform(value: int, width: int = 16, height: int = 16) -> np.ndarray:
    buf = np.empty((height, width, 4), dtype=np.uint8)
    buf[:, :, :3] = value
    buf[:, :, 3] = 255
    return buf


def _quadrants(size: int = 16) -> np.ndarray:
    """Black top-left quadrant on white."""
    buf = _uniform(255, size, size)
    buf[: size // 2, : size // 2, :3] = 0
    return buf


def _session(answer: bool = True, image=None) -> ArtypeSession:
    session = ArtypeSession(confirm=StaticConfirm(answer), params=TransformParams(**SMALL))
    session.load_image(_quadrants() if image is None else image)
    return session


# ---------------------------------------------------------------------------
# Tests: mapping table
# ---------------------------------------------------------------------------


class TestMappingTable:
    def test_defaults(self):
        table = MappingTable()
        assert table.levels == 8
        assert table.snapshot() == DEFAULT_MAPPING

    def test_length_tracks_levels(self):
        table = MappingTable()
        table.add_level()
        assert len(table) == table.levels == 9
        assert table.get(8) == " "
        table.add_level("#")
        assert len(table) == table.levels == 10
        assert table.get(9) == "#"
        assert table.remove_level() is True
        assert len(table) == table.levels == 9
        table.set_glyph(0, "x")
        assert len(table) == table.levels == 9

    def test_remove_at_floor_is_idempotent(self):
        table = MappingTable(["a", "b"])
        assert table.remove_level() is False
        assert table.remove_level() is False
        assert table.snapshot() == ("a", "b")

    def test_too_few_glyphs_rejected(self):
        with pytest.raises(ValueError):
            MappingTable(["only"])

    def test_get_falls_back_to_space(self):
        table = MappingTable()
        assert table.get(99) == " "
        assert table.get(-1) == " "
        table.set_glyph(3, "")
        assert table.get(3) == " "

    def test_set_glyph_out_of_range(self):
        with pytest.raises(IndexError):
            MappingTable().set_glyph(8, "x")


# ---------------------------------------------------------------------------
# Tests: override store and gate
# ---------------------------------------------------------------------------


class TestOverrideStore:
    def test_apply_overlays_copy(self):
        from artype.grid import CharacterGrid

        grid = CharacterGrid.blank(2, 3)
        store = OverrideStore()
        store.set(1, 2, "Q")
        store.set(5, 5, "Z")  # outside, skipped
        out = store.apply(grid)
        assert out.cell(1, 2) == "Q"
        assert grid.cell(1, 2) == " "

    def test_empty_glyph_stored_as_space(self):
        store = OverrideStore()
        store.set(0, 0, "")
        assert store.get(0, 0) == " "


class TestConfirmationGate:
    def test_returns_answer_and_goes_idle(self):
        gate = ConfirmationGate(StaticConfirm(False))
        assert gate.request("sure?") is False
        assert gate.state is ConfirmationState.IDLE

    def test_reentrant_request_is_dropped(self):
        inner = []

        def port(message):
            inner.append(gate.request("again?"))
            assert gate.state is ConfirmationState.AWAITING
            return True

        gate = ConfirmationGate(port)
        assert gate.request("first?") is True
        assert inner == [None]
        assert gate.state is ConfirmationState.IDLE

    def test_gate_resets_after_port_error(self):
        def port(message):
            raise RuntimeError("dialog crashed")

        gate = ConfirmationGate(port)
        with pytest.raises(RuntimeError):
            gate.request("x")
        assert gate.state is ConfirmationState.IDLE


# ---------------------------------------------------------------------------
# Tests: session recompute flow
# ---------------------------------------------------------------------------


class TestSession:
    def test_not_ready_without_image(self):
        session = ArtypeSession()
        assert session.request_recompute() is RecomputeOutcome.NOT_READY
        assert session.update_params(columns=12) is RecomputeOutcome.NOT_READY
        assert session.params.columns == 12
        assert session.grid is None
        assert session.grid_size == (0, 0)

    def test_load_image_builds_grid(self):
        session = _session()
        assert session.grid_size == (4, 4)
        assert session.grid.cell(0, 0) == "M"
        assert session.grid.cell(3, 3) == " "

    def test_params_are_clamped(self):
        session = _session()
        session.update_params(brightness=500, cell_width=0)
        assert session.params.brightness == 100
        assert session.params.cell_width == 1

    def test_recompute_without_overrides_never_asks(self):
        port = StaticConfirm(False)
        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        assert session.update_params(columns=8) is RecomputeOutcome.APPLIED
        assert session.grid_size[0] == 8
        assert port.messages == []

    def test_override_does_not_recompute(self):
        session = _session()
        before = session.grid.copy()
        assert session.set_override(0, 0, "@")
        assert session.grid.cell(0, 0) == "@"
        assert session.overrides.get(0, 0) == "@"
        assert session.grid.cell(0, 1) == before.cell(0, 1)

    def test_override_outside_grid_is_ignored(self):
        session = _session()
        assert session.set_override(10, 0, "@") is False
        assert session.set_override(0, -1, "@") is False
        assert not session.has_overrides

    def test_declined_change_leaves_everything_untouched(self):
        session = _session(answer=False)
        session.set_override(1, 1, "@")
        grid_before = session.grid.copy()
        store_before = session.overrides.copy()
        params_before = session.params

        outcome = session.update_params(rotation=30, brightness=20)

        assert outcome is RecomputeOutcome.DECLINED
        assert session.grid == grid_before
        assert session.overrides == store_before
        assert session.params == params_before
        assert session.gate.confirm.messages == [CONFIRM_MESSAGE]

    def test_declined_mapping_edit_is_rolled_back(self):
        session = _session(answer=False)
        session.set_override(0, 0, "@")
        assert session.add_level("#") is RecomputeOutcome.DECLINED
        assert session.mapping.snapshot() == DEFAULT_MAPPING
        assert session.set_glyph(0, "x") is RecomputeOutcome.DECLINED
        assert session.mapping.get(0) == " "

    def test_confirmed_change_clears_overrides(self):
        session = _session(answer=True)
        session.set_override(0, 0, "@")
        session.set_override(2, 3, "#")

        assert session.update_params(contrast=10) is RecomputeOutcome.APPLIED

        assert not session.has_overrides
        fresh = convert(session.image, session.params, session.mapping)
        assert session.grid == fresh

    def test_mapping_edit_regenerates_grid(self):
        session = _session(image=_uniform(255))
        assert session.set_glyph(0, "~") is RecomputeOutcome.APPLIED
        assert {c for row in session.grid for c in row} == {"~"}

    def test_remove_level_at_floor_is_unchanged(self):
        session = ArtypeSession(mapping=["a", "b"], params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        assert session.remove_level() is RecomputeOutcome.UNCHANGED
        assert session.mapping.levels == 2

    def test_level_count_changes_quantisation(self):
        session = _session(image=_uniform(0))
        assert session.add_level("#") is RecomputeOutcome.APPLIED
        assert session.grid.cell(0, 0) == "#"
        assert session.remove_level() is RecomputeOutcome.APPLIED
        assert session.grid.cell(0, 0) == "M"

    def test_new_image_is_gated(self):
        session = _session(answer=False)
        original = session.image.copy()
        session.set_override(0, 0, "@")
        assert session.load_image(_uniform(0)) is RecomputeOutcome.DECLINED
        assert np.array_equal(session.image, original)

    def test_reentrant_change_during_prompt_is_dropped(self):
        inner = []

        def port(message):
            inner.append(session.update_params(columns=9))
            return True

        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        session.set_override(0, 0, "@")

        assert session.update_params(columns=6) is RecomputeOutcome.APPLIED
        assert inner == [RecomputeOutcome.DROPPED]
        assert session.params.columns == 6
        assert session.grid_size[0] == 6

    def test_async_port_requires_async_path(self):
        async def port(message):
            return True

        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        session.set_override(0, 0, "@")
        with pytest.raises(TypeError):
            session.update_params(columns=6)
        assert session.params.columns == 4
        assert session.gate.state is ConfirmationState.IDLE

    def test_async_confirmation(self):
        inner = []

        async def port(message):
            assert session.gate.state is ConfirmationState.AWAITING
            inner.append(await session.request_recompute_async())
            inner.append(session.request_recompute())
            await asyncio.sleep(0)
            return answer

        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        session.set_override(0, 0, "@")

        answer = False
        grid_before = session.grid.copy()
        assert asyncio.run(session.update_params_async(columns=6)) is RecomputeOutcome.DECLINED
        assert session.grid == grid_before
        assert session.params.columns == 4
        assert inner == [RecomputeOutcome.DROPPED, RecomputeOutcome.DROPPED]

        answer = True
        assert asyncio.run(session.add_level_async("#")) is RecomputeOutcome.APPLIED
        assert not session.has_overrides
        assert session.mapping.levels == 9

    def test_raster_during_pending_change_uses_grid_cell_size(self):
        shapes = []

        async def port(message):
            shapes.append(session.image_output().shape)
            return answer

        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        session.set_override(0, 0, "@")
        assert session.image_output().shape == (16, 16, 3)

        answer = False
        outcome = asyncio.run(session.update_params_async(cell_width=8, cell_height=6))
        assert outcome is RecomputeOutcome.DECLINED
        assert shapes == [(16, 16, 3)]
        assert session.image_output().shape == (16, 16, 3)

        answer = True
        outcome = asyncio.run(session.update_params_async(cell_width=8, cell_height=6))
        assert outcome is RecomputeOutcome.APPLIED
        assert shapes[-1] == (16, 16, 3)
        assert session.grid_params == session.params
        cols, rows = session.grid_size
        assert session.image_output().shape == (rows * 6, cols * 8, 3)

    def test_reset_discards_edits_without_asking(self):
        port = StaticConfirm(False)
        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_quadrants())
        session.set_override(0, 0, "@")
        assert session.reset_to_defaults() is RecomputeOutcome.APPLIED
        assert not session.has_overrides
        assert session.params == TransformParams()
        assert port.messages == []


# ---------------------------------------------------------------------------
# Tests: glyph cycling
# ---------------------------------------------------------------------------


class TestCycleGlyph:
    def test_cycles_in_order_and_wraps(self):
        session = _session(image=_uniform(255))
        seen = [session.cycle_glyph(0, 0) for _ in range(session.mapping.levels)]
        assert seen == list(DEFAULT_MAPPING[1:]) + [DEFAULT_MAPPING[0]]

    def test_cycled_cell_is_not_an_override(self):
        port = StaticConfirm(False)
        session = ArtypeSession(confirm=port, params=TransformParams(**SMALL))
        session.load_image(_uniform(255))
        session.cycle_glyph(1, 1)
        assert session.grid.cell(1, 1) == "."
        assert not session.has_overrides

        assert session.request_recompute() is RecomputeOutcome.APPLIED
        assert session.grid.cell(1, 1) == " "
        assert port.messages == []

    def test_unknown_glyph_restarts_from_first_entry(self):
        session = _session()
        session.set_override(0, 0, "custom")
        assert session.cycle_glyph(0, 0) == DEFAULT_MAPPING[1]

    def test_outside_grid(self):
        session = _session()
        assert session.cycle_glyph(99, 99) is None
