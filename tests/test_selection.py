from __future__ import annotations

import pytest

from circadian_clock.errors import InvariantViolation
from circadian_clock.geometry.radial import angle_for_hour, polar_to_xy
from circadian_clock.interaction.selection import (
    HighlightClass,
    HighlightUpdate,
    SelectionPhase,
    SelectionState,
    derive_highlight,
)


def _state() -> SelectionState:
    return SelectionState(["M1", "M2", "M3"])


def test_initial_state_is_idle_with_normal_highlights() -> None:
    state = _state()

    assert state.phase is SelectionPhase.idle
    assert set(state.highlights().values()) == {HighlightClass.normal}


def test_clicking_selected_subject_again_returns_to_idle() -> None:
    state = _state()

    state.click("M1")
    update = state.click("M1")

    assert update.phase is SelectionPhase.idle
    assert update.selected_subject_id is None
    assert state.highlight("M1") is HighlightClass.normal


def test_clicking_another_subject_replaces_selection() -> None:
    state = _state()

    state.click("M1")
    update = state.click("M2")

    assert update.selected_subject_id == "M2"
    assert update.highlights == {
        "M1": HighlightClass.dimmed,
        "M2": HighlightClass.emphasized,
        "M3": HighlightClass.dimmed,
    }


def test_at_most_one_subject_is_emphasized() -> None:
    state = _state()
    state.click("M1")
    state.pointer_enter("M3")

    emphasized = [
        subject_id
        for subject_id, highlight in state.highlights().items()
        if highlight is HighlightClass.emphasized
    ]

    assert emphasized == ["M1"]
    assert state.phase is SelectionPhase.selected_and_hovering_other


def test_hover_emphasizes_until_pointer_leaves() -> None:
    state = _state()

    entered = state.pointer_enter("M2")
    assert entered.phase is SelectionPhase.hovering
    assert entered.highlights["M2"] is HighlightClass.emphasized
    assert entered.highlights["M1"] is HighlightClass.dimmed

    left = state.pointer_leave("M2")
    assert left.phase is SelectionPhase.idle
    assert set(left.highlights.values()) == {HighlightClass.normal}


def test_leaving_a_subject_that_is_not_hovered_keeps_hover() -> None:
    state = _state()
    state.pointer_enter("M2")

    update = state.pointer_leave("M1")

    assert update.hovered_subject_id == "M2"


def test_hovering_the_selected_subject_stays_selected() -> None:
    state = _state()
    state.click("M1")

    update = state.pointer_enter("M1")

    assert update.phase is SelectionPhase.selected


def test_background_click_clears_selection_and_hover() -> None:
    state = _state()
    state.click("M1")
    state.pointer_enter("M2")

    update = state.click_background()

    assert update.phase is SelectionPhase.idle
    assert update.selected_subject_id is None
    assert update.hovered_subject_id is None
    assert update.tooltip is None


def test_pointer_move_builds_tooltip_for_nearest_hour() -> None:
    state = _state()
    values = [float(hour) * 2 for hour in range(24)]
    x, y = polar_to_xy(angle_for_hour(5.8), 120.0)

    update = state.pointer_move("M3", x, y, values)

    assert update.hovered_subject_id == "M3"
    assert update.tooltip is not None
    assert update.tooltip.subject_id == "M3"
    assert update.tooltip.hour == 6
    assert update.tooltip.value == 12.0

    cleared = state.pointer_leave("M3")
    assert cleared.tooltip is None


def test_unknown_subject_raises() -> None:
    state = _state()

    with pytest.raises(InvariantViolation):
        state.click("M9")
    with pytest.raises(InvariantViolation):
        state.highlight("M9")


def test_listeners_receive_every_transition() -> None:
    state = _state()
    received: list[HighlightUpdate] = []
    unsubscribe = state.subscribe(received.append)

    state.pointer_enter("M1")
    state.click("M1")
    unsubscribe()
    state.click_background()

    assert [update.phase for update in received] == [
        SelectionPhase.hovering,
        SelectionPhase.selected,
    ]


def test_bind_subjects_drops_vanished_selection() -> None:
    state = _state()
    state.click("M1")
    state.pointer_enter("M2")

    kept = state.bind_subjects(["M1", "M4"])
    assert kept.selected_subject_id == "M1"
    assert kept.hovered_subject_id is None

    dropped = state.bind_subjects(["M4"])
    assert dropped.selected_subject_id is None
    assert dropped.highlights == {"M4": HighlightClass.normal}


def test_single_subject_selection_is_emphasized() -> None:
    state = SelectionState(["M1"])

    state.click("M1")

    assert state.highlight("M1") is HighlightClass.emphasized


def test_derive_highlight_prefers_selection_over_hover() -> None:
    assert derive_highlight("M1", "M1", "M2") is HighlightClass.emphasized
    assert derive_highlight("M2", "M1", "M2") is HighlightClass.dimmed
    assert derive_highlight("M2", None, "M2") is HighlightClass.emphasized
    assert derive_highlight("M3", None, None) is HighlightClass.normal


def test_bind_subjects_keeps_hover_but_drops_stale_tooltip() -> None:
    state = _state()
    state.pointer_move("M2", *polar_to_xy(angle_for_hour(3), 90.0), [5.0] * 24)

    update = state.bind_subjects(["M1", "M2"])

    assert update.hovered_subject_id == "M2"
    assert update.tooltip is None
    assert state.tooltip is None
