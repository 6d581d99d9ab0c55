from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from circadian_clock.errors import InvariantViolation
from circadian_clock.geometry.radial import nearest_hour

LOGGER = logging.getLogger(__name__)


class HighlightClass(str, Enum):
    normal = "normal"
    emphasized = "emphasized"
    dimmed = "dimmed"


class SelectionPhase(str, Enum):
    idle = "idle"
    hovering = "hovering"
    selected = "selected"
    selected_and_hovering_other = "selected_and_hovering_other"


@dataclass(frozen=True)
class TooltipPayload:
    subject_id: str
    hour: int
    value: float


@dataclass(frozen=True)
class HighlightUpdate:
    phase: SelectionPhase
    selected_subject_id: str | None
    hovered_subject_id: str | None
    highlights: dict[str, HighlightClass] = field(default_factory=dict)
    tooltip: TooltipPayload | None = None


def derive_highlight(
    subject_id: str,
    selected_subject_id: str | None,
    hovered_subject_id: str | None,
) -> HighlightClass:
    if selected_subject_id is not None:
        if subject_id == selected_subject_id:
            return HighlightClass.emphasized
        return HighlightClass.dimmed
    if hovered_subject_id is not None:
        if subject_id == hovered_subject_id:
            return HighlightClass.emphasized
        return HighlightClass.dimmed
    return HighlightClass.normal


Listener = Callable[[HighlightUpdate], None]


class SelectionState:
    """Click-latched selection and transient hover over the rendered subjects.

    Only the two identifiers are stored. Highlight classes are derived on
    every query, so a curve and its legend entry can never disagree.
    Every transition notifies subscribers with the full highlight mapping.
    """

    def __init__(self, subject_ids: Iterable[str] = ()) -> None:
        self._subjects: tuple[str, ...] = tuple(dict.fromkeys(str(item) for item in subject_ids))
        self._selected: str | None = None
        self._hovered: str | None = None
        self._tooltip: TooltipPayload | None = None
        self._listeners: list[Listener] = []

    @property
    def subject_ids(self) -> tuple[str, ...]:
        return self._subjects

    @property
    def selected_subject_id(self) -> str | None:
        return self._selected

    @property
    def hovered_subject_id(self) -> str | None:
        return self._hovered

    @property
    def tooltip(self) -> TooltipPayload | None:
        return self._tooltip

    @property
    def phase(self) -> SelectionPhase:
        if self._selected is None:
            return SelectionPhase.idle if self._hovered is None else SelectionPhase.hovering
        if self._hovered is None or self._hovered == self._selected:
            return SelectionPhase.selected
        return SelectionPhase.selected_and_hovering_other

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _require_known(self, subject_id: str) -> str:
        subject_id = str(subject_id)
        if subject_id not in self._subjects:
            raise InvariantViolation(f"unknown subject {subject_id!r}")
        return subject_id

    def highlight(self, subject_id: str) -> HighlightClass:
        return derive_highlight(self._require_known(subject_id), self._selected, self._hovered)

    def highlights(self) -> dict[str, HighlightClass]:
        return {
            subject_id: derive_highlight(subject_id, self._selected, self._hovered)
            for subject_id in self._subjects
        }

    def snapshot(self) -> HighlightUpdate:
        return HighlightUpdate(
            phase=self.phase,
            selected_subject_id=self._selected,
            hovered_subject_id=self._hovered,
            highlights=self.highlights(),
            tooltip=self._tooltip,
        )

    def _emit(self) -> HighlightUpdate:
        update = self.snapshot()
        LOGGER.debug(
            "selection transition: phase=%s selected=%s hovered=%s",
            update.phase.value,
            update.selected_subject_id,
            update.hovered_subject_id,
        )
        for listener in list(self._listeners):
            listener(update)
        return update

    def bind_subjects(self, subject_ids: Iterable[str]) -> HighlightUpdate:
        """Replace the subject set after a rebuild; vanished subjects lose selection and hover.

        The tooltip always clears: its value belongs to the series drawn before
        the rebuild. The next pointer move recomputes it from the new curves.
        """
        self._subjects = tuple(dict.fromkeys(str(item) for item in subject_ids))
        if self._selected not in self._subjects:
            self._selected = None
        if self._hovered not in self._subjects:
            self._hovered = None
        self._tooltip = None
        return self._emit()

    def pointer_enter(self, subject_id: str) -> HighlightUpdate:
        subject_id = self._require_known(subject_id)
        if self._hovered != subject_id:
            self._tooltip = None
        self._hovered = subject_id
        return self._emit()

    def pointer_move(
        self,
        subject_id: str,
        x: float,
        y: float,
        hourly_values: Sequence[float],
    ) -> HighlightUpdate:
        """Hover ``subject_id`` and point the tooltip at the hour nearest ``(x, y)``.

        ``(x, y)`` is relative to the clock centre in screen orientation and
        ``hourly_values`` are the 24 values the curve was drawn from.
        """
        subject_id = self._require_known(subject_id)
        hour = nearest_hour(x, y)
        self._hovered = subject_id
        self._tooltip = TooltipPayload(
            subject_id=subject_id,
            hour=hour,
            value=float(hourly_values[hour]),
        )
        return self._emit()

    def pointer_leave(self, subject_id: str) -> HighlightUpdate:
        subject_id = self._require_known(subject_id)
        if self._hovered == subject_id:
            self._hovered = None
            self._tooltip = None
        return self._emit()

    def click(self, subject_id: str) -> HighlightUpdate:
        subject_id = self._require_known(subject_id)
        if self._selected == subject_id:
            self._selected = None
        else:
            self._selected = subject_id
        return self._emit()

    def click_background(self) -> HighlightUpdate:
        self._selected = None
        self._hovered = None
        self._tooltip = None
        return self._emit()
