"""UI shell: view state, presentation and API-driven controller."""

from .controller import CalendarUIController
from .presenter import (
    DEFAULT_EVENT_COLOR,
    EVENT_COLORS,
    DisplayEvent,
    EventDraft,
    draft_to_event_body,
    event_color,
    pick_date,
    to_display_event,
)
from .state import ModalState, UIState, View, reduce

__all__ = [
    "CalendarUIController",
    "DEFAULT_EVENT_COLOR",
    "EVENT_COLORS",
    "DisplayEvent",
    "EventDraft",
    "draft_to_event_body",
    "event_color",
    "pick_date",
    "to_display_event",
    "ModalState",
    "UIState",
    "View",
    "reduce",
]
