"""UI state machine for the calendar client.

Views move ``home <-> dashboard <-> calendar``; the create-event modal is a
sub-state of ``calendar``. Every navigation bumps ``generation`` so data
fetched for a view the user has already left is dropped by ``reduce``.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, Union

from .presenter import DisplayEvent, EventDraft


class View(str, Enum):
    HOME = "home"
    DASHBOARD = "dashboard"
    CALENDAR = "calendar"


class ModalState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True)
class UIState:
    view: View = View.HOME
    loading: bool = True
    is_authenticated: bool = False
    user: Optional[dict[str, Any]] = None
    calendars: tuple[dict[str, Any], ...] = ()
    events: tuple[DisplayEvent, ...] = ()
    modal: ModalState = ModalState.CLOSED
    draft: EventDraft = field(default_factory=EventDraft)
    generation: int = 0


# Actions


@dataclass(frozen=True)
class AuthStatusLoaded:
    is_authenticated: bool
    user: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Navigate:
    view: View


@dataclass(frozen=True)
class CalendarsLoaded:
    generation: int
    calendars: tuple[dict[str, Any], ...]


@dataclass(frozen=True)
class EventsLoaded:
    generation: int
    events: tuple[DisplayEvent, ...]


@dataclass(frozen=True)
class DateClicked:
    date: str


@dataclass(frozen=True)
class DraftChanged:
    name: str
    value: str


@dataclass(frozen=True)
class ModalCancelled:
    pass


@dataclass(frozen=True)
class EventSaved:
    pass


@dataclass(frozen=True)
class LoggedOut:
    pass


Action = Union[
    AuthStatusLoaded,
    Navigate,
    CalendarsLoaded,
    EventsLoaded,
    DateClicked,
    DraftChanged,
    ModalCancelled,
    EventSaved,
    LoggedOut,
]


def _navigate(state: UIState, view: View) -> UIState:
    if view is not View.HOME and not state.is_authenticated:
        return state
    return replace(
        state,
        view=view,
        modal=ModalState.CLOSED,
        generation=state.generation + 1,
    )


def reduce(state: UIState, action: Action) -> UIState:
    """Apply one action, returning the next state."""
    if isinstance(action, AuthStatusLoaded):
        state = replace(
            state,
            loading=False,
            is_authenticated=action.is_authenticated,
            user=action.user if action.is_authenticated else None,
        )
        if action.is_authenticated:
            return _navigate(state, View.DASHBOARD)
        return state

    if isinstance(action, Navigate):
        return _navigate(state, action.view)

    if isinstance(action, CalendarsLoaded):
        if action.generation != state.generation or state.view is not View.DASHBOARD:
            return state
        return replace(state, calendars=tuple(action.calendars))

    if isinstance(action, EventsLoaded):
        if action.generation != state.generation or state.view is not View.CALENDAR:
            return state
        return replace(state, events=tuple(action.events))

    if isinstance(action, DateClicked):
        if state.view is not View.CALENDAR:
            return state
        return replace(
            state,
            modal=ModalState.OPEN,
            draft=replace(state.draft, start=action.date, end=action.date),
        )

    if isinstance(action, DraftChanged):
        if action.name not in ("title", "start", "end", "description"):
            raise ValueError(f"Unknown form field: {action.name}")
        return replace(state, draft=replace(state.draft, **{action.name: action.value}))

    if isinstance(action, ModalCancelled):
        return replace(state, modal=ModalState.CLOSED)

    if isinstance(action, EventSaved):
        return replace(state, modal=ModalState.CLOSED, draft=EventDraft())

    if isinstance(action, LoggedOut):
        return UIState(loading=False, generation=state.generation + 1)

    raise TypeError(f"Unknown action: {action!r}")
