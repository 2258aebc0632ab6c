"""Event lifecycle: statuses, actions and the one table that links them."""

from enum import Enum

from .errors import InvalidTransition


class EventStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PUBLISHED = "PUBLISHED"


class EventAction(str, Enum):
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    PUBLISH = "PUBLISH"


TRANSITIONS: dict[tuple[EventStatus, EventAction], EventStatus] = {
    (EventStatus.DRAFT, EventAction.SUBMIT): EventStatus.SUBMITTED,
    (EventStatus.SUBMITTED, EventAction.APPROVE): EventStatus.APPROVED,
    (EventStatus.SUBMITTED, EventAction.REJECT): EventStatus.REJECTED,
    (EventStatus.APPROVED, EventAction.PUBLISH): EventStatus.PUBLISHED,
}

_VERBS = {
    EventAction.SUBMIT: "submitted",
    EventAction.APPROVE: "reviewed",
    EventAction.REJECT: "reviewed",
    EventAction.PUBLISH: "published",
}


def required_source(action: EventAction) -> EventStatus:
    for (source, candidate), _ in TRANSITIONS.items():
        if candidate == action:
            return source
    raise ValueError(f"Unknown action {action!r}")


def apply_transition(status: str, action: EventAction) -> EventStatus:
    """Return the status reached by ``action`` or raise ``InvalidTransition``."""

    try:
        current = EventStatus(status)
    except ValueError:
        raise InvalidTransition(f"Unknown event status {status}") from None
    target = TRANSITIONS.get((current, action))
    if target is None:
        source = required_source(action)
        raise InvalidTransition(f"Only {source.value} events can be {_VERBS[action]}")
    return target
