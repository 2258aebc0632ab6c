import pytest

from campusops.errors import InvalidTransition
from campusops.lifecycle import TRANSITIONS, EventAction, EventStatus, apply_transition

ORDER = [
    EventStatus.DRAFT,
    EventStatus.SUBMITTED,
    EventStatus.APPROVED,
    EventStatus.PUBLISHED,
]


def test_happy_path_runs_draft_to_published():
    status = EventStatus.DRAFT
    for action in (EventAction.SUBMIT, EventAction.APPROVE, EventAction.PUBLISH):
        status = apply_transition(status.value, action)
    assert status is EventStatus.PUBLISHED


def test_reject_is_only_reachable_from_submitted():
    assert apply_transition("SUBMITTED", EventAction.REJECT) is EventStatus.REJECTED
    with pytest.raises(InvalidTransition):
        apply_transition("DRAFT", EventAction.REJECT)


def test_transitions_never_move_backwards():
    rank = {status: i for i, status in enumerate(ORDER)}
    rank[EventStatus.REJECTED] = rank[EventStatus.APPROVED]
    for (source, _), target in TRANSITIONS.items():
        assert rank[target] == rank[source] + 1


@pytest.mark.parametrize("status", [s.value for s in EventStatus if s is not EventStatus.DRAFT])
def test_submit_outside_draft_names_required_state(status):
    with pytest.raises(InvalidTransition) as exc:
        apply_transition(status, EventAction.SUBMIT)
    assert exc.value.message == "Only DRAFT events can be submitted"
    assert exc.value.status_code == 400


def test_publish_requires_approved():
    with pytest.raises(InvalidTransition) as exc:
        apply_transition("SUBMITTED", EventAction.PUBLISH)
    assert "APPROVED" in exc.value.message


@pytest.mark.parametrize("status", ["REJECTED", "PUBLISHED"])
@pytest.mark.parametrize("action", list(EventAction))
def test_terminal_states_refuse_every_action(status, action):
    with pytest.raises(InvalidTransition):
        apply_transition(status, action)


def test_unknown_status_is_rejected():
    with pytest.raises(InvalidTransition):
        apply_transition("ARCHIVED", EventAction.SUBMIT)
