"""Tests for mentora_ai/state.py."""

from dataclasses import replace

import pytest

from mentora_ai.errors import InvalidTransitionError, StateInvariantError
from mentora_ai.models import DialogueStage, Role, StanceVersion, SubState
from mentora_ai.state import (
    add_to_history,
    can_transition,
    check_invariants,
    create_initial_state,
    format_principle_history,
    format_stance_history,
    increment_loop,
    last_model_message,
    set_summary,
    transition_to,
    update_principle,
    update_stance,
)


def test_create_initial_state():
    state = create_initial_state("Is taxation theft?")
    assert state.topic == "Is taxation theft?"
    assert state.stage == DialogueStage.AWAITING_START
    check_invariants(state)


def test_add_to_history_returns_new_state():
    state = create_initial_state("t")
    updated = add_to_history(state, Role.USER, "hello")
    assert state.conversation_history == ()
    assert updated.conversation_history[-1].role == Role.USER
    assert updated.conversation_history[-1].text == "hello"


def test_update_stance_appends_contiguous_versions():
    state = create_initial_state("t")
    state = update_stance(state, "Yes", "reason one")
    state = update_stance(state, "No", "reason two")
    assert [s.version for s in state.stance_history] == [1, 2]
    assert state.current_stance.position == "No"
    assert state.current_stance.established_at > 0


def test_update_principle_records_classification():
    state = update_principle(create_initial_state("t"), "Harm matters most", "TR_COMPLETE")
    assert state.current_principle.version == 1
    assert state.current_principle.classification == "TR_COMPLETE"


def test_increment_loop_only_increases():
    state = create_initial_state("t")
    assert increment_loop(increment_loop(state)).loop_count == 2


def test_set_summary_marks_discussion_satisfied():
    state = set_summary(create_initial_state("t"), "You moved from A to B.")
    assert state.summary == "You moved from A to B."
    assert state.discussion_satisfied is True


@pytest.mark.parametrize(
    "source,target",
    [
        (DialogueStage.AWAITING_START, DialogueStage.ASKING_STANCE),
        (DialogueStage.ASKING_STANCE, DialogueStage.CASE_CHALLENGE),
        (DialogueStage.CASE_CHALLENGE, DialogueStage.PRINCIPLE_REASONING),
        (DialogueStage.PRINCIPLE_REASONING, DialogueStage.CASE_CHALLENGE),
        (DialogueStage.PRINCIPLE_REASONING, DialogueStage.CLOSURE),
        (DialogueStage.CLOSURE, DialogueStage.ENDED),
        (DialogueStage.CASE_CHALLENGE, DialogueStage.CASE_CHALLENGE),
        (DialogueStage.CLOSURE, DialogueStage.ABORTED),
    ],
)
def test_allowed_transitions(source, target):
    assert can_transition(source, target)


@pytest.mark.parametrize(
    "source,target",
    [
        (DialogueStage.ASKING_STANCE, DialogueStage.CLOSURE),
        (DialogueStage.CASE_CHALLENGE, DialogueStage.CLOSURE),
        (DialogueStage.CLOSURE, DialogueStage.CASE_CHALLENGE),
        (DialogueStage.ENDED, DialogueStage.ENDED),
        (DialogueStage.ENDED, DialogueStage.ABORTED),
        (DialogueStage.ABORTED, DialogueStage.ASKING_STANCE),
    ],
)
def test_disallowed_transitions(source, target):
    assert not can_transition(source, target)


def test_transition_to_sets_sub_state():
    state = transition_to(create_initial_state("t"), DialogueStage.ASKING_STANCE, SubState.CLARIFY)
    assert state.stage == DialogueStage.ASKING_STANCE
    assert state.sub_state == SubState.CLARIFY


def test_transition_to_rejects_invalid_move():
    with pytest.raises(InvalidTransitionError):
        transition_to(create_initial_state("t"), DialogueStage.CLOSURE)


def test_last_model_message():
    state = create_initial_state("t")
    assert last_model_message(state) == ""
    state = add_to_history(state, Role.MODEL, "Question one")
    state = add_to_history(state, Role.USER, "Answer")
    assert last_model_message(state) == "Question one"


def test_format_stance_history_empty():
    assert format_stance_history(()) == "No previous stance recorded"
    assert format_principle_history(()) == "No previous principle recorded"


def test_format_stance_history_lists_versions():
    state = update_stance(update_stance(create_initial_state("t"), "Yes", "a"), "No", "b")
    text = format_stance_history(state.stance_history)
    assert text.splitlines() == ["V1: Yes (reason: a)", "V2: No (reason: b)"]


def test_check_invariants_rejects_negative_loop_count():
    state = replace(create_initial_state("t"), loop_count=-1)
    with pytest.raises(StateInvariantError):
        check_invariants(state)


def test_check_invariants_rejects_version_gap():
    state = replace(
        create_initial_state("t"),
        stance_history=(StanceVersion(1, "a", "", 1), StanceVersion(3, "b", "", 2)),
    )
    with pytest.raises(StateInvariantError):
        check_invariants(state)


def test_check_invariants_requires_stance_after_stage_one():
    state = replace(create_initial_state("t"), stage=DialogueStage.CASE_CHALLENGE)
    with pytest.raises(StateInvariantError):
        check_invariants(state)
