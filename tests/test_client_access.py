import pytest

from client.access import (
    INCOMPLETE_PROFILE_MESSAGE,
    UNAPPROVED_MESSAGE,
    AccessGate,
    AccessState,
    evaluate,
    is_profile_complete,
)
from client.types import UserProfile
from conftest import APPROVED_USER


def test_no_user_is_unapproved():
    assert evaluate(None) is AccessState.UNAPPROVED


def test_complete_approved_user():
    user = UserProfile.model_validate(APPROVED_USER)
    assert evaluate(user) is AccessState.APPROVED_COMPLETE
    gate = AccessGate()
    assert gate.can_browse(user) and gate.can_download(user) and gate.can_modify(user)
    assert gate.block_message(AccessState.APPROVED_COMPLETE) is None


@pytest.mark.parametrize("field", ["department", "level", "semester", "phone", "address"])
def test_whitespace_counts_as_missing(field):
    user = {**APPROVED_USER, field: "   "}
    assert not is_profile_complete(user)
    assert evaluate(user) is AccessState.APPROVED_INCOMPLETE_PROFILE


def test_approval_is_checked_before_profile():
    user = {"isApproved": False, "department": ""}
    assert evaluate(user) is AccessState.UNAPPROVED
    assert AccessGate.block_message(evaluate(user)) == UNAPPROVED_MESSAGE


def test_incomplete_profile_blocks_browsing_by_default():
    user = {**APPROVED_USER, "address": None}
    gate = AccessGate()
    assert not gate.can_browse(user)
    assert gate.can_download(user)
    assert not gate.can_modify(user)
    assert gate.block_message(gate.state(user)) == INCOMPLETE_PROFILE_MESSAGE


def test_incomplete_profile_browsing_can_be_allowed():
    user = {**APPROVED_USER, "phone": ""}
    gate = AccessGate(block_browse_on_incomplete_profile=False)
    assert gate.can_browse(user)
    assert not gate.can_modify(user)


def test_gate_accepts_snake_case_dicts_and_does_not_mutate():
    user = {"is_approved": True, "department": "cs", "level": "100", "semester": "first",
            "phone": "1", "address": "x"}
    snapshot = dict(user)
    assert evaluate(user) is AccessState.APPROVED_COMPLETE
    assert user == snapshot
