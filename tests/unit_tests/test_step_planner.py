"""Tests for wizard step planning."""

from itertools import product

import pytest

from quickbook.models import Preselection, StepId
from quickbook.services.step_planner import plan
from tests.mocks.models import make_preselection

TRAILING = [
    StepId.PRE_PAYMENT_CONFIRMATION,
    StepId.PAYMENT,
    StepId.FINAL_CONFIRMATION,
]


def _ids(preselected: Preselection) -> list[StepId]:
    return [step.id for step in plan(preselected)]


def test_nothing_preselected_plans_every_step():
    assert _ids(Preselection()) == [
        StepId.CLUB_SELECTION,
        StepId.DATE_TIME,
        StepId.COURT_SELECTION,
        *TRAILING,
    ]


@pytest.mark.parametrize("club, date_time, court", list(product([False, True], repeat=3)))
def test_preselected_steps_are_omitted_and_trailing_steps_kept(club, date_time, court):
    preselected = make_preselection(club=club, date_time=date_time, court_id="court-1" if court else None)
    ids = _ids(preselected)

    assert (StepId.CLUB_SELECTION in ids) is not club
    assert (StepId.DATE_TIME in ids) is not date_time
    assert (StepId.COURT_SELECTION in ids) is not court
    assert ids[-3:] == TRAILING


def test_club_and_date_preselected_starts_at_court_selection():
    ids = _ids(make_preselection())
    assert ids[0] is StepId.COURT_SELECTION


def test_only_final_confirmation_is_optional():
    steps = plan(Preselection())
    assert [s.id for s in steps if not s.required] == [StepId.FINAL_CONFIRMATION]
    assert all(s.label for s in steps)


def test_plan_is_immutable_value():
    steps = plan(Preselection())
    assert isinstance(steps, tuple)
    assert plan(Preselection()) == steps
