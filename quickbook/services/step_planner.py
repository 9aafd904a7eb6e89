"""
Wizard step planning.

The plan is computed once when a wizard opens.  A step whose input was
preselected by the caller is left out entirely; the three trailing steps
are always present, in fixed order.
"""

from __future__ import annotations

from quickbook.models import Preselection, StepDescriptor, StepId

_LABELS: dict[StepId, str] = {
    StepId.CLUB_SELECTION: "selectClub",
    StepId.DATE_TIME: "dateTime",
    StepId.COURT_SELECTION: "selectCourt",
    StepId.PRE_PAYMENT_CONFIRMATION: "confirmation",
    StepId.PAYMENT: "payment",
    StepId.FINAL_CONFIRMATION: "done",
}

_TRAILING = (
    StepId.PRE_PAYMENT_CONFIRMATION,
    StepId.PAYMENT,
    StepId.FINAL_CONFIRMATION,
)


def _step(step_id: StepId) -> StepDescriptor:
    return StepDescriptor(
        id=step_id,
        label=_LABELS[step_id],
        required=step_id is not StepId.FINAL_CONFIRMATION,
    )


def plan(preselected: Preselection) -> tuple[StepDescriptor, ...]:
    steps: list[StepId] = []
    if not preselected.club_id:
        steps.append(StepId.CLUB_SELECTION)
    if preselected.date_time is None:
        steps.append(StepId.DATE_TIME)
    if not preselected.court_id:
        steps.append(StepId.COURT_SELECTION)
    steps.extend(_TRAILING)
    return tuple(_step(s) for s in steps)
