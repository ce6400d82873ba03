"""
Report status state machine and permission table.

    Action          Owner/submitted  Owner/rejected  Owner/approved  Admin
    view            yes              yes             yes             yes
    edit items      yes              yes             no              yes
    delete report   yes              yes             no              no
    approve/reject  no               no              no              only from submitted

Anyone else may do nothing. An admin who owns a report acts as admin.

Transitions:
    owner edit   -> submitted (forces re-review)
    admin edit   -> status unchanged
    approve      submitted -> approved
    reject       submitted -> rejected
"""

from typing import FrozenSet

from expense_reports.models.enums import Action, Actor, ReportStatus
from expense_reports.workflow.errors import PermissionDenied
from expense_reports.workflow.records import Principal, Report

_OWNER_ACTIONS: dict[ReportStatus, FrozenSet[Action]] = {
    ReportStatus.SUBMITTED: frozenset({Action.VIEW, Action.EDIT, Action.DELETE}),
    ReportStatus.REJECTED: frozenset({Action.VIEW, Action.EDIT, Action.DELETE}),
    ReportStatus.APPROVED: frozenset({Action.VIEW}),
}

_ADMIN_ACTIONS: dict[ReportStatus, FrozenSet[Action]] = {
    ReportStatus.SUBMITTED: frozenset({Action.VIEW, Action.EDIT, Action.APPROVE, Action.REJECT}),
    ReportStatus.REJECTED: frozenset({Action.VIEW, Action.EDIT}),
    ReportStatus.APPROVED: frozenset({Action.VIEW, Action.EDIT}),
}

_REVIEW_OUTCOMES = {
    Action.APPROVE: ReportStatus.APPROVED,
    Action.REJECT: ReportStatus.REJECTED,
}


def actor_for(principal: Principal, report: Report) -> Actor:
    if principal.is_admin:
        return Actor.ADMIN
    if principal.id == report.owner_id:
        return Actor.OWNER
    return Actor.STRANGER


def allowed_actions(principal: Principal, report: Report) -> FrozenSet[Action]:
    actor = actor_for(principal, report)
    if actor == Actor.ADMIN:
        return _ADMIN_ACTIONS[report.status]
    if actor == Actor.OWNER:
        return _OWNER_ACTIONS[report.status]
    return frozenset()


def is_allowed(principal: Principal, report: Report, action: Action) -> bool:
    return action in allowed_actions(principal, report)


def require(principal: Principal, report: Report, action: Action) -> Actor:
    """Raise PermissionDenied unless the principal may perform the action now."""
    actor = actor_for(principal, report)
    if not is_allowed(principal, report, action):
        raise PermissionDenied(
            action.value,
            f"{actor.value} may not {action.value} a report with status '{report.status.value}'",
        )
    return actor


def status_after_edit(principal: Principal, report: Report) -> ReportStatus:
    """Owner edits send the report back for review; admin edits keep its status."""
    require(principal, report, Action.EDIT)
    if principal.is_admin:
        return report.status
    return ReportStatus.SUBMITTED


def status_after_review(principal: Principal, report: Report, action: Action) -> ReportStatus:
    if action not in _REVIEW_OUTCOMES:
        raise ValueError(f"{action.value} is not a review action")
    require(principal, report, action)
    return _REVIEW_OUTCOMES[action]
