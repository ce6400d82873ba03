"""
Shared test fixtures.
"""

import pytest

from expense_reports.models.enums import Role
from expense_reports.notifications.stub import LogNotifier
from expense_reports.store.memory import InMemoryReportStore
from expense_reports.workflow.records import Principal
from expense_reports.workflow.submission import ReportWorkflow
from tests.factories import ADMIN_ID, OWNER_ID, STRANGER_ID, make_fields


@pytest.fixture
def owner():
    return Principal(id=OWNER_ID)


@pytest.fixture
def admin():
    return Principal(id=ADMIN_ID, role=Role.ADMIN)


@pytest.fixture
def stranger():
    return Principal(id=STRANGER_ID)


@pytest.fixture
def store():
    return InMemoryReportStore(
        roles={ADMIN_ID: Role.ADMIN},
        emails={OWNER_ID: "owner@example.com"},
    )


@pytest.fixture
def notifier():
    return LogNotifier()


@pytest.fixture
def workflow(store, notifier):
    return ReportWorkflow(store=store, notifier=notifier)


@pytest.fixture
async def submitted(workflow, owner, notifier, store):
    """A report with two items (10.00 and 25.00), submitted by the owner."""
    result = await workflow.submit_report(
        owner,
        [make_fields(1000, day=1), make_fields(2500, category="Parking", day=2)],
    )
    notifier.notified.clear()
    store.calls.clear()
    return result
