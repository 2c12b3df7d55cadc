"""
End-to-end workflow tests through ApprovalWorkflow.

Each action runs the full pipeline against SQLite with recording fakes for
the messaging transport and the downstream client:

    persist + commit -> notify -> submit (on final) -> executive fan-out
"""

import pytest
from sqlalchemy import func, select

from carf_kernel.db.engine import session_scope
from carf_kernel.domain.approval import RequestPatch, RequestStatus
from carf_kernel.exceptions import NotAuthorizedError, StaleRequestError
from carf_kernel.models.notification import NotificationLogModel
from carf_kernel.selectors.request_selector import RequestSelector
from carf_kernel.services.request_store import RequestStore
from carf_services.workflow_orchestrator import PARTIAL_SUCCESS_WARNING, ApprovalWorkflow
from tests.conftest import MAKER, FakeDownstreamClient, RecordingTransport, default_details


@pytest.fixture
def workflow(session_factory, transport, downstream, clock):
    return ApprovalWorkflow(session_factory, transport, downstream, clock=clock)


def load(session_factory, row_ref):
    with session_scope(session_factory) as s:
        return RequestSelector(s).get(row_ref)


class TestApprovalScenarios:
    def test_tier3_before_tier2(self, standard_chain, seed, workflow, session_factory, transport, downstream):
        """A -> C -> B: APPROVED on B, submitted once."""
        row_ref = seed.request(matrix=standard_chain)

        first = workflow.approve(row_ref, "A")
        assert first.request.status == RequestStatus.PENDING
        assert set(first.request.next_approver) == {"B", "C"}
        assert transport.recipients == ["B", "C"]

        second = workflow.approve(row_ref, "C")
        assert second.request.status == RequestStatus.PENDING
        assert second.request.final_approver == ("B",)
        assert not second.submitted

        third = workflow.approve(row_ref, "B")
        assert third.request.status == RequestStatus.APPROVED
        assert third.submitted
        assert len(downstream.calls) == 1
        assert transport.recipients[-1] == MAKER
        assert transport.sent[-1][1]["forfinalapproval"] == 1

    def test_tier2_before_tier3(self, standard_chain, seed, workflow, downstream):
        """A -> B -> C: B leaves C as final; C approves."""
        row_ref = seed.request(matrix=standard_chain)
        workflow.approve(row_ref, "A")

        after_b = workflow.approve(row_ref, "B")
        assert after_b.request.status == RequestStatus.PENDING
        assert after_b.request.final_approver == ("C",)

        after_c = workflow.approve(row_ref, "C")
        assert after_c.request.status == RequestStatus.APPROVED
        assert len(downstream.calls) == 1

    def test_outsider_rejected_without_side_effects(self, standard_chain, seed, workflow, session_factory, transport):
        row_ref = seed.request(matrix=standard_chain)
        before = load(session_factory, row_ref)

        with pytest.raises(NotAuthorizedError):
            workflow.approve(row_ref, "D")

        assert load(session_factory, row_ref) == before
        assert transport.sent == []

    def test_return_notifies_maker_with_remarks(self, standard_chain, seed, workflow, session_factory, transport):
        row_ref = seed.request(matrix=standard_chain)
        workflow.approve(row_ref, "A")
        stamped = load(session_factory, row_ref)

        outcome = workflow.return_request(row_ref, "B", "missing TIN")

        stored = load(session_factory, row_ref)
        assert stored.status == RequestStatus.RETURN_TO_MAKER
        assert stored.remarks == "missing TIN"
        assert (stored.tier1, stored.tier2, stored.tier3) == (stamped.tier1, stamped.tier2, stamped.tier3)
        recipient, payload = transport.sent[-1]
        assert recipient == MAKER
        assert payload["remarks"] == "missing TIN"
        assert payload["return"] == 0
        assert payload["forfinalapproval"] == 0
        assert outcome.notification.success

    def test_return_to_maker_flags_final(self, standard_chain, seed, workflow, transport):
        row_ref = seed.request(matrix=standard_chain)

        workflow.return_to_maker(row_ref, "A", "incomplete")

        assert transport.sent[-1][1]["forfinalapproval"] == 1

    def test_cancel_sends_nothing(self, standard_chain, seed, workflow, transport):
        row_ref = seed.request(matrix=standard_chain)

        outcome = workflow.cancel(row_ref, MAKER)

        assert outcome.request.status == RequestStatus.CANCELLED
        assert outcome.notification is None
        assert transport.sent == []

    def test_maker_submission_round_trip(self, standard_chain, seed, workflow, transport):
        row_ref = seed.request(status=RequestStatus.DRAFT)

        outcome = workflow.submit_for_approval(row_ref, MAKER, has_required_attachments=True)

        assert outcome.request.status == RequestStatus.PENDING
        assert transport.recipients == ["A", "B", "C"]


class TestPartialSuccess:
    def test_downstream_failure_keeps_approved(self, standard_chain, seed, session_factory, transport, clock):
        seed.observer("E2", company="ACME")
        failing = FakeDownstreamClient(fail=True)
        workflow = ApprovalWorkflow(session_factory, transport, failing, clock=clock)
        row_ref = seed.request(matrix=standard_chain)
        workflow.approve(row_ref, "A")
        workflow.approve(row_ref, "B")

        outcome = workflow.approve(row_ref, "C")

        assert load(session_factory, row_ref).status == RequestStatus.APPROVED
        assert outcome.partial_success
        assert PARTIAL_SUCCESS_WARNING in outcome.warnings
        assert outcome.executive_notification is None
        assert "E2" not in transport.recipients
        assert len(failing.calls) == 1

    def test_executives_copied_after_submission(self, standard_chain, seed, workflow, transport):
        seed.observer("E2", company="ACME")
        row_ref = seed.request(matrix=standard_chain)
        for who in ("A", "B"):
            workflow.approve(row_ref, who)

        outcome = workflow.approve(row_ref, "C")

        assert outcome.executive_notification.delivered == ("E2",)
        assert transport.recipients[-1] == "E2"

    def test_notification_failure_does_not_block_submission(self, standard_chain, seed, session_factory, downstream, clock):
        transport = RecordingTransport(fail_for={MAKER})
        workflow = ApprovalWorkflow(session_factory, transport, downstream, clock=clock)
        row_ref = seed.request(matrix=standard_chain)
        for who in ("A", "B"):
            workflow.approve(row_ref, who)

        outcome = workflow.approve(row_ref, "C")

        assert outcome.submitted
        assert not outcome.notification.success
        assert any("Notification not delivered" in w for w in outcome.warnings)
        with session_scope(session_factory) as s:
            failed = s.execute(
                select(func.count()).select_from(NotificationLogModel)
                .where(NotificationLogModel.delivered.is_(False))
            ).scalar_one()
        assert failed == 1

    def test_unexpected_downstream_error_is_partial_success(self, standard_chain, seed, session_factory, transport, clock):
        seed.observer("E2", company="ACME")
        broken = FakeDownstreamClient(error=ConnectionError("socket closed"))
        workflow = ApprovalWorkflow(session_factory, transport, broken, clock=clock)
        row_ref = seed.request(matrix=standard_chain)
        for who in ("A", "B"):
            workflow.approve(row_ref, who)

        outcome = workflow.approve(row_ref, "C")

        assert load(session_factory, row_ref).status == RequestStatus.APPROVED
        assert outcome.partial_success
        assert PARTIAL_SUCCESS_WARNING in outcome.warnings
        assert outcome.executive_notification is None
        assert "E2" not in transport.recipients

    def test_unparseable_credit_limit_is_partial_success(self, standard_chain, seed, session_factory, transport, downstream, clock):
        workflow = ApprovalWorkflow(session_factory, transport, downstream, clock=clock)
        row_ref = seed.request(matrix=standard_chain, details=default_details(credit_limit="Infinity"))
        for who in ("A", "B"):
            workflow.approve(row_ref, who)

        outcome = workflow.approve(row_ref, "C")

        assert load(session_factory, row_ref).status == RequestStatus.APPROVED
        assert outcome.partial_success
        assert downstream.calls == []

    def test_unexpected_transport_error_does_not_block_submission(self, standard_chain, seed, session_factory, downstream, clock):
        transport = RecordingTransport(error=RuntimeError("relay crashed"))
        workflow = ApprovalWorkflow(session_factory, transport, downstream, clock=clock)
        row_ref = seed.request(matrix=standard_chain)
        for who in ("A", "B"):
            workflow.approve(row_ref, who)

        outcome = workflow.approve(row_ref, "C")

        assert outcome.request.status == RequestStatus.APPROVED
        assert outcome.submitted
        assert len(downstream.calls) == 1
        assert outcome.notification.failed == ((MAKER, "RuntimeError: relay crashed"),)
        assert any("Notification not delivered" in w for w in outcome.warnings)


class TestConcurrency:
    def test_concurrent_save_is_rejected(self, standard_chain, seed, session_factory, workflow):
        """A save against an outdated version fails and writes nothing."""
        row_ref = seed.request(matrix=standard_chain)
        stale = load(session_factory, row_ref)
        workflow.approve(row_ref, "A")

        with pytest.raises(StaleRequestError):
            with session_scope(session_factory) as s:
                RequestStore(s).save(row_ref, RequestPatch(status=RequestStatus.CANCELLED), stale.version)

        assert load(session_factory, row_ref).status == RequestStatus.PENDING


class TestLogging:
    def test_action_logged_with_context(self, standard_chain, seed, workflow, captured_logs):
        row_ref = seed.request(matrix=standard_chain)

        workflow.approve(row_ref, "A")

        records = [r for r in captured_logs() if r["message"] == "workflow_action_completed"]
        assert len(records) == 1
        assert records[0]["row_ref"] == str(row_ref)
        assert records[0]["actor_id"] == "A"
        assert records[0]["action"] == "approve"
        assert "correlation_id" in records[0]
