"""
Tests for NotificationDispatcher: per-recipient delivery, failure
isolation, the notification log and executive fan-out.
"""

from sqlalchemy import select

from carf_kernel.models.notification import NotificationLogModel
from carf_kernel.selectors.request_selector import RequestSelector
from carf_services.notification_dispatcher import EXECUTIVE_KIND, NotificationDispatcher
from tests.conftest import RecordingTransport


def make_dispatcher(session, transport, clock):
    return NotificationDispatcher(session, transport, clock=clock, global_url="http://carf")


class TimeoutForB(RecordingTransport):
    def send(self, recipient, payload):
        if recipient == "B":
            raise TimeoutError("read timed out")
        super().send(recipient, payload)


class TestNotify:
    def test_one_send_per_recipient(self, seed, session, transport, clock):
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify(
            request, ("B", "C", "B"), for_final_approval=False, return_flag=False,
        )

        assert transport.recipients == ["B", "C"]
        assert report.success
        assert report.delivered == ("B", "C")
        assert transport.sent[0][1]["approvalValue"] == "B"
        assert transport.sent[0][1]["globalUrl"] == "http://carf"

    def test_failure_does_not_stop_other_recipients(self, seed, session, clock, captured_logs):
        transport = RecordingTransport(fail_for={"B"})
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify(
            request, ("B", "C"), for_final_approval=False, return_flag=False,
        )

        assert transport.recipients == ["C"]
        assert report.failed == (("B", "mailbox unavailable"),)
        assert not report.success
        assert any(r["message"] == "notification_delivery_failed" for r in captured_logs())

    def test_every_attempt_logged(self, seed, session, clock):
        transport = RecordingTransport(fail_for={"B"})
        request = RequestSelector(session).get(seed.request())

        make_dispatcher(session, transport, clock).notify(
            request, ("B", "C"), for_final_approval=True, return_flag=True,
            remarks="missing TIN", kind="return",
        )

        rows = session.execute(
            select(NotificationLogModel).order_by(NotificationLogModel.recipient)
        ).scalars().all()
        assert [(r.recipient, r.delivered, r.kind) for r in rows] == [
            ("B", False, "return"), ("C", True, "return"),
        ]
        assert rows[0].error == "mailbox unavailable"
        assert rows[1].is_return is True
        assert rows[1].sent_at == clock.now()

    def test_unexpected_transport_error_is_recorded(self, seed, session, clock):
        transport = TimeoutForB()
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify(
            request, ("B", "C"), for_final_approval=False, return_flag=False,
        )

        assert transport.recipients == ["C"]
        assert report.failed == (("B", "TimeoutError: read timed out"),)
        rows = session.execute(
            select(NotificationLogModel).order_by(NotificationLogModel.recipient)
        ).scalars().all()
        assert [(r.recipient, r.delivered) for r in rows] == [("B", False), ("C", True)]
        assert rows[0].error == "TimeoutError: read timed out"

    def test_no_recipients_is_skipped(self, seed, session, transport, clock):
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify(
            request, (), for_final_approval=False, return_flag=False,
        )

        assert report.skipped
        assert transport.sent == []

    def test_return_payload(self, seed, session, transport, clock):
        request = RequestSelector(session).get(seed.request())

        make_dispatcher(session, transport, clock).notify(
            request, ("maker01",), for_final_approval=False, return_flag=True,
            remarks="missing TIN",
        )

        payload = transport.sent[0][1]
        assert payload["return"] == 0
        assert payload["remarks"] == "missing TIN"


class TestNotifyExecutives:
    def test_matching_observers_copied(self, seed, session, transport, clock):
        seed.user("E1", approver=False, company="ACME")
        seed.user("E9", approver=False, company="OTHER")
        seed.observer("E1")
        seed.observer("E9")
        seed.observer("E2", company="ACME")
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify_executives(request)

        assert report.kind == EXECUTIVE_KIND
        assert sorted(transport.recipients) == ["E1", "E2"]
        assert all(payload["alreadyemail"] == 1 for _, payload in transport.sent)

    def test_empty_fanout_logged(self, seed, session, transport, clock, captured_logs):
        request = RequestSelector(session).get(seed.request())

        report = make_dispatcher(session, transport, clock).notify_executives(request)

        assert report.skipped
        assert any(r["message"] == "executive_fanout_empty" for r in captured_logs())
