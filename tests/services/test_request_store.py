"""
Tests for versioned request persistence.
"""

from datetime import UTC, datetime

import pytest

from carf_kernel.domain.approval import RequestPatch, RequestStatus, Tier, TierStamp
from carf_kernel.exceptions import InvalidRequestTransitionError, RequestNotFoundError, StaleRequestError
from carf_kernel.services.request_store import RequestStore

STAMPED_AT = datetime(2024, 1, 5, 10, 0, tzinfo=UTC)


class TestCreate:
    def test_create_assigns_row_ref_and_version(self, seed, session):
        row_ref = seed.request(status=RequestStatus.DRAFT)

        request = RequestStore(session).load(row_ref)

        assert row_ref is not None
        assert request.version == 1
        assert request.status == RequestStatus.DRAFT
        assert request.details.sold_to_party == "Acme Trading"
        assert request.created_at is not None
        assert request.created_at.tzinfo is not None


class TestSave:
    def test_partial_update_increments_version(self, seed, session):
        row_ref = seed.request(status=RequestStatus.DRAFT)
        store = RequestStore(session)

        saved = store.save(
            row_ref,
            RequestPatch(
                status=RequestStatus.PENDING,
                next_approver=("A", "B"),
                stamps=((Tier.FIRST, TierStamp("A", STAMPED_AT, "Alice")),),
            ),
            expected_version=1,
        )

        assert saved.version == 2
        assert saved.status == RequestStatus.PENDING
        assert saved.next_approver == ("A", "B")
        assert saved.tier1 == TierStamp("A", STAMPED_AT, "Alice")
        assert saved.details.tin == "123-456-789"

    def test_unstamped_patch_clears_tier_columns_together(self, seed, session):
        row_ref = seed.request(status=RequestStatus.DRAFT)
        store = RequestStore(session)
        store.save(row_ref, RequestPatch(stamps=((Tier.SECOND, TierStamp("B", STAMPED_AT)),)), 1)

        saved = store.save(row_ref, RequestPatch(stamps=((Tier.SECOND, TierStamp("B", None)),)), 2)

        assert saved.tier2 == TierStamp()

    def test_remarks_set_and_cleared(self, seed, session):
        row_ref = seed.request(status=RequestStatus.DRAFT)
        store = RequestStore(session)

        assert store.save(row_ref, RequestPatch(remarks="missing TIN"), 1).remarks == "missing TIN"
        assert store.save(row_ref, RequestPatch(clear_remarks=True), 2).remarks is None

    def test_stale_version_rejected(self, seed, session):
        row_ref = seed.request(status=RequestStatus.DRAFT)
        store = RequestStore(session)
        store.save(row_ref, RequestPatch(status=RequestStatus.PENDING), 1)

        with pytest.raises(StaleRequestError) as exc_info:
            store.save(row_ref, RequestPatch(status=RequestStatus.CANCELLED), 1)

        assert exc_info.value.expected_version == 1
        assert store.load(row_ref).status == RequestStatus.PENDING

    def test_missing_row(self, session_factory, session):
        with pytest.raises(RequestNotFoundError):
            RequestStore(session).save(404, RequestPatch(status=RequestStatus.PENDING), 1)

    def test_stale_save_is_logged(self, seed, session, captured_logs):
        row_ref = seed.request(status=RequestStatus.DRAFT)

        with pytest.raises(StaleRequestError):
            RequestStore(session).save(row_ref, RequestPatch(remarks="x"), 5)

        (record,) = [r for r in captured_logs() if r["message"] == "customer_request_stale"]
        assert record["logger"] == "carf.services.request_store"
        assert record["expected_version"] == 5


class TestTransition:
    def test_allowed_transition_is_saved(self, seed, session):
        store = RequestStore(session)
        request = store.load(seed.request(status=RequestStatus.DRAFT))

        saved = store.transition(request, RequestPatch(status=RequestStatus.PENDING), "submit")

        assert saved.status == RequestStatus.PENDING
        assert saved.version == request.version + 1

    def test_disallowed_transition_writes_nothing(self, seed, session):
        store = RequestStore(session)
        request = store.load(seed.request(status=RequestStatus.DRAFT))

        with pytest.raises(InvalidRequestTransitionError) as exc_info:
            store.transition(request, RequestPatch(status=RequestStatus.APPROVED), "approve")

        assert exc_info.value.row_ref == request.row_ref
        assert store.load(request.row_ref) == request

    def test_patch_without_status_skips_the_check(self, seed, session):
        store = RequestStore(session)
        request = store.load(seed.request(status=RequestStatus.APPROVED))

        saved = store.transition(request, RequestPatch(remarks="noted"), "annotate")

        assert saved.remarks == "noted"
        assert saved.status == RequestStatus.APPROVED
