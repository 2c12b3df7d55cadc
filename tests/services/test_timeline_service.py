"""
Tests for the timeline read model over stored requests.
"""

import pytest

from carf_engines.timeline import StepState
from carf_kernel.exceptions import RequestNotFoundError
from carf_services.approval_service import ApprovalService
from carf_services.timeline_service import timeline_for
from tests.conftest import MAKER


class TestTimelineFor:
    def test_names_from_directory(self, standard_chain, seed, session, clock):
        row_ref = seed.request(matrix=standard_chain)
        ApprovalService(session, clock).approve(row_ref, "A")

        timeline = timeline_for(session, row_ref)

        assert timeline.row_ref == row_ref
        assert timeline.steps[0].person == MAKER.upper()
        assert timeline.steps[1].person == "A"
        assert timeline.steps[1].state == StepState.DONE
        assert timeline.steps[1].date == clock.now()
        assert [s.state for s in timeline.steps[2:]] == [StepState.ACTIVE, StepState.ACTIVE]

    def test_missing_request(self, session_factory, session):
        with pytest.raises(RequestNotFoundError):
            timeline_for(session, 1)

    def test_chain_without_tier1(self, seed, session):
        seed.user(MAKER, approver=False)
        seed.user("B")
        seed.user("C")
        matrix = seed.matrix(tier2="B", tier3="C")
        row_ref = seed.request(matrix=matrix)

        timeline = timeline_for(session, row_ref)

        assert [s.state for s in timeline.steps[1:]] == [
            StepState.WAITING, StepState.ACTIVE, StepState.ACTIVE,
        ]
