"""
Pytest fixtures for the CARF approval workflow test suite.

Provides:
- In-memory SQLite engine and session factory (fresh schema per test)
- DeterministicClock
- Seed builders for users, approval matrices, reference data and requests
- Recording fakes for the messaging transport and the downstream client
- captured_logs fixture parsing the structured JSON log lines
"""

import json
import logging
from io import StringIO
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from carf_engines.approval import plan_submission
from carf_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from carf_kernel.domain.approval import (
    ALL_COMPANIES,
    ApprovalMatrixEntry,
    CustomerDetails,
    CustomerRequest,
    RequestStatus,
)
from carf_kernel.domain.approvers import normalize_approvers
from carf_kernel.domain.clock import DeterministicClock
from carf_kernel.domain.ports import SubmissionReceipt
from carf_kernel.exceptions import DownstreamSubmissionError, NotificationDeliveryError
from carf_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from carf_kernel.models.approval_matrix import ApprovalMatrixModel, BusinessCenterApproverModel
from carf_kernel.models.directory import (
    CustomerTypeSeriesModel,
    ExecutiveObserverModel,
    UserModel,
)
from carf_kernel.services.request_store import RequestStore

COMPANY = "ACME"
REQUEST_TYPE = "NEW"
MAKER = "maker01"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture carf logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, workflow):
            workflow.approve(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_action_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("carf")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session_factory() -> sessionmaker[Session]:
    """Fresh in-memory database with every table created."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Seed data
# =============================================================================


def default_details(**overrides: Any) -> CustomerDetails:
    values = dict(
        request_for="Activation",
        sold_to_party="Acme Trading",
        ship_to_party="Acme Warehouse",
        tin="123-456-789",
        sale_type="Wholesale",
        delivery_address="1 Pier Road",
        bill_address="2 Market Street",
        bu_center="BC01",
        terms="30D",
        credit_limit="1,000,000",
        bc_name="Exec Name",
        sao_name="GM Name",
        sup_name="SAO Name",
        is_mother="SOLD TO PARTY",
    )
    values.update(overrides)
    return CustomerDetails(**values)


class Seeder:
    """Writes reference rows and requests, committing each call."""

    def __init__(self, factory: sessionmaker[Session]):
        self._factory = factory

    def user(
        self,
        identity: str,
        *,
        approver: bool = True,
        compliance: bool = False,
        company: str = COMPANY,
        email: str | None = None,
        full_name: str | None = None,
    ) -> None:
        with session_scope(self._factory) as s:
            s.add(UserModel(
                identity=identity,
                full_name=full_name or identity.upper(),
                email=email if email is not None else f"{identity}@example.com",
                company=company,
                is_approver=approver,
                is_compliance_final_approver=compliance,
            ))

    def matrix(
        self,
        tier1="",
        tier2="",
        tier3="",
        *,
        request_type: str = REQUEST_TYPE,
        company: str = COMPANY,
    ) -> ApprovalMatrixEntry:
        entry = ApprovalMatrixEntry(
            request_type=request_type,
            company=company,
            tier1=normalize_approvers(tier1),
            tier2=normalize_approvers(tier2),
            tier3=normalize_approvers(tier3),
        )
        with session_scope(self._factory) as s:
            s.add(ApprovalMatrixModel.from_dto(entry))
        return entry

    def business_center(
        self,
        business_center: str,
        first_approver: str,
        *,
        company: str = COMPANY,
        exception: str | None = None,
        exception_approver: str | None = None,
    ) -> None:
        with session_scope(self._factory) as s:
            s.add(BusinessCenterApproverModel(
                business_center=business_center,
                company=company,
                first_approver=first_approver,
                exception_request_type=exception,
                exception_approver=exception_approver,
            ))

    def codes(self, request_type: str = REQUEST_TYPE) -> None:
        with session_scope(self._factory) as s:
            s.add(CustomerTypeSeriesModel(
                request_type=request_type,
                bos_type="Z001",
                bos_series="S100",
                bos_group="G10",
            ))

    def observer(
        self,
        identity: str,
        company: str = ALL_COMPANIES,
        exceptions: str | None = None,
    ) -> None:
        with session_scope(self._factory) as s:
            s.add(ExecutiveObserverModel(
                identity=identity,
                company=company,
                exceptions=exceptions,
                all_access=company == ALL_COMPANIES,
            ))

    def request(
        self,
        *,
        status: RequestStatus = RequestStatus.PENDING,
        matrix: ApprovalMatrixEntry | None = None,
        maker: str = MAKER,
        request_type: str = REQUEST_TYPE,
        company: str = COMPANY,
        details: CustomerDetails | None = None,
    ) -> int:
        """Insert a request; a PENDING one gets the submission hints of ``matrix``."""
        next_approver, final_approver = (), ()
        if status == RequestStatus.PENDING and matrix is not None:
            next_approver, final_approver = plan_submission(matrix)
        with session_scope(self._factory) as s:
            created = RequestStore(s).create(CustomerRequest(
                row_ref=None,
                request_type=request_type,
                company=company,
                maker=maker,
                status=status,
                next_approver=next_approver,
                final_approver=final_approver,
                details=details or default_details(),
            ))
        return created.row_ref


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def standard_chain(seed) -> ApprovalMatrixEntry:
    """Three single-approver tiers A -> B/C, a maker, an outsider and codes."""
    seed.user(MAKER, approver=False)
    for identity in ("A", "B", "C"):
        seed.user(identity)
    seed.user("D")
    seed.codes()
    return seed.matrix("A", "B", "C")


# =============================================================================
# Port fakes
# =============================================================================


class RecordingTransport:
    """MessagingTransport that records every send; optionally fails some.

    ``error`` is raised for every recipient when set.
    """

    channel = "fake"

    def __init__(self, fail_for: set[str] | None = None, error: Exception | None = None):
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.fail_for = set(fail_for or ())
        self.error = error

    def send(self, recipient: str, payload: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        if recipient in self.fail_for:
            raise NotificationDeliveryError(recipient, "mailbox unavailable")
        self.sent.append((recipient, payload))

    @property
    def recipients(self) -> list[str]:
        return [r for r, _ in self.sent]


class FakeDownstreamClient:
    """DownstreamClient that records records; ``fail`` makes it raise.

    ``error`` is raised instead of the typed submission error when set.
    """

    def __init__(self, fail: bool = False, success: bool = True, error: Exception | None = None):
        self.calls: list[tuple[dict[str, Any], str]] = []
        self.fail = fail
        self.success = success
        self.error = error

    def submit_record(self, payload: dict[str, Any], idempotency_key: str) -> SubmissionReceipt:
        self.calls.append((payload, idempotency_key))
        if self.error is not None:
            raise self.error
        if self.fail:
            raise DownstreamSubmissionError(payload.get("#"), "connection refused")
        return SubmissionReceipt(
            row_ref=payload["#"],
            success=self.success,
            idempotency_key=idempotency_key,
            reference="BOS-1" if self.success else None,
        )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def downstream() -> FakeDownstreamClient:
    return FakeDownstreamClient()
