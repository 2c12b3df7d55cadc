"""
Tests for executive observer selection.
"""

from carf_engines.recipients import observer_matches, select_executive_recipients
from carf_kernel.domain.approval import ALL_COMPANIES, CustomerRequest, ExecutiveObserver

REQUEST = CustomerRequest(row_ref=3, request_type="NEW", company="ACME", maker="maker01")


class TestObserverMatches:
    def test_same_company_no_exceptions(self):
        assert observer_matches(ExecutiveObserver("E1", "ACME"), "ACME", "NEW", None)

    def test_same_company_exception_list_must_name_type(self):
        observer = ExecutiveObserver("E1", "ACME", exceptions=("CHANGE",))

        assert not observer_matches(observer, "ACME", "NEW", None)
        assert observer_matches(observer, "ACME", "CHANGE", None)

    def test_other_company_never_matches(self):
        assert not observer_matches(ExecutiveObserver("E1", "OTHER"), "ACME", "NEW", "ACME")

    def test_all_row_matches_own_company(self):
        observer = ExecutiveObserver("E1", ALL_COMPANIES, all_access=True)

        assert observer_matches(observer, "ACME", "NEW", "ACME")
        assert not observer_matches(observer, "ACME", "NEW", "OTHER")
        assert not observer_matches(observer, "ACME", "NEW", None)

    def test_all_row_matches_listed_type(self):
        observer = ExecutiveObserver("E1", ALL_COMPANIES, exceptions=("NEW",))

        assert observer_matches(observer, "ACME", "NEW", "OTHER")


class TestSelectExecutiveRecipients:
    def test_deduplicated_in_row_order(self):
        observers = [
            ExecutiveObserver("E2", "ACME"),
            ExecutiveObserver("E1", ALL_COMPANIES),
            ExecutiveObserver("E2", ALL_COMPANIES, exceptions=("NEW",)),
            ExecutiveObserver("E3", "OTHER"),
        ]

        recipients = select_executive_recipients(observers, REQUEST, {"E1": "ACME"})

        assert recipients == ("E2", "E1")

    def test_empty_when_nobody_matches(self):
        observers = [ExecutiveObserver("E3", "OTHER")]

        assert select_executive_recipients(observers, REQUEST, {}) == ()
