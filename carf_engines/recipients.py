"""
carf_engines.recipients -- Executive observer selection.

Pure filter over executive observer rows.  An observer is copied on a
submitted approval when either:

* its company equals the request company, and its exception list is empty
  or contains the request type; or
* its company is the ``ALL`` marker, and the observer's own directory
  company equals the request company or its exception list contains the
  request type.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from carf_kernel.domain.approval import ALL_COMPANIES, CustomerRequest, ExecutiveObserver
from carf_kernel.domain.approvers import ApproverSet, dedup


def observer_matches(
    observer: ExecutiveObserver,
    request_company: str,
    request_type: str,
    own_company: str | None,
) -> bool:
    if observer.company == request_company:
        if observer.exceptions:
            return request_type in observer.exceptions
        return True
    if observer.company == ALL_COMPANIES:
        company_matches = bool(own_company) and own_company == request_company
        return company_matches or request_type in observer.exceptions
    return False


def select_executive_recipients(
    observers: Iterable[ExecutiveObserver],
    request: CustomerRequest,
    own_companies: Mapping[str, str],
) -> ApproverSet:
    """Identities of observers to copy for ``request``.

    Args:
        observers: Every executive observer row.
        request: The submitted request.
        own_companies: Directory company per observer identity, needed for
            ``ALL`` rows.

    Returns:
        Deduplicated identities in row order; empty when nobody matches.
    """
    return dedup(
        observer.identity
        for observer in observers
        if observer_matches(
            observer,
            request.company,
            request.request_type,
            own_companies.get(observer.identity),
        )
    )
