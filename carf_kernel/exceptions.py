"""
Typed exception hierarchy for the CARF approval kernel.

Every error a caller may need to react to has its own class, a static
machine-readable ``code`` and structured attributes.  Callers catch by type
and read attributes; they never parse message text.

    CarfKernelError (base)
    |
    +-- ConfigurationError
    |   +-- ApprovalMatrixNotFoundError
    |   +-- ClassificationCodeNotFoundError
    |
    +-- AuthorizationError
    |   +-- NotAuthorizedError
    |   +-- ActorNotFoundError
    |
    +-- RequestError
    |   +-- RequestNotFoundError
    |   +-- RequestAlreadyResolvedError
    |   +-- InvalidRequestTransitionError
    |   +-- MissingAttachmentsError
    |   +-- MissingRowReferenceError
    |
    +-- ConcurrencyError
    |   +-- StaleRequestError
    |
    +-- DeliveryError
        +-- NotificationDeliveryError
        +-- DownstreamSubmissionError

Category        | Code                          | When Raised
----------------|-------------------------------|----------------------------------
Configuration   | APPROVAL_MATRIX_NOT_FOUND     | No matrix row for (type, company)
                | CLASSIFICATION_CODE_NOT_FOUND | No downstream codes for type
Authorization   | NOT_AUTHORIZED                | Actor not eligible for the action
                | ACTOR_NOT_FOUND               | Identity unknown to the directory
Request         | REQUEST_NOT_FOUND             | Row reference does not exist
                | REQUEST_ALREADY_RESOLVED      | Action on a terminal request
                | INVALID_REQUEST_TRANSITION    | Action not allowed from status
                | MISSING_ATTACHMENTS           | Submit without attachments
                | MISSING_ROW_REFERENCE         | Downstream submit without '#'
Concurrency     | STALE_REQUEST                 | Version moved under the caller
Delivery        | NOTIFICATION_DELIVERY_FAILED  | Transport rejected a message
                | DOWNSTREAM_SUBMISSION_FAILED  | Downstream system rejected record

Configuration, authorization, request and concurrency errors are fatal to
the action and are raised before any write.  Delivery errors happen after
the status write and are reported as partial success by the orchestrator.
"""


class CarfKernelError(Exception):
    """
    Base exception for all CARF kernel errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "CARF_KERNEL_ERROR"


# Configuration errors


class ConfigurationError(CarfKernelError):
    """Base exception for missing or inconsistent reference data."""

    code: str = "CONFIGURATION_ERROR"


class ApprovalMatrixNotFoundError(ConfigurationError):
    """No approval matrix row for the exact (request type, company) pair."""

    code: str = "APPROVAL_MATRIX_NOT_FOUND"

    def __init__(self, request_type: str, company: str):
        self.request_type = request_type
        self.company = company
        super().__init__(
            f"Approval matrix not found for request type {request_type!r} "
            f"and company {company!r}"
        )


class ClassificationCodeNotFoundError(ConfigurationError):
    """No downstream classification codes for a request type."""

    code: str = "CLASSIFICATION_CODE_NOT_FOUND"

    def __init__(self, request_type: str):
        self.request_type = request_type
        super().__init__(
            f"Downstream classification codes not found for request type "
            f"{request_type!r}"
        )


# Authorization errors


class AuthorizationError(CarfKernelError):
    """Base exception for actor eligibility failures."""

    code: str = "AUTHORIZATION_ERROR"


class NotAuthorizedError(AuthorizationError):
    """Actor is not eligible to perform the action on this request."""

    code: str = "NOT_AUTHORIZED"

    def __init__(self, actor_id: str, row_ref: int | None, action: str, reason: str):
        self.actor_id = actor_id
        self.row_ref = row_ref
        self.action = action
        self.reason = reason
        super().__init__(
            f"Not authorized: {actor_id} cannot {action} request {row_ref} ({reason})"
        )


class ActorNotFoundError(AuthorizationError):
    """Identity is unknown to the actor directory."""

    code: str = "ACTOR_NOT_FOUND"

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Actor not found: {actor_id}")


# Request errors


class RequestError(CarfKernelError):
    """Base exception for customer request errors."""

    code: str = "REQUEST_ERROR"


class RequestNotFoundError(RequestError):
    """Customer request with given row reference was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, row_ref: int):
        self.row_ref = row_ref
        super().__init__(f"Customer request not found: {row_ref}")


class RequestAlreadyResolvedError(RequestError):
    """Request is in a terminal status for the current cycle."""

    code: str = "REQUEST_ALREADY_RESOLVED"

    def __init__(self, row_ref: int, status: str):
        self.row_ref = row_ref
        self.status = status
        super().__init__(f"Customer request {row_ref} is already resolved ({status})")


class InvalidRequestTransitionError(RequestError):
    """Action is not allowed from the request's current status."""

    code: str = "INVALID_REQUEST_TRANSITION"

    def __init__(self, row_ref: int, from_status: str, action: str):
        self.row_ref = row_ref
        self.from_status = from_status
        self.action = action
        super().__init__(
            f"Cannot {action} customer request {row_ref} from status {from_status!r}"
        )


class MissingAttachmentsError(RequestError):
    """Maker tried to submit without the required attachments."""

    code: str = "MISSING_ATTACHMENTS"

    def __init__(self, row_ref: int):
        self.row_ref = row_ref
        super().__init__(
            f"Customer request {row_ref} has no required attachments"
        )


class MissingRowReferenceError(RequestError):
    """Downstream submission attempted for a request without a row reference."""

    code: str = "MISSING_ROW_REFERENCE"

    def __init__(self, request_type: str):
        self.request_type = request_type
        super().__init__(
            f"Customer request of type {request_type!r} has no row reference"
        )


# Concurrency errors


class ConcurrencyError(CarfKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleRequestError(ConcurrencyError):
    """The request changed since it was read; reload and retry."""

    code: str = "STALE_REQUEST"

    def __init__(self, row_ref: int, expected_version: int):
        self.row_ref = row_ref
        self.expected_version = expected_version
        super().__init__(
            f"Stale state on customer request {row_ref}: expected version "
            f"{expected_version} was modified by another action, retry"
        )


# Delivery errors


class DeliveryError(CarfKernelError):
    """Base exception for side effects that run after the status write."""

    code: str = "DELIVERY_ERROR"


class NotificationDeliveryError(DeliveryError):
    """Messaging transport failed to deliver to one recipient."""

    code: str = "NOTIFICATION_DELIVERY_FAILED"

    def __init__(self, recipient: str, reason: str):
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Notification to {recipient} failed: {reason}")


class DownstreamSubmissionError(DeliveryError):
    """Downstream master-data system rejected or did not receive the record."""

    code: str = "DOWNSTREAM_SUBMISSION_FAILED"

    def __init__(self, row_ref: int | None, reason: str, status_code: int | None = None):
        self.row_ref = row_ref
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Downstream submission of request {row_ref} failed: {reason}")
