"""Order domain exceptions.

Raised by the workflows and the Service Layer when business rules are
violated.  Each carries a stable ``code`` and the HTTP status the API
layer renders it with; no transition is ever partially applied when one
of these is raised.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import DomainError


class OrderDomainError(DomainError):
    """Base class for order lifecycle errors."""

    code = "order_error"


class NotFound(OrderDomainError):
    """The requested order, slice, return or refund does not exist."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class Forbidden(OrderDomainError):
    """The actor is not allowed to perform this operation on this resource."""

    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN


class InvalidRequest(OrderDomainError):
    """The request is missing data a business rule requires (e.g. a reason)."""

    code = "invalid_request"
    http_status = status.HTTP_400_BAD_REQUEST


class InvalidTransition(OrderDomainError):
    """The attempted status edge is not declared for the current state."""

    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT


class ReturnWindowExpired(InvalidTransition):
    """The slice was delivered longer ago than the return window allows."""

    code = "return_window_expired"


class InvalidFinancials(OrderDomainError):
    """Amounts or rates would produce an inconsistent financial breakdown."""

    code = "invalid_financials"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class ProductUnavailable(OrderDomainError):
    """A checkout line references an inactive or out-of-stock product."""

    code = "product_unavailable"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateRequest(OrderDomainError):
    """An active cancellation or return request already exists."""

    code = "duplicate_request"
    http_status = status.HTTP_409_CONFLICT


class RequestAlreadyResolved(OrderDomainError):
    """The cancellation, return or refund was already decided."""

    code = "request_already_resolved"
    http_status = status.HTTP_409_CONFLICT


class Conflict(OrderDomainError):
    """A concurrent writer committed first; reload and retry."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT


class PaymentValidationFailed(OrderDomainError):
    """The payment collaborator rejected the method or did not answer in time."""

    code = "payment_validation_failed"
    http_status = status.HTTP_402_PAYMENT_REQUIRED


class ExternalSideEffectFailed(OrderDomainError):
    """A post-commit side effect failed.  Logged and retried, never surfaced."""

    code = "external_side_effect_failed"
    http_status = status.HTTP_502_BAD_GATEWAY
