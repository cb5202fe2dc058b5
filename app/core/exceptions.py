"""
Portal-wide exception hierarchy.

Services, the workflow core and the HTTP gateway all raise these types.
Blueprints register handlers against them once and get consistent HTTP
status codes everywhere; client-side callers catch them directly.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="SupplierApplication", resource_id=app_id)
    raise ValidationError("supplier_name is required", details={"supplier_name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist or is not visible to the actor.

    Ownership violations use this too: a 403 would confirm that another
    supplier's application exists.

    Args:
        resource: Human-readable model/entity name (e.g. "SupplierApplication").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation.

    Client-side, the workflow core raises it before anything is sent to the
    store. Server-side, it means the data was well-formed but incomplete or
    violated a rule (missing documents, invalid email, ...).

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
                 Keys are field names; values are error descriptions.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when the target moved underneath the caller or a unique value is taken.

    Two flavours share the type:
    - stale state: ``field="status"`` and ``value`` is the status actually
      found (``expected`` carries what the caller believed it was);
    - duplicates: e.g. ``field="vendor_number"`` with the conflicting value.

    Maps to HTTP 409. Callers must re-fetch before acting again.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        *,
        expected: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        self.expected = expected
        if message is None:
            if expected is not None:
                message = f"{resource} {field} is {value!r}, expected {expected!r}"
            else:
                message = f"{resource} with {field}={value!r} already exists"
        super().__init__(message)


class PolicyError(Exception):
    """Raised when a transition is not allowed.

    Covers a role acting outside its stage, an action that does not exist
    for the current status, and a mandatory comment that was left blank.
    Nothing is mutated when this is raised.

    Args:
        action: The attempted transition action.
        status: The status the subject was in.
        reason: Human-readable explanation.
        role: The actor role, when the failure is role-related.
    """

    def __init__(
        self,
        action: str,
        status: str | None,
        reason: str,
        role: str | None = None,
    ) -> None:
        self.action = action
        self.status = status
        self.reason = reason
        self.role = role
        super().__init__(f"Cannot '{action}' from status '{status}': {reason}")

    @property
    def is_role_denial(self) -> bool:
        return self.role is not None


class TransportError(Exception):
    """Raised by the HTTP gateway on network failures and 5xx responses.

    Local state is never modified when this propagates.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
