"""Error taxonomy shared by forms, actions, queries and views.

ValidationError never leaves the client side: it is raised before any store
call. StoreError covers everything the store reports (network, constraint,
missing row); NotFoundError and ConstraintViolation refine it so callers can
tell them apart without string matching.
"""

from typing import Dict, Optional


class OrderError(Exception):
    """Base class for order management errors."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError):
    """Input rejected at the form/query boundary; maps field -> message."""

    code = "validation"

    def __init__(self, errors: Dict[str, str], message: str = "Please correct the highlighted fields"):
        super().__init__(message)
        self.errors = dict(errors)

    def __str__(self) -> str:
        details = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        return f"{self.message} ({details})" if details else self.message


class StoreError(OrderError):
    """The remote store reported a failure."""

    code = "store"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConstraintViolation(StoreError):
    """The store rejected the data (constraint or type violation)."""

    code = "constraint"


class NotFoundError(StoreError):
    """No row matched the requested id."""

    code = "not_found"

    def __init__(self, order_id: str):
        super().__init__(f"Order with ID {order_id} not found.", status_code=404)
        self.order_id = order_id
