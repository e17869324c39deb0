# campus_market/api/errors.py
from fastapi import HTTPException

from campus_market.domain.errors import (
    AccessDenied,
    MarketplaceError,
    NoValidItems,
    NotFound,
    PaymentFailed,
    StateConflict,
    ValidationFailed,
)

_STATUS_CODES = (
    (NotFound, 404),
    (AccessDenied, 403),
    (ValidationFailed, 400),
    (StateConflict, 409),
    (PaymentFailed, 402),
)


def to_http(exc: MarketplaceError) -> HTTPException:
    status_code = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 400)

    detail = {"error": exc.__class__.__name__, "message": exc.message}
    if isinstance(exc, NoValidItems):
        detail["removed"] = exc.reasons

    return HTTPException(status_code=status_code, detail=detail)
