# routes/responses.py
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from schemas.common import ActionResult
from services.exceptions import (
    AuthenticationRequired, DuplicateKeyError, InvalidStateTransition, NegativeStockError,
    NotFoundError, OverReceiveError, UnexpectedError, ValidationFailed,
)
from services.results import failure_result, format_validation_errors

# HTTP status for each failure code; anything unknown is a plain 400
STATUS_BY_CODE = {
    AuthenticationRequired.code: 401,
    NotFoundError.code: 404,
    ValidationFailed.code: 422,
    NegativeStockError.code: 409,
    OverReceiveError.code: 409,
    DuplicateKeyError.code: 409,
    InvalidStateTransition.code: 409,
    UnexpectedError.code: 500,
}

STOCK_ROLES = ("ADMIN", "WAREHOUSE", "SALESMAN")


def to_response(result: ActionResult) -> JSONResponse:
    status_code = 200 if result.success else STATUS_BY_CODE.get(result.error_code, 400)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result))


def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies and query params get the same failure shape as service results
    result = failure_result("Validation failed.", format_validation_errors(exc), ValidationFailed.code)
    return to_response(result)
