"""Translation of component error codes into HTTP responses."""

from typing import NoReturn

from fastapi import HTTPException, status

from staffauth.domain.errors import ErrorCode, ValidationError

HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.ALREADY_CONFIGURED: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_CONFIGURED: status.HTTP_403_FORBIDDEN,
    ErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.CONFLICT: 422,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_OR_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def error_detail(
    code: ErrorCode, message: str, errors: tuple[ValidationError, ...] = ()
) -> dict[str, object]:
    return {
        "code": code.value,
        "message": message,
        "errors": [{"code": e.code, "message": e.message, "field": e.field} for e in errors],
    }


def raise_for_error(
    code: ErrorCode | None,
    message: str | None,
    errors: tuple[ValidationError, ...] = (),
) -> NoReturn:
    code = code or ErrorCode.VALIDATION
    raise HTTPException(
        status_code=HTTP_STATUS_BY_CODE[code],
        detail=error_detail(code, message or "Request failed", errors),
    )
