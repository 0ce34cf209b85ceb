from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    NOT_AUTHORITY = 200
    NOT_OWNER = 201
    INVALID_POINTS = 202
    INSUFFICIENT_POINTS = 203
    ALREADY_BURNED = 204


class LedgerServiceError(Exception):
    code: Optional[ErrorCode] = None


class NotAuthorityError(LedgerServiceError):
    code = ErrorCode.NOT_AUTHORITY


class RewardNotOwnedError(LedgerServiceError):
    code = ErrorCode.NOT_OWNER


class InvalidPointsError(LedgerServiceError):
    code = ErrorCode.INVALID_POINTS


class InsufficientPointsError(LedgerServiceError):
    code = ErrorCode.INSUFFICIENT_POINTS


class AlreadyBurnedError(LedgerServiceError):
    code = ErrorCode.ALREADY_BURNED


_ERRORS_BY_CODE: dict[ErrorCode, type[LedgerServiceError]] = {
    cls.code: cls
    for cls in (
        NotAuthorityError,
        RewardNotOwnedError,
        InvalidPointsError,
        InsufficientPointsError,
        AlreadyBurnedError,
    )
}


def error_for_code(code: ErrorCode, message: str = "") -> LedgerServiceError:
    return _ERRORS_BY_CODE[code](message or code.name)
