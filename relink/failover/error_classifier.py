"""
Classification of node errors and disconnects.

Error codes are read from an explicit ``code`` attribute, from ``errno``
(mapped through ``errno.errorcode``), and finally from the error text, so
OS-level socket errors and library errors carrying node-style codes are
treated the same way. Supervisor errors are read by their detail so the
node key never takes part in matching.
"""

import asyncio
import errno
import re
import socket
from typing import Any

from relink.connection.errors import ConnectionFailedError, ConnectionTimeoutError
from relink.connection.models import DisconnectReason

from .models import ErrorClass


AUTH_REASON_MARKERS = ("Unauthorized", "Invalid authorization")
AUTH_STATUS_PATTERN = re.compile(
    r"(?:\b(?:status(?: code)?|response|HTTP)\b\W{0,3}40[13]\b)|(?:\b40[13] (?:Unauthorized|Forbidden)\b)",
    re.IGNORECASE,
)
AUTH_STATUSES = {401, 403}
AUTH_ERROR_CODES = {"ECONNRESET"}
AUTH_CLOSE_CODES = {4001, 4003}

CONNECTIVITY_ERROR_CODES = {"ECONNREFUSED", "ENOTFOUND"}
CONNECTIVITY_MARKERS = ("Unable to connect",)

TIMEOUT_ERROR_CODES = {"ETIMEDOUT"}
TIMEOUT_MARKERS = ("timeout", "aborted due to timeout")

NO_PING_MARKER = "no ping"


def error_message(error: Any) -> str:
    if isinstance(error, ConnectionFailedError):
        return error.detail

    return str(error)


def error_code(error: Any) -> str | None:
    if isinstance(error, socket.gaierror):
        return "ENOTFOUND"

    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code

    number = getattr(error, "errno", None)
    if isinstance(number, int) and number in errno.errorcode:
        return errno.errorcode[number]

    message = error_message(error)
    for candidate in (
        *AUTH_ERROR_CODES,
        *CONNECTIVITY_ERROR_CODES,
        *TIMEOUT_ERROR_CODES,
    ):
        if candidate in message:
            return candidate

    return None


def is_timeout(error: Any) -> bool:
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionTimeoutError)):
        return True

    if error_code(error) in TIMEOUT_ERROR_CODES:
        return True

    message = error_message(error).lower()
    return any(marker in message for marker in TIMEOUT_MARKERS)


def _is_auth_error(error: Any, message: str, code: str | None) -> bool:
    if code in AUTH_ERROR_CODES:
        return True

    close_code = getattr(error, "code", None)
    if isinstance(close_code, int) and close_code in AUTH_CLOSE_CODES:
        return True

    status = getattr(error, "status", None)
    if isinstance(status, int) and status in AUTH_STATUSES:
        return True

    if AUTH_STATUS_PATTERN.search(message):
        return True

    return any(marker in message for marker in AUTH_REASON_MARKERS)


def classify_error(error: Any) -> ErrorClass:
    if error is None:
        return ErrorClass.UNKNOWN

    message = error_message(error)
    code = error_code(error)

    if _is_auth_error(error, message, code):
        return ErrorClass.AUTHENTICATION

    if code in CONNECTIVITY_ERROR_CODES or any(
        marker in message for marker in CONNECTIVITY_MARKERS
    ):
        return ErrorClass.CONNECTIVITY

    if is_timeout(error):
        return ErrorClass.TIMEOUT

    return ErrorClass.TRANSIENT


def classify_disconnect(reason: DisconnectReason) -> ErrorClass:
    if reason.code in AUTH_CLOSE_CODES or any(
        marker in reason.reason for marker in AUTH_REASON_MARKERS
    ):
        return ErrorClass.AUTHENTICATION

    lowered = reason.reason.lower()

    if NO_PING_MARKER in lowered:
        return ErrorClass.NO_PING

    if "timeout" in lowered:
        return ErrorClass.TIMEOUT

    return ErrorClass.TRANSIENT
