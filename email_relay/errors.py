"""Relay errors rendered as {success: false, error, details?}"""

from typing import Any, Optional

from fastapi import HTTPException


class EmailRelayError(HTTPException):
    """
    HTTPException carrying the relay's uniform failure shape.

    `detail` is the human-readable error; `details` is an optional diagnostic
    payload (usually the provider's raw response body).
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Any = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=error, headers=headers)
        self.error = error
        self.details = details

    def to_body(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


def unauthorized(error: str = "Unauthorized") -> EmailRelayError:
    return EmailRelayError(401, error)


def bad_request(error: str, details: Any = None) -> EmailRelayError:
    return EmailRelayError(400, error, details)
