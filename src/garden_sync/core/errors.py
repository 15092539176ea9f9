"""Typed failures raised by the remote repository adapter.

Callers branch on the exception class instead of on ``None`` returns or
message text:

- ``NotFoundError``      -- resource absent; drives create-vs-update.
- ``AlreadyExistsError`` -- branch ref already present; benign.
- ``ConflictError``      -- address precondition failed on a write.
- ``AuthError``          -- bad credentials or missing permission; fatal.
- ``RateLimitError``     -- API quota exhausted; fatal for this run.
- ``NoChangesError``     -- nothing to propose in a pull request; benign.

``translate_http_error`` turns a failed ``requests.Response`` into one of
these by looking at the status code and GitHub's specific error messages.
"""

from __future__ import annotations

from typing import Any

import requests


class RemoteError(Exception):
    """Base class for remote API failures.

    Attributes:
        message: Human-readable description from the API (or ours).
        status_code: HTTP status of the failed response, if any.
    """

    def __init__(
        self, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(RemoteError):
    """The requested file, ref, release or repository does not exist."""


class AlreadyExistsError(RemoteError):
    """A ref with the requested name already exists."""


class ConflictError(RemoteError):
    """A conditional write lost against a newer version of the file."""


class AuthError(RemoteError):
    """Authentication failed or the token lacks the needed permission."""


class RateLimitError(AuthError):
    """The API rate limit is exhausted.

    Subclasses ``AuthError`` because GitHub signals both with 403; callers
    that only care about "fatal access problem" can catch the parent.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reset_at: int | None = None,
    ) -> None:
        super().__init__(message, status_code)
        self.reset_at = reset_at


class NoChangesError(RemoteError):
    """A pull request could not be opened because there is nothing new to propose."""


class TemplateSyncError(RemoteError):
    """The template sync workflow cannot proceed (e.g. no upstream release)."""


# ---------------------------------------------------------------------------
# HTTP translation
# ---------------------------------------------------------------------------


def _error_details(response: requests.Response) -> tuple[str, str]:
    """Return ``(message, details)`` from a GitHub error payload.

    ``details`` joins the messages of the ``errors`` array,
    which is where GitHub puts the specific reason for 422 responses.
    """
    try:
        payload: Any = response.json()
    except ValueError:
        return (response.text or response.reason or "Unknown error", "")

    if not isinstance(payload, dict):
        return (str(payload), "")

    message = str(payload.get("message") or response.reason or "Unknown error")
    parts: list[str] = []
    for item in payload.get("errors") or []:
        if isinstance(item, dict):
            parts.append(str(item.get("message") or item.get("code") or ""))
        else:
            parts.append(str(item))
    return message, " ".join(parts).strip()


def translate_http_error(response: requests.Response) -> RemoteError:
    """Map a failed HTTP response to the matching ``RemoteError`` subclass.

    Args:
        response: A response whose status code is 400 or above.

    Returns:
        An exception instance (not raised) describing the failure.
    """
    status = response.status_code
    message, details = _error_details(response)
    combined = f"{message} {details}".lower()

    match status:
        case 401:
            return AuthError(message, status)
        case 403 | 429:
            remaining = response.headers.get("X-RateLimit-Remaining")
            if status == 429 or remaining == "0" or "rate limit" in combined:
                reset = response.headers.get("X-RateLimit-Reset")
                return RateLimitError(
                    message,
                    status,
                    reset_at=int(reset) if reset and reset.isdigit() else None,
                )
            return AuthError(message, status)
        case 404:
            return NotFoundError(message, status)
        case 409:
            return ConflictError(message, status)
        case 422 if "reference already exists" in combined:
            return AlreadyExistsError(message, status)
        case 422 if (
            "no commits between" in combined
            or "a pull request already exists" in combined
        ):
            return NoChangesError(details or message, status)
        case 422 if (
            "\"sha\" wasn't supplied" in combined
            or "does not match" in combined
        ):
            return ConflictError(message, status)
        case _:
            return RemoteError(message, status)
