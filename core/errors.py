"""Exception types raised by live resources."""

from __future__ import annotations

import httpx


class LiveResourceError(Exception):
    """Base exception for live resource failures."""


class StatusCodeError(LiveResourceError):
    """The server answered a read or write with a non-2xx status.

    Attributes:
        message:  Response body text.
        status:   HTTP status code of the response.
        response: The originating response, kept for diagnostics only.
    """

    def __init__(self, message: str, response: httpx.Response) -> None:
        super().__init__(message)
        self.message = message
        self.status = response.status_code
        self.response = response

    def __repr__(self) -> str:
        return f"StatusCodeError(status={self.status}, message={self.message!r})"
