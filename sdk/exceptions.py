"""Exception hierarchy for the Telegram Bot API helpers."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """A non-ok response from the Telegram Bot API.

    Attributes:
        status_code: HTTP status code returned by the API.
        response_body: Raw response body as a dict, when available.
        description: Telegram's human-readable error description.
        retry_after: Seconds to wait before retrying, set on flood-control (429) replies.
    """

    def __init__(self, status_code: int, response_body: Optional[Dict[str, Any]] = None) -> None:
        self.status_code = status_code
        self.response_body = response_body or {}
        self.description: str = self.response_body.get("description", "Unknown error")
        parameters = self.response_body.get("parameters") or {}
        self.retry_after: Optional[int] = parameters.get("retry_after")
        super().__init__(f"API error {status_code}: {self.description}")
