"""Registration backend client.

The ``/start`` flow registers a user under an inviter by POSTing
``{"inviterId", "userId"}`` to the backend.  A ``201 Created`` reply means
the user was registered; any other status carries a human-readable reason
that is shown to the user verbatim.
"""

import asyncio
import dataclasses

import requests

from core.errors import ConfigurationError, NetworkError
from core.logger import QuantaLogger

logger = QuantaLogger.get_logger()

SIGN_UP_PATH = "/auth/sign-up"


@dataclasses.dataclass(frozen=True, slots=True)
class RegistrationResult:
    status: int
    message: str

    @property
    def created(self) -> bool:
        return self.status == 201


class BackendClient:
    """Minimal HTTP client for the registration backend.

    Args:
        base_url: Backend API root, e.g. ``http://localhost:4000/api``.
        timeout_ms: Per-request timeout in milliseconds.
    """

    def __init__(self, base_url: str, timeout_ms: int = 10_000) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = timeout_ms / 1000

    def _post(self, path: str, payload: dict) -> requests.Response:
        if not self._base_url:
            raise ConfigurationError("API_BASE_URL is not configured")
        url = f"{self._base_url}{path}"
        try:
            return requests.post(url, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Backend request error", extra={"url": url, "error": str(exc)})
            raise NetworkError(f"Backend request to {path} failed: {exc}") from exc

    @staticmethod
    def _message_of(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and body.get("message"):
            message = body["message"]
            return ", ".join(message) if isinstance(message, list) else str(message)
        if isinstance(body, str):
            return body
        return response.text

    async def sign_up(self, inviter_id: str, user_id: int) -> RegistrationResult:
        """Register *user_id* under *inviter_id*.

        Raises:
            ConfigurationError: If no backend URL is configured.
            NetworkError: On transport-level failures.
        """
        payload = {"inviterId": inviter_id, "userId": str(user_id)}
        response = await asyncio.to_thread(self._post, SIGN_UP_PATH, payload)
        result = RegistrationResult(status=response.status_code, message=self._message_of(response))
        logger.info(
            "Backend sign-up answered",
            extra={"user_id": user_id, "inviter_id": inviter_id, "status_code": result.status, "registered": result.created},
        )
        return result
