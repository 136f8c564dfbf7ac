"""External collaborators reached over HTTP (registration backend)."""

from services.backend import BackendClient, RegistrationResult

__all__ = [
    "BackendClient",
    "RegistrationResult",
]
