from typing import Any, Dict, Optional


class CoverError(Exception):
    """
    Base class for every error the cover engine surfaces to callers.

    `status_code` is the HTTP status the API layer answers with.
    """

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(CoverError):
    """Missing or malformed request input."""

    status_code = 400


class AuthError(CoverError):
    """Missing or incorrect bearer credential."""

    status_code = 401


class FetchError(CoverError):
    """A remote asset was unreachable or answered with a non-success status."""

    status_code = 400


class InvalidImageError(CoverError):
    """Image bytes could not be decoded or have non-positive dimensions."""

    status_code = 400


class LogoProcessingError(CoverError):
    """Both logo normalization paths failed."""

    status_code = 500


class EncodingError(CoverError):
    """The final raster could not be encoded."""

    status_code = 500
