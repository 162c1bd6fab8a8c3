"""
Gemini API constants.

Centralizing these values makes it easy to follow provider changes in one place.
"""
from floraveda.domain.exceptions import ChatErrorKind


class GeminiConstants:
    """Request settings for the Gemini API."""

    # Structured output
    JSON_MIME_TYPE = "application/json"

    # Default inline image type
    DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


# Provider HTTP status codes with a dedicated chat error bucket
CHAT_ERROR_KIND_BY_STATUS = {
    429: ChatErrorKind.RATE_LIMITED,
    503: ChatErrorKind.UNAVAILABLE,
}
