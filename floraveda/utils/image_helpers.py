"""
Image helper functions for upload previews.
"""
import base64
from typing import Optional

from floraveda.infrastructure.api_constants import GeminiConstants


def to_data_url(
    image_bytes: Optional[bytes],
    mime_type: str = GeminiConstants.DEFAULT_IMAGE_MIME_TYPE,
) -> str:
    """
    Build a data URL preview for an uploaded image.

    Args:
        image_bytes: Raw image content
        mime_type: Content type of the image

    Returns:
        ``data:<mime>;base64,...`` string, or an empty string without an image
    """
    if not image_bytes:
        return ""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
