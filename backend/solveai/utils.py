"""
Utility functions for inline payloads, model responses, previews and item detection.
"""
import base64
import binascii
import re
from io import BytesIO
from typing import Optional
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from .errors import InvalidPayloadError

DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)
ITEM_PATTERN = re.compile(r"([a-e])\s*\)|item\s+([a-e])", re.IGNORECASE)

PREVIEW_SIZE = (256, 256)


def decode_inline_payload(data) -> tuple[bytes, Optional[str]]:
    """
    Decode an inline file payload.

    Args:
        data: Raw bytes, a bare base64 string, or a data URL
            ("data:image/png;base64,...")

    Returns:
        Tuple of (decoded bytes, MIME type declared by the data URL or None)
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data), None

    if not isinstance(data, str) or not data:
        raise InvalidPayloadError("Conteúdo do arquivo vazio ou inválido")

    mime_type = None
    payload = data
    is_base64 = True

    match = DATA_URL_PATTERN.match(data)
    if match:
        mime_type = match.group("mime") or None
        payload = match.group("payload")
        is_base64 = ";base64" in match.group("params")

    if not is_base64:
        # Percent-encoded text data URL
        return unquote_to_bytes(payload), mime_type

    try:
        return base64.b64decode("".join(payload.split()), validate=True), mime_type
    except (binascii.Error, ValueError):
        raise InvalidPayloadError("Conteúdo base64 inválido")


def encode_data_url(content: bytes, mime_type: str) -> str:
    """Encode bytes as a self-describing base64 data URL."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{encoded}"


def is_extractable_type(mime_type: Optional[str]) -> bool:
    """Images and PDFs are transcribed by Gemini."""
    if not mime_type:
        return False
    return mime_type.startswith("image/") or mime_type == "application/pdf"


def is_text_type(mime_type: Optional[str]) -> bool:
    if not mime_type:
        return False
    return mime_type.startswith("text/") or mime_type in ("application/json", "application/x-markdown")


def response_text(response) -> str:
    """Pull the text out of a google-genai response, or "" if there is none."""
    if response is None:
        return ""
    if hasattr(response, 'text') and response.text:
        return response.text
    if hasattr(response, 'candidates') and response.candidates:
        content = response.candidates[0].content
        if content and content.parts:
            return "".join(part.text or "" for part in content.parts)
    return ""


def strip_code_fences(text: str) -> str:
    """Remove a markdown code block wrapped around a JSON payload."""
    text = re.sub(r'^\s*```(?:json)?\s*', '', text)
    text = re.sub(r'\s*```\s*$', '', text)
    return text.strip()


def detect_question_items(text: str) -> list[str]:
    """
    Detect lettered items such as "a)" or "item b" in a question.

    Letters are case-folded and de-duplicated in first-seen order.

    Returns:
        Upper-case letters, e.g. ["A", "B"]
    """
    if not text:
        return []

    letters = []
    for match in ITEM_PATTERN.finditer(text):
        letter = (match.group(1) or match.group(2)).lower()
        if letter not in letters:
            letters.append(letter)

    return [letter.upper() for letter in letters]


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def make_preview(image_bytes: bytes, max_size: tuple = PREVIEW_SIZE) -> Optional[str]:
    """Build a PNG thumbnail data URL for an uploaded image, or None if it cannot be read."""
    try:
        image = Image.open(BytesIO(image_bytes))
        image.thumbnail(max_size)
        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGBA")
        buf = BytesIO()
        image.save(buf, format="PNG")
    except (UnidentifiedImageError, OSError):
        return None
    return encode_data_url(buf.getvalue(), "image/png")
