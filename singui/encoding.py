"""Standard base64 helpers."""

import base64


def b64_to_bytes(text: str) -> bytes:
    """Decode standard, padded base64; line breaks are ignored.

    Raises ValueError when the text is not valid base64.
    """
    cleaned = text.replace("\r", "").replace("\n", "")
    return base64.b64decode(cleaned, validate=True)


def bytes_to_b64(data: bytes) -> str:
    """Encode bytes as standard, padded base64."""
    return base64.b64encode(data).decode("ascii")


def str_or_base64_decoded(text: str) -> str:
    """Return the decoded text if ``text`` is base64, otherwise ``text`` itself."""
    try:
        return b64_to_bytes(text).decode("utf-8", errors="replace")
    except ValueError:
        return text