"""
Image size helpers for attachments stored inside chat messages.

Images travel as base64 data URLs ("data:image/png;base64,...."). Before a
message is stored we check whether it fits the row size budget; these
helpers do the arithmetic.

The message is measured the way the browser client serialized it: compact
JSON and a millisecond ISO timestamp ending in "Z". Sizes round half up.
"""

import json
import math
from datetime import datetime, timezone

DEFAULT_MAX_MESSAGE_SIZE = 900 * 1024


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_image_size(data_url: str) -> int:
    """Decoded byte size of a base64 data URL (or bare base64 string)."""
    _, sep, payload = data_url.partition(",")
    base64_part = payload if sep and payload else data_url
    return _round_half_up(len(base64_part) * 3 / 4)


def needs_compression(
    images: list[str],
    text_content: str,
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
) -> bool:
    """True when the message, JSON-encoded, is larger than max_message_size bytes."""
    message = {
        "content": text_content,
        "images": images,
        "timestamp": _timestamp(),
    }
    encoded = json.dumps(message, ensure_ascii=False, separators=(",", ":"))
    return len(encoded.encode("utf-8")) > max_message_size


def format_size(num_bytes: int) -> str:
    if num_bytes == 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"
