"""Building a client's plain subscription document."""

import time
from dataclasses import dataclass

from singui.encoding import bytes_to_b64
from singui.models import Client
from singui.sublinks import get_links

_UNITS = (
    (1, "B"),
    (1024, "KB"),
    (1024**2, "MB"),
    (1024**3, "GB"),
    (1024**4, "TB"),
)


@dataclass(frozen=True)
class Subscription:
    """A subscription body together with the values of its response headers."""

    content: str
    user_info: str
    update_interval: str
    title: str

    @property
    def headers(self) -> dict[str, str]:
        """The HTTP headers that accompany the body."""
        return {
            "Subscription-Userinfo": self.user_info,
            "Profile-Update-Interval": self.update_interval,
            "Profile-Title": self.title,
        }


def format_traffic(traffic_bytes: int) -> str:
    """Format a byte count with two decimals and a binary unit."""
    for scale, unit in _UNITS:
        if traffic_bytes < scale * 1024:
            return f"{traffic_bytes / scale:.2f}{unit}"
    return f"{traffic_bytes / 1024**5:.2f}EB"


def _truncating_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


def client_info(client: Client, now: int | None = None) -> str:
    """Describe the client's remaining volume and days, or unlimited use."""
    if now is None:
        now = int(time.time())
    parts = []
    remaining = client.volume - (client.up + client.down)
    if remaining > 0:
        parts.append(f"{format_traffic(remaining)}📊")
    if client.expiry > 0:
        parts.append(f"{_truncating_div(client.expiry - now, 86400)}Days⏳")
    if parts:
        return " " + " ".join(parts)
    return " ♾"


def build_subscription(
    client: Client,
    show_info: bool,
    encode: bool,
    update_interval: int,
    now: int | None = None,
) -> Subscription:
    """Assemble the subscription of a client from its links."""
    info = client_info(client, now) if show_info else ""
    content = "\n".join(get_links(client.links, "all", info))
    if encode:
        content = bytes_to_b64(content.encode("utf-8"))
    user_info = (
        f"upload={client.up}; download={client.down}; "
        f"total={client.volume}; expire={client.expiry}"
    )
    return Subscription(
        content=content,
        user_info=user_info,
        update_interval=str(update_interval),
        title=client.name,
    )