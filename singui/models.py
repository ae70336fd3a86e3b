"""Records for TLS profiles, inbounds and clients."""

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Tls:
    """A TLS profile: server-side and client-side option sets."""

    id: int = 0
    name: str = ""
    server: dict[str, Any] = field(default_factory=dict)
    client: dict[str, Any] = field(default_factory=dict)


@dataclass
class Inbound:
    """A listening inbound with its protocol options."""

    id: int = 0
    type: str = ""
    tag: str = ""
    tls_id: int = 0
    tls: Tls | None = None
    addrs: list[dict[str, Any]] = field(default_factory=list)
    out_json: dict[str, Any] = field(default_factory=dict)
    options: dict[str, Any] = field(default_factory=dict)

    def full(self) -> dict[str, Any]:
        """Return a fresh dict of the options together with id, type, tag and tls_id."""
        data = copy.deepcopy(self.options)
        data.update(id=self.id, type=self.type, tag=self.tag, tls_id=self.tls_id)
        return data


@dataclass
class Client:
    """A proxy user with per-protocol credentials, links and traffic counters."""

    id: int = 0
    enable: bool = True
    name: str = ""
    desc: str = ""
    group: str = ""
    inbounds: list[int] = field(default_factory=list)
    links: list[dict[str, str]] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)
    volume: int = 0
    expiry: int = 0
    up: int = 0
    down: int = 0