"""Keeping clients' inbound lists, share links and quotas in step."""

import json
from typing import Any, Iterable

from singui.links import INBOUND_TYPES_WITH_LINK, generate_links
from singui.models import Client, Inbound

DEPLETE_ACTOR = "DepleteJob"


def _local_links(client: Client, inbound: Inbound, hostname: str) -> list[dict[str, str]]:
    return [
        {"remark": inbound.tag, "type": "local", "uri": uri}
        for uri in generate_links(client.config, inbound, hostname)
    ]


def rebuild_local_links(
    client: Client, inbounds: Iterable[Inbound], hostname: str
) -> list[dict[str, str]]:
    """Replace every local link of ``client`` with fresh ones for ``inbounds``.

    Inbounds whose protocol has no share link are ignored; links that are not
    local are kept after the new ones.  With no inbounds, only the local links
    are removed.
    """
    links = [
        link
        for inbound in inbounds
        if inbound.type in INBOUND_TYPES_WITH_LINK
        for link in _local_links(client, inbound, hostname)
    ]
    links.extend(link for link in client.links if link.get("type") != "local")
    client.links = links
    return links


def _replace_inbound_links(client: Client, inbound: Inbound, hostname: str) -> list[dict[str, str]]:
    links = _local_links(client, inbound, hostname)
    links.extend(link for link in client.links if link.get("remark") != inbound.tag)
    client.links = links
    return links


def add_inbound_to_client(client: Client, inbound: Inbound, hostname: str) -> Client:
    """Attach ``inbound`` to ``client`` and replace the links named after it."""
    client.inbounds = [*client.inbounds, inbound.id]
    _replace_inbound_links(client, inbound, hostname)
    return client


def remove_inbound_from_client(client: Client, inbound_id: int, tag: str) -> Client:
    """Detach an inbound from ``client`` and drop the links named after it."""
    client.inbounds = [value for value in client.inbounds if value != inbound_id]
    client.links = [link for link in client.links if link.get("remark") != tag]
    return client


def refresh_inbound_links(client: Client, inbound: Inbound, hostname: str) -> list[dict[str, str]]:
    """Regenerate the links of ``client`` that belong to a changed inbound."""
    if inbound.type not in INBOUND_TYPES_WITH_LINK:
        return client.links
    return _replace_inbound_links(client, inbound, hostname)


def is_depleted(client: Client, now: int) -> bool:
    """Whether an enabled client has used up its volume or passed its expiry."""
    if not client.enable:
        return False
    over_volume = client.volume > 0 and client.up + client.down > client.volume
    expired = 0 < client.expiry < now
    return over_volume or expired


def unique_inbound_ids(first: Iterable[int], second: Iterable[int]) -> list[int]:
    """Merge two id lists without duplicates, keeping first-seen order."""
    return list(dict.fromkeys([*first, *second]))


def deplete_clients(
    clients: Iterable[Client], now: int
) -> tuple[list[dict[str, Any]], list[int]]:
    """Disable depleted clients.

    Returns the change records describing the disabled clients and the ids of
    the inbounds that must be restarted.
    """
    changes: list[dict[str, Any]] = []
    inbound_ids: list[int] = []
    for client in clients:
        if not is_depleted(client, now):
            continue
        client.enable = False
        inbound_ids = unique_inbound_ids(inbound_ids, client.inbounds)
        changes.append(
            {
                "date_time": now,
                "actor": DEPLETE_ACTOR,
                "key": "clients",
                "action": "disable",
                "obj": json.dumps(client.name),
            }
        )
    return changes, inbound_ids