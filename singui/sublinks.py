"""Collecting the share links that make up a subscription."""

import json
import logging
import warnings
from typing import Any

import requests

from singui.encoding import b64_to_bytes, bytes_to_b64, str_or_base64_decoded

log = logging.getLogger(__name__)


def _marshal_indent(obj: Any) -> str:
    text = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def fetch_external_sub(url: str) -> list[str]:
    """Download a remote subscription and return its lines; [] on failure."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            response = requests.get(url, verify=False, timeout=30)
    except requests.RequestException as exc:
        log.warning("sub: error making HTTP request: %s", exc)
        return []
    body = response.content.decode("utf-8", errors="replace")
    return str_or_base64_decoded(body).split("\n")


def add_client_info(uri: str, client_info: str) -> str:
    """Append the client's usage note to the remark of a share link."""
    if not client_info:
        return uri
    parts = uri.split("://")
    if len(parts) < 2:
        return uri
    if parts[0] != "vmess":
        return uri + client_info
    try:
        payload = json.loads(b64_to_bytes(parts[1]))
    except ValueError as exc:
        log.warning("sub: error decoding vmess content: %s", exc)
        return uri
    if not isinstance(payload, dict) or not isinstance(payload.get("ps"), str):
        log.warning("sub: vmess content has no remark")
        return uri
    payload["ps"] += client_info
    return "vmess://" + bytes_to_b64(_marshal_indent(payload).encode("utf-8"))


def get_links(links: Any, types: str, client_info: str) -> list[str]:
    """Expand a client's link list into share links.

    External links are always kept, remote subscriptions are fetched, and local
    links are included only when ``types`` is ``"all"``.
    """
    if isinstance(links, (str, bytes)):
        try:
            links = json.loads(links)
        except ValueError:
            return []
    if links is None:
        return []
    if not isinstance(links, list) or not all(isinstance(link, dict) for link in links):
        return []

    result: list[str] = []
    for link in links:
        kind = link.get("type")
        uri = link.get("uri") or ""
        if kind == "external":
            result.append(uri)
        elif kind == "sub":
            result.extend(fetch_external_sub(uri))
        elif kind == "local" and types == "all":
            result.append(add_client_info(uri, client_info))
    return result