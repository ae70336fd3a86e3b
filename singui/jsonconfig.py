"""Building a complete client configuration document for a subscription."""

import copy
import json
import logging
from typing import Any

from singui.models import Client, Inbound

log = logging.getLogger(__name__)

_DEFAULT_CONFIG: dict[str, Any] = {
    "inbounds": [
        {
            "type": "tun",
            "address": ["172.19.0.1/30", "fdfe:dcba:9876::1/126"],
            "mtu": 9000,
            "auto_route": True,
            "strict_route": False,
            "endpoint_independent_nat": False,
            "stack": "system",
            "platform": {
                "http_proxy": {"enabled": True, "server": "127.0.0.1", "server_port": 2080},
            },
        },
        {"type": "mixed", "listen": "127.0.0.1", "listen_port": 2080, "users": []},
    ]
}

_URL_TEST_PROBE = "http://www.gstatic.com/generate_204"
_SKIPPED_USER_KEYS = ("name", "alterId")


def _marshal_indent(obj: Any) -> str:
    text = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def _number(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


def push_mixed(outbounds: list[dict], tags: list[str], outbound: dict) -> None:
    """Append a socks and an http outbound standing in for a mixed one."""
    tag = outbound.get("tag", "")
    socks = dict(outbound, type="socks", tag=f"{tag}-socks")
    http = dict(outbound, type="http", tag=f"{tag}-http")
    outbounds.extend((socks, http))
    tags.extend((socks["tag"], http["tag"]))


def build_outbounds(client_config: Any, inbounds: list[Inbound]) -> tuple[list[dict], list[str]]:
    """Return the outbounds a client gets from its inbounds, with their tags."""
    configs = client_config if isinstance(client_config, dict) else {}
    outbounds: list[dict] = []
    tags: list[str] = []

    for inbound in inbounds:
        if not inbound.out_json:
            continue
        outbound = copy.deepcopy(inbound.out_json)
        protocol = outbound.get("type")
        protocol = protocol if isinstance(protocol, str) else ""

        user = configs.get(protocol)
        if isinstance(user, dict):
            for key, value in user.items():
                if key in _SKIPPED_USER_KEYS or (key == "flow" and inbound.tls_id == 0):
                    continue
                outbound[key] = copy.deepcopy(value)

        tag = outbound.get("tag")
        tag = tag if isinstance(tag, str) else ""

        if not inbound.addrs:
            if protocol == "mixed":
                outbound["tag"] = tag
                push_mixed(outbounds, tags, outbound)
            else:
                tags.append(tag)
                outbounds.append(outbound)
            continue

        for index, addr in enumerate(inbound.addrs, start=1):
            entry = dict(outbound)
            server = addr.get("server")
            entry["server"] = server if isinstance(server, str) else ""
            entry["server_port"] = _number(addr.get("server_port"))

            override = addr.get("tls")
            if isinstance(override, dict):
                tls = entry.get("tls")
                if not isinstance(tls, dict):
                    tls = {}
                # An existing template TLS block is shared by all addresses.
                tls.update(override)
                entry["tls"] = tls

            remark = addr.get("remark")
            remark = remark if isinstance(remark, str) else ""
            new_tag = f"{index}.{tag}{remark}"
            entry["tag"] = new_tag
            if protocol == "mixed":
                push_mixed(outbounds, tags, entry)
            else:
                tags.append(new_tag)
                outbounds.append(entry)

    return outbounds, tags


def add_default_outbounds(outbounds: list[dict], tags: list[str]) -> list[dict]:
    """Return the outbounds preceded by the selector, url-test and direct outbounds."""
    defaults = [
        {"outbounds": ["auto", "direct", *tags], "tag": "proxy", "type": "selector"},
        {
            "tag": "auto",
            "type": "urltest",
            "outbounds": list(tags) if tags else None,
            "url": _URL_TEST_PROBE,
            "interval": "10m",
            "tolerance": 50,
        },
        {"type": "direct", "tag": "direct"},
    ]
    return defaults + list(outbounds)


def apply_extensions(config: dict[str, Any], extensions: str | None) -> dict[str, Any]:
    """Set the route and merge configured extra sections into ``config``.

    Raises ValueError when ``extensions`` is not a JSON object.
    """
    rules: list[Any] = [
        {"action": "sniff"},
        {"clash_mode": "Direct", "action": "route", "outbound": "direct"},
        {"clash_mode": "Global", "action": "route", "outbound": "proxy"},
    ]
    route: dict[str, Any] = {"auto_detect_interface": True, "final": "proxy", "rules": rules}

    if not extensions:
        config["route"] = route
        return config

    others = json.loads(extensions)
    if others is None:
        others = {}
    if not isinstance(others, dict):
        raise ValueError("subscription extensions must be a JSON object")

    for key in ("log", "dns", "inbounds", "experimental"):
        if key in others:
            config[key] = others[key]
    if "rule_set" in others:
        route["rule_set"] = others["rule_set"]
    extra_rules = others.get("rules")
    if isinstance(extra_rules, list):
        route["rules"] = rules + extra_rules
    config["route"] = route
    return config


def build_json_config(client: Client, inbounds: list[Inbound], json_ext: str = "") -> str:
    """Return the indented JSON configuration document of a client."""
    outbounds, tags = build_outbounds(client.config, inbounds)
    config = copy.deepcopy(_DEFAULT_CONFIG)
    config["outbounds"] = add_default_outbounds(outbounds, tags)
    try:
        apply_extensions(config, json_ext)
    except ValueError as exc:
        log.warning("sub: invalid json extensions: %s", exc)
    return _marshal_indent(config)