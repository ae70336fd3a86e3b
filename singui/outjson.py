"""Client-side outbound templates derived from inbound definitions."""

import copy
from typing import Any

from singui.common import random_int
from singui.models import Inbound, Tls

_WITHOUT_OUTBOUND = frozenset({"direct", "tun", "redirect", "tproxy"})
_SHARED_TLS_KEYS = ("enabled", "server_name", "alpn", "min_version", "max_version", "cipher_suites")


def build_tls(tls: Tls | None) -> dict[str, Any] | None:
    """Return the client TLS options of a profile, completed from its server side."""
    if tls is None:
        return None
    server = tls.server if isinstance(tls.server, dict) else {}
    config = copy.deepcopy(tls.client) if isinstance(tls.client, dict) else {}

    for key in _SHARED_TLS_KEYS:
        if key in server:
            config[key] = copy.deepcopy(server[key])

    reality = server.get("reality")
    if isinstance(reality, dict) and reality.get("enabled") is True:
        reality_config = config.get("reality")
        if not isinstance(reality_config, dict):
            reality_config = {}
        reality_config["enabled"] = True
        short_ids = reality.get("short_id")
        if isinstance(short_ids, list) and short_ids:
            reality_config["short_id"] = short_ids[random_int(len(short_ids))]
        config["reality"] = reality_config

    ech = server.get("ech")
    if isinstance(ech, dict) and ech.get("enabled") is True:
        ech_config = config.get("ech")
        if not isinstance(ech_config, dict):
            ech_config = {}
        ech_config["enabled"] = True
        ech_config["pq_signature_schemes_enabled"] = ech.get("pq_signature_schemes_enabled")
        ech_config["dynamic_record_sizing_disabled"] = ech.get("dynamic_record_sizing_disabled")
        config["ech"] = ech_config

    return config


def _shadowtls(out: dict, inbound: dict) -> None:
    version = inbound.get("version")
    if isinstance(version, (int, float)) and not isinstance(version, bool) and int(version) == 3:
        out["version"] = 3
    else:
        out.clear()
    out["tls"] = {"enabled": True}


def _hysteria_common(out: dict, inbound: dict, extra: tuple[str, ...]) -> None:
    for key in ("down_mbps", "up_mbps", "obfs", *extra):
        out.pop(key, None)
    # The client's upload is the server's download and vice versa.
    if "down_mbps" in inbound:
        out["up_mbps"] = inbound["down_mbps"]
    if "up_mbps" in inbound:
        out["down_mbps"] = inbound["up_mbps"]
    for key in ("obfs", *extra):
        if key in inbound:
            out[key] = inbound[key]


def _hysteria(out: dict, inbound: dict) -> None:
    _hysteria_common(out, inbound, ("recv_window_conn", "disable_mtu_discovery"))


def _hysteria2(out: dict, inbound: dict) -> None:
    _hysteria_common(out, inbound, ())


def _tuic(out: dict, inbound: dict) -> None:
    out.pop("zero_rtt_handshake", None)
    out.pop("heartbeat", None)
    congestion = inbound.get("congestion_control")
    out["congestion_control"] = congestion if isinstance(congestion, str) else "cubic"
    zero_rtt = inbound.get("zero_rtt_handshake")
    if isinstance(zero_rtt, bool):
        out["zero_rtt_handshake"] = zero_rtt
    if "heartbeat" in inbound:
        out["heartbeat"] = inbound["heartbeat"]


def _stream(out: dict, inbound: dict) -> None:
    out.pop("transport", None)
    if "transport" in inbound:
        out["transport"] = inbound["transport"]


_PROTOCOLS = {
    "shadowtls": _shadowtls,
    "hysteria": _hysteria,
    "hysteria2": _hysteria2,
    "tuic": _tuic,
    "vless": _stream,
    "trojan": _stream,
    "vmess": _stream,
}


def fill_out_json(inbound: Inbound, hostname: str) -> dict[str, Any]:
    """Recompute the inbound's outbound template and return it."""
    if inbound.type in _WITHOUT_OUTBOUND:
        return inbound.out_json

    out = copy.deepcopy(inbound.out_json) if isinstance(inbound.out_json, dict) else {}
    if inbound.tls_id > 0:
        tls = build_tls(inbound.tls)
        if tls is not None:
            out["tls"] = tls
    else:
        out.pop("tls", None)

    data = inbound.full()
    out["type"] = inbound.type
    out["tag"] = inbound.tag
    out["server"] = hostname
    out["server_port"] = data.get("listen_port")

    if inbound.type == "shadowsocks":
        # The stored shadowsocks template is kept as it is.
        return inbound.out_json
    if inbound.type not in ("http", "socks", "mixed"):
        handler = _PROTOCOLS.get(inbound.type)
        if handler is None:
            out.clear()
        else:
            handler(out, data)

    inbound.out_json = out
    return out