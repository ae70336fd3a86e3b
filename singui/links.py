"""Share-link generation for inbounds and their clients."""

import copy
import json
from typing import Any, Callable
from urllib.parse import parse_qsl, quote, quote_plus

from singui.common import random_int
from singui.encoding import bytes_to_b64
from singui.models import Inbound, Tls

INBOUND_TYPES_WITH_LINK = [
    "shadowsocks", "naive", "hysteria", "hysteria2", "tuic", "vless", "trojan", "vmess",
]

_FRAGMENT_SAFE = "$&+,/:;=?@!()*"


def _marshal_indent(obj: Any) -> str:
    text = json.dumps(obj, indent=2, sort_keys=True, ensure_ascii=False)
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


def _b64(text: str | bytes) -> str:
    return bytes_to_b64(text.encode("utf-8") if isinstance(text, str) else text)


def _str(mapping: Any, key: str) -> str | None:
    if isinstance(mapping, dict):
        value = mapping.get(key)
        if isinstance(value, str):
            return value
    return None


def _port(addr: dict) -> int:
    value = addr.get("server_port")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


def _server(addr: dict) -> str:
    return _str(addr, "server") or ""


def _alpn(tls: dict) -> str | None:
    alpn = tls.get("alpn")
    if isinstance(alpn, list):
        return ",".join(str(v) for v in alpn)
    return None


def _apply_tls(params: dict, tls: dict, sni_key: str) -> None:
    sni = _str(tls, "server_name")
    if sni is not None:
        params[sni_key] = sni
    alpn = _alpn(tls)
    if alpn is not None:
        params["alpn"] = alpn
    if tls.get("insecure") is True:
        params["insecure"] = "1"


def _set_fast_open(params: dict, inbound: dict, key: str) -> None:
    """Record whether TCP fast open is on under ``key`` as "1" or "0"."""
    enabled = inbound.get("tcp_fast_open") is True
    params[key] = "1" if enabled else "0"


def add_params(uri: str, params: dict[str, str], remark: str) -> str:
    """Append query parameters (sorted by key) and a fragment to ``uri``."""
    base = uri.partition("#")[0]
    base, _, query = base.partition("?")
    values: dict[str, list[str]] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    for key, value in params.items():
        values.setdefault(key, []).append(value)
    encoded = "&".join(
        f"{quote_plus(key, safe='')}={quote_plus(value, safe='')}"
        for key in sorted(values)
        for value in values[key]
    )
    result = base
    if encoded:
        result += "?" + encoded
    if remark:
        result += "#" + quote(remark, safe=_FRAGMENT_SAFE)
    return result


def transport_params(transport: Any) -> dict[str, str]:
    """Translate a transport option block into share-link parameters."""
    transport = transport if isinstance(transport, dict) else {}
    kind = _str(transport, "type")
    if kind is None:
        return {"type": "tcp"}
    params = {"type": kind}
    if kind == "http":
        hosts = transport.get("host")
        if isinstance(hosts, list):
            params["host"] = ",".join(str(h) for h in hosts)
        path = _str(transport, "path")
        if path is not None:
            params["path"] = path
    elif kind == "ws":
        path = _str(transport, "path")
        if path is not None:
            params["path"] = path
        host = _str(transport.get("headers"), "Host")
        if host is not None:
            params["host"] = host
    elif kind == "grpc":
        service_name = _str(transport, "service_name")
        if service_name is not None:
            params["serviceName"] = service_name
    elif kind == "httpupgrade":
        host = _str(transport, "host")
        if host is not None:
            params["host"] = host
        path = _str(transport, "path")
        if path is not None:
            params["path"] = path
    return params


def prepare_tls(tls: Tls) -> dict[str, Any]:
    """Build the client-side TLS options, taking shared values from the server side."""
    client_tls = copy.deepcopy(tls.client) if isinstance(tls.client, dict) else {}
    for key, value in (tls.server or {}).items():
        if key in ("enabled", "server_name", "alpn"):
            client_tls[key] = value
        elif key == "reality" and isinstance(value, dict):
            reality = client_tls.get("reality")
            if not isinstance(reality, dict):
                reality = {}
            reality["enabled"] = value.get("enabled")
            short_ids = value.get("short_ids")
            if isinstance(short_ids, list) and short_ids:
                reality["short_id"] = short_ids[random_int(len(short_ids))]
            client_tls["reality"] = reality
    return client_tls


def _shadowsocks(user_config: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    method = _str(inbound, "method") or ""
    secrets = []
    if method.startswith("2022"):
        secrets.append(_str(inbound, "password") or "")
    section = "shadowsocks16" if method == "2022-blake3-aes-128-gcm" else "shadowsocks"
    secrets.append(_str(user_config.get(section), "password") or "")
    uri_base = "ss://" + _b64(f"{method}:{':'.join(secrets)}")
    return [f"{uri_base}@{_server(addr)}:{_port(addr)}" for addr in addrs]


def _naive(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    password = _str(user, "password") or ""
    username = _str(user, "username") or ""
    links = []
    for addr in addrs:
        params = {"padding": "1"}
        tls = addr.get("tls")
        if isinstance(tls, dict):
            _apply_tls(params, tls, "peer")
        _set_fast_open(params, inbound, "tfo")
        credentials = f"{username}:{password}@{_server(addr)}:{_port(addr)}"
        links.append(add_params("http2://" + _b64(credentials), params, addr["remark"]))
    return links


def _hysteria(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    links = []
    for addr in addrs:
        params: dict[str, str] = {}
        for key in ("up_mbps", "down_mbps"):
            value = _str(inbound, key)
            if value is not None:
                params[key] = value
        auth = _str(user, "auth_str")
        if auth is not None:
            params["auth"] = auth
        tls = addr.get("tls")
        if isinstance(tls, dict):
            _apply_tls(params, tls, "peer")
        obfs = _str(inbound, "obfs")
        if obfs is not None:
            params["obfs"] = obfs
        _set_fast_open(params, inbound, "fastopen")
        uri = f"hysteria://{_server(addr)}:{_port(addr)}"
        links.append(add_params(uri, params, addr["remark"]))
    return links


def _hysteria2(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    base = f"hysteria2://{_str(user, 'password') or ''}@"
    links = []
    for addr in addrs:
        params: dict[str, str] = {}
        for key in ("up_mbps", "down_mbps"):
            value = _str(inbound, key)
            if value is not None:
                params[key] = value
        tls = addr.get("tls")
        if isinstance(tls, dict):
            _apply_tls(params, tls, "sni")
        obfs = inbound.get("obfs")
        if isinstance(obfs, dict):
            obfs_type = _str(obfs, "type")
            if obfs_type is not None:
                params["obfs"] = obfs_type
            obfs_password = _str(obfs, "password")
            if obfs_password is not None:
                params["obfs-password"] = obfs_password
        _set_fast_open(params, inbound, "fastopen")
        uri = f"{base}{_server(addr)}:{_port(addr)}"
        links.append(add_params(uri, params, addr["remark"]))
    return links


def _tuic(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    base = f"tuic://{_str(user, 'uuid') or ''}:{_str(user, 'password') or ''}@"
    links = []
    for addr in addrs:
        params: dict[str, str] = {}
        tls = addr.get("tls")
        if isinstance(tls, dict):
            _apply_tls(params, tls, "sni")
            if tls.get("disable_sni") is True:
                params["disable_sni"] = "1"
        congestion = _str(inbound, "congestion_control")
        if congestion is not None:
            params["congestion_control"] = congestion
        uri = f"{base}{_server(addr)}:{_port(addr)}"
        links.append(add_params(uri, params, addr["remark"]))
    return links


def _apply_stream_tls(params: dict, tls: dict) -> None:
    reality = tls.get("reality")
    if isinstance(reality, dict) and reality.get("enabled") is True:
        params["security"] = "reality"
        public_key = _str(reality, "public_key")
        if public_key is not None:
            params["pbk"] = public_key
        short_id = _str(reality, "short_id")
        if short_id is not None:
            params["sid"] = short_id
    else:
        params["security"] = "tls"
        if tls.get("insecure") is True:
            params["allowInsecure"] = "1"


def _apply_stream_tls_tail(params: dict, tls: dict) -> None:
    utls = tls.get("utls")
    if isinstance(utls, dict):
        params["fp"] = _str(utls, "fingerprint") or ""
    sni = _str(tls, "server_name")
    if sni is not None:
        params["sni"] = sni
    alpn = _alpn(tls)
    if alpn is not None:
        params["alpn"] = alpn


def _vless(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    uuid = _str(user, "uuid") or ""
    # One parameter set is shared by every address, so settings carry over.
    params = transport_params(inbound.get("transport"))
    links = []
    for addr in addrs:
        tls = addr.get("tls")
        if isinstance(tls, dict) and tls.get("enabled") is True:
            _apply_stream_tls(params, tls)
            flow = _str(user, "flow")
            if flow is not None:
                params["flow"] = flow
            _apply_stream_tls_tail(params, tls)
        uri = f"vless://{uuid}@{_server(addr)}:{_port(addr)}"
        links.append(add_params(uri, params, addr["remark"]))
    return links


def _trojan(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    secret = _str(user, "password") or ""
    params = transport_params(inbound.get("transport"))
    links = []
    for addr in addrs:
        tls = addr.get("tls")
        if isinstance(tls, dict) and tls.get("enabled") is True:
            _apply_stream_tls(params, tls)
            _apply_stream_tls_tail(params, tls)
        uri = f"trojan://{secret}@{_server(addr)}:{_port(addr)}"
        links.append(add_params(uri, params, addr["remark"]))
    return links


def _vmess(user: dict, inbound: dict, addrs: list[dict]) -> list[str]:
    transport = transport_params(inbound.get("transport"))
    obj: dict[str, Any] = {"v": 2, "id": _str(user, "uuid") or "", "aid": 0}
    if transport["type"] in ("http", "tcp"):
        obj["net"] = "tcp"
        if transport["type"] == "http":
            obj["type"] = "http"
    else:
        obj["net"] = transport["type"]
    links = []
    for addr in addrs:
        obj["add"] = _server(addr)
        obj["port"] = _port(addr)
        obj["ps"] = _str(addr, "remark") or ""
        if transport.get("host", ""):
            obj["host"] = transport["host"]
        if transport.get("path", ""):
            obj["path"] = transport["path"]
        tls = addr.get("tls")
        if isinstance(tls, dict) and tls.get("enabled") is True:
            obj["tls"] = "tls"
            if tls.get("insecure") is True:
                obj["allowInsecure"] = 1
            sni = _str(tls, "server_name")
            if sni is not None:
                obj["sni"] = sni
            utls = tls.get("utls")
            if isinstance(utls, dict):
                obj["fp"] = _str(utls, "fingerprint") or ""
        else:
            obj["tls"] = "none"
        links.append("vmess://" + _b64(_marshal_indent(obj)))
    return links


_BUILDERS: dict[str, Callable[[dict, dict, list[dict]], list[str]]] = {
    "naive": _naive,
    "hysteria": _hysteria,
    "hysteria2": _hysteria2,
    "tuic": _tuic,
    "vless": _vless,
    "trojan": _trojan,
    "vmess": _vmess,
}


def _resolve_addrs(inbound: Inbound, data: dict, tls: dict | None, hostname: str) -> list[dict]:
    addrs = copy.deepcopy(inbound.addrs) if inbound.addrs else []
    if not addrs:
        addr: dict[str, Any] = {
            "server": hostname,
            "server_port": data.get("listen_port"),
            "remark": inbound.tag,
        }
        if inbound.tls_id > 0:
            addr["tls"] = tls
        return [addr]
    for addr in addrs:
        addr["remark"] = inbound.tag + (_str(addr, "remark") or "")
        if inbound.tls_id > 0:
            merged = dict(tls or {})
            override = addr.get("tls")
            if isinstance(override, dict):
                merged.update(override)
            addr["tls"] = merged
    return addrs


def generate_links(client_config: Any, inbound: Inbound, hostname: str) -> list[str]:
    """Return the share links of one client for one inbound."""
    if client_config is None:
        client_config = {}
    if not isinstance(client_config, dict) or any(
        value is not None and not isinstance(value, dict) for value in client_config.values()
    ):
        return []
    user_config = {key: value or {} for key, value in client_config.items()}

    data = inbound.full()
    tls = None
    if inbound.tls_id > 0 and inbound.tls is not None:
        tls = prepare_tls(inbound.tls)
    addrs = _resolve_addrs(inbound, data, tls, hostname)

    if inbound.type == "shadowsocks":
        return _shadowsocks(user_config, data, addrs)
    builder = _BUILDERS.get(inbound.type)
    if builder is None:
        return []
    return builder(user_config.get(inbound.type, {}), data, addrs)