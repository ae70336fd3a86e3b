# singui

The core of a management panel for a sing-box proxy server. It is a library and
has no command of its own. Clients, inbounds and TLS profiles are plain records
(`singui.models`). From them the package builds the share links, the client-side
outbound templates, the subscription feeds and the complete client configurations
that end users import into their proxy apps. Panel settings and panel accounts are
kept in SQLite through a connection you provide.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `singui.models`: the `Tls`, `Inbound` and `Client` dataclasses.
  `Inbound.full()` returns the inbound options together with its id, type, tag and
  `tls_id`.
- `singui.links`: `generate_links(client_config, inbound, hostname)` builds the share
  links of one client for one inbound. It covers `ss://`, `vless://`, `vmess://`,
  `trojan://`, `hysteria://`, `hysteria2://`, `tuic://` and `http2://` (naive). The
  helpers are `prepare_tls`, `add_params` and `transport_params`.
  `INBOUND_TYPES_WITH_LINK` lists the protocols that have links.
- `singui.outjson`: `fill_out_json(inbound, hostname)` computes the client-side
  outbound template for a server inbound and stores it on the inbound.
  `build_tls(tls)` completes a profile's client TLS options from its server side.
- `singui.sublinks`: `get_links(links, types, client_info)` expands a client's stored
  links. External links are always kept. Remote subscriptions are fetched with
  `fetch_external_sub(url)`, which does not verify TLS certificates. Local links are
  included only when `types` is `"all"`. `add_client_info(uri, client_info)` appends
  a usage note to a link's remark; for `vmess://` links it goes into the `ps` field.
- `singui.subscription`: `build_subscription(client, show_info, encode,
  update_interval, now)` returns a `Subscription`. It holds the body, optionally
  base64-encoded, and its `headers`: `Subscription-Userinfo`,
  `Profile-Update-Interval` and `Profile-Title`. `format_traffic` and `client_info`
  format the usage note.
- `singui.jsonconfig`: `build_json_config(client, inbounds, json_ext)` returns an
  indented sing-box client configuration. It includes a tun inbound and a mixed
  inbound, `proxy` (selector), `auto` (urltest) and `direct` outbounds, and route
  rules. `json_ext` may add `log`, `dns`, `inbounds`, `experimental`, `rule_set` and
  extra `rules`. Mixed inbounds become a socks and an http outbound (`push_mixed`).
- `singui.settings`: `SettingStore(connection)` reads and writes panel settings in
  a `settings` table, falling back to `DEFAULTS`. It has typed getters, path
  normalisation (`normalize_path`), the session `secret`, `time_location()` and
  `final_sub_uri(host)`. `save(settings)` applies a set of changes all or nothing.
- `singui.users`: `UserStore(connection)` handles panel accounts (`User`) and API
  tokens (`Token`). It covers login, changing credentials, listing users and
  creating, listing and deleting tokens.
- `singui.clients`: keeps a client's inbound list and local links in step as
  inbounds are added, changed or removed. `deplete_clients(clients, now)` disables
  clients that are over their volume or past their expiry. It returns the change
  records and the ids of the inbounds to restart.
- `singui.keys`: `generate_keypair(key_type, options)` creates `"reality"`,
  `"wireguard"`, `"tls"` (self-signed Ed25519 certificate) and `"ech"` key material.
  Results and failures are both returned as lines of text. ECH with post-quantum key
  exchange is refused. `warp_reserved(client_id)` decodes a WARP client id into its
  reserved bytes.
- `singui.common`: `PanelError`, `new_error`, `random_string` and `random_int`.
- `singui.encoding`: standard base64 helpers.

## Example

```python
import sqlite3

from singui.models import Inbound
from singui.links import generate_links
from singui.settings import SettingStore

inbound = Inbound(
    id=1,
    type="trojan",
    tag="trojan-in",
    options={"listen": "::", "listen_port": 443},
)
client_config = {"trojan": {"name": "alice", "password": "password"}}

for uri in generate_links(client_config, inbound, "proxy.example.com"):
    print(uri)

settings = SettingStore(sqlite3.connect("panel.db"))
print(settings.final_sub_uri("proxy.example.com"))
```

## Errors

- `PanelError` is raised for empty usernames or passwords and for wrong login
  credentials. It is also raised for settings keys with no default and for
  certificate or key files that do not exist.
- `LookupError` is raised when there is no account to return or change.
- `ValueError` is raised for malformed input, such as non-integer or non-boolean
  settings, or a settings document that is not a JSON object of strings.

## What it does not do

- It does not run a web panel, an HTTP API or a subscription server. Callers serve
  the values these functions return.
- It does not store clients, inbounds, outbounds, endpoints or TLS profiles. Only
  settings and panel accounts are persisted.
- It does not start, stop or reconfigure a proxy core, and it does not collect
  traffic statistics.
- It does not register WARP devices or set WARP licences.