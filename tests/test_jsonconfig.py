import json

import pytest

from singui.jsonconfig import (
    add_default_outbounds,
    apply_extensions,
    build_json_config,
    build_outbounds,
    push_mixed,
)
from singui.models import Client, Inbound

USER_CONFIG = {"vless": {"name": "alice", "uuid": "u-1", "flow": "xtls-rprx-vision"}}


def _vless(**kwargs):
    return Inbound(
        id=1,
        type="vless",
        tag="vl",
        out_json={"type": "vless", "tag": "vl", "server": "h", "server_port": 443},
        **kwargs,
    )


def test_outbound_merges_user_config_without_flow():
    outbounds, tags = build_outbounds(USER_CONFIG, [_vless()])
    assert tags == ["vl"]
    assert outbounds[0]["uuid"] == "u-1"
    assert "name" not in outbounds[0]
    assert "flow" not in outbounds[0]


def test_flow_kept_with_tls():
    outbounds, _ = build_outbounds(USER_CONFIG, [_vless(tls_id=2)])
    assert outbounds[0]["flow"] == "xtls-rprx-vision"


def test_addresses_produce_numbered_outbounds():
    inbound = _vless(addrs=[{"server": "a.example.com", "server_port": 8443, "remark": "-a"},
                            {"server": "b.example.com", "server_port": 9443.0}])
    outbounds, tags = build_outbounds(USER_CONFIG, [inbound])
    assert tags == ["1.vl-a", "2.vl"]
    assert [o["tag"] for o in outbounds] == tags
    assert [o["server"] for o in outbounds] == ["a.example.com", "b.example.com"]
    assert [o["server_port"] for o in outbounds] == [8443, 9443]


def test_address_tls_override():
    inbound = _vless(addrs=[{"server": "a", "server_port": 1, "tls": {"server_name": "sni.example.com"}}])
    outbounds, _ = build_outbounds({}, [inbound])
    assert outbounds[0]["tls"] == {"server_name": "sni.example.com"}


def test_inbound_template_not_mutated():
    inbound = _vless()
    build_outbounds(USER_CONFIG, [inbound])
    assert inbound.out_json == {"type": "vless", "tag": "vl", "server": "h", "server_port": 443}


def test_empty_template_skipped():
    outbounds, tags = build_outbounds(USER_CONFIG, [Inbound(type="vless", tag="x")])
    assert outbounds == []
    assert tags == []


def test_mixed_split_into_socks_and_http():
    inbound = Inbound(type="mixed", tag="m", out_json={"type": "mixed", "tag": "m", "server": "h"})
    outbounds, tags = build_outbounds({}, [inbound])
    assert tags == ["m-socks", "m-http"]
    assert [o["type"] for o in outbounds] == ["socks", "http"]
    assert all(o["server"] == "h" for o in outbounds)


def test_push_mixed_appends_to_lists():
    outbounds, tags = [{"tag": "x"}], ["x"]
    push_mixed(outbounds, tags, {"tag": "m", "type": "mixed"})
    assert len(outbounds) == 3
    assert tags[1:] == ["m-socks", "m-http"]


def test_default_outbounds_lead():
    result = add_default_outbounds([{"tag": "a"}], ["a"])
    assert [o["tag"] for o in result] == ["proxy", "auto", "direct", "a"]
    assert result[0]["outbounds"] == ["auto", "direct", "a"]
    assert result[1]["outbounds"] == ["a"]


def test_default_outbounds_without_tags():
    result = add_default_outbounds([], [])
    assert result[1]["outbounds"] is None
    assert result[0]["outbounds"] == ["auto", "direct"]


def test_extensions_empty_sets_default_route():
    config = apply_extensions({}, "")
    assert config["route"]["final"] == "proxy"
    assert config["route"]["rules"][0] == {"action": "sniff"}
    assert len(config["route"]["rules"]) == 3


def test_extensions_merged():
    ext = json.dumps({"log": {"level": "warn"}, "rules": [{"action": "reject"}], "rule_set": [{"tag": "r"}]})
    config = apply_extensions({}, ext)
    assert config["log"] == {"level": "warn"}
    assert config["route"]["rules"][-1] == {"action": "reject"}
    assert len(config["route"]["rules"]) == 4
    assert config["route"]["rule_set"] == [{"tag": "r"}]


def test_extensions_invalid_raise():
    with pytest.raises(ValueError):
        apply_extensions({}, "{broken")
    with pytest.raises(ValueError):
        apply_extensions({}, "[1]")


def test_build_json_config_document():
    client = Client(name="alice", config=USER_CONFIG)
    document = json.loads(build_json_config(client, [_vless()]))
    assert document["inbounds"][0]["type"] == "tun"
    assert [o["tag"] for o in document["outbounds"]] == ["proxy", "auto", "direct", "vl"]
    assert document["route"]["final"] == "proxy"


def test_build_json_config_replaces_inbounds_and_ignores_bad_ext():
    client = Client(name="alice", config=USER_CONFIG)
    replaced = json.loads(build_json_config(client, [], json.dumps({"inbounds": []})))
    assert replaced["inbounds"] == []
    broken = json.loads(build_json_config(client, [], "{broken"))
    assert "route" not in broken
    assert broken["inbounds"][1]["type"] == "mixed"