import base64
import json

import requests
import responses

from singui.sublinks import add_client_info, fetch_external_sub, get_links

SUB_URL = "https://sub.example.com/list"


def test_fetch_base64_subscription():
    body = base64.b64encode(b"a://1\nb://2").decode()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SUB_URL, body=body)
        assert fetch_external_sub(SUB_URL) == ["a://1", "b://2"]


def test_fetch_plain_subscription():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SUB_URL, body="x://1\ny://2")
        assert fetch_external_sub(SUB_URL) == ["x://1", "y://2"]


def test_fetch_failure_returns_empty():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SUB_URL, body=requests.ConnectionError("down"))
        assert fetch_external_sub(SUB_URL) == []


def test_add_client_info_plain_link():
    assert add_client_info("trojan://x@h:1#t", " info") == "trojan://x@h:1#t info"


def test_add_client_info_empty_or_malformed():
    assert add_client_info("trojan://x@h:1", "") == "trojan://x@h:1"
    assert add_client_info("no-scheme", " info") == "no-scheme"
    assert add_client_info("vmess://!!notbase64", " info") == "vmess://!!notbase64"


def test_add_client_info_vmess_round_trip():
    payload = {"ps": "node", "add": "h"}
    uri = "vmess://" + base64.b64encode(json.dumps(payload).encode()).decode()
    result = add_client_info(uri, " extra")
    assert result.startswith("vmess://")
    decoded = json.loads(base64.b64decode(result[len("vmess://"):]))
    assert decoded == {"ps": "node extra", "add": "h"}


def test_get_links_filters_local_by_type():
    links = [
        {"type": "local", "remark": "a", "uri": "vless://u@h:1#a"},
        {"type": "external", "remark": "b", "uri": "trojan://x@h:2"},
    ]
    assert get_links(links, "external", "") == ["trojan://x@h:2"]
    assert get_links(links, "all", " i") == ["vless://u@h:1#a i", "trojan://x@h:2"]


def test_get_links_expands_remote_subscription():
    links = [{"type": "sub", "remark": "s", "uri": SUB_URL}]
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, SUB_URL, body="r://1\nr://2")
        assert get_links(links, "external", "") == ["r://1", "r://2"]


def test_get_links_accepts_json_text():
    text = json.dumps([{"type": "external", "remark": "", "uri": "ss://abc"}])
    assert get_links(text, "all", "") == ["ss://abc"]
    assert get_links("not json", "all", "") == []