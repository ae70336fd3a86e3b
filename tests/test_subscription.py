import base64

import pytest

from singui.models import Client
from singui.subscription import build_subscription, client_info, format_traffic


def _client(**kwargs):
    links = [
        {"type": "local", "remark": "a", "uri": "trojan://x@h:1#a"},
        {"type": "external", "remark": "b", "uri": "ss://abc@h:2"},
    ]
    return Client(name="alice", links=links, **kwargs)


def test_format_traffic_small_values():
    assert format_traffic(512) == "512.00B"
    assert format_traffic(1536) == "1.50KB"


@pytest.mark.parametrize(
    "amount, unit",
    [(1023, "B"), (1024, "KB"), (1024**2, "MB"), (1024**3, "GB"), (1024**4, "TB"), (1024**5, "EB")],
)
def test_format_traffic_unit_boundaries(amount, unit):
    result = format_traffic(amount)
    assert result.endswith(unit)
    assert result[: -len(unit)].replace(".", "").isdigit()


def test_client_info_unlimited():
    assert client_info(Client(), now=0) == " ♾"


def test_client_info_volume_and_expiry():
    info = client_info(Client(volume=4096, up=1024, expiry=2 * 86400 + 100), now=100)
    volume_part, expiry_part = info.strip().split(" ")
    assert volume_part == format_traffic(3072) + "📊"
    assert expiry_part.endswith("Days⏳")
    assert info.startswith(" ")


def test_client_info_spent_volume_omitted():
    assert client_info(Client(volume=10, up=5, down=5), now=0) == " ♾"


def test_subscription_plain_content_and_headers():
    client = _client(up=1, down=2, volume=3)
    sub = build_subscription(client, show_info=False, encode=False, update_interval=12, now=0)
    assert sub.content == "trojan://x@h:1#a\nss://abc@h:2"
    assert sub.headers == {
        "Subscription-Userinfo": "upload=1; download=2; total=3; expire=0",
        "Profile-Update-Interval": "12",
        "Profile-Title": "alice",
    }


def test_subscription_show_info_marks_local_links_only():
    sub = build_subscription(_client(), show_info=True, encode=False, update_interval=1, now=0)
    local, external = sub.content.split("\n")
    assert local == "trojan://x@h:1#a ♾"
    assert external == "ss://abc@h:2"


def test_subscription_encoded_round_trip():
    plain = build_subscription(_client(), show_info=False, encode=False, update_interval=1, now=0)
    encoded = build_subscription(_client(), show_info=False, encode=True, update_interval=1, now=0)
    assert base64.b64decode(encoded.content).decode() == plain.content