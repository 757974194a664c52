"""Tests for /api/list-channels, /api/channel-info and /health."""

LISTING = {
    "ok": True,
    "channels": [
        {"id": "C111", "name": "general", "is_member": True, "is_private": False, "num_members": 42,
         "topic": {"value": "dropped"}},
        {"id": "G222", "name": "secret", "is_member": False, "is_private": True, "num_members": 3},
    ],
}


def test_health(client) -> None:
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}


def test_list_channels(client, slack) -> None:
    slack.set("conversations.list", LISTING)

    res = client.get("/api/list-channels")

    assert res.status_code == 200
    body = res.get_json()
    assert body["channel_count"] == 2
    assert body["channels"][0] == {
        "id": "C111", "name": "general", "is_member": True, "is_private": False, "num_members": 42,
    }
    assert slack.calls[0]["params"] == {
        "types": "public_channel,private_channel",
        "limit": 200,
        "exclude_archived": "true",
    }


def test_list_channels_error(client, slack) -> None:
    slack.set("conversations.list", {"ok": False, "error": "missing_scope"})

    res = client.get("/api/list-channels")

    assert res.status_code == 500
    assert res.get_json()["details"] == "Failed to list channels"


def test_channel_info_requires_param(client, slack) -> None:
    res = client.get("/api/channel-info")

    assert res.status_code == 400
    assert res.get_json()["error"] == "channel parameter required"


def test_channel_info_direct(client, slack) -> None:
    raw = {"id": "C111", "name": "general", "created": 1600000000}
    slack.set("conversations.info", {"ok": True, "channel": raw})

    res = client.get("/api/channel-info?channel=C111")

    assert res.status_code == 200
    assert res.get_json() == {"success": True, "channel": raw}


def test_channel_info_by_name(client, slack) -> None:
    slack.set("conversations.info", {"ok": False, "error": "channel_not_found"})
    slack.set("conversations.list", LISTING)

    res = client.get("/api/channel-info?channel=secret")

    assert res.status_code == 200
    assert res.get_json()["channel"]["id"] == "G222"


def test_channel_info_not_found(client, slack) -> None:
    slack.set("conversations.info", {"ok": False, "error": "channel_not_found"})
    slack.set("conversations.list", LISTING)

    res = client.get("/api/channel-info?channel=random")

    assert res.status_code == 404
    assert res.get_json() == {"error": "Channel not found", "searched_for": "random"}


def test_channel_info_listing_fails(client, slack) -> None:
    slack.set("conversations.info", {"ok": False, "error": "channel_not_found"})
    slack.set("conversations.list", {"ok": False, "error": "invalid_auth"})

    res = client.get("/api/channel-info?channel=random")

    assert res.status_code == 500
    assert res.get_json()["details"] == "Failed to get channel info"
