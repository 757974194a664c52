import json
import logging
from typing import Optional, Dict, Any, Mapping

from flask import Flask, Blueprint, current_app, request, jsonify

from slack_bridge.config import Config
from slack_bridge.logging_config import setup_logging
from slack_bridge.integrations.slack_client import SlackClient, SlackApiError
from slack_bridge.integrations.channels import (
    ChannelLookupError,
    ChannelNotFound,
    MissingScope,
    ensure_joined,
    find_channel,
    normalize_channel,
    resolve_channel_id,
)

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
FORM_MIMETYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

JOIN_SCOPE_STEPS = [
    "1. Go to https://api.slack.com/apps",
    "2. Select your app",
    "3. Go to OAuth & Permissions > Scopes",
    '4. Add "channels:join" to Bot Token Scopes',
    "5. Reinstall/update the bot token",
    "6. Retry the request",
]

api = Blueprint("api", __name__)


def _slack() -> SlackClient:
    return current_app.extensions["slack_client"]


def _body() -> Dict[str, Any]:
    if request.mimetype in FORM_MIMETYPES:
        return request.form.to_dict()
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _field(body: Mapping[str, Any], *names: str) -> Any:
    """First non-empty value among ``names``, from the body then the query string."""
    for name in names:
        value = body.get(name)
        if value:
            return value
    for name in names:
        value = request.args.get(name)
        if value:
            return value
    return None


def _raw_field(body: Mapping[str, Any], name: str) -> Any:
    # 0 is a real value here; only None and "" are missing
    value = body.get(name)
    if value is None or value == "":
        value = request.args.get(name)
    return None if value == "" else value


def _parse_limit(raw: Any) -> int:
    try:
        limit = int(raw) if raw is not None else DEFAULT_LIMIT
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def _webhook_payload(body: Mapping[str, Any]) -> Dict[str, Any]:
    payload = body.get("payload")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            log.debug("Webhook 'payload' field is not JSON; ignoring it")
            payload = None
    return payload if isinstance(payload, dict) else {}


def _format_message(msg: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "timestamp": msg.get("ts"),
        "user": msg.get("user") or "bot",
        "username": msg.get("username"),
        "text": msg.get("text"),
        "type": msg.get("type"),
        "thread_ts": msg.get("thread_ts"),
        "is_thread_parent": bool(msg.get("reply_count")),
        "reply_count": msg.get("reply_count") or 0,
        "reactions": msg.get("reactions") or [],
    }


@api.get("/health")
def health():
    return {"ok": True}


@api.post("/api/send-message")
def send_message():
    body = _body()
    channel = _field(body, "channel")
    message = _field(body, "message")
    thread_ts = body.get("thread_ts") or body.get("thread_timestamp")
    blocks = body.get("blocks")
    attachments = body.get("attachments")

    if not channel or not message:
        return jsonify({
            "error": "channel and message required",
            "required_fields": {"channel": "string", "message": "string"},
            "optional_fields": {"thread_ts": "string", "blocks": "array", "attachments": "array"},
        }), 400

    channel = str(channel)
    payload: Dict[str, Any] = {"channel": channel.replace("#", "", 1), "text": message}
    if thread_ts:
        payload["thread_ts"] = thread_ts
    if isinstance(blocks, list):
        payload["blocks"] = blocks
    if isinstance(attachments, list):
        payload["attachments"] = attachments

    try:
        result = _slack().post_message(**payload)
    except Exception as e:
        log.exception("Send message error")
        return jsonify({"error": str(e), "details": "Failed to send message to Slack"}), 500

    posted = result.get("message") or {}
    return jsonify({
        "success": True,
        "message": f"Sent to {channel}",
        "timestamp": result.get("ts"),
        "channel": result.get("channel"),
        "thread_ts": result.get("thread_ts") or posted.get("thread_ts"),
    }), 200


@api.post("/api/get-messages")
def get_messages():
    body = _body()
    channel = _field(body, "channel")
    limit = _parse_limit(_raw_field(body, "limit"))
    cursor = _field(body, "cursor")

    name = normalize_channel(str(channel)) if channel else None
    if not name:
        return jsonify({
            "error": "channel required",
            "required_fields": {"channel": "string"},
            "optional_fields": {"limit": "number (default: 10, max: 100)", "cursor": "string (for pagination)"},
        }), 400

    client = _slack()
    try:
        channel_id = resolve_channel_id(client, name)
    except ChannelNotFound:
        return jsonify({
            "error": f"Channel '{name}' not found",
            "details": "Use channel ID instead of name",
            "hint": 'Try using C1234567890 format instead of "general"',
            "solution": "Use /api/list-channels endpoint to get channel IDs",
        }), 404
    except ChannelLookupError as e:
        return jsonify({"error": "Failed to lookup channel", "details": str(e)}), 500
    except Exception as e:
        log.exception("Channel resolution error for %s", name)
        return jsonify({
            "error": str(e),
            "error_type": None,
            "details": "Failed to retrieve messages from Slack",
        }), 500

    try:
        ensure_joined(client, channel_id)
        log.info("Fetching messages from channel ID: %s", channel_id)
        result = client.conversations_history(channel_id, limit=limit, cursor=cursor)
    except MissingScope as e:
        return jsonify({
            "error": "Bot missing required scope",
            "needed_scope": e.needed,
            "details": 'Add "channels:join" scope to your bot app',
            "steps": JOIN_SCOPE_STEPS,
        }), 403
    except SlackApiError as e:
        log.error("Get messages error for %s: %s", channel_id, e.error)
        if e.error == "not_in_channel":
            return jsonify({
                "error": "Bot is not a member of this channel",
                "details": "Add the bot to the channel first. Go to Slack > channel > Add members > search for your bot app",
                "solution": f"Invite the bot to #{name} using Slack UI, then try again",
                "channel_id": channel_id,
            }), 403
        if e.error == "channel_not_found":
            return jsonify({
                "error": "Channel not found",
                "details": "Use channel ID instead of name",
                "hint": "Try /api/list-channels to get all available channels with their IDs",
            }), 404
        return jsonify({
            "error": str(e),
            "error_type": e.error,
            "details": "Failed to retrieve messages from Slack",
        }), 500
    except Exception as e:
        log.exception("Get messages error")
        return jsonify({
            "error": str(e),
            "error_type": None,
            "details": "Failed to retrieve messages from Slack",
        }), 500

    messages = [_format_message(m) for m in result.get("messages") or []]
    return jsonify({
        "success": True,
        "channel": channel,
        "channel_id": channel_id,
        "message_count": len(messages),
        "messages": messages,
        "has_more": bool(result.get("has_more")),
        "next_cursor": (result.get("response_metadata") or {}).get("next_cursor"),
    }), 200


@api.get("/api/list-channels")
def list_channels():
    try:
        result = _slack().conversations_list(
            types="public_channel,private_channel",
            limit=200,
            exclude_archived=True,
        )
    except Exception as e:
        log.exception("List channels error")
        return jsonify({"error": str(e), "details": "Failed to list channels"}), 500

    channels = [
        {
            "id": ch.get("id"),
            "name": ch.get("name"),
            "is_member": ch.get("is_member"),
            "is_private": ch.get("is_private"),
            "num_members": ch.get("num_members"),
        }
        for ch in result.get("channels", [])
    ]
    return jsonify({"success": True, "channel_count": len(channels), "channels": channels}), 200


@api.get("/api/channel-info")
def channel_info():
    channel = (request.args.get("channel") or "").strip()
    if not channel:
        return jsonify({
            "error": "channel parameter required",
            "example": "/api/channel-info?channel=general OR /api/channel-info?channel=C1234567890",
        }), 400

    try:
        found = find_channel(_slack(), channel)
    except Exception as e:
        log.exception("Channel info error")
        return jsonify({"error": str(e), "details": "Failed to get channel info"}), 500

    if not found:
        return jsonify({"error": "Channel not found", "searched_for": channel}), 404
    return jsonify({"success": True, "channel": found}), 200


@api.post("/webhook")
def webhook():
    body = _body()
    nested = _webhook_payload(body)

    def pick(name: str) -> Any:
        return body.get(name) or nested.get(name)

    text = pick("text")
    channel = str(pick("channel") or current_app.config.get("SLACK_DEFAULT_CHANNEL") or "#general")
    username = pick("username") or "webhook-bot"
    icon_url = pick("icon_url")
    icon_emoji = pick("icon_emoji")
    attachments = pick("attachments")

    if not text:
        return jsonify({
            "error": "Missing required field: text",
            "required_fields": ["text"],
            "optional_fields": ["channel", "username", "icon_url", "icon_emoji", "attachments"],
        }), 400

    payload: Dict[str, Any] = {
        "channel": channel.replace("#", "", 1),
        "text": text,
        "username": username,
    }
    if icon_url:
        payload["icon_url"] = icon_url
    elif icon_emoji:
        payload["icon_emoji"] = icon_emoji
    # webhook callers send Block Kit layouts under "attachments"
    if isinstance(attachments, list):
        payload["blocks"] = attachments

    try:
        result = _slack().post_message(**payload)
    except Exception as e:
        log.exception("Webhook error")
        return jsonify({"error": str(e), "details": "Failed to post webhook message to Slack"}), 500

    return jsonify({
        "success": True,
        "message": "Message posted to Slack",
        "channel": channel,
        "ts": result.get("ts"),
    }), 200


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    token = app.config["SLACK_BOT_TOKEN"]
    if not token:
        log.warning("SLACK_BOT_TOKEN is not set; every Slack call will fail with not_authed")

    app.extensions["slack_client"] = SlackClient(
        token,
        base_url=app.config["SLACK_API_URL"],
        timeout=app.config["SLACK_API_TIMEOUT"],
    )
    app.register_blueprint(api)
    return app


def main() -> None:
    setup_logging(Config.LOG_LEVEL, Config.LOG_FILE)
    app = create_app()
    port = app.config["PORT"]
    log.info("Slack bridge is running!")
    log.info("Web interface: http://localhost:%s", port)
    app.run(host=app.config["HOST"], port=port, debug=app.config["DEBUG"])


if __name__ == "__main__":
    main()
