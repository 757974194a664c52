import re
import logging
from typing import Optional, Dict, Any

import requests

from slack_bridge.integrations.slack_client import SlackClient, SlackApiError

log = logging.getLogger(__name__)

# C = public channel, G = private/group, D = DM, U = user
ID_PREFIXES = ("C", "G", "D", "U")
LIST_LIMIT = 200

class ChannelNotFound(Exception):
    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Channel '{channel}' not found")

class ChannelLookupError(Exception):
    """The channel listing itself failed, so the name could not be resolved."""

class MissingScope(Exception):
    def __init__(self, needed: Optional[str], cause: SlackApiError):
        self.needed = needed
        self.cause = cause
        super().__init__(f"Bot missing required scope: {needed}")

def normalize_channel(value: str) -> str:

    if not value:
        return value

    value = value.strip()

    m = re.search(r"/archives/([A-Z0-9]{8,})", value)
    if m:
        return m.group(1)
    return value.replace("#", "", 1)

def _find_by_name(client: SlackClient, types: str, name: str) -> Optional[Dict[str, Any]]:
    data = client.conversations_list(types=types, limit=LIST_LIMIT)
    for ch in data.get("channels", []):
        if ch.get("name") == name:
            return ch
    return None

def resolve_channel_id(client: SlackClient, channel: str) -> str:

    if channel.startswith(ID_PREFIXES):
        return channel

    log.info("Looking up channel ID for name: %s", channel)
    try:
        found = _find_by_name(client, "public_channel", channel)
        if not found:
            found = _find_by_name(client, "private_channel", channel)
    except (SlackApiError, requests.RequestException) as e:
        log.error("Channel lookup error for %s: %s", channel, e)
        raise ChannelLookupError(str(e)) from e

    if found:
        return found["id"]

    try:
        info = client.conversations_info(channel)
    except (SlackApiError, requests.RequestException) as e:
        log.info("conversations.info could not resolve %s: %s", channel, e)
        raise ChannelNotFound(channel) from e

    channel_id = (info.get("channel") or {}).get("id")
    if not channel_id:
        log.info("conversations.info returned no channel id for %s", channel)
        raise ChannelNotFound(channel)
    return channel_id

def ensure_joined(client: SlackClient, channel_id: str) -> Optional[Dict[str, Any]]:

    log.info("Attempting to join channel: %s", channel_id)
    try:
        j = client.conversations_join(channel_id)
    except SlackApiError as e:
        log.warning("Failed to join channel %s: %s", channel_id, e.error)
        if e.error == "missing_scope":
            raise MissingScope(e.data.get("needed"), e) from e
        if e.error in ("not_in_channel", "channel_not_found"):
            raise
        return None

    warning = j.get("warning")
    if warning:
        log.info("Joined channel %s with warning: %s", channel_id, warning)
    else:
        log.info("Successfully joined channel: %s", channel_id)
    return j

def find_channel(client: SlackClient, channel: str) -> Optional[Dict[str, Any]]:

    try:
        found = client.conversations_info(channel).get("channel")
        if found:
            return found
    except (SlackApiError, requests.RequestException) as e:
        log.info("conversations.info failed for %s (%s); searching listing", channel, e)

    data = client.conversations_list(types="public_channel,private_channel", limit=LIST_LIMIT)
    for ch in data.get("channels", []):
        if ch.get("name") == channel or ch.get("id") == channel:
            return ch
    return None
