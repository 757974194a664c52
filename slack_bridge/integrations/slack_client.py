import logging
from typing import Optional, Dict, Any

import requests

log = logging.getLogger(__name__)

SLACK_API = "https://slack.com/api"
DEFAULT_TIMEOUT = 20

class SlackApiError(Exception):
    """Slack answered with ``ok: false`` (or never answered with usable JSON)."""

    def __init__(self, error: str, method: str = "", data: Optional[Dict[str, Any]] = None, status: Optional[int] = None):
        self.error = error
        self.method = method
        self.data = data if data is not None else {"ok": False, "error": error}
        self.status = status
        super().__init__(f"An API error occurred: {error}")

def _check_token(token: str) -> None:
    if not token or not token.startswith("xox"):
        raise SlackApiError("not_authed")

def _parse(method: str, r: requests.Response) -> Dict[str, Any]:
    try:
        j = r.json()
    except ValueError:
        log.debug("Slack %s returned non-JSON body (HTTP %s)", method, r.status_code)
        raise SlackApiError("invalid_response", method=method, status=r.status_code)

    if not isinstance(j, dict):
        raise SlackApiError("invalid_response", method=method, status=r.status_code)

    if not j.get("ok"):
        error = j.get("error") or "unknown_error"
        log.debug("Slack %s failed: %s (HTTP %s)", method, error, r.status_code)
        raise SlackApiError(error, method=method, data=j, status=r.status_code)

    return j

def _api(token: str, method: str, payload: dict, *, base_url: str = SLACK_API, timeout: int = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    _check_token(token)
    r = requests.post(
        f"{base_url}/{method}",
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json; charset=utf-8"},
        json=payload,
        timeout=timeout,
    )
    return _parse(method, r)

def _get(token: str, method: str, params: dict, *, base_url: str = SLACK_API, timeout: int = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    _check_token(token)
    r = requests.get(
        f"{base_url}/{method}",
        headers={"Authorization": f"Bearer {token}"},
        params=params,
        timeout=timeout,
    )
    return _parse(method, r)

class SlackClient:
    def __init__(self, token: str, base_url: str = SLACK_API, timeout: int = DEFAULT_TIMEOUT):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _post(self, method: str, payload: dict) -> Dict[str, Any]:
        return _api(self.token, method, payload, base_url=self.base_url, timeout=self.timeout)

    def _read(self, method: str, params: dict) -> Dict[str, Any]:
        return _get(self.token, method, params, base_url=self.base_url, timeout=self.timeout)

    def post_message(self, **payload: Any) -> Dict[str, Any]:
        return self._post("chat.postMessage", payload)

    def conversations_list(self, types: str, limit: int = 200, exclude_archived: Optional[bool] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"types": types, "limit": limit}
        if exclude_archived is not None:
            params["exclude_archived"] = "true" if exclude_archived else "false"
        return self._read("conversations.list", params)

    def conversations_info(self, channel: str) -> Dict[str, Any]:
        return self._read("conversations.info", {"channel": channel})

    def conversations_join(self, channel: str) -> Dict[str, Any]:
        return self._post("conversations.join", {"channel": channel})

    def conversations_history(self, channel: str, limit: int = 10, cursor: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"channel": channel, "limit": limit}
        if cursor:
            params["cursor"] = cursor
        return self._read("conversations.history", params)
