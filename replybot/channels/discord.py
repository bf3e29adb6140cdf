"""
Discord channel integration for replybot.

Talks to the Discord REST API directly with httpx:
- Fetch recent channel messages
- Fetch the bot account's own id
- Typing indicator
- Replies referencing the original message

HTTP failures are mapped onto the replybot error taxonomy so the request
scheduler can decide whether to retry.
"""

from typing import Any

import httpx
from loguru import logger

from replybot.auto_reply.errors import PermanentError, RateLimited, TransientNetworkError
from replybot.channels.base import BaseChannel, ChatMessage
from replybot.config.schema import DiscordConfig

DISCORD_API_BASE = "https://discord.com/api/v9"


def _parse_retry_after(response: httpx.Response) -> float | None:
    """Read the server-directed wait from a 429 response."""
    header = response.headers.get("retry-after")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            pass

    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("retry_after") is not None:
        try:
            return float(body["retry_after"])
        except (TypeError, ValueError):
            return None
    return None


def raise_for_status(response: httpx.Response) -> None:
    """Translate an HTTP error status into a replybot error."""
    status = response.status_code
    if status < 400:
        return
    if status == 429:
        raise RateLimited("Discord rate limit", retry_after=_parse_retry_after(response))
    if status >= 500:
        raise TransientNetworkError(f"Discord server error {status}", status_code=status)
    raise PermanentError(f"Discord rejected request with {status}: {response.text[:200]}", status_code=status)


class DiscordChannel(BaseChannel):
    """
    Discord channel implementation using the REST API.

    Configuration (via DiscordConfig):
    - token: Account token sent as the Authorization header
    - channel_id: Channel the bot watches
    - api_base: REST base URL
    - user_agent: User agent sent with every request
    - request_timeout: Per-request timeout in seconds
    """

    name = "discord"

    def __init__(self, config: DiscordConfig, client: httpx.AsyncClient | None = None):
        """
        Initialize Discord channel.

        Args:
            config: Discord configuration.
            client: Optional preconfigured HTTP client (tests inject one).
        """
        self.token = config.token
        self.api_base = (config.api_base or DISCORD_API_BASE).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)
        self._standard_headers = {
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "User-Agent": config.user_agent,
        }

    def _headers(self, json_body: bool = False) -> dict[str, str]:
        headers = {**self._standard_headers, "Authorization": self.token}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_base}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransientNetworkError(f"{method} {path} failed: {e}") from e
        raise_for_status(response)
        return response

    async def fetch_messages(self, channel_id: str, limit: int = 50) -> list[ChatMessage]:
        response = await self._request(
            "GET",
            f"/channels/{channel_id}/messages",
            params={"limit": limit},
            headers=self._headers(),
        )
        return [self._parse_message(item) for item in response.json()]

    async def fetch_identity(self) -> str:
        response = await self._request("GET", "/users/@me", headers=self._headers())
        return str(response.json()["id"])

    async def send_typing(self, channel_id: str) -> None:
        await self._request("POST", f"/channels/{channel_id}/typing", headers=self._headers())

    async def send_reply(self, channel_id: str, message_id: str, content: str) -> bool:
        body = {
            "content": content,
            "message_reference": {"message_id": message_id, "channel_id": channel_id},
            "allowed_mentions": {"replied_user": False},
        }
        response = await self._request(
            "POST",
            f"/channels/{channel_id}/messages",
            json=body,
            headers=self._headers(json_body=True),
        )
        return response.status_code == 200

    @staticmethod
    def _parse_message(data: dict[str, Any]) -> ChatMessage:
        author = data.get("author") or {}
        return ChatMessage(
            id=str(data["id"]),
            author_id=str(author.get("id", "")),
            author_name=author.get("username", ""),
            content=data.get("content") or "",
            metadata={
                "channel_id": data.get("channel_id"),
                "timestamp": data.get("timestamp"),
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        logger.debug("Closing Discord HTTP client")
        await self._client.aclose()
