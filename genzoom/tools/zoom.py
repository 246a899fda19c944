from __future__ import annotations

import base64
import logging
import re
import time
from typing import Any, Callable, Dict, Optional

import httpx

from genzoom.errors import BackendError
from genzoom.replies import DeliveryTarget, HybridReply, ImageReply, ReplyPayload, TextReply


logger = logging.getLogger(__name__)

BOT_TITLE = "GenZoom Bot"
TOKEN_REFRESH_MARGIN = 300.0

_MARKDOWN_LINK_RE = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")


def convert_markdown_links(text: str) -> str:
    """[text](url) -> <url|text>, the link syntax Zoom chat renders."""
    return _MARKDOWN_LINK_RE.sub(lambda m: f"<{m.group(2)}|{m.group(1)}>", text)


def _message_item(text: str) -> Dict[str, Any]:
    return {"type": "message", "is_markdown_support": True, "text": convert_markdown_links(text)}


def _attachment_item(image_url: str, title: str, description: str) -> Dict[str, Any]:
    return {
        "type": "attachments",
        "resource_url": image_url,
        "img_url": image_url,
        "information": {
            "title": {"text": title},
            "description": {"text": description},
        },
    }


def format_content(reply: ReplyPayload) -> Dict[str, Any]:
    if isinstance(reply, TextReply):
        body = [_message_item(reply.text)]
    elif isinstance(reply, ImageReply):
        body = [_attachment_item(reply.image_url, "AI-Generated Image", f'Prompt: "{reply.prompt_text}"')]
    elif isinstance(reply, HybridReply):
        body = [
            _message_item(reply.text),
            _attachment_item(
                reply.image_url, "AI-Generated Visualization", f'Based on: "{reply.prompt_text}"'
            ),
        ]
    else:
        raise TypeError(f"Unsupported reply type: {type(reply).__name__}")
    return {"head": {"text": BOT_TITLE}, "body": body}


class ZoomClient:
    """Zoom Team Chat delivery with a cached client-credentials token."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: Optional[str],
        client_secret: Optional[str],
        bot_jid: Optional[str],
        token_url: str,
        chat_url: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._http = http
        self._client_id = client_id or ""
        self._client_secret = client_secret or ""
        self._bot_jid = bot_jid
        self._token_url = token_url
        self._chat_url = chat_url
        self._clock = clock
        self._token: Optional[str] = None
        self._expires_at = 0.0

    async def _fetch_token(self) -> str:
        credentials = base64.b64encode(f"{self._client_id}:{self._client_secret}".encode()).decode()
        try:
            response = await self._http.post(
                self._token_url, headers={"Authorization": f"Basic {credentials}"}
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Zoom token request returned {exc.response.status_code}: {exc.response.text[:500]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"Zoom token request failed: {exc}") from exc

        self._token = data["access_token"]
        self._expires_at = self._clock() + float(data.get("expires_in", 3600))
        logger.info("Zoom chatbot token received, expires in %s seconds", data.get("expires_in"))
        return self._token

    async def get_token(self) -> Optional[str]:
        if self._token and self._expires_at > self._clock() + TOKEN_REFRESH_MARGIN:
            return self._token
        try:
            return await self._fetch_token()
        except (BackendError, KeyError) as exc:
            logger.error("Error getting Zoom chatbot token: %s", exc)
            return None

    async def deliver(self, target: DeliveryTarget, reply: ReplyPayload) -> bool:
        token = await self.get_token()
        if not token:
            logger.error("Failed to retrieve Zoom access token. Cannot send message.")
            return False

        body = {
            "robot_jid": self._bot_jid,
            "to_jid": target.to_jid,
            "user_jid": target.user_jid or target.to_jid,
            "account_id": target.account_id,
            "content": format_content(reply),
        }
        try:
            response = await self._http.post(
                self._chat_url, json=body, headers={"Authorization": f"Bearer {token}"}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Error sending message to Zoom: %s %s",
                exc.response.status_code,
                exc.response.text[:500],
            )
            return False
        except httpx.HTTPError as exc:
            logger.error("Error sending message to Zoom: %s", exc)
            return False

        logger.info("Successfully sent %s to Zoom chat", type(reply).__name__)
        return True
