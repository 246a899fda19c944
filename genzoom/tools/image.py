from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from genzoom.errors import BackendError


logger = logging.getLogger(__name__)


class ImageClient:
    """FLUX image generation: submit a job, then check its polling URL."""

    def __init__(self, http: httpx.AsyncClient, url: str, secret_token: Optional[str]):
        self._http = http
        self._url = url
        self._secret_token = secret_token

    @property
    def _headers(self) -> Dict[str, str]:
        return {"X-Key": self._secret_token or ""}

    async def submit(self, prompt: str, width: int = 1024, height: int = 768) -> Optional[str]:
        """Submit one generation request and return its polling handle, or None."""
        payload = {
            "prompt": prompt,
            "width": width,
            "height": height,
            "prompt_upsampling": False,
            "seed": 42,
            "safety_tolerance": 2,
            "output_format": "jpeg",
        }
        try:
            response = await self._http.post(self._url, json=payload, headers=self._headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Error calling image API: %s %s",
                exc.response.status_code,
                exc.response.text[:500],
            )
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error calling image API: %s", exc)
            return None

        handle = data.get("polling_url") if isinstance(data, dict) else None
        if not handle:
            logger.error("Image API response has no polling_url: %s", data)
            return None
        return handle

    async def check(self, handle: str) -> Optional[str]:
        """Return the image URL when the job is ready, None while it is pending.

        Raises BackendError on transport failure.
        """
        try:
            response = await self._http.get(handle, headers=self._headers)
            response.raise_for_status()
            data: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Image polling returned {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"Image polling failed: {exc}") from exc

        if not isinstance(data, dict):
            raise BackendError(f"Image polling returned a non-object body: {str(data)[:200]}")
        result = data.get("result") or {}
        if isinstance(result, dict) and result.get("sample"):
            return result["sample"]
        return None
