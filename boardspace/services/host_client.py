"""
Remote Host Client for Boardspace
=================================

HTTP host for a BoardEngine whose board lives on another Boardspace server
(or anything speaking the same element routes).

- ``add_element`` / ``delete_element`` are awaited and raise HostError on failure.
- ``update_element`` is fire-and-forget: each patch is sent on its own task,
  chained behind the previous one so the host applies patches in call order.
  ``flush()`` waits for every in-flight patch.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Set

import httpx

from ..models.canvas_models import ElementPatch

logger = logging.getLogger(__name__)

HOST_API_BASE_URL = os.getenv("BOARDSPACE_HOST_URL", "http://localhost:8000")


class HostError(Exception):
    """A host request failed."""


class HostClient:
    """Host boundary over HTTP for a single board."""

    def __init__(
        self,
        board_id: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.board_id = board_id
        self.base_url = (base_url or HOST_API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._pending: Set[asyncio.Task] = set()
        self._last_update: Optional[asyncio.Task] = None
        self.failed_updates: List[ElementPatch] = []

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self.transport,
            )
        return self._client

    def _element_url(self, element_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/api/element/{self.board_id}"
        return f"{url}/{element_id}" if element_id else url

    async def add_element(self, element_type: str, initial_props: Dict[str, Any]) -> str:
        url = self._element_url()
        payload = {"type": element_type}
        payload.update(initial_props)
        logger.info(f"[HOST-CLIENT] Creating {element_type} on board {self.board_id}")

        try:
            client = await self._get_client()
            response = await client.post(url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"[HOST-CLIENT-TIMEOUT] Request to {url} timed out")
            raise HostError("Create element timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"[HOST-CLIENT-ERROR] HTTP {e.response.status_code}: {e.response.text}")
            raise HostError(f"HTTP {e.response.status_code}: {e.response.text[:200]}") from e
        except httpx.RequestError as e:
            logger.error(f"[HOST-CLIENT-ERROR] {type(e).__name__}: {e}")
            raise HostError(str(e)) from e

        element_id = response.json().get("element_id")
        if not element_id:
            raise HostError("Host response carried no element_id")
        return element_id

    def update_element(self, element_id: str, changes: Dict[str, Any]) -> None:
        patch = ElementPatch(element_id=element_id, changes=changes)
        task = asyncio.get_running_loop().create_task(self._send_update(patch, self._last_update))
        self._last_update = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send_update(self, patch: ElementPatch, previous: Optional[asyncio.Task] = None) -> None:
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        url = self._element_url(patch.element_id)
        try:
            client = await self._get_client()
            response = await client.patch(url, json=patch.changes)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"[HOST-CLIENT-ERROR] Update of {patch.element_id} failed: HTTP {e.response.status_code}"
            )
            self.failed_updates.append(patch)
        except httpx.RequestError as e:
            logger.error(f"[HOST-CLIENT-ERROR] Update of {patch.element_id} failed: {type(e).__name__}: {e}")
            self.failed_updates.append(patch)

    async def delete_element(self, element_id: str) -> None:
        url = self._element_url(element_id)
        try:
            client = await self._get_client()
            response = await client.delete(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"[HOST-CLIENT-ERROR] HTTP {e.response.status_code}: {e.response.text}")
            raise HostError(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"[HOST-CLIENT-ERROR] {type(e).__name__}: {e}")
            raise HostError(str(e)) from e

    async def flush(self) -> int:
        """Wait for in-flight updates; returns how many have failed so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
        return len(self.failed_updates)

    async def close(self):
        """Flush pending updates and close the HTTP client."""
        await self.flush()
        if self._client:
            await self._client.aclose()
            self._client = None
