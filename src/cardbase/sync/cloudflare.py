"""Remote snapshot backend: a Cloudflare Worker in front of an R2 bucket.

The Worker holds exactly one object, the newest snapshot, and exposes it at
``/snapshot``:

``PUT /snapshot``
    replace the stored snapshot with the request body (snapshot JSON)
``GET /snapshot``
    return it, or 404 when nothing was uploaded yet

Requests carry ``Authorization: Bearer <api_token>``.  When ``worker_url`` or
``api_token`` are not passed they are read from ``CARDBASE_WORKER_URL`` and
``CARDBASE_API_TOKEN``.
"""

from __future__ import annotations

import os

import httpx

SNAPSHOT_PATH = "/snapshot"


class CloudflareWorkerClient:
    """:class:`~cardbase.sync.base.SnapshotBackend` speaking HTTP to the sync Worker."""

    def __init__(
        self,
        worker_url: str | None = None,
        *,
        api_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base_url = worker_url or os.getenv("CARDBASE_WORKER_URL", "")
        token = api_token or os.getenv("CARDBASE_API_TOKEN", "")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def save(self, payload: str) -> None:
        response = self._client.put(SNAPSHOT_PATH, content=payload.encode("utf-8"))
        response.raise_for_status()

    def load(self) -> str | None:
        response = self._client.get(SNAPSHOT_PATH)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "CloudflareWorkerClient":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
