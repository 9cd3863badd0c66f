import json
import logging
from pathlib import Path

import httpx

from ..config import BlobStoreConfig
from ..errors import StoreError
from ..models import ProofsPayload

logger = logging.getLogger(__name__)


class BlobSnapshotStore:
    """Public object store holding one proofs file per chain.

    Reads go through the public host; writes go through the store's HTTP API
    with a bearer token and overwrite the previous object at the same key.
    """

    def __init__(self, config: BlobStoreConfig, timeout: float = 30.0) -> None:
        """Initialize the snapshot store.

        Args:
            config: Store endpoints and credentials
            timeout: HTTP timeout in seconds
        """
        self.config: BlobStoreConfig = config
        self.timeout: float = timeout

    def key_for(self, slug: str) -> str:
        return self.config.key_for(slug)

    def url_for(self, key: str) -> str | None:
        return self.config.public_url(key)

    async def read(self, key: str) -> ProofsPayload | None:
        """Fetch the current snapshot at key.

        Returns:
            The parsed payload, or None if nothing is stored at key

        Raises:
            StoreError: If the store is unreachable or the stored object is not
                a valid proofs file
        """
        url = self.url_for(key)
        if url is None:
            raise StoreError("BLOB_READ_HOST is not configured")

        try:
            async with httpx.AsyncClient() as client:
                response: httpx.Response = await client.get(
                    url,
                    headers={"cache-control": "no-cache"},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            raise StoreError(f"Snapshot read failed for {key}: {e}") from e

        if response.status_code == 404:
            logger.debug(f"No snapshot stored at {key}")
            return None

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"Snapshot read failed for {key}: {e}") from e

        try:
            return ProofsPayload.from_json(response.text)
        except ValueError as e:
            raise StoreError(f"Stored snapshot at {key} is invalid: {e}") from e

    async def write(self, key: str, payload: ProofsPayload) -> str:
        """Upload a snapshot to key, overwriting any previous object.

        Returns:
            Public URL of the stored object

        Raises:
            StoreError: If no token is configured or the upload fails
        """
        if not self.config.token:
            raise StoreError("BLOB_READ_WRITE_TOKEN is not configured")

        url = f"{self.config.api_url.rstrip('/')}/{key}"
        headers = {
            "authorization": f"Bearer {self.config.token}",
            "x-content-type": "application/json",
            "x-add-random-suffix": "0",
            "x-allow-overwrite": "1",
        }

        try:
            async with httpx.AsyncClient() as client:
                response: httpx.Response = await client.put(
                    url,
                    content=payload.to_json(),
                    headers=headers,
                    timeout=self.timeout,
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            raise StoreError(f"Snapshot write failed for {key}: {e}") from e

        stored_url = body.get("url") if isinstance(body, dict) else None
        if not stored_url:
            stored_url = self.url_for(key)
        logger.info(f"Snapshot written to {stored_url or key}")
        return stored_url or key


class LocalMirror:
    """Writes snapshots to a local directory for development."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, slug: str) -> Path:
        return self.output_dir / f"{slug}.json"

    def write(self, slug: str, payload: ProofsPayload) -> Path:
        """Write payload as pretty-printed JSON; OSError propagates."""
        path = self.path_for(slug)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload.to_json() + "\n", encoding="utf-8")
        logger.debug(f"Mirrored snapshot to {path}")
        return path
