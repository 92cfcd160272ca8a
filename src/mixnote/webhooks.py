"""Webhook forwarding of index updates.

Subscribes to the index event bus and POSTs an ``index.updated`` event to
every configured URL. Payload format:
{
    "event_id": "550e8400-e29b-41d4-a716-446655440000",
    "event_type": "index.updated",
    "timestamp": "2024-02-10T12:34:56.789000+00:00",
    "data": {
        "vault": "/home/me/MixNoteVault",
        "snapshot_path": "/home/me/.mixnote/index.json",
        "note_count": 12,
        "link_target_count": 30
    }
}
"""

import hashlib
import hmac
import json
import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path

import httpx

from mixnote.config import Config
from mixnote.events import IndexEventBus
from mixnote.indexer.models import Index

logger = logging.getLogger(__name__)

EVENT_TYPE = "index.updated"

# Timeout for webhook delivery
DELIVERY_TIMEOUT = 10.0  # seconds

MAX_CONCURRENT_DELIVERIES = 4


class WebhookNotifier:
    """Delivers index updates to webhook endpoints from a thread pool."""

    def __init__(
        self,
        urls: list[str],
        secret: str | None,
        snapshot_path: Path,
        vault: Callable[[], Path | None] | None = None,
    ):
        """Initialize the notifier.

        Args:
            urls: Endpoints to POST to
            secret: Secret for the HMAC-SHA256 signature header (optional)
            snapshot_path: Snapshot location reported in the payload
            vault: Returns the vault currently being watched
        """
        self.urls = list(urls)
        self._secret = secret
        self._snapshot_path = snapshot_path
        self._vault = vault
        self._executor = ThreadPoolExecutor(
            max_workers=MAX_CONCURRENT_DELIVERIES,
            thread_name_prefix="webhook-delivery",
        )
        self._shutdown_event = threading.Event()
        self._unsubscribe: Callable[[], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        vault: Callable[[], Path | None] | None = None,
    ) -> "WebhookNotifier | None":
        """Create a notifier if webhook URLs are configured."""
        if not config.webhook_urls:
            return None
        return cls(config.webhook_urls, config.webhook_secret, config.index_file, vault)

    def attach(self, bus: IndexEventBus) -> None:
        """Subscribe to index updates on a bus."""
        self._unsubscribe = bus.subscribe(self.notify)

    def shutdown(self) -> None:
        """Stop accepting events and wait for pending deliveries."""
        self._shutdown_event.set()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._executor.shutdown(wait=True, cancel_futures=False)
        logger.info("Webhook notifier shutdown complete")

    def build_payload(self, index: Index) -> dict:
        vault = self._vault() if self._vault else None
        return {
            "event_id": str(uuid.uuid4()),
            "event_type": EVENT_TYPE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": {
                "vault": str(vault) if vault else None,
                "snapshot_path": str(self._snapshot_path),
                "note_count": len(index.notes),
                "link_target_count": len(index.backlinks),
            },
        }

    def notify(self, index: Index) -> None:
        """Schedule delivery of an index update. Returns immediately."""
        if self._shutdown_event.is_set():
            logger.warning("Webhook notifier is shutting down, skipping %s", EVENT_TYPE)
            return

        payload = self.build_payload(index)
        for url in self.urls:
            self._executor.submit(self._deliver_sync, url, payload)

    def _deliver_sync(self, url: str, payload: dict) -> bool:
        """Deliver one event to one endpoint. Returns True on a 2xx response."""
        event_id = payload["event_id"]
        payload_bytes = json.dumps(payload).encode("utf-8")

        headers = {
            "Content-Type": "application/json",
            "X-Mixnote-Event": EVENT_TYPE,
            "X-Mixnote-Event-ID": event_id,
        }
        if self._secret:
            signature = self._generate_signature(payload_bytes, self._secret)
            headers["X-Mixnote-Signature"] = f"sha256={signature}"

        try:
            with httpx.Client(timeout=DELIVERY_TIMEOUT) as client:
                response = client.post(url, content=payload_bytes, headers=headers)
        except httpx.TimeoutException:
            logger.warning("Webhook delivery timed out: %s", url)
            return False
        except httpx.RequestError as e:
            logger.warning("Webhook delivery error for %s: %s", url, e)
            return False
        except Exception:
            logger.exception("Unexpected error delivering webhook %s to %s", event_id, url)
            return False

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Webhook delivery failed for %s: HTTP %d: %s",
                url,
                response.status_code,
                response.text[:200],
            )
            return False

        logger.info("Webhook delivered: event=%s url=%s", event_id, url)
        return True

    @staticmethod
    def _generate_signature(payload: bytes, secret: str) -> str:
        """Generate HMAC-SHA256 signature for a payload.

        Returns:
            Hex-encoded signature
        """
        return hmac.new(
            secret.encode("utf-8"),
            payload,
            hashlib.sha256,
        ).hexdigest()
