"""Configuration module for mixnote.

Loads configuration from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_WATCH_DEPTH = 2


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Config:
    """Application configuration."""

    home: Path
    vault: Path
    index_file: Path
    db_path: Path
    watch_depth: int = DEFAULT_WATCH_DEPTH
    prune_db: bool = False
    port: int = 8080
    webhook_urls: list[str] = field(default_factory=list)
    webhook_secret: str | None = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        default_home = str(Path.home() / ".mixnote")
        home = Path(os.getenv("MIXNOTE_HOME", default_home)).expanduser()

        default_vault = str(Path.home() / "MixNoteVault")
        vault = Path(os.getenv("MIXNOTE_VAULT", default_vault)).expanduser()

        index_file = Path(
            os.getenv("MIXNOTE_INDEX_FILE", str(home / "index.json"))
        ).expanduser()
        db_path = Path(os.getenv("MIXNOTE_DB", str(home / "mixnote.db"))).expanduser()

        depth_str = os.getenv("MIXNOTE_WATCH_DEPTH", str(DEFAULT_WATCH_DEPTH))
        try:
            watch_depth = int(depth_str)
            if watch_depth < 0:
                raise ValueError(f"Watch depth must be >= 0, got {watch_depth}")
        except ValueError as e:
            raise ValueError(f"Invalid MIXNOTE_WATCH_DEPTH value '{depth_str}': {e}") from e

        port_str = os.getenv("MIXNOTE_PORT", "8080")
        try:
            port = int(port_str)
            if not 1 <= port <= 65535:
                raise ValueError(f"Port must be between 1 and 65535, got {port}")
        except ValueError as e:
            raise ValueError(f"Invalid MIXNOTE_PORT value '{port_str}': {e}") from e

        urls_str = os.getenv("MIXNOTE_WEBHOOK_URLS", "")
        webhook_urls = [u.strip() for u in urls_str.split(",") if u.strip()]
        for url in webhook_urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"Webhook URL must start with http:// or https://: {url}")

        # Signing secret - must be at least 32 bytes if set
        webhook_secret = os.getenv("MIXNOTE_WEBHOOK_SECRET")
        if webhook_secret is not None and len(webhook_secret) < 32:
            raise ValueError("MIXNOTE_WEBHOOK_SECRET must be at least 32 characters")

        return cls(
            home=home,
            vault=vault,
            index_file=index_file,
            db_path=db_path,
            watch_depth=watch_depth,
            prune_db=_env_bool("MIXNOTE_PRUNE_DB", "false"),
            port=port,
            webhook_urls=webhook_urls,
            webhook_secret=webhook_secret,
        )
