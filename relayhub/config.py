"""Hub configuration.

Settings come from an optional JSON file named by ``RELAY_CONFIG``, with
individual ``RELAY_*`` environment variables taking precedence over it.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from relayhub.events import DEFAULT_DISPLAY_NAME

logger = logging.getLogger(__name__)


@dataclass
class HubSettings:
    """Listening endpoint and transport options."""

    host: str = "0.0.0.0"
    port: int = 8080
    ws_path: str = "/ws"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    default_display_name: str = DEFAULT_DISPLAY_NAME

    @classmethod
    def from_env(cls) -> HubSettings:
        config_path = os.environ.get("RELAY_CONFIG")
        base = cls.load(config_path) if config_path else cls()

        origins = os.environ.get("RELAY_CORS_ORIGINS")
        return dataclasses.replace(
            base,
            host=os.environ.get("RELAY_HOST", base.host),
            port=int(os.environ.get("RELAY_PORT", os.environ.get("PORT", str(base.port)))),
            ws_path=os.environ.get("RELAY_WS_PATH", base.ws_path),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins else base.cors_origins
            ),
            log_level=os.environ.get("RELAY_LOG_LEVEL", base.log_level).upper(),
            default_display_name=os.environ.get(
                "RELAY_DEFAULT_DISPLAY_NAME", base.default_display_name,
            ),
        )

    @classmethod
    def load(cls, path: str | Path) -> HubSettings:
        """Read settings from a JSON object file; unknown keys are skipped."""
        path = Path(path)
        if not path.exists():
            logger.warning("Hub config %s not found, using defaults", path)
            return cls()

        data = json.loads(path.read_text())
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - names)
        if unknown:
            logger.warning("Ignoring unknown hub config keys in %s: %s", path, ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in names})
