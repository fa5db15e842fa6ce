from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

EXTRA_KEYS = (
    "event",
    "device_id",
    "plan_id",
    "join_type",
    "contract_type",
    "device_count",
    "plan_count",
    "item_count",
    "status_code",
    "error_code",
    "field",
    "request_id",
    "engine_version",
    "synced_at",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        """Serialize a log record as a compact JSON string."""
        payload: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def configure_logging(level: int = logging.INFO) -> None:
    """Install the JSON handler unless the host already configured logging."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
