import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from drone_agent.config.settings import settings

# free-text fields shortened when log_redact_content is on
REDACTED_FIELDS = ("user_text", "content", "query")


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Structured fields travel in ``extra={"extra": {...}}`` and are merged into
    the top-level payload.
    """

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if settings.log_redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
            if settings.log_redact_content:
                for key in REDACTED_FIELDS:
                    if isinstance(payload.get(key), str):
                        payload[key] = payload[key][:64]
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("drone_agent")
    logger.setLevel(logging.INFO)
    if any(getattr(h, "_drone_agent_handler", False) for h in logger.handlers):
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "agent.log", encoding="utf-8")
    fh.setLevel(logging.INFO)
    fh.setFormatter(JsonFormatter())
    fh._drone_agent_handler = True  # type: ignore[attr-defined]
    logger.addHandler(fh)
    return logger


logger = setup_logger()
