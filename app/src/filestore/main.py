from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from fastapi import FastAPI

from filestore.errors import ConfigurationError
from filestore.routes.api import router as api_router
from filestore.settings import settings
from filestore.storage import init_storage


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


def setup_logging():
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.LOG_LEVEL)


setup_logging()

app = FastAPI(title="Filestore", version="0.1.0")

base_path = settings.APP_BASE_PATH
api_prefix = f"{base_path}/api/v1" if base_path else "/api/v1"
app.include_router(api_router, prefix=api_prefix)


@app.on_event("startup")
def startup_init() -> None:
    try:
        init_storage()
    except ConfigurationError as exc:
        logging.getLogger(__name__).error("Configuracao de storage invalida: %s", exc)
        raise
