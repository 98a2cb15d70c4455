from __future__ import annotations

import atexit
import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.logging_utils import configure_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, list_tables
from .punch.controller import register as register_punch
from .punch.scheduler import initialize_scheduler
from .session.controller import register as register_session

logger = logging.getLogger(__name__)


def _shutdown(container: Container) -> None:
    try:
        container.engine.run(container.session_client.aclose(), timeout=5)
    finally:
        container.engine.stop()


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    if container is None:
        backend = str(getattr(settings, "STORAGE_BACKEND", "memory")).lower()
        db_config = getattr(settings, "DB_CONFIG", {})
        logger.info("settings=%s storage=%s api=%s", settings_module, backend, getattr(settings, "API_BASE_URL", ""))

        if backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(settings)
        if bool(getattr(settings, "START_SCHEDULER", True)):
            scheduler = initialize_scheduler(
                container.punch_machine,
                container.engine,
                interval_seconds=float(getattr(settings, "ROLLOVER_CHECK_SECONDS", 60)),
            )
            atexit.register(scheduler.shutdown, wait=False)
        atexit.register(_shutdown, container)

    app.extensions["punch_engine"] = container

    register_session(app, container)
    register_punch(app, container)

    return app
