# celine/outlet/main.py
"""
Outlet application factory.

Creates a FastAPI application that accepts events over HTTP and publishes
them to an MQTT broker through a buffered, retrying ``MqttOutput``.

Run with::

    uvicorn celine.outlet.main:create_app --factory
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from celine.outlet.api.discovery import router as discovery_router
from celine.outlet.api.events import router as events_router
from celine.outlet.core.config import load_output_config, settings
from celine.outlet.core.logging import configure_logging
from celine.outlet.core.output import MqttOutput

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the output on startup; stop retries and disconnect on shutdown."""
    output: MqttOutput | None = getattr(app.state, "output", None)

    if output is None:
        try:
            cfg = load_output_config(settings.outlet_config_paths)
        except FileNotFoundError:
            logger.warning(
                "No output config found in %s, ingest endpoints disabled",
                settings.outlet_config_paths,
            )
        except Exception:
            logger.exception("Failed to load output config")
            raise
        else:
            output = MqttOutput.from_config(cfg)
            app.state.output = output

    yield

    if output is not None:
        output.shutdown()
        await output.close()


def create_app(output: MqttOutput | None = None) -> FastAPI:
    """Build and wire the Outlet FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)
    logger.info("Creating Outlet application (env=%s)", settings.app_env)

    app = FastAPI(
        title="CELINE Outlet",
        version="0.1.0",
        description="Buffered MQTT event output",
        lifespan=lifespan,
    )

    app.state.output = output

    app.include_router(discovery_router)
    app.include_router(events_router)

    return app
