"""aiohttp control surface for the scheduler and the saved configuration."""

import json
import logging
from typing import Any

from aiohttp import web
from pydantic import BaseModel, ValidationError

from broadcaster.adapters.driving.web.schemas import SaveConfigRequest, StartRequest
from broadcaster.core.log_buffer import LogEntry
from broadcaster.core.scheduler import RunConfig, Scheduler
from broadcaster.ports.config_store import ConfigStorePort, SavedConfig

__all__ = ["create_app", "SCHEDULER_KEY", "STORE_KEY"]

logger = logging.getLogger(__name__)

SCHEDULER_KEY = web.AppKey("scheduler", Scheduler)
STORE_KEY = web.AppKey("config_store", ConfigStorePort)

routes = web.RouteTableDef()


class BadRequest(Exception):
    """Client supplied an unusable request body."""


async def _parse(request: web.Request, model: type[BaseModel]) -> Any:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequest("Request body must be valid JSON") from e
    try:
        return model.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise BadRequest(f"{field}: {first['msg']}" if field else first["msg"]) from e


def _entry_json(entry: LogEntry) -> dict[str, str]:
    return {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "type": entry.kind.value,
        "message": entry.message,
    }


def _config_json(config: SavedConfig) -> dict[str, Any]:
    return {
        "id": config.id,
        "name": config.name,
        "credential": config.credential,
        "message": config.message,
        "destinationIds": config.destination_ids,
        "intervalSeconds": config.interval_seconds,
        "createdAt": config.created_at.isoformat(),
    }


@web.middleware
async def error_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Map boundary errors to JSON bodies."""
    try:
        return await handler(request)
    except BadRequest as e:
        return web.json_response({"message": str(e)}, status=400)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unhandled error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response({"message": "Internal error"}, status=500)


@routes.post("/api/automation/start")
async def start_automation(request: web.Request) -> web.Response:
    body: StartRequest = await _parse(request, StartRequest)
    request.app[SCHEDULER_KEY].start(
        RunConfig.create(
            credential=body.credential,
            payload=body.message,
            destinations=body.destination_ids,
            interval_seconds=body.interval_seconds,
        )
    )
    return web.json_response({"message": "Automation started"})


@routes.post("/api/automation/stop")
async def stop_automation(request: web.Request) -> web.Response:
    request.app[SCHEDULER_KEY].stop()
    return web.json_response({"message": "Automation stopped"})


@routes.get("/api/automation/status")
async def automation_status(request: web.Request) -> web.Response:
    status = request.app[SCHEDULER_KEY].status()
    return web.json_response(
        {"isRunning": status.is_running, "logs": [_entry_json(e) for e in status.logs]}
    )


@routes.get("/api/config")
async def get_config(request: web.Request) -> web.Response:
    config = request.app[STORE_KEY].get_latest_config()
    return web.json_response(_config_json(config) if config else None)


@routes.post("/api/config")
async def save_config(request: web.Request) -> web.Response:
    body: SaveConfigRequest = await _parse(request, SaveConfigRequest)
    config = request.app[STORE_KEY].save_config(
        name=body.name,
        credential=body.credential,
        message=body.message,
        destination_ids=body.destination_ids,
        interval_seconds=body.interval_seconds,
    )
    return web.json_response(_config_json(config))


def create_app(scheduler: Scheduler, store: ConfigStorePort) -> web.Application:
    """Build the control surface application.

    Args:
        scheduler: Scheduler driven by the automation endpoints.
        store: Saved-configuration store behind the config endpoints.

    Returns:
        Configured aiohttp application.
    """
    app = web.Application(middlewares=[error_middleware])
    app[SCHEDULER_KEY] = scheduler
    app[STORE_KEY] = store
    app.add_routes(routes)
    return app
