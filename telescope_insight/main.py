from __future__ import annotations

import os
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from telescope_insight.config import Settings, load_settings
from telescope_insight.models.errors import ToolError
from telescope_insight.services.formatter import ResponseFormatter
from telescope_insight.services.query_engine import Clock, utcnow
from telescope_insight.services.registry import build_registry
from telescope_insight.services.storage import EntryRepository, JsonlEntryStore
from telescope_insight.utils.log_channels import access_log, configure_logging, error_log

# ──────────────────────────────────────────────────────────────────────────────
# Config
# ──────────────────────────────────────────────────────────────────────────────

API_PREFIX = "/api"
SERVER_NAME = "Telescope Insight"
SERVER_VERSION = "1.0.0"


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[EntryRepository] = None,
    clock: Clock = utcnow,
) -> FastAPI:
    """
    Wire settings, the entry store and the tool registry into an app.
    Without an explicit storage, a JSONL store at settings.store_path is used
    (none when store_path is empty, which makes tools report the store as
    unavailable).
    """
    settings = settings or load_settings()
    configure_logging(settings)

    if storage is None and settings.store_path:
        storage = JsonlEntryStore(settings.store_path)

    registry = build_registry(settings, storage, clock)
    formatter = ResponseFormatter()

    app = FastAPI(title=f"{SERVER_NAME} (Telemetry Entries → Tool APIs)", version=SERVER_VERSION)
    app.state.settings = settings
    app.state.storage = storage
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # dev OK; lock down in prod
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def run_tool(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        tool = registry.get(name)
        if tool is None:
            error_log.warning("Unknown tool requested: %s", name)
            raise HTTPException(status_code=404, detail=f"Unknown tool: {name}")
        try:
            return tool.execute(arguments)
        except Exception as exc:
            error_log.exception("Tool %s crashed", name)
            return formatter.format_error(ToolError(f"Error executing tool: {exc}"))

    # ──────────────────────────────────────────────────────────────────────────
    # Health
    # ──────────────────────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/health")
    def health() -> Dict[str, Any]:
        store: Dict[str, Any] = {"configured": storage is not None}
        if isinstance(storage, JsonlEntryStore):
            try:
                store.update(asdict(storage.stat()))
            except ToolError as exc:
                store.update({"status": "unavailable", "error": exc.message})
        return {"status": "ok", "store": store, "tools": registry.names()}

    # ──────────────────────────────────────────────────────────────────────────
    # Manifest
    # ──────────────────────────────────────────────────────────────────────────

    @app.get(f"{API_PREFIX}/manifest")
    def manifest() -> Dict[str, Any]:
        return {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "tools": registry.manifest(),
        }

    # ──────────────────────────────────────────────────────────────────────────
    # Tool calls
    # ──────────────────────────────────────────────────────────────────────────

    @app.post(f"{API_PREFIX}/tools/call")
    def call_tool(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        """Accepts {"name": <tool>, "arguments": {...}}"""
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise HTTPException(status_code=400, detail="Missing tool name")
        arguments = payload.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise HTTPException(status_code=400, detail="Tool arguments must be an object")
        return run_tool(name, arguments)

    @app.post(f"{API_PREFIX}/tools/{{tool}}")
    def execute_tool(tool: str, arguments: Optional[Dict[str, Any]] = Body(None)) -> Dict[str, Any]:
        return run_tool(tool, arguments or {})

    # ──────────────────────────────────────────────────────────────────────────
    # Upload endpoint
    # ──────────────────────────────────────────────────────────────────────────

    @app.post(f"{API_PREFIX}/entries/upload")
    async def upload_entries(file: UploadFile = File(...)) -> Dict[str, Any]:
        """
        Accepts JSONL, a JSON array, a single JSON object, or a JSON object
        holding a list under entries/data/items/logs/events. Overwrites the store.
        """
        if not isinstance(storage, JsonlEntryStore):
            raise HTTPException(status_code=409, detail="Uploads need a file-backed entry store")

        content = await file.read()
        try:
            result = storage.save_upload(content)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except ToolError as exc:
            raise HTTPException(status_code=503, detail=exc.message)

        access_log.info("Stored %d uploaded records (%s)", result["written"], result["mode"])
        return {"status": "ok", "saved_as": "jsonl", **result, "path": os.path.abspath(storage.file_path)}

    # ──────────────────────────────────────────────────────────────────────────
    # Unknown routes
    # ──────────────────────────────────────────────────────────────────────────

    @app.exception_handler(404)
    async def not_found(request, exc) -> JSONResponse:
        detail = getattr(exc, "detail", None) or "Route not found"
        if detail == "Not Found":
            detail = "Route not found"
        error_log.warning("Not found: %s %s (%s)", request.method, request.url.path, detail)
        return JSONResponse({"error": detail}, status_code=404)

    return app


app = create_app()
