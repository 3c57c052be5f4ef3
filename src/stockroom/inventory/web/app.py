from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from starlette.applications import Starlette
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from ...config import load_settings
from ...errors import InventoryError, ValidationError
from ...logging import get_logger
from ..service import InventoryService, open_inventory


LOG = get_logger("inventory-web")

DEFAULT_STATIC_SUBDIR = "public"


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _parse_bool(value: Any) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return None


async def inventory_error(_: Request, exc: InventoryError) -> JSONResponse:
    if exc.status_code >= 500:
        LOG.error(f"Request failed: {exc.message}")
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


async def http_error(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def unhandled_error(_: Request, exc: Exception) -> JSONResponse:
    LOG.exception("Unhandled error while serving request", exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    service: Optional[InventoryService] = None,
    *,
    root_dir: Optional[str] = None,
    storage: Optional[str] = None,
    data_dir: Optional[str] = None,
    static_dir: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
    serve_static: bool = True,
) -> Starlette:
    """Create a Starlette app exposing the inventory API and optional static UI."""

    settings = load_settings(root_dir)
    if service is None:
        service = open_inventory(data_dir or settings.data_dir, storage or settings.storage)

    resolved_static_dir: Optional[str] = None
    if serve_static:
        candidate = os.path.abspath(os.path.join(settings.project_root, static_dir or DEFAULT_STATIC_SUBDIR))
        if os.path.isdir(candidate):
            resolved_static_dir = candidate
            LOG.info("Serving static files from %s", resolved_static_dir)
        else:
            LOG.warning("Static directory not found at %s; API will run without static assets.", candidate)
    else:
        LOG.info("Static file serving disabled (API only mode).")

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()})

    async def list_products(_: Request) -> JSONResponse:
        return JSONResponse(service.list_products())

    async def get_product(request: Request) -> JSONResponse:
        return JSONResponse(service.get_product(request.path_params["item"]))

    async def save_product(request: Request) -> JSONResponse:
        body = await _json_body(request)
        result = service.save_product(body)
        message = "Product created successfully" if result.created else "Product saved successfully"
        return JSONResponse({"message": message, "item": result.item, "created": result.created})

    async def delete_product(request: Request) -> JSONResponse:
        service.delete_product(request.path_params["item"])
        return JSONResponse({"message": "Product deleted successfully"})

    async def list_columns(_: Request) -> JSONResponse:
        return JSONResponse(service.describe_columns())

    async def add_column(request: Request) -> JSONResponse:
        body = await _json_body(request)
        name = service.add_column(body.get("columnName"), body.get("columnType"))
        return JSONResponse({"message": "Column added successfully", "columnName": name})

    async def import_paste(request: Request) -> JSONResponse:
        body = await _json_body(request)
        result = service.import_paste(
            body.get("data"),
            body.get("delimiter"),
            has_header=_parse_bool(body.get("hasHeader")),
        )
        return JSONResponse({"message": "Import completed", **result.to_dict()})

    async def import_file(request: Request) -> JSONResponse:
        form = await request.form()
        try:
            upload = form.get("file")
            if not isinstance(upload, UploadFile) or not upload.filename:
                raise ValidationError("No file uploaded")
            content = await upload.read()
            result = service.import_file(upload.filename, content)
        finally:
            await form.close()
        return JSONResponse({"message": "Import completed", **result.to_dict()})

    async def export(request: Request) -> Response:
        payload = service.export(request.path_params["format"])
        return Response(
            payload.content,
            media_type=payload.media_type,
            headers={"Content-Disposition": f"attachment; filename={payload.filename}"},
        )

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products", save_product, methods=["POST"]),
        Route("/api/products/{item:path}", get_product, methods=["GET"]),
        Route("/api/products/{item:path}", delete_product, methods=["DELETE"]),
        Route("/api/columns", list_columns, methods=["GET"]),
        Route("/api/columns", add_column, methods=["POST"]),
        Route("/api/import/paste", import_paste, methods=["POST"]),
        Route("/api/import/file", import_file, methods=["POST"]),
        Route("/api/export/{format:str}", export, methods=["GET"]),
    ]

    if resolved_static_dir:
        routes.append(Mount("/", StaticFiles(directory=resolved_static_dir, html=True), name="static"))
    else:
        async def api_only(_: Request) -> JSONResponse:
            return JSONResponse({"detail": "Inventory API is running. See /api/products."})

        routes.append(Route("/", api_only, methods=["GET"]))

    origins = allow_origins or settings.allow_origins
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["*"] if "*" in origins else origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        middleware=middleware,
        exception_handlers={
            InventoryError: inventory_error,
            HTTPException: http_error,
            Exception: unhandled_error,
        },
    )
    app.state.service = service
    return app


__all__ = ["create_app"]
