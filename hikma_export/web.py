from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from hikma_export.auth import extract_bearer_token
from hikma_export.core.models import ExportRequest
from hikma_export.errors import HikmaExportError, MalformedPayload, StorageFailure
from hikma_export.exporter import ExportService
from hikma_export.importer import ImportService
from hikma_export.storage import LocalObjectStore, ObjectStore

logger = logging.getLogger(__name__)


def _guess_content_type(path: Path) -> str:
    if path.suffix == ".json":
        return "application/json"
    if path.suffix == ".xlsx":
        return "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    return "application/octet-stream"


def _parse_export_request(body: Any) -> ExportRequest:
    if not isinstance(body, dict):
        raise MalformedPayload("Request body must be a JSON object")
    enterprise_name = body.get("enterpriseName")
    if enterprise_name is not None and not isinstance(enterprise_name, str):
        raise MalformedPayload("'enterpriseName' must be a string")
    return ExportRequest(format=body.get("format"), enterprise_name=enterprise_name)


def create_app(
    export_service: ExportService,
    import_service: ImportService,
    object_store: Optional[ObjectStore] = None,
) -> FastAPI:
    app = FastAPI(title="HikmaCash export")

    @app.exception_handler(HikmaExportError)
    async def handle_pipeline_error(request: Request, exc: HikmaExportError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.post("/export")
    async def export_data(request: Request):
        credential = extract_bearer_token(request.headers.get("Authorization"))
        user_id = await run_in_threadpool(export_service.auth.resolve, credential)
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedPayload("Request body must be JSON") from exc
        export_request = _parse_export_request(body)
        artifact = await run_in_threadpool(export_service.export_for_user, user_id, export_request)
        return {"downloadUrl": artifact.signed_url}

    @app.post("/import")
    async def import_data(request: Request):
        credential = extract_bearer_token(request.headers.get("Authorization"))
        user_id = await run_in_threadpool(import_service.auth.resolve, credential)
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise MalformedPayload("No file provided")
        raw = await upload.read()
        await run_in_threadpool(import_service.import_for_user, user_id, raw)
        return {"success": True}

    if isinstance(object_store, LocalObjectStore):

        @app.get("/files/{key:path}")
        async def download(key: str, expires: int = 0, signature: str = ""):
            if not object_store.verify(key, expires, signature):
                return JSONResponse({"error": "Invalid or expired link"}, status_code=403)
            try:
                data = await run_in_threadpool(object_store.get, key)
            except StorageFailure:
                return JSONResponse({"error": "not found"}, status_code=404)
            name = Path(key).name
            return Response(
                content=data,
                media_type=_guess_content_type(Path(key)),
                headers={
                    "Content-Disposition": f'attachment; filename="{name}"',
                    "Cache-Control": "no-store",
                },
            )

    return app


def build_app(config: dict) -> FastAPI:
    """Create the app for a loaded config with the configured backend."""
    from hikma_export.config import build_backend

    backend = build_backend(config)
    return create_app(
        ExportService(backend.auth, backend.store, backend.object_store, config),
        ImportService(backend.auth, backend.store),
        backend.object_store,
    )


def main() -> None:
    import uvicorn

    from hikma_export.config import load_config

    parser = argparse.ArgumentParser(description="HikmaCash export/import service")
    parser.add_argument("--config", dest="config_path", default=None, help="Path to config.yaml")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    args = parser.parse_args()

    app = build_app(load_config(args.config_path))
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
