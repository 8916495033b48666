import logging
from typing import Optional

import gradio as gr
from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from src import profile_store
from src.auth_token import authenticate_request, unauthorized_response
from src.media_ingestion import (
    MISSING_FILE_MESSAGE,
    MediaIngestionError,
    MediaValidationError,
    check_type_and_size,
    ingest,
)
from src.media_storage import MediaHost, default_media_host
from src.pages.editor.app_editor import make_editor_app
from src.profile_schema import ProfileDocument
from src.profile_store import ProfileStoreError
from src.request_timing import request_timing

logger = logging.getLogger(__name__)

app = FastAPI(title="Portfolio API")


def get_media_host() -> MediaHost:
    return default_media_host()


def _error(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/api/profile")
async def load_profile():
    with request_timing("/api/profile", "GET"):
        document = await run_in_threadpool(profile_store.load_or_default)
    return JSONResponse(document)


@app.post("/api/profile")
async def save_profile(request: Request, authorization: Optional[str] = Header(default=None)):
    with request_timing("/api/profile", "POST"):
        if await run_in_threadpool(authenticate_request, authorization) is None:
            return unauthorized_response()

        try:
            document = await request.json()
        except ValueError:
            return _error("Invalid JSON body", status.HTTP_400_BAD_REQUEST)
        try:
            ProfileDocument.model_validate(document)
        except ValidationError as exc:
            return _error(
                "Invalid profile document",
                status.HTTP_400_BAD_REQUEST,
                details=[
                    {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
                    for err in exc.errors()
                ],
            )

        try:
            await run_in_threadpool(profile_store.save, document)
        except ProfileStoreError as exc:
            logger.error("Failed to save profile: %s", exc.__cause__ or exc, exc_info=True)
            return _error("Failed to save profile", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return {"success": True, "message": "Profile saved successfully"}


@app.post("/api/upload")
async def upload_media(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    host: MediaHost = Depends(get_media_host),
):
    with request_timing("/api/upload", "POST"):
        if await run_in_threadpool(authenticate_request, authorization) is None:
            return unauthorized_response()

        form = await request.form()
        upload = form.get("image")
        if not isinstance(upload, UploadFile):
            return _error(MISSING_FILE_MESSAGE, status.HTTP_400_BAD_REQUEST)
        size = getattr(upload, "size", None)
        if size:
            # Refuse oversize or disallowed parts before buffering them.
            try:
                check_type_and_size(upload.content_type, size)
            except MediaValidationError as exc:
                return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        data = await upload.read()

        try:
            reference = await run_in_threadpool(
                ingest,
                data,
                upload.content_type,
                len(data) if size is None else size,
                file_name=upload.filename or "upload",
                host=host,
            )
        except MediaValidationError as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except MediaIngestionError as exc:
            return _error("Failed to upload image", status.HTTP_500_INTERNAL_SERVER_ERROR, details=exc.details)

    return reference.to_response()


editor_app = make_editor_app()
gr.mount_gradio_app(app, editor_app, "/editor")
