"""
voicenote/api/upload.py
========================
API Upload Endpoints — VoiceNote

Responsibility:
    - Expose POST /api/v1/uploads and POST /api/v1/uploads/cloud
    - Accept a single audio file via multipart/form-data
    - Reject requests with a missing or empty file
    - Hand the upload to the hooked host entry point, so audio files are
      converted to voice messages before the host logic runs
    - Return the host's receipt (per-item metadata) as JSON

This module does NOT:
    - Decode or analyse audio itself
    - Forward uploads to a remote service
"""

import logging
import mimetypes
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voicenote import config
from voicenote.host import build_upload_pipeline
from voicenote.models import AudioFile, UploadItem, UploadRequest

logger = logging.getLogger("voicenote.api")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    # looked up per upload: reassigning config.SEND_AS_VOICE_MESSAGE applies
    # to the next upload; VOICENOTE_SEND_AS_VM itself is read once at import
    app.state.pipeline = build_upload_pipeline(
        enabled=lambda: config.SEND_AS_VOICE_MESSAGE,
    )
    try:
        yield
    finally:
        app.state.pipeline.close()


app = FastAPI(
    title="VoiceNote",
    description="Turns uploaded audio files into voice messages (duration, waveform, audio/ogg).",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _build_upload(audio_file: UploadFile) -> UploadRequest:
    if audio_file is None or not audio_file.filename:
        raise HTTPException(status_code=400, detail="Audio file is required.")

    logger.info("Audio file received: %s", audio_file.filename)

    try:
        audio_bytes = await audio_file.read()
    except Exception:
        raise HTTPException(status_code=400, detail="Failed to read uploaded file.")
    finally:
        await audio_file.close()

    if not audio_bytes:
        raise HTTPException(status_code=400, detail="Uploaded audio file is empty.")

    logger.info("File size: %.2f KB", len(audio_bytes) / 1024)

    content_type = audio_file.content_type
    if not content_type or content_type == "application/octet-stream":
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or content_type

    item = UploadItem(
        mime_type=content_type,
        file=AudioFile(
            filename=audio_file.filename,
            data=audio_bytes,
            content_type=content_type,
        ),
    )
    return UploadRequest(items=[item])


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/api/v1/uploads")
async def upload_local_files(request: Request, audio_file: UploadFile = File(...)):
    """Upload through the host's local-files entry point."""
    upload = await _build_upload(audio_file)
    receipt = await request.app.state.pipeline.upload_local_files(upload)
    return JSONResponse(status_code=200, content={"items": receipt})


@app.post("/api/v1/uploads/cloud")
async def cloud_upload(request: Request, audio_file: UploadFile = File(...)):
    """Upload through the host's cloud-upload entry point."""
    upload = await _build_upload(audio_file)
    receipt = await request.app.state.pipeline.cloud_upload(upload)
    return JSONResponse(status_code=200, content={"items": receipt})
