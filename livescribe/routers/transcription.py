import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from livescribe.core.errors import ValidationError
from livescribe.routers.deps import get_services
from livescribe.services import Services

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_MIME_TYPE = "audio/wav"


@router.post("/transcribe")
async def transcribe(
        audio: Optional[UploadFile] = File(default=None),
        session_id: Optional[str] = Form(default=None, alias="sessionId"),
        sequence: Optional[str] = Form(default=None),
        recorder: Optional[str] = Form(default=None),
        services: Services = Depends(get_services),
):
    if audio is None or not session_id:
        raise ValidationError("Missing audio or sessionId")

    seq = None
    if sequence not in (None, ""):
        try:
            seq = int(sequence)
        except ValueError:
            raise ValidationError("sequence must be an integer")

    data = await audio.read()
    if not data:
        raise ValidationError("audio is empty")

    chunk_id, text = await services.ingestor.ingest_chunk(
        session_id,
        data,
        audio.content_type or DEFAULT_MIME_TYPE,
        sequence=seq,
        recorder=recorder,
    )
    return {"chunkId": chunk_id, "transcription": text}
