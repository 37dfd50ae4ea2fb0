import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from livescribe.core.errors import ValidationError
from livescribe.routers.deps import get_services
from livescribe.services import Services
from livescribe.services.completion import AlreadyComplete, NotReady

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session")


class StartSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    title: Optional[str] = None


class StopSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    last_sequence: Optional[int] = Field(default=None, alias="lastSequence")


class SummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")


@router.post("/start")
async def start_session(body: StartSessionRequest = StartSessionRequest(),
                        services: Services = Depends(get_services)):
    if not body.user_id:
        raise ValidationError("userId required")
    session = await services.sessions.start_session(body.user_id, body.title)
    return {"sessionId": session.id, "createdAt": session.start_time.isoformat()}


@router.post("/stop")
async def stop_session(body: StopSessionRequest = StopSessionRequest(),
                       services: Services = Depends(get_services)):
    if not body.session_id:
        raise ValidationError("sessionId required")
    session, last_sequence = await services.sessions.stop_session(body.session_id, body.last_sequence)
    return {"sessionId": session.id, "status": session.status.value, "lastChunkSeq": last_sequence}


@router.post("/summary")
async def create_summary(body: SummaryRequest = SummaryRequest(),
                         services: Services = Depends(get_services)):
    """Собирает (или возвращает сохранённые) полный транскрипт и саммари.

    Пока чанки транскрибируются, отвечает 202: клиент должен повторить запрос позже.
    """
    if not body.session_id:
        raise ValidationError("sessionId required")
    logger.info("Запрос саммари для сессии %s", body.session_id)

    result = await services.completion.try_complete(body.session_id)
    if isinstance(result, NotReady):
        return JSONResponse(
            status_code=202,
            content={
                "error": "Transcription still in progress",
                "totalChunks": result.total_chunks,
                "transcribingChunks": result.transcribing_chunks,
                "readyChunks": result.ready_chunks,
                "message": "Please wait for all chunks to be transcribed",
            },
        )
    return {
        "summary": result.summary,
        "fullTranscript": result.full_transcript,
        "cached": isinstance(result, AlreadyComplete),
    }


@router.get("/summary")
async def summary_status(session_id: Optional[str] = Query(default=None, alias="sessionId"),
                         services: Services = Depends(get_services)):
    if not session_id:
        raise ValidationError("sessionId required")
    snapshot = await services.completion.snapshot(session_id)
    return {
        "sessionId": snapshot.session_id,
        "status": snapshot.status.value,
        "hasSummary": snapshot.summary is not None,
        "hasFullTranscript": snapshot.full_transcript is not None,
        "totalChunks": snapshot.total_chunks,
        "transcribingChunks": snapshot.transcribing_chunks,
        "readyChunks": snapshot.ready_chunks,
        "summary": snapshot.summary,
        "fullTranscript": snapshot.full_transcript,
        "lastChunkSeqInMemory": snapshot.last_sequence,
    }
