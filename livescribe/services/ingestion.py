"""Приём аудиочанков и их транскрибация.

Чанк сохраняется сразу с текстом-заглушкой, а сам вызов транскрибации
ставится в очередь сессии: для одной сессии вызовы идут строго по одному
в порядке поступления, разные сессии транскрибируются параллельно
(не больше MAX_CONCURRENT_REQUESTS одновременно).
"""
import logging
from typing import Optional, Tuple

from livescribe.core.config import MAX_CONCURRENT_REQUESTS
from livescribe.core.errors import NotFoundError
from livescribe.models import SessionStatus
from livescribe.services.completion import CompletionDetector
from livescribe.services.retry import RetryPolicy
from livescribe.services.store import TranscriptStore
from livescribe.services.task_queue import KeyedTaskQueue

logger = logging.getLogger(__name__)


class ChunkIngestor:
    def __init__(self, store: TranscriptStore, transcriber, completion: CompletionDetector,
                 retry: Optional[RetryPolicy] = None, max_workers: int = MAX_CONCURRENT_REQUESTS):
        self.store = store
        self.transcriber = transcriber
        self.completion = completion
        self.retry = retry or RetryPolicy()
        self.queue = KeyedTaskQueue("transcription", max_workers=max_workers)

    async def ingest_chunk(self, session_id: str, audio: bytes, mime_type: str,
                           sequence: Optional[int] = None,
                           recorder: Optional[str] = None) -> Tuple[str, str]:
        """Сохраняет чанк, дожидается его транскрибации и возвращает (chunk_id, текст).

        Если транскрибация упала, чанк остаётся с заглушкой, а ошибка
        пробрасывается вызывающему.
        """
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.status == SessionStatus.COMPLETED:
            logger.warning("Чанк для уже завершённой сессии %s, в саммари он не попадёт", session_id)
        if sequence is None:
            logger.warning("Чанк для сессии %s без sequence, используется значение по умолчанию", session_id)

        chunk = await self.store.create_chunk(session_id, sequence)
        logger.info("--> [%s #%s] чанк %s сохранён (%d байт, %s, recorder=%s)",
                    session_id, chunk.sequence, chunk.id, len(audio), mime_type, recorder or "-")

        async def transcribe_chunk() -> str:
            text = await self.retry.run(self.transcriber.transcribe, audio, mime_type,
                                        label=f"transcribe {chunk.id}")
            await self.store.update_chunk_text(chunk.id, text)
            # Выполняется, даже если клиент уже отключился. Текст уже сохранён,
            # поэтому сбой проверки завершения не должен ронять загрузку
            try:
                await self.completion.on_chunk_transcribed(session_id, chunk.sequence)
            except Exception:
                logger.exception("[%s #%s] ошибка проверки завершения сессии", session_id, chunk.sequence)
            return text

        try:
            text = await self.queue.submit(session_id, transcribe_chunk)
        except Exception as e:
            logger.error("XXX [%s #%s] ошибка транскрибации чанка %s: %s",
                         session_id, chunk.sequence, chunk.id, e)
            raise
        logger.info("<-- [%s #%s] готово (%d символов)", session_id, chunk.sequence, len(text))
        return chunk.id, text

    async def close(self) -> None:
        await self.queue.close()
