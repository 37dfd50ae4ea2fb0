"""Сборка полного транскрипта и саммари сессии.

Полный транскрипт и саммари создаются не больше одного раза на сессию.
Внутри процесса попытки для одной сессии идут через очередь по ключу,
между процессами последней защитой служат уникальные ограничения
на session_id: проигравший писатель считает, что работу сделал другой.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from livescribe.core.errors import DuplicateRecordError, NoTranscriptError, NotFoundError
from livescribe.models import FullTranscript, SessionStatus
from livescribe.services.boundaries import SessionBoundaries
from livescribe.services.retry import RetryPolicy
from livescribe.services.store import TranscriptStore
from livescribe.services.supervisor import TaskSupervisor
from livescribe.services.task_queue import KeyedTaskQueue

logger = logging.getLogger(__name__)


@dataclass
class AlreadyComplete:
    summary: str
    full_transcript: str


@dataclass
class NotReady:
    total_chunks: int
    ready_chunks: int

    @property
    def transcribing_chunks(self) -> int:
        return self.total_chunks - self.ready_chunks


@dataclass
class Completed:
    summary: str
    full_transcript: str


CompletionResult = Union[AlreadyComplete, NotReady, Completed]


@dataclass
class SessionSnapshot:
    session_id: str
    status: SessionStatus
    total_chunks: int
    transcribing_chunks: int
    summary: Optional[str] = None
    full_transcript: Optional[str] = None
    last_sequence: Optional[int] = None

    @property
    def ready_chunks(self) -> int:
        return self.total_chunks - self.transcribing_chunks


class CompletionDetector:
    def __init__(self, store: TranscriptStore, summarizer, boundaries: SessionBoundaries,
                 supervisor: TaskSupervisor, retry: Optional[RetryPolicy] = None):
        self.store = store
        self.summarizer = summarizer
        self.boundaries = boundaries
        self.supervisor = supervisor
        self.retry = retry or RetryPolicy()
        self._queue = KeyedTaskQueue("completion")

    async def try_complete(self, session_id: str) -> CompletionResult:
        """Идемпотентна: после завершения всегда возвращает AlreadyComplete с тем же саммари."""
        return await self._queue.submit(session_id, lambda: self._complete(session_id))

    async def _complete(self, session_id: str) -> CompletionResult:
        summary = await self.store.get_summary(session_id)
        if summary is not None:
            full = await self.store.get_full_transcript(session_id)
            logger.info("Сессия %s уже завершена, отдаём сохранённое саммари", session_id)
            self.boundaries.discard(session_id)
            return AlreadyComplete(summary.text, full.text if full else "")

        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")

        full = await self.store.get_full_transcript(session_id)
        if full is None:
            assembled = await self._assemble(session_id)
            if isinstance(assembled, NotReady):
                return assembled
            full = assembled
        else:
            logger.info("Сессия %s: используем существующий полный транскрипт %s", session_id, full.id)

        summary_text = await self.retry.run(self.summarizer.summarize, full.text,
                                            label=f"summary {session_id}")
        try:
            summary = await self.store.create_summary(session_id, summary_text)
        except DuplicateRecordError:
            existing = await self.store.get_summary(session_id)
            logger.info("Сессия %s: саммари уже сохранил другой процесс", session_id)
            self.boundaries.discard(session_id)
            return AlreadyComplete(existing.text, full.text)

        await self.store.update_session(session_id, status=SessionStatus.COMPLETED)
        self.boundaries.discard(session_id)
        logger.info("Сессия %s завершена: транскрипт %d символов, саммари %d символов",
                    session_id, len(full.text), len(summary.text))
        return Completed(summary.text, full.text)

    async def _assemble(self, session_id: str) -> Union[FullTranscript, NotReady]:
        last_sequence = self.boundaries.get(session_id)
        chunks = await self.store.list_chunks(session_id, max_sequence=last_sequence)
        logger.info("Сессия %s: %d чанков (до seq %s)", session_id, len(chunks),
                    last_sequence if last_sequence is not None else "N/A")
        if not chunks:
            raise NoTranscriptError("No transcript chunks found")

        pending = [c for c in chunks if c.is_pending]
        if pending:
            logger.warning("Сессия %s: %d/%d чанков ещё транскрибируются",
                           session_id, len(pending), len(chunks))
            return NotReady(total_chunks=len(chunks), ready_chunks=len(chunks) - len(pending))

        text = " ".join(t for t in (c.text.strip() for c in chunks) if t)
        if not text:
            raise NoTranscriptError("All transcript chunks are empty")

        try:
            return await self.store.create_full_transcript(session_id, text)
        except DuplicateRecordError:
            logger.info("Сессия %s: полный транскрипт уже создал другой процесс", session_id)
            return await self.store.get_full_transcript(session_id)

    async def on_chunk_transcribed(self, session_id: str, sequence: int) -> None:
        """Запускает сборку в фоне, если транскрибирован последний чанк остановленной сессии."""
        last_sequence = self.boundaries.get(session_id)
        if last_sequence is None or sequence < last_sequence:
            return
        session = await self.store.get_session(session_id)
        if session is None or session.status != SessionStatus.PROCESSING:
            return
        if await self.store.get_full_transcript(session_id) is not None:
            return
        logger.info("Сессия %s: последний чанк seq=%s готов, запускаем сборку", session_id, sequence)
        self.supervisor.spawn(self._auto_complete(session_id), name=f"complete:{session_id}")

    async def _auto_complete(self, session_id: str) -> None:
        result = await self.try_complete(session_id)
        if isinstance(result, NotReady):
            logger.info("Сессия %s: автосборка отложена, готово %d/%d",
                        session_id, result.ready_chunks, result.total_chunks)

    async def snapshot(self, session_id: str) -> SessionSnapshot:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        chunks = await self.store.list_chunks(session_id)
        summary = await self.store.get_summary(session_id)
        full = await self.store.get_full_transcript(session_id)
        return SessionSnapshot(
            session_id=session_id,
            status=session.status,
            total_chunks=len(chunks),
            transcribing_chunks=sum(1 for c in chunks if c.is_pending),
            summary=summary.text if summary else None,
            full_transcript=full.text if full else None,
            last_sequence=self.boundaries.get(session_id),
        )

    async def close(self) -> None:
        await self._queue.close()
