"""Хранилище сессий, чанков, полных транскриптов и саммари.

SQLModel работает синхронно, поэтому каждый публичный метод выполняет свою
транзакцию в пуле потоков и не блокирует event loop.
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from livescribe.core.errors import DuplicateRecordError
from livescribe.models import (
    PLACEHOLDER_TEXT,
    FullTranscript,
    RecordingSession,
    Summary,
    TranscriptChunk,
    User,
)

logger = logging.getLogger(__name__)


class TranscriptStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    # -- Users --

    async def get_or_create_user(self, email: str) -> User:
        return await asyncio.to_thread(self._get_or_create_user, email)

    def _get_or_create_user(self, email: str) -> User:
        with Session(self.engine) as session:
            user = session.exec(select(User).where(User.email == email)).first()
            if user:
                return user
            user = User(email=email)
            session.add(user)
            try:
                session.commit()
            except IntegrityError:
                # Параллельный логин с тем же email успел первым
                session.rollback()
                return session.exec(select(User).where(User.email == email)).one()
            session.refresh(user)
            logger.info("Создан пользователь %s (%s)", user.id, email)
            return user

    async def get_user(self, user_id: str) -> Optional[User]:
        return await asyncio.to_thread(self._get, User, user_id)

    # -- Sessions --

    async def create_session(self, user_id: str, title: Optional[str] = None) -> RecordingSession:
        return await asyncio.to_thread(self._add, RecordingSession(user_id=user_id, title=title))

    async def get_session(self, session_id: str) -> Optional[RecordingSession]:
        return await asyncio.to_thread(self._get, RecordingSession, session_id)

    async def update_session(self, session_id: str, **fields) -> Optional[RecordingSession]:
        return await asyncio.to_thread(self._update, RecordingSession, session_id, fields)

    # -- Chunks --

    async def create_chunk(self, session_id: str, sequence: Optional[int] = None,
                           text: str = PLACEHOLDER_TEXT) -> TranscriptChunk:
        chunk = TranscriptChunk(session_id=session_id, text=text)
        if sequence is not None:
            chunk.sequence = sequence
        return await asyncio.to_thread(self._add, chunk)

    async def update_chunk_text(self, chunk_id: str, text: str) -> Optional[TranscriptChunk]:
        return await asyncio.to_thread(self._update, TranscriptChunk, chunk_id, {"text": text})

    async def max_chunk_sequence(self, session_id: str) -> Optional[int]:
        return await asyncio.to_thread(self._max_chunk_sequence, session_id)

    def _max_chunk_sequence(self, session_id: str) -> Optional[int]:
        with Session(self.engine) as session:
            statement = select(func.max(TranscriptChunk.sequence)).where(
                TranscriptChunk.session_id == session_id
            )
            return session.exec(statement).one()

    async def list_chunks(self, session_id: str, max_sequence: Optional[int] = None) -> List[TranscriptChunk]:
        """Чанки сессии по возрастанию (sequence, timestamp), при необходимости до max_sequence включительно."""
        return await asyncio.to_thread(self._list_chunks, session_id, max_sequence)

    def _list_chunks(self, session_id: str, max_sequence: Optional[int]) -> List[TranscriptChunk]:
        with Session(self.engine) as session:
            statement = select(TranscriptChunk).where(TranscriptChunk.session_id == session_id)
            if max_sequence is not None:
                statement = statement.where(TranscriptChunk.sequence <= max_sequence)
            statement = statement.order_by(TranscriptChunk.sequence, TranscriptChunk.timestamp)
            return list(session.exec(statement).all())

    # -- Full transcripts & summaries --

    async def get_full_transcript(self, session_id: str) -> Optional[FullTranscript]:
        return await asyncio.to_thread(self._get_by_session, FullTranscript, session_id)

    async def create_full_transcript(self, session_id: str, text: str) -> FullTranscript:
        """DuplicateRecordError, если транскрипт для сессии уже существует."""
        return await asyncio.to_thread(self._add, FullTranscript(session_id=session_id, text=text))

    async def get_summary(self, session_id: str) -> Optional[Summary]:
        return await asyncio.to_thread(self._get_by_session, Summary, session_id)

    async def create_summary(self, session_id: str, text: str) -> Summary:
        """DuplicateRecordError, если саммари для сессии уже существует."""
        return await asyncio.to_thread(self._add, Summary(session_id=session_id, text=text))

    # -- Helpers --

    def _get(self, model, record_id: str):
        with Session(self.engine) as session:
            return session.get(model, record_id)

    def _get_by_session(self, model, session_id: str):
        with Session(self.engine) as session:
            return session.exec(select(model).where(model.session_id == session_id)).first()

    def _add(self, record):
        with Session(self.engine) as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                message = str(e.orig).upper()
                if "UNIQUE" in message or "DUPLICATE" in message:
                    raise DuplicateRecordError(f"{type(record).__name__} already exists") from e
                raise
            session.refresh(record)
            return record

    def _update(self, model, record_id: str, fields: dict):
        with Session(self.engine) as session:
            record = session.get(model, record_id)
            if record is None:
                return None
            for key, value in fields.items():
                setattr(record, key, value)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record
