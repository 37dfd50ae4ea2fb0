import logging
from typing import Optional, Tuple

from livescribe.core.errors import NotFoundError
from livescribe.models import RecordingSession, SessionStatus
from livescribe.models.user import utcnow
from livescribe.services.boundaries import SessionBoundaries
from livescribe.services.store import TranscriptStore

logger = logging.getLogger(__name__)


class SessionLifecycle:
    """Старт и остановка сессий записи: RECORDING -> PROCESSING.

    В COMPLETED сессию переводит CompletionDetector, когда появляется саммари.
    """

    def __init__(self, store: TranscriptStore, boundaries: SessionBoundaries):
        self.store = store
        self.boundaries = boundaries

    async def start_session(self, user_id: str, title: Optional[str] = None) -> RecordingSession:
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        session = await self.store.create_session(user_id, title)
        logger.info("Сессия %s начата пользователем %s", session.id, user_id)
        return session

    async def stop_session(self, session_id: str,
                           last_sequence: Optional[int] = None) -> Tuple[RecordingSession, int]:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")

        if last_sequence is None:
            # Повторный stop без явной границы пересчитает её по текущим чанкам
            max_sequence = await self.store.max_chunk_sequence(session_id)
            last_sequence = max_sequence if max_sequence is not None else 0

        if session.status == SessionStatus.COMPLETED:
            # Из COMPLETED переходов нет: граница не нужна, статус не меняется
            logger.warning("Stop для уже завершённой сессии %s проигнорирован", session_id)
            return session, last_sequence

        self.boundaries.record(session_id, last_sequence)
        session = await self.store.update_session(
            session_id,
            status=SessionStatus.PROCESSING,
            end_time=utcnow(),
        )
        logger.info("Сессия %s остановлена, последний чанк seq=%s", session_id, last_sequence)
        return session, last_sequence
