from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from livescribe.services.boundaries import SessionBoundaries
from livescribe.services.completion import CompletionDetector
from livescribe.services.gemini import GeminiClient
from livescribe.services.ingestion import ChunkIngestor
from livescribe.services.retry import RetryPolicy
from livescribe.services.sessions import SessionLifecycle
from livescribe.services.store import TranscriptStore
from livescribe.services.supervisor import TaskSupervisor


@dataclass
class Services:
    store: TranscriptStore
    gemini: GeminiClient
    sessions: SessionLifecycle
    ingestor: ChunkIngestor
    completion: CompletionDetector
    supervisor: TaskSupervisor

    async def close(self) -> None:
        await self.supervisor.close()
        await self.ingestor.close()
        await self.completion.close()


def build_services(engine: Engine, gemini: GeminiClient, retry: Optional[RetryPolicy] = None) -> Services:
    """Собирает сервисы вокруг одного хранилища и одного клиента Gemini."""
    retry = retry or RetryPolicy()
    store = TranscriptStore(engine)
    boundaries = SessionBoundaries()
    supervisor = TaskSupervisor("completion")
    completion = CompletionDetector(store, gemini, boundaries, supervisor, retry=retry)
    return Services(
        store=store,
        gemini=gemini,
        sessions=SessionLifecycle(store, boundaries),
        ingestor=ChunkIngestor(store, gemini, completion, retry=retry),
        completion=completion,
        supervisor=supervisor,
    )
