import asyncio

import pytest
from sqlmodel import Session, select

from conftest import new_session
from livescribe.core.errors import NoTranscriptError, NotFoundError
from livescribe.models import PLACEHOLDER_TEXT, FullTranscript, SessionStatus, Summary, TranscriptChunk
from livescribe.services.completion import (
    AlreadyComplete,
    Completed,
    CompletionDetector,
    NotReady,
)


def count_rows(engine, model):
    with Session(engine) as session:
        return len(session.exec(select(model)).all())


def test_not_ready_while_a_chunk_is_transcribing(services, engine):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello"), (1, PLACEHOLDER_TEXT)])
        await services.sessions.stop_session(session_id, last_sequence=1)
        return await services.completion.try_complete(session_id)

    result = asyncio.run(scenario())
    assert result == NotReady(total_chunks=2, ready_chunks=1)
    assert result.transcribing_chunks == 1
    assert count_rows(engine, FullTranscript) == 0
    assert count_rows(engine, Summary) == 0


def test_chunks_past_the_boundary_are_ignored(services):
    async def scenario():
        session_id = await new_session(
            services, chunks=[(0, "hello"), (1, "world"), (2, PLACEHOLDER_TEXT), (3, "late")]
        )
        await services.sessions.stop_session(session_id, last_sequence=1)
        return await services.completion.try_complete(session_id)

    result = asyncio.run(scenario())
    assert isinstance(result, Completed)
    assert result.full_transcript == "hello world"


def test_transcript_is_ordered_by_sequence_then_timestamp(services):
    async def scenario():
        session_id = await new_session(
            services, chunks=[(2, " c "), (0, "a"), (1, "b1"), (1, "b2"), (3, "   ")]
        )
        return await services.completion.try_complete(session_id)

    result = asyncio.run(scenario())
    assert result.full_transcript == "a b1 b2 c"


def test_unknown_boundary_uses_all_chunks(services):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "one"), (5, "two")])
        return await services.completion.try_complete(session_id)

    assert asyncio.run(scenario()).full_transcript == "one two"


def test_no_chunks(services):
    async def scenario():
        session_id = await new_session(services)
        await services.sessions.stop_session(session_id)
        return await services.completion.try_complete(session_id)

    with pytest.raises(NoTranscriptError, match="No transcript chunks found"):
        asyncio.run(scenario())


def test_all_chunks_blank(services, engine):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, ""), (1, "  ")])
        return await services.completion.try_complete(session_id)

    with pytest.raises(NoTranscriptError, match="empty"):
        asyncio.run(scenario())
    assert count_rows(engine, FullTranscript) == 0


def test_unknown_session(services):
    with pytest.raises(NotFoundError):
        asyncio.run(services.completion.try_complete("missing"))


def test_second_call_returns_the_stored_summary(services, fake_gemini):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello"), (1, "world")])
        await services.sessions.stop_session(session_id, last_sequence=1)
        first = await services.completion.try_complete(session_id)
        second = await services.completion.try_complete(session_id)
        session = await services.store.get_session(session_id)
        return session_id, first, second, session

    session_id, first, second, session = asyncio.run(scenario())
    assert isinstance(first, Completed)
    assert isinstance(second, AlreadyComplete)
    assert second.summary == first.summary
    assert second.full_transcript == "hello world"
    assert fake_gemini.summarize_calls == ["hello world"]
    assert session.status == SessionStatus.COMPLETED
    assert services.completion.boundaries.get(session_id) is None


def test_concurrent_calls_create_one_summary(services, engine, fake_gemini):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello")])
        return await asyncio.gather(
            services.completion.try_complete(session_id),
            services.completion.try_complete(session_id),
        )

    results = asyncio.run(scenario())
    assert sorted(type(r).__name__ for r in results) == ["AlreadyComplete", "Completed"]
    assert results[0].summary == results[1].summary
    assert len(fake_gemini.summarize_calls) == 1
    assert count_rows(engine, FullTranscript) == 1
    assert count_rows(engine, Summary) == 1


def test_existing_full_transcript_is_reused(services, fake_gemini):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, PLACEHOLDER_TEXT)])
        await services.store.create_full_transcript(session_id, "from an earlier attempt")
        return await services.completion.try_complete(session_id)

    result = asyncio.run(scenario())
    assert isinstance(result, Completed)
    assert result.full_transcript == "from an earlier attempt"
    assert fake_gemini.summarize_calls == ["from an earlier attempt"]


class GatedSummarizer:
    """The first summarize call blocks until released; later calls return immediately."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def summarize(self, text):
        self.calls += 1
        if self.calls == 1:
            self.entered.set()
            await self.release.wait()
            return "slow summary"
        return "fast summary"


def test_losing_writer_reports_already_complete(services, engine):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello")])
        summarizer = GatedSummarizer()
        # Two detectors sharing one store behave like two processes
        slow = CompletionDetector(services.store, summarizer, services.completion.boundaries,
                                  services.supervisor, retry=services.completion.retry)
        fast = CompletionDetector(services.store, summarizer, services.completion.boundaries,
                                  services.supervisor, retry=services.completion.retry)
        slow_task = asyncio.create_task(slow.try_complete(session_id))
        await summarizer.entered.wait()
        fast_result = await fast.try_complete(session_id)
        summarizer.release.set()
        return fast_result, await slow_task

    fast_result, slow_result = asyncio.run(scenario())
    assert fast_result == Completed("fast summary", "hello")
    assert slow_result == AlreadyComplete("fast summary", "hello")
    assert count_rows(engine, FullTranscript) == 1
    assert count_rows(engine, Summary) == 1


def test_last_chunk_triggers_background_completion(services):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello"), (1, "world")])
        await services.sessions.stop_session(session_id, last_sequence=1)
        await services.completion.on_chunk_transcribed(session_id, 1)
        await services.supervisor.join()
        return await services.store.get_summary(session_id)

    summary = asyncio.run(scenario())
    assert summary.text == "Main topic: hello world"


def test_earlier_chunk_does_not_trigger(services):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello"), (1, PLACEHOLDER_TEXT)])
        await services.sessions.stop_session(session_id, last_sequence=1)
        await services.completion.on_chunk_transcribed(session_id, 0)
        return len(services.supervisor)

    assert asyncio.run(scenario()) == 0


def test_no_trigger_before_stop(services):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello")])
        await services.completion.on_chunk_transcribed(session_id, 0)
        return len(services.supervisor)

    assert asyncio.run(scenario()) == 0


def test_snapshot_counts_chunks(services):
    async def scenario():
        session_id = await new_session(services, chunks=[(0, "hello"), (1, PLACEHOLDER_TEXT)])
        await services.sessions.stop_session(session_id, last_sequence=1)
        return await services.completion.snapshot(session_id)

    snapshot = asyncio.run(scenario())
    assert snapshot.status == SessionStatus.PROCESSING
    assert (snapshot.total_chunks, snapshot.transcribing_chunks, snapshot.ready_chunks) == (2, 1, 1)
    assert snapshot.summary is None
    assert snapshot.last_sequence == 1


def test_only_the_exact_placeholder_is_pending():
    assert TranscriptChunk(session_id="s", text=PLACEHOLDER_TEXT).is_pending
    assert not TranscriptChunk(session_id="s", text="").is_pending
    assert not TranscriptChunk(session_id="s", text="transcribing...").is_pending
