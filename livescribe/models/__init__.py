from livescribe.models.session import RecordingSession, SessionStatus
from livescribe.models.transcript import PLACEHOLDER_TEXT, FullTranscript, Summary, TranscriptChunk
from livescribe.models.user import User

__all__ = [
    "PLACEHOLDER_TEXT",
    "FullTranscript",
    "RecordingSession",
    "SessionStatus",
    "Summary",
    "TranscriptChunk",
    "User",
]
