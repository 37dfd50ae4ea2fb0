from datetime import datetime

from sqlmodel import Field, SQLModel

from livescribe.models.user import new_id, utcnow

# Текст чанка, пока внешний вызов транскрибации не вернулся
PLACEHOLDER_TEXT = "Transcribing..."


class TranscriptChunk(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="recordingsession.id", index=True)
    text: str = Field(default=PLACEHOLDER_TEXT)
    sequence: int = Field(default=0, index=True)
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        # Только точная заглушка: пустой текст считается готовой транскрипцией,
        # хотя исходный сервис считал незавершёнными и пустые чанки
        return self.text == PLACEHOLDER_TEXT


class FullTranscript(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="recordingsession.id", unique=True)
    text: str
    created_at: datetime = Field(default_factory=utcnow)


class Summary(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="recordingsession.id", unique=True)
    text: str
    created_at: datetime = Field(default_factory=utcnow)
