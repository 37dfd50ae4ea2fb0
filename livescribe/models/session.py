import enum
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from livescribe.models.user import new_id, utcnow


class SessionStatus(str, enum.Enum):
    RECORDING = "RECORDING"
    PAUSED = "PAUSED"  # зарезервировано, переходов в него нет
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"


class RecordingSession(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    title: Optional[str] = None
    status: SessionStatus = Field(default=SessionStatus.RECORDING)
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
