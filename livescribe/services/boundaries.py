import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class SessionBoundaries:
    """Последний sequence чанка, зафиксированный при остановке сессии.

    Живёт только в памяти процесса. После рестарта записи нет, и это
    значит «граница неизвестна, берём все чанки».
    """

    def __init__(self):
        self._last_sequence: Dict[str, int] = {}

    def record(self, session_id: str, last_sequence: int) -> None:
        previous = self._last_sequence.get(session_id)
        if previous is not None and previous != last_sequence:
            logger.warning("Граница сессии %s перезаписана: %s -> %s", session_id, previous, last_sequence)
        self._last_sequence[session_id] = last_sequence

    def get(self, session_id: str) -> Optional[int]:
        return self._last_sequence.get(session_id)

    def discard(self, session_id: str) -> None:
        self._last_sequence.pop(session_id, None)
