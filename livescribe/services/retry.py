import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from livescribe.core.config import RETRY_ATTEMPTS, RETRY_BASE_DELAY, RETRY_MAX_JITTER
from livescribe.core.errors import TransientExternalError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """Повторяет внешний вызов только при временных ошибках.

    Перед повтором номер n ждём base_delay * 2^(n-1) плюс случайный jitter
    в пределах max_jitter. Остальные ошибки пробрасываются сразу, после
    последней попытки пробрасывается последняя временная ошибка.
    """

    def __init__(self, attempts: int = RETRY_ATTEMPTS, base_delay: float = RETRY_BASE_DELAY,
                 max_jitter: float = RETRY_MAX_JITTER,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.attempts = max(1, attempts)
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self._sleep = sleep

    def _log_retry(self, label: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            logger.warning("%s: попытка %d/%d не удалась (%s), повтор через %.2fs",
                           label, retry_state.attempt_number, self.attempts,
                           retry_state.outcome.exception(), retry_state.next_action.sleep)
        return before_sleep

    async def run(self, func: Callable[..., Awaitable[T]], *args, label: str = "external call") -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientExternalError),
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential(multiplier=self.base_delay) + wait_random(0, self.max_jitter),
            sleep=self._sleep,
            before_sleep=self._log_retry(label),
            reraise=True,
        )
        try:
            return await retrying(func, *args)
        except TransientExternalError as e:
            logger.error("%s: попытки исчерпаны (%d): %s", label, self.attempts, e)
            raise
