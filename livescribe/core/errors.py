class ScribeError(Exception):
    """Базовая ошибка сервиса. status_code уходит в HTTP-ответ."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ScribeError):
    status_code = 400


class NotFoundError(ScribeError):
    status_code = 404


class NoTranscriptError(NotFoundError):
    """Нет чанков или все чанки пустые: собирать нечего."""


class ConfigurationError(ScribeError):
    """Не задан ключ API или другая обязательная настройка."""


class ExternalServiceError(ScribeError):
    pass


class TransientExternalError(ExternalServiceError):
    """Сервис временно недоступен: такой вызов имеет смысл повторить."""


class PermanentExternalError(ExternalServiceError):
    pass


class DuplicateRecordError(Exception):
    """Нарушено ограничение уникальности: запись уже создал кто-то другой."""
