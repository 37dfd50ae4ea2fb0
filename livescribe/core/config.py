import os
from pathlib import Path

from dotenv import load_dotenv

# Загружаем переменные из файла .env
load_dotenv()

# Настройки путей
BASE_DIR = Path(__file__).resolve().parent.parent.parent
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'livescribe.db'}")

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com")

# Внешние вызовы: дедлайн одного вызова и политика повторов
EXTERNAL_CALL_TIMEOUT = float(os.getenv("EXTERNAL_CALL_TIMEOUT", 120))
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", 4))
RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", 1.0))
RETRY_MAX_JITTER = float(os.getenv("RETRY_MAX_JITTER", 0.3))

# Сколько сессий одновременно могут транскрибироваться
MAX_CONCURRENT_REQUESTS = int(os.getenv("MAX_CONCURRENT_REQUESTS", 5))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
