import os
from dotenv import load_dotenv

load_dotenv()

def env(key: str, default: str | None = None) -> str | None:
    return os.getenv(key, default)

def env_float(key: str, default: float) -> float:
    raw = env(key)
    if raw is None or not raw.strip():
        return default
    return float(raw)

API_BASE_URL = env("LLM_COMPARE_API_URL", "http://localhost:8080/api")

# Generation is slow; the health check is not.
CALL_TIMEOUT_S = env_float("LLM_COMPARE_CALL_TIMEOUT_S", 120.0)
HEALTH_TIMEOUT_S = env_float("LLM_COMPARE_HEALTH_TIMEOUT_S", 5.0)
HEALTH_INTERVAL_S = env_float("LLM_COMPARE_HEALTH_INTERVAL_S", 30.0)

LOG_LEVEL = (env("LLM_COMPARE_LOG_LEVEL", "INFO") or "INFO").upper()
LOG_FORMAT = env("LLM_COMPARE_LOG_FORMAT", "console")
