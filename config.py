import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5050
DEFAULT_ENCODING = "cp858"
DEFAULT_TIMEOUT = 10.0
DEFAULT_TIMEZONE = "America/Mexico_City"


def _number(env, key, default, kind):
    value = env.get(key)
    if value is None or value == "":
        return default
    try:
        return kind(value)
    except ValueError:
        raise ValueError(f"{key} must be {'an integer' if kind is int else 'a number'}, got {value!r}") from None


@dataclass(frozen=True)
class Config:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    encoding: str = DEFAULT_ENCODING
    timeout: float = DEFAULT_TIMEOUT
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("PRINT_SERVER_HOST", DEFAULT_HOST),
            port=_number(env, "PRINT_SERVER_PORT", DEFAULT_PORT, int),
            encoding=env.get("PRINTER_ENCODING", DEFAULT_ENCODING),
            timeout=_number(env, "PRINTER_TIMEOUT", DEFAULT_TIMEOUT, float),
            timezone=env.get("PRINTER_TIMEZONE", DEFAULT_TIMEZONE),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_file=env.get("LOG_FILE") or None,
        )
