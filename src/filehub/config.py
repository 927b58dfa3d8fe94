"""Runtime configuration loaded from environment variables.

Environment Variables:
    FILEHUB_UPLOAD_DIR: Object store base directory (default: ./uploads)
    FILEHUB_LEDGER_PATH: Descriptor ledger file (default: ./var/ledger/files.jsonl)
    FILEHUB_MAX_UPLOAD_BYTES: Maximum upload size in bytes, 0 = unlimited
        (default: 104857600)
    FILEHUB_HOST: Bind host (default: 127.0.0.1)
    FILEHUB_PORT: Listening port, falls back to PORT (default: 5000)
    FILEHUB_PUBLIC_BASE_URL: Prefix for descriptor URLs
        (default: http://localhost:<port>)
    FILEHUB_CHUNK_SIZE: Streaming buffer size in bytes (default: 65536)
    FILEHUB_REQUEST_TIMEOUT_SECONDS: Upload ingestion timeout, 0 = none
        (default: 300)
    FILEHUB_LOG_LEVEL: Root log level (default: INFO)
    FILEHUB_CORS_ORIGINS: Comma-separated allowed origins (default: *)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger(__name__)

ENV_UPLOAD_DIR: Final[str] = "FILEHUB_UPLOAD_DIR"
ENV_LEDGER_PATH: Final[str] = "FILEHUB_LEDGER_PATH"
ENV_MAX_UPLOAD_BYTES: Final[str] = "FILEHUB_MAX_UPLOAD_BYTES"
ENV_HOST: Final[str] = "FILEHUB_HOST"
ENV_PORT: Final[str] = "FILEHUB_PORT"
ENV_PORT_FALLBACK: Final[str] = "PORT"
ENV_PUBLIC_BASE_URL: Final[str] = "FILEHUB_PUBLIC_BASE_URL"
ENV_CHUNK_SIZE: Final[str] = "FILEHUB_CHUNK_SIZE"
ENV_REQUEST_TIMEOUT_SECONDS: Final[str] = "FILEHUB_REQUEST_TIMEOUT_SECONDS"
ENV_LOG_LEVEL: Final[str] = "FILEHUB_LOG_LEVEL"
ENV_CORS_ORIGINS: Final[str] = "FILEHUB_CORS_ORIGINS"

DEFAULT_UPLOAD_DIR: Final[str] = "./uploads"
DEFAULT_LEDGER_PATH: Final[str] = "./var/ledger/files.jsonl"
DEFAULT_MAX_UPLOAD_BYTES: Final[int] = 100 * 1024 * 1024
DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 5000
DEFAULT_CHUNK_SIZE: Final[int] = 64 * 1024
DEFAULT_REQUEST_TIMEOUT_SECONDS: Final[float] = 300.0
DEFAULT_LOG_LEVEL: Final[str] = "INFO"

_LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
)


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass(frozen=True)
class Settings:
    """Service configuration (immutable).

    Attributes:
        upload_dir: Object store base directory.
        ledger_path: Descriptor ledger JSONL file.
        max_upload_bytes: Upload size limit, None for unlimited.
        host: Bind host.
        port: Listening port.
        public_base_url: Prefix for descriptor retrieval URLs (no trailing slash).
        chunk_size: Streaming buffer size in bytes.
        request_timeout_seconds: Upload ingestion timeout, None for unlimited.
        log_level: Root log level name.
        cors_origins: Allowed CORS origins.
    """

    upload_dir: str = DEFAULT_UPLOAD_DIR
    ledger_path: str = DEFAULT_LEDGER_PATH
    max_upload_bytes: int | None = DEFAULT_MAX_UPLOAD_BYTES
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    public_base_url: str = f"http://localhost:{DEFAULT_PORT}"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    request_timeout_seconds: float | None = DEFAULT_REQUEST_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL
    cors_origins: tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if not self.upload_dir:
            raise ConfigError("upload_dir must not be empty")
        if not self.ledger_path:
            raise ConfigError("ledger_path must not be empty")
        if self.max_upload_bytes is not None and self.max_upload_bytes <= 0:
            raise ConfigError(f"max_upload_bytes must be positive, got {self.max_upload_bytes}")
        if not 0 < self.port < 65536:
            raise ConfigError(f"port must be in 1..65535, got {self.port}")
        if self.chunk_size <= 0:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.request_timeout_seconds is not None and self.request_timeout_seconds <= 0:
            raise ConfigError(
                f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}"
            )
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {self.log_level}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Load settings from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ`` (for testing).

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If any value is malformed or out of range.
    """
    env = os.environ if environ is None else environ

    port_raw = env.get(ENV_PORT) or env.get(ENV_PORT_FALLBACK)
    port = _parse_int(ENV_PORT, port_raw) if port_raw else DEFAULT_PORT

    max_bytes_raw = env.get(ENV_MAX_UPLOAD_BYTES)
    max_upload_bytes: int | None = DEFAULT_MAX_UPLOAD_BYTES
    if max_bytes_raw:
        max_upload_bytes = _parse_int(ENV_MAX_UPLOAD_BYTES, max_bytes_raw) or None

    timeout_raw = env.get(ENV_REQUEST_TIMEOUT_SECONDS)
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT_SECONDS
    if timeout_raw:
        request_timeout = _parse_float(ENV_REQUEST_TIMEOUT_SECONDS, timeout_raw) or None

    chunk_raw = env.get(ENV_CHUNK_SIZE)
    chunk_size = _parse_int(ENV_CHUNK_SIZE, chunk_raw) if chunk_raw else DEFAULT_CHUNK_SIZE

    public_base_url = env.get(ENV_PUBLIC_BASE_URL) or f"http://localhost:{port}"

    origins_raw = env.get(ENV_CORS_ORIGINS, "*")
    cors_origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())

    settings = Settings(
        upload_dir=env.get(ENV_UPLOAD_DIR) or DEFAULT_UPLOAD_DIR,
        ledger_path=env.get(ENV_LEDGER_PATH) or DEFAULT_LEDGER_PATH,
        max_upload_bytes=max_upload_bytes,
        host=env.get(ENV_HOST) or DEFAULT_HOST,
        port=port,
        public_base_url=public_base_url.rstrip("/"),
        chunk_size=chunk_size,
        request_timeout_seconds=request_timeout,
        log_level=(env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper(),
        cors_origins=cors_origins or ("*",),
    )

    logger.debug(
        "Settings loaded: upload_dir=%s max_upload_bytes=%s port=%d",
        settings.upload_dir,
        settings.max_upload_bytes,
        settings.port,
    )
    return settings
