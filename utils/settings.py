import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

STORAGE_BACKENDS = ("s3", "local")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    """
    Runtime configuration read from environment variables.

    - YOLO_SERVICE is required: `host:port` of the detection service.
    - STORAGE_BACKEND selects where originals are written: `s3` (default)
      or `local`.
    - AWS_S3_BUCKET is required for the `s3` backend; AWS_REGION is optional
      and falls back to the SDK's own resolution.
    - LOCAL_STORAGE_DIR is the root folder for the `local` backend.
    - HTTP_TIMEOUT_SECONDS bounds each outbound HTTP call; `0` disables it.

    A RuntimeError is raised from `from_env()` when a value is missing or
    invalid, so misconfiguration fails at startup rather than per request.
    """

    detection_service: str
    storage_backend: str = "s3"
    s3_bucket: Optional[str] = None
    aws_region: Optional[str] = None
    local_storage_dir: Path = Path("storage")
    http_timeout: Optional[float] = 60.0
    session_cookie_name: str = "chat_session"
    log_level: str = "INFO"

    @property
    def detection_base_url(self) -> str:
        return f"http://{self.detection_service}"

    @classmethod
    def from_env(cls) -> "Settings":
        detection_service = (os.getenv("YOLO_SERVICE") or "").strip()
        if not detection_service:
            raise RuntimeError(
                "YOLO_SERVICE environment variable must be set to the detection "
                "service address, e.g. 'yolo:8080' or 'localhost:8080'."
            )

        backend = (os.getenv("STORAGE_BACKEND") or "s3").strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"STORAGE_BACKEND={backend!r} is not supported. "
                f"Choose one of: {', '.join(STORAGE_BACKENDS)}"
            )

        bucket = (os.getenv("AWS_S3_BUCKET") or "").strip() or None
        if backend == "s3" and bucket is None:
            raise RuntimeError("AWS_S3_BUCKET environment variable must be set when STORAGE_BACKEND=s3.")

        local_dir = Path(os.getenv("LOCAL_STORAGE_DIR") or "storage").expanduser()
        if backend == "local" and local_dir.exists() and not local_dir.is_dir():
            raise RuntimeError(
                f"LOCAL_STORAGE_DIR={str(local_dir)!r} points to a file, not a directory."
            )

        log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
        if log_level not in LOG_LEVELS:
            raise RuntimeError(f"LOG_LEVEL={log_level!r} is not a logging level. Choose one of: {', '.join(LOG_LEVELS)}")

        return cls(
            detection_service=detection_service,
            storage_backend=backend,
            s3_bucket=bucket,
            aws_region=(os.getenv("AWS_REGION") or "").strip() or None,
            local_storage_dir=local_dir,
            http_timeout=_parse_timeout(os.getenv("HTTP_TIMEOUT_SECONDS")),
            session_cookie_name=(os.getenv("SESSION_COOKIE_NAME") or "chat_session").strip(),
            log_level=log_level,
        )


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    """Parse HTTP_TIMEOUT_SECONDS; unset means 60s, zero means no timeout."""
    if raw is None or not raw.strip():
        return 60.0
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"HTTP_TIMEOUT_SECONDS={raw!r} is not a number.") from exc
    if value < 0:
        raise RuntimeError("HTTP_TIMEOUT_SECONDS must not be negative.")
    return value or None
