"""Structured logging for uploads (started/completed/failed per job)."""

import json
import logging
from typing import Any

logger = logging.getLogger("conversion_storage.uploads")


def _extra(
    vendor: str,
    job_id: str,
    key: str,
    event: str,
    *,
    duration_ms: int | None = None,
    size: int | None = None,
    error: str | None = None,
    error_type: str | None = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {
        "vendor": vendor,
        "job_id": job_id,
        "key": key,
        "event": event,
    }
    if duration_ms is not None:
        out["duration_ms"] = duration_ms
    if size is not None:
        out["size"] = size
    if error is not None:
        out["error"] = error
    if error_type is not None:
        out["error_type"] = error_type
    return out


def log_upload_event(
    vendor: str,
    job_id: str,
    key: str,
    event: str,
    *,
    duration_ms: int | None = None,
    size: int | None = None,
    error: str | None = None,
    error_type: str | None = None,
) -> None:
    """Emit one structured log line for the upload lifecycle.
    event: started | completed | failed. Never pass URLs or credentials here.
    """
    extra_dict = _extra(
        vendor=vendor,
        job_id=job_id,
        key=key,
        event=event,
        duration_ms=duration_ms,
        size=size,
        error=error,
        error_type=error_type,
    )
    msg = json.dumps(extra_dict)
    if event == "failed":
        logger.error(msg, extra=extra_dict)
    else:
        logger.info(msg, extra=extra_dict)
