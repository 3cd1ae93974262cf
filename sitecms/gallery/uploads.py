"""
Typed boundary for the hosted upload widget.

The widget reports uploads through an untyped (error, result) callback. Only
UploadResult crosses into the rest of the code base.
"""
from dataclasses import dataclass
from typing import Any, List
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    url: str


def _result_from_event(event: Any):
    if not isinstance(event, dict) or event.get("event") != "success":
        return None
    info = event.get("info")
    if not isinstance(info, dict):
        return None
    url = info.get("secure_url") or info.get("url")
    if not isinstance(url, str) or not url:
        return None
    return UploadResult(url=url)


def parse_widget_event(error: Any, result: Any) -> List[UploadResult]:
    """
    Convert one widget callback into upload results.

    Errors, cancellations and progress events produce an empty list.
    """
    if error:
        logger.warning(f"Upload widget reported an error: {error}")
        return []
    events = result if isinstance(result, list) else [result]
    results = []
    for event in events:
        upload = _result_from_event(event)
        if upload is not None:
            results.append(upload)
    return results


def apply_widget_event(batch, error: Any, result: Any) -> List[UploadResult]:
    """Feed a widget callback into an UploadBatch; returns what was added."""
    uploads = parse_widget_event(error, result)
    for upload in uploads:
        batch.add_uploaded(upload)
    return uploads
