"""Serialize the sorted download view for operator download."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

from download_insights.domain.exceptions import ExportError
from download_insights.domain.models import DownloadRecord, ViewItem
from download_insights.engine.grouping import flatten_items

BOM = "\ufeff"
FILENAME_PREFIX = "lancache_downloads"

CSV_HEADERS = (
    "id",
    "service",
    "clientIp",
    "startTime",
    "endTime",
    "cacheHitBytes",
    "cacheMissBytes",
    "totalBytes",
    "cacheHitPercent",
    "isActive",
    "gameName",
    "gameAppId",
)

CSV_FORMAT = "csv"
JSON_FORMAT = "json"

_MIME_TYPES = {
    CSV_FORMAT: "text/csv;charset=utf-8",
    JSON_FORMAT: "application/json",
}


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: str
    mime_type: str


def _format_time(value: Optional[datetime]) -> str:
    return value.isoformat() if value is not None else ""


def _csv_row(record: DownloadRecord) -> List[Any]:
    return [
        record.id,
        record.service,
        record.client_ip,
        _format_time(record.start_time_utc),
        _format_time(record.end_time_utc),
        record.cache_hit_bytes,
        record.cache_miss_bytes,
        record.total_bytes,
        f"{record.cache_hit_percent:.2f}",
        "TRUE" if record.is_active else "FALSE",
        record.game_name or "",
        record.game_app_id or "",
    ]


def to_csv(items: Iterable[ViewItem]) -> str:
    """Flatten groups to member records and render them as BOM-prefixed CSV."""

    records = flatten_items(items)
    if not records:
        return ""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(_csv_row(record))
    return BOM + buffer.getvalue()


def to_json(items: Sequence[ViewItem]) -> str:
    """Keep group membership; client sets serialize as sorted arrays."""

    payload = [item.model_dump(mode="json", by_alias=True) for item in items]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def to_dataframe(items: Iterable[ViewItem]) -> Any:
    """Flattened records as a pandas DataFrame."""

    try:
        import pandas as pd  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("pandas is required for dataframe export") from exc

    rows = [
        {**record.model_dump(), "cache_hit_percent": record.cache_hit_percent}
        for record in flatten_items(items)
    ]
    return pd.DataFrame(rows)


def export_filename(fmt: str, now: Optional[datetime] = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{FILENAME_PREFIX}_{moment.strftime('%Y-%m-%dT%H-%M-%S')}.{fmt}"


def export(
    items: Sequence[ViewItem], fmt: str, *, now: Optional[datetime] = None
) -> ExportResult:
    normalized = fmt.strip().lower()
    if normalized not in _MIME_TYPES:
        raise ExportError(
            "Unsupported export format", context={"format": fmt}
        )
    try:
        content = to_csv(items) if normalized == CSV_FORMAT else to_json(items)
    except (TypeError, ValueError) as exc:
        raise ExportError(
            "Could not serialize downloads",
            context={"format": normalized, "error": str(exc)},
        ) from exc
    return ExportResult(
        filename=export_filename(normalized, now),
        content=content,
        mime_type=_MIME_TYPES[normalized],
    )
