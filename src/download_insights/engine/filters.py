"""Record filter applying operator-selected predicates to raw downloads."""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Sequence

from download_insights.domain.models import MIB, DownloadRecord
from download_insights.domain.settings import ALL, FilterSettings
from download_insights.utils.game_names import is_hidden_unknown_name, is_steam

LOCALHOST_ADDRESSES = frozenset({"127.0.0.1", "::1"})

logger = logging.getLogger(__name__)

RecordPredicate = Callable[[DownloadRecord], bool]


def filter_records(
    records: Sequence[DownloadRecord] | Any, settings: FilterSettings
) -> List[DownloadRecord]:
    """Return the records that pass every enabled predicate, in input order."""

    if not is_record_sequence(records):
        logger.warning(
            "malformed_record_source",
            extra={"source_type": type(records).__name__},
        )
        return []

    predicates = build_predicates(settings)
    return [record for record in records if all(p(record) for p in predicates)]


def build_predicates(settings: FilterSettings) -> List[RecordPredicate]:
    predicates: List[RecordPredicate] = []
    if not settings.show_zero_bytes:
        predicates.append(lambda r: r.total_bytes > 0)
    if not settings.show_small_files:
        predicates.append(lambda r: r.total_bytes == 0 or r.total_bytes >= MIB)
    if settings.hide_localhost:
        predicates.append(lambda r: r.client_ip not in LOCALHOST_ADDRESSES)
    if settings.hide_unknown_games:
        predicates.append(_keeps_known_game)

    service = settings.selected_service.lower()
    if service != ALL:
        predicates.append(lambda r: r.service.lower() == service)
    if settings.selected_client != ALL:
        client = settings.selected_client
        predicates.append(lambda r: r.client_ip == client)

    query = settings.search_query.strip().lower()
    if query:
        predicates.append(lambda r: matches_search(r, query))
    return predicates


def matches_search(record: DownloadRecord, query: str) -> bool:
    """Case-insensitive substring match over the searchable fields."""

    query = query.lower()
    if record.game_name and query in record.game_name.lower():
        return True
    if query in record.service.lower() or query in record.client_ip.lower():
        return True
    if record.depot_id and query in str(record.depot_id):
        return True
    return bool(record.game_app_id) and query in str(record.game_app_id)


def _keeps_known_game(record: DownloadRecord) -> bool:
    # in-progress names may not be resolved yet
    if record.is_active or not is_steam(record.service):
        return True
    return not is_hidden_unknown_name(record.game_name)


def is_record_sequence(records: Any) -> bool:
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        return False
    return all(isinstance(record, DownloadRecord) for record in records)
