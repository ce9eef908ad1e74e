"""Cache of tags and events attached to download records."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from download_insights.domain.exceptions import DashboardError
from download_insights.domain.interfaces import IDashboardApi
from download_insights.domain.models import DownloadAssociations

_EMPTY = DownloadAssociations()


class AssociationCache:
    """Fetches associations once per download id and serves them from memory."""

    def __init__(
        self, api: IDashboardApi, *, logger: Optional[logging.Logger] = None
    ) -> None:
        self._api = api
        self._entries: Dict[int, DownloadAssociations] = {}
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, download_ids: Iterable[int]) -> int:
        """Load any ids not cached yet; returns how many were fetched."""

        missing: List[int] = []
        for download_id in download_ids:
            if download_id not in self._entries and download_id not in missing:
                missing.append(download_id)

        fetched = 0
        for download_id in missing:
            try:
                self._entries[download_id] = self._api.get_download_associations(
                    download_id
                )
            except DashboardError as exc:
                self.logger.warning(
                    "associations_fetch_failed",
                    extra={"download_id": download_id, "error": str(exc)},
                )
                continue
            fetched += 1
        return fetched

    def get(self, download_id: int) -> DownloadAssociations:
        return self._entries.get(download_id, _EMPTY)

    def __contains__(self, download_id: object) -> bool:
        return download_id in self._entries

    def invalidate(self, download_id: Optional[int] = None) -> None:
        if download_id is None:
            self._entries.clear()
        else:
            self._entries.pop(download_id, None)
