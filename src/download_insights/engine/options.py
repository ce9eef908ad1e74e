"""Service and client choices offered by the filter dropdowns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from download_insights.domain.models import MIB, DownloadRecord


@dataclass(frozen=True)
class ServiceOptions:
    """Services with real content first; metadata-only services kept apart."""

    primary: Tuple[str, ...]
    small_only: Tuple[str, ...]

    @property
    def all(self) -> Tuple[str, ...]:
        return self.primary + self.small_only


def service_options(records: Iterable[DownloadRecord]) -> ServiceOptions:
    services = set()
    with_large_files = set()
    for record in records:
        service = record.service.lower()
        services.add(service)
        if record.total_bytes > MIB:
            with_large_files.add(service)
    ordered = sorted(services)
    return ServiceOptions(
        primary=tuple(s for s in ordered if s in with_large_files),
        small_only=tuple(s for s in ordered if s not in with_large_files),
    )


def client_options(records: Iterable[DownloadRecord]) -> Tuple[str, ...]:
    return tuple(sorted({record.client_ip for record in records}))
