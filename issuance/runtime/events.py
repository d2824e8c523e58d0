"""In-memory collector for issuance records."""

from __future__ import annotations

import logging
from typing import List

from ..types.records import IssuancePath, IssuanceRecord

log = logging.getLogger(__name__)


class InMemoryEventSink:
    def __init__(self) -> None:
        self.records: List[IssuanceRecord] = []

    def emit(self, record: IssuanceRecord) -> None:
        self.records.append(record)
        log.debug("issuance record", extra={"record": record.to_dict()})

    def by_path(self, path: IssuancePath) -> List[IssuanceRecord]:
        return [r for r in self.records if r.path is path]

    def clear(self) -> None:
        self.records.clear()

    def __len__(self) -> int:
        return len(self.records)


__all__ = ["InMemoryEventSink"]
