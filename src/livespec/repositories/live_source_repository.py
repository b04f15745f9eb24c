# src/livespec/repositories/live_source_repository.py

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from opentelemetry import trace, metrics

from livespec.models.live_source import LiveSpecSource

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)

live_source_register_counter = meter.create_counter(
    "livespec_live_source_register_total",
    description="Count of live sources registered",
)


class LiveSourceRepository:
    """
    In-memory registry of live sources.

    Sources are immutable; "updating" one means replacing it.
    """

    def __init__(self):
        self._sources: Dict[str, LiveSpecSource] = {}

    def add(self, source: LiveSpecSource) -> LiveSpecSource:
        with tracer.start_as_current_span("repo.live_source.add") as span:
            span.set_attribute("source.id", source.id)
            if source.id in self._sources:
                raise ValueError(f"Live source {source.id} already exists")
            self._sources[source.id] = source
            live_source_register_counter.add(1, {"source_type": source.source_type})
            logger.info("Registered live source %s (%s)", source.id, source.display_path)
            return source

    def replace(self, source: LiveSpecSource) -> LiveSpecSource:
        self._sources[source.id] = source
        return source

    def get_source(self, source_id: str) -> Optional[LiveSpecSource]:
        return self._sources.get(source_id)

    def list_sources(self) -> List[LiveSpecSource]:
        return list(self._sources.values())

    def remove(self, source_id: str) -> bool:
        removed = self._sources.pop(source_id, None)
        if removed is not None:
            logger.info("Removed live source %s", source_id)
        return removed is not None
