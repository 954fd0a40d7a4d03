"""Collector package for discotrack.

Fetches discovery documents and feeds them through the diff/log pipeline.

Submodules
----------
fetcher -- DocumentFetcher: concurrent HTTPS fetch of ``$discovery`` documents.
poller  -- Poller: per-cycle snapshot/diff/append/store driver.
"""

from discotrack.collector.fetcher import DocumentFetcher, FetchResult
from discotrack.collector.poller import CycleReport, Poller

__all__ = ["CycleReport", "DocumentFetcher", "FetchResult", "Poller"]
