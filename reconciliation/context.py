"""Run-scoped state shared by the scanner, classifier, executor and migration.

A RunContext owns every cache the engine keeps (storage lookups and seen
asset ids). Nothing is module-global, so two runs (or two test cases) never
share state.

Caches are populate-once for the lifetime of a run: storage configuration is
assumed not to change while a run is in progress.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar

from connectors.iconik.iconik_api import IconikArchiveApi
from connectors.mam_base import MAMApiError, MAMClient
from core.models.assets import Storage
from core.models.results import RunMode
from core.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ReconcileConfig:
    """Engine tuning knobs."""
    max_depth: int = 10
    page_size: int = 100
    pause_every_pages: int = 5
    page_pause_seconds: float = 0.1
    window_size: int = 10
    storage_name_filter: Optional[str] = None


@dataclass
class RunContext:
    """State for one finite reconciliation or migration run."""
    api: IconikArchiveApi
    mode: RunMode = RunMode.DRY_RUN
    config: ReconcileConfig = field(default_factory=ReconcileConfig)
    run_id: str = field(default_factory=lambda: f"run-{uuid.uuid4().hex[:8]}")

    _storage_cache: Dict[str, Optional[Storage]] = field(default_factory=dict, init=False, repr=False)
    _storage_lookups: Dict[str, "asyncio.Future"] = field(default_factory=dict, init=False, repr=False)
    seen_assets: Set[str] = field(default_factory=set, init=False, repr=False)

    @classmethod
    def for_client(cls, client: MAMClient, **kwargs) -> "RunContext":
        return cls(api=IconikArchiveApi(client), **kwargs)

    @property
    def live(self) -> bool:
        return self.mode == RunMode.LIVE

    @property
    def prefix(self) -> str:
        """Log prefix for intended writes; empty in live mode."""
        return "" if self.live else "[DRY RUN] "

    # =========================================================================
    # Storage cache
    # =========================================================================

    async def get_storage(self, storage_id: Optional[str]) -> Optional[Storage]:
        """Look up a storage once per run; failed lookups are cached as None.

        Concurrent callers asking for the same id share one in-flight lookup.
        """
        if not storage_id:
            return None
        if storage_id in self._storage_cache:
            return self._storage_cache[storage_id]
        lookup = self._storage_lookups.get(storage_id)
        if lookup is None:
            lookup = asyncio.ensure_future(self._lookup_storage(storage_id))
            self._storage_lookups[storage_id] = lookup
        return await lookup

    async def _lookup_storage(self, storage_id: str) -> Optional[Storage]:
        try:
            storage = await self.api.get_storage(storage_id)
        except MAMApiError as e:
            logger.warning(f"Storage lookup failed for {storage_id}: {e}")
            storage = None
        finally:
            self._storage_lookups.pop(storage_id, None)
        self._storage_cache[storage_id] = storage
        return storage

    def is_target_archive_storage(self, storage: Optional[Storage]) -> bool:
        """Archive-purpose storage matching the optional exact-name filter."""
        if storage is None or not storage.is_archive:
            return False
        name_filter = self.config.storage_name_filter
        if name_filter and storage.name != name_filter:
            return False
        return True

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def page_pause(self, page: int) -> None:
        """Throughput shaping between collection pages."""
        every = self.config.pause_every_pages
        if every and page % every == 0 and self.config.page_pause_seconds > 0:
            await asyncio.sleep(self.config.page_pause_seconds)

    async def run_windowed(
        self,
        items: Iterable[T],
        fn: Callable[[T], Awaitable[R]],
    ) -> List[R]:
        """Run fn over items in fixed windows, awaiting each window in full.

        Results keep input order. An exception escaping fn is logged and
        returned in place of that item's result; window siblings are never
        cancelled.
        """
        items = list(items)
        window = max(1, self.config.window_size)
        results: List[R] = []

        for start in range(0, len(items), window):
            batch = items[start:start + window]
            outcomes = await asyncio.gather(
                *(fn(item) for item in batch),
                return_exceptions=True,
            )
            for item, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                    raise outcome
                if isinstance(outcome, Exception):
                    logger.error(f"Unhandled error processing {item!r}: {outcome}")
            results.extend(outcomes)

        return results
