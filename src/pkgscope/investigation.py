"""Breadth-first crawl over a package's documentation sources.

Starting from the initial reference, each source is fetched through the
``fetch`` cache and the related sources it reports are queued. At most one
source per type is collected; per-source failures are recorded and the crawl
moves on.
"""

import asyncio
from collections import deque
from collections.abc import Callable, Iterable

from loguru import logger

from pkgscope.cache import FileCache
from pkgscope.detect import InitialQuery
from pkgscope.errors import InvestigatorNotFoundError
from pkgscope.models import Data, Reference, RelatedReference, SourceType
from pkgscope.sources.base import SourceInvestigator
from pkgscope.sources.registry import InvestigatorRegistry, get_registry
from pkgscope.sources.util import force_refresh

SufficiencyPredicate = Callable[["Investigation"], bool]


# ---------------------------------------------------------------------------
# Sufficiency predicates
# ---------------------------------------------------------------------------


def never_sufficient(investigation: "Investigation") -> bool:
    """Exhaustive crawl: keep going until the queue is empty."""
    return False


def repository_and_registry(investigation: "Investigation") -> bool:
    """Stop once a repository and a registry source were fetched successfully."""
    fetched = [t for t, data in investigation.collected_data.items() if data.ok]
    return any(t.is_repository() for t in fetched) and any(t.is_registry() for t in fetched)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

_fetch_cache: FileCache[Data] | None = None


def get_fetch_cache() -> FileCache[Data]:
    global _fetch_cache
    if _fetch_cache is None:
        _fetch_cache = FileCache("fetch", encode=Data.to_dict, decode=Data.from_dict)
    return _fetch_cache


class Investigation:
    """State of one crawl.

    ``collected_data`` keeps insertion order, which is the order sources
    were visited in. Result aggregation relies on it.
    """

    def __init__(
        self,
        query: InitialQuery,
        registry: InvestigatorRegistry | None = None,
        sufficiency: SufficiencyPredicate = never_sufficient,
        concurrency: int = 1,
        cache: FileCache[Data] | None = None,
    ):
        self.query = query
        self.collected_data: dict[SourceType, Data] = {}
        self._registry = registry or get_registry()
        self._sufficiency = sufficiency
        self._concurrency = max(1, concurrency)
        self._cache = cache or get_fetch_cache()
        self._queue: deque[Reference] = deque()
        self._enqueued: set[SourceType] = set()

    async def run(self, timeout: float | None = None) -> "Investigation":
        """Crawl until the queue empties or the sufficiency predicate fires.

        Raises:
            InvestigatorNotFoundError: a queued type has no investigator.
            TimeoutError: ``timeout`` elapsed; data collected so far is kept.
        """
        if timeout:
            await asyncio.wait_for(self._crawl(), timeout=timeout)
        else:
            await self._crawl()
        return self

    async def _crawl(self) -> None:
        token = force_refresh.set(self.query.force_update)
        try:
            await self._visit()
        finally:
            force_refresh.reset(token)

    async def _visit(self) -> None:
        seed = self.query.source_ref
        logger.info(f"Investigating {seed.cache_key()}")
        self._queue = deque([seed])
        self._enqueued = {seed.type}

        while self._queue:
            batch = self._next_batch()
            outcomes = await asyncio.gather(
                *(self._fetch(ref, investigator) for ref, investigator in batch),
                return_exceptions=True,
            )

            # Commit in dequeue order so the result does not depend on
            # which fetch finished first
            for (ref, _), outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, Exception):
                    logger.warning(f"Failed to fetch {ref.cache_key()}: {outcome}")
                    self.collected_data[ref.type] = Data.failed(f"{ref.cache_key()}: {outcome}")
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome

                outcome.source = ref
                self.collected_data[ref.type] = outcome

                if self._sufficiency(self):
                    logger.info(f"Investigation of {seed.cache_key()} sufficient, stopping")
                    return
                self._enqueue(outcome.related_sources)

        logger.info(
            f"Investigation of {seed.cache_key()} finished: "
            f"{', '.join(t.value for t in self.collected_data)}"
        )

    def _next_batch(self) -> list[tuple[Reference, SourceInvestigator]]:
        """Pop up to ``concurrency`` references, resolving their investigators.

        A reference without an investigator ends the batch; it is raised on
        once everything dequeued before it has been committed.
        """
        batch: list[tuple[Reference, SourceInvestigator]] = []
        while self._queue and len(batch) < self._concurrency:
            ref = self._queue[0]
            investigator = self._registry.get(ref.type)
            if investigator is None:
                if batch:
                    break
                raise InvestigatorNotFoundError(
                    f"investigator not found for source type: {ref.type.value!r}",
                    type=ref.type.value,
                    path=ref.path,
                )
            self._queue.popleft()
            batch.append((ref, investigator))
        return batch

    async def _fetch(self, ref: Reference, investigator: SourceInvestigator) -> Data:
        path = ref.path
        if "://" in path:
            path = investigator.package_from_url(path)
        return await self._cache.get_or_set(
            ref.cache_key(),
            lambda: investigator.fetch(path),
            self.query.force_update,
        )

    def _enqueue(self, related: Iterable[RelatedReference]) -> None:
        for related_ref in related:
            ref = related_ref.to_reference()
            if ref.type == SourceType.UNKNOWN:
                logger.debug(f"Skipping related source of unknown type: {ref.path}")
                continue
            if ref.type in self.collected_data or ref.type in self._enqueued:
                continue
            self._enqueued.add(ref.type)
            self._queue.append(ref)
