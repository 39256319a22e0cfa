"""Search-as-you-type destination suggestions with live distance and ETA."""

import asyncio
import dataclasses
from typing import Awaitable, Callable, Optional

from .config import EngineConfig
from .errors import RoutingError
from .logger import Logger
from .models import Coordinate, SearchCandidate
from .provider import RouteProvider


class CandidateRanker:
    """
    Turns keystrokes into a list of SearchCandidate.

    update_query() is safe to call on every keystroke: it bumps a query
    token, cancels the previous lookup and enrichment work, and schedules a
    debounced completion lookup. Enrichment of the first few completions is
    staggered so the upstream service is not hit all at once. Any result
    whose token is no longer current is dropped on the floor.
    """

    def __init__(self, provider: RouteProvider, config: Optional[EngineConfig] = None,
                 logger: Optional[Logger] = None,
                 on_change: Optional[Callable[[list[SearchCandidate]], None]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.provider = provider
        self.config = config or EngineConfig()
        self.logger = logger or Logger(echo=False)
        self.on_change = on_change
        self.sleep = sleep

        self.origin: Optional[Coordinate] = None
        self.query: str = ""
        self._token = 0
        self._candidates: list[SearchCandidate] = []
        self._search_task: Optional[asyncio.Task] = None
        self._enrichment_tasks: list[asyncio.Task] = []

    @property
    def candidates(self) -> list[SearchCandidate]:
        """Copies; enrichment keeps updating the originals"""
        return [dataclasses.replace(c) for c in self._candidates]

    # ------------------------------------------------------------------

    def update_query(self, text: str):
        """Start (or restart) the debounced search for `text`"""
        self._token += 1
        self._cancel_work()
        self.query = text.strip()

        if not self.query:
            self._set_candidates([])
            return

        loop = asyncio.get_running_loop()
        self._search_task = loop.create_task(self._search(self.query, self._token))

    def clear(self):
        self.update_query("")

    def close(self):
        self._token += 1
        self._cancel_work()

    async def wait_idle(self):
        """Wait until the current query's lookup and enrichment have settled"""
        if self._search_task is not None:
            await asyncio.gather(self._search_task, return_exceptions=True)
        if self._enrichment_tasks:
            await asyncio.gather(*self._enrichment_tasks, return_exceptions=True)

    # ------------------------------------------------------------------

    def _cancel_work(self):
        if self._search_task is not None and not self._search_task.done():
            self._search_task.cancel()
        self._search_task = None
        for task in self._enrichment_tasks:
            if not task.done():
                task.cancel()
        self._enrichment_tasks = []

    def _is_current(self, token: int) -> bool:
        return token == self._token

    def _set_candidates(self, candidates: list[SearchCandidate]):
        self._candidates = candidates
        self._notify()

    def _notify(self):
        if self.on_change:
            self.on_change(self.candidates)

    async def _search(self, query: str, token: int):
        await self.sleep(self.config.search_debounce)
        if not self._is_current(token):
            return

        try:
            completions = await self.provider.search_completions(query)
        except RoutingError as e:
            self.logger.log("Completion lookup failed", {"query": query, "error": str(e)})
            completions = []
        if not self._is_current(token):
            return

        origin = self.origin
        limit = self.config.max_enriched_candidates
        candidates = [
            SearchCandidate(completion=c, is_pending=origin is not None and i < limit)
            for i, c in enumerate(completions)
        ]
        self._set_candidates(candidates)
        self.logger.log("Suggestions", {"query": query, "count": len(candidates)})

        if origin is None:
            return

        loop = asyncio.get_running_loop()
        for index, candidate in enumerate(candidates[:limit]):
            self._enrichment_tasks.append(
                loop.create_task(self._enrich(candidate, index, origin, token))
            )

    async def _enrich(self, candidate: SearchCandidate, index: int,
                      origin: Coordinate, token: int):
        """Resolve one candidate and measure the drive to it"""
        await self.sleep(index * self.config.enrichment_stagger)
        if not self._is_current(token):
            return

        try:
            coordinate = await self.provider.resolve(candidate.completion)
            if not self._is_current(token):
                return
            candidate.coordinate = coordinate
            route = await self.provider.route(origin, coordinate)
        except RoutingError as e:
            if not self._is_current(token):
                return
            self.logger.log("Candidate enrichment failed", {
                "title": candidate.title,
                "error": str(e),
            })
            candidate.is_pending = False
            self._notify()
            return

        if not self._is_current(token):
            return
        candidate.distance = route.distance
        candidate.travel_time = route.expected_travel_time
        candidate.is_pending = False
        self._notify()
