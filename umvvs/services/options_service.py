"""Calling layer around the cascade resolver.

Owns page lifecycle and retry policy: each attempt runs on a brand-new page,
and only failures that a fresh page could plausibly fix are retried.
"""

import asyncio
import time
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from ..core.config import Settings
from ..core.exceptions import FormLoadFailure, OptionReadFailure, StageAdvanceTimeout
from ..core.logging import logger
from ..models.options import ResolutionResult, SelectionRequest
from .cascade_resolver import CascadeResolver
from .form_page import FormPage
from .selection_driver import DriverTimeouts

RETRYABLE_ERRORS = (StageAdvanceTimeout, OptionReadFailure, FormLoadFailure)


class PageSource(Protocol):
    def open_page(self) -> AbstractAsyncContextManager[FormPage]: ...


class OptionsService:
    """Resolves selection requests on pages from a PageSource."""

    def __init__(self, sessions: PageSource, settings: Settings) -> None:
        self.sessions = sessions
        self.timeouts = DriverTimeouts.from_settings(settings)
        self.validate_identifiers = settings.validate_identifiers
        self.retries = settings.scrape_retries
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_sessions)

    async def fetch_options(self, request: SelectionRequest) -> ResolutionResult:
        """Resolve ``request`` on a fresh page, retrying per policy."""
        # Reject bad prefixes before a browser is involved
        request.depth()

        attempt = 1
        while True:
            try:
                return await self._resolve_once(request)
            except RETRYABLE_ERRORS as e:
                if attempt > self.retries:
                    raise
                logger.warning(
                    f"Resolution attempt {attempt}/{self.retries + 1} failed, "
                    f"retrying on a fresh page: {e}"
                )
                attempt += 1

    async def _resolve_once(self, request: SelectionRequest) -> ResolutionResult:
        async with self._semaphore:
            start = time.monotonic()
            async with self.sessions.open_page() as page:
                resolver = CascadeResolver(
                    page,
                    timeouts=self.timeouts,
                    validate_identifiers=self.validate_identifiers,
                )
                result = await resolver.resolve(request)
            logger.info(
                f"RESOLVED {result.result_key} count={len(result.options)} "
                f"duration_ms={(time.monotonic() - start) * 1000:.2f}"
            )
            return result
