"""Selection driver for the cascading dropdowns of the valuation form.

Selecting a value on one dropdown starts a partial postback that disables and
repopulates the next dropdown. The form emits no completion event, only a
loading indicator that may not render at all when the postback is fast.
Settling is therefore detected in three steps:

1. race the indicator becoming visible against the next field becoming
   enabled (short bound);
2. when the indicator showed, wait for it to hide (long bound);
3. always confirm the next field is enabled (long bound), since the
   indicator can still appear right after the race.

Every wait is bounded here; the page operations themselves never time out.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable

from ..core.config import Settings
from ..core.enums import Stage
from ..core.exceptions import OptionReadFailure, StageAdvanceTimeout
from ..core.logging import log_stage_advance, logger
from ..models.options import Option, parse_options
from .form_page import FormPage

INDICATOR = "indicator"
FIELD = "field"


@dataclass(frozen=True)
class DriverTimeouts:
    """Wait bounds in seconds."""

    race: float = 5.0
    settle: float = 15.0
    read: float = 15.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DriverTimeouts":
        return cls(
            race=settings.stage_race_timeout,
            settle=settings.stage_settle_timeout,
            read=settings.option_read_timeout,
        )


async def first_success(branches: dict[str, Awaitable[Any]], timeout: float) -> str | None:
    """Run branches concurrently and return the name of the first to succeed.

    A branch that raises drops out of the race. Returns None when no branch
    succeeded within ``timeout``; if every branch failed before that, the
    first failure is re-raised. Losing branches are cancelled.
    """
    tasks = {asyncio.ensure_future(aw): name for name, aw in branches.items()}
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    pending = set(tasks)
    errors: list[BaseException] = []
    try:
        while pending:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
            )
            for task in done:
                if task.cancelled():
                    continue
                if task.exception() is None:
                    return tasks[task]
                errors.append(task.exception())
        if errors:
            raise errors[0]
        return None
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class SelectionDriver:
    """Drives single dependent-field updates on one form page."""

    def __init__(self, page: FormPage, timeouts: DriverTimeouts | None = None) -> None:
        self.page = page
        self.timeouts = timeouts or DriverTimeouts()

    async def advance(self, trigger: Stage, value: str) -> Stage:
        """Select ``value`` on ``trigger`` and wait for the next field to settle.

        Returns the stage that was repopulated. Raises StageAdvanceTimeout when
        any wait exceeds its bound; nothing is retried.
        """
        target = trigger.next
        if target is None:
            raise ValueError(f"{trigger.field_name} has no dependent field")

        start = time.monotonic()

        async def bounded(aw: Awaitable[Any], timeout: float, phase: str) -> None:
            try:
                await asyncio.wait_for(aw, timeout)
            except asyncio.TimeoutError as exc:
                raise StageAdvanceTimeout(trigger, value, target, phase, timeout) from exc

        await bounded(self.page.select(trigger, value), self.timeouts.settle, "select")

        branch = await first_success(
            {
                INDICATOR: self.page.wait_for_indicator_visible(),
                FIELD: self.page.wait_for_field_enabled(target),
            },
            self.timeouts.race,
        )
        if branch is None:
            raise StageAdvanceTimeout(trigger, value, target, "race", self.timeouts.race)

        if branch == INDICATOR or await self.page.is_indicator_visible():
            await bounded(
                self.page.wait_for_indicator_hidden(), self.timeouts.settle, "indicator"
            )

        await bounded(
            self.page.wait_for_field_enabled(target), self.timeouts.settle, "confirm"
        )

        log_stage_advance(
            trigger.label,
            target.label,
            value,
            branch,
            (time.monotonic() - start) * 1000,
        )
        return target

    async def read_options(self, stage: Stage) -> list[Option]:
        """Read the settled options of ``stage``, placeholder excluded."""
        try:
            await asyncio.wait_for(
                self.page.wait_for_field_enabled(stage), self.timeouts.read
            )
        except asyncio.TimeoutError as exc:
            raise OptionReadFailure(stage, self.timeouts.read) from exc

        options = parse_options(await self.page.raw_options(stage))
        logger.debug(f"READ {stage.label} options={len(options)}")
        return options
