"""Page capability used by the selection driver.

The driver only needs a handful of operations on the valuation form: commit
a value on a field, wait for a field to become usable, read a field's raw
options, and observe the partial-postback loading indicator. ``FormPage``
names that surface; ``PlaywrightFormPage`` implements it on a Playwright page.

None of these operations carry their own deadline. Bounds are applied by the
caller, so Playwright's timeouts are disabled with ``timeout=0``.
"""

from typing import Protocol

from playwright.async_api import Page

from ..core.enums import Stage


class FormPage(Protocol):
    async def select(self, stage: Stage, value: str) -> None: ...

    async def wait_for_field_enabled(self, stage: Stage) -> None: ...

    async def raw_options(self, stage: Stage) -> list[tuple[str, str]]: ...

    async def wait_for_indicator_visible(self) -> None: ...

    async def wait_for_indicator_hidden(self) -> None: ...

    async def is_indicator_visible(self) -> bool: ...


class PlaywrightFormPage:
    """FormPage backed by a live Playwright page."""

    def __init__(
        self,
        page: Page,
        field_prefix: str = "#MainContent_ddl",
        indicator_selector: str = "#MainContent_UpdateProgress1",
    ) -> None:
        self.page = page
        self.field_prefix = field_prefix
        self.indicator_selector = indicator_selector

    def field_selector(self, stage: Stage) -> str:
        return f"{self.field_prefix}{stage.field_name}"

    async def select(self, stage: Stage, value: str) -> None:
        # select_option waits for the option to exist, so an unknown id hangs here
        await self.page.select_option(self.field_selector(stage), value, timeout=0)

    async def wait_for_field_enabled(self, stage: Stage) -> None:
        await self.page.wait_for_selector(
            f"{self.field_selector(stage)}:not([disabled])",
            state="attached",
            timeout=0,
        )

    async def raw_options(self, stage: Stage) -> list[tuple[str, str]]:
        pairs = await self.page.eval_on_selector_all(
            f"{self.field_selector(stage)} option",
            "options => options.map(o => [o.value, o.textContent])",
        )
        return [(value, label) for value, label in pairs]

    async def wait_for_indicator_visible(self) -> None:
        await self.page.wait_for_selector(
            self.indicator_selector, state="visible", timeout=0
        )

    async def wait_for_indicator_hidden(self) -> None:
        await self.page.wait_for_selector(
            self.indicator_selector, state="hidden", timeout=0
        )

    async def is_indicator_visible(self) -> bool:
        return await self.page.is_visible(self.indicator_selector)
