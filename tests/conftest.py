"""
Shared fixtures for the UMVVS options API tests.

FakeFormPage stands in for the valuation form: selecting a value disables
every later field, optionally shows the loading indicator, and after a
delay repopulates and enables the next field from an in-memory catalog.
No test launches a real browser.
"""

import asyncio
from contextlib import asynccontextmanager

import pytest

from umvvs.core.enums import Stage
from umvvs.services.selection_driver import DriverTimeouts

PLACEHOLDER = ("", "-- Select --")

# Raw option lists keyed by the ids selected so far
CATALOG: dict[tuple[str, ...], list[tuple[str, str]]] = {
    (): [PLACEHOLDER, ("1", " Toyota "), ("2", "Nissan\n"), ("7", "Subaru")],
    ("1",): [PLACEHOLDER, ("5", "Land Cruiser "), ("6", "Hilux")],
    ("2",): [PLACEHOLDER, ("11", "Patrol")],
    ("7",): [PLACEHOLDER, ("9", "Forester")],
    ("1", "5"): [PLACEHOLDER, ("2020", "2020"), ("2019", " 2019 ")],
    ("1", "5", "2020"): [PLACEHOLDER, ("TZ", " Tanzania"), ("JP", "Japan")],
    ("1", "5", "2020", "TZ"): [PLACEHOLDER, ("PETROL", "Petrol "), ("DIESEL", "Diesel")],
    ("1", "5", "2020", "TZ", "PETROL"): [
        PLACEHOLDER,
        ("2700", "2.7L 2TR-FE"),
        ("4000", " 4.0L 1GR-FE "),
    ],
}

POLL_INTERVAL = 0.005


class FakeFormPage:
    """In-memory FormPage with configurable postback behaviour."""

    def __init__(
        self,
        catalog: dict[tuple[str, ...], list[tuple[str, str]]] | None = None,
        postback_delay: float = 0.02,
        show_indicator: bool = True,
        indicator_never_hides: bool = False,
    ) -> None:
        self.catalog = catalog if catalog is not None else CATALOG
        self.postback_delay = postback_delay
        self.show_indicator = show_indicator
        self.indicator_never_hides = indicator_never_hides

        self.selected: dict[Stage, str] = {}
        self.options: dict[Stage, list[tuple[str, str]]] = {Stage.MAKE: self.catalog[()]}
        self.enabled: set[Stage] = {Stage.MAKE}
        self.indicator_visible = False
        self.calls: list[tuple] = []
        self._postbacks: list[asyncio.Task] = []

    def _prefix(self, stage: Stage) -> tuple[str, ...]:
        return tuple(self.selected[s] for s in Stage if s <= stage)

    async def select(self, stage: Stage, value: str) -> None:
        self.calls.append(("select", stage, value))
        if stage not in self.enabled:
            raise RuntimeError(f"{stage.field_name} is disabled")
        if value not in [v for v, _ in self.options.get(stage, [])]:
            # Playwright keeps waiting for an option that never appears
            await asyncio.Event().wait()

        self.selected = {s: v for s, v in self.selected.items() if s < stage}
        self.selected[stage] = value
        for later in Stage:
            if later > stage:
                self.enabled.discard(later)
                self.options.pop(later, None)
        if self.show_indicator:
            self.indicator_visible = True
        self._postbacks.append(asyncio.create_task(self._postback(stage)))

    async def _postback(self, stage: Stage) -> None:
        await asyncio.sleep(self.postback_delay)
        target = stage.next
        raw = self.catalog.get(self._prefix(stage))
        if raw is not None and target is not None:
            self.options[target] = raw
            self.enabled.add(target)
        if not self.indicator_never_hides:
            self.indicator_visible = False

    async def wait_for_field_enabled(self, stage: Stage) -> None:
        while stage not in self.enabled:
            await asyncio.sleep(POLL_INTERVAL)

    async def raw_options(self, stage: Stage) -> list[tuple[str, str]]:
        self.calls.append(("read", stage))
        return list(self.options.get(stage, []))

    async def wait_for_indicator_visible(self) -> None:
        while not self.indicator_visible:
            await asyncio.sleep(POLL_INTERVAL)

    async def wait_for_indicator_hidden(self) -> None:
        while self.indicator_visible:
            await asyncio.sleep(POLL_INTERVAL)

    async def is_indicator_visible(self) -> bool:
        return self.indicator_visible


class FakeSessions:
    """PageSource handing out FakeFormPages built by ``page_factory``."""

    def __init__(self, page_factory=FakeFormPage) -> None:
        self.page_factory = page_factory
        self.opened: list[FakeFormPage] = []
        self.closed = 0

    @asynccontextmanager
    async def open_page(self):
        page = self.page_factory()
        self.opened.append(page)
        try:
            yield page
        finally:
            self.closed += 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fast_timeouts():
    """Short bounds so timeout tests finish quickly."""
    return DriverTimeouts(race=0.3, settle=0.3, read=0.3)


@pytest.fixture
def form_page():
    return FakeFormPage()
