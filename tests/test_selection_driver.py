"""Tests for the selection driver's settle detection and option reads."""

import asyncio
import time

import pytest
from conftest import PLACEHOLDER, FakeFormPage

from umvvs.core.enums import Stage
from umvvs.core.exceptions import OptionReadFailure, StageAdvanceTimeout
from umvvs.models.options import Option, parse_options
from umvvs.services.selection_driver import (
    FIELD,
    INDICATOR,
    DriverTimeouts,
    SelectionDriver,
    first_success,
)

# ---------------------------------------------------------------------------
# Race helper
# ---------------------------------------------------------------------------


async def _after(delay: float, result=None, error: Exception | None = None):
    await asyncio.sleep(delay)
    if error:
        raise error
    return result


async def _forever():
    await asyncio.Event().wait()


class TestFirstSuccess:
    @pytest.mark.asyncio
    async def test_fastest_success_wins(self):
        winner = await first_success({"slow": _after(0.2), "fast": _after(0.01)}, 1.0)
        assert winner == "fast"

    @pytest.mark.asyncio
    async def test_failed_branch_does_not_win(self):
        winner = await first_success(
            {"broken": _after(0.01, error=RuntimeError("boom")), "ok": _after(0.05)},
            1.0,
        )
        assert winner == "ok"

    @pytest.mark.asyncio
    async def test_returns_none_on_timeout(self):
        start = time.monotonic()
        winner = await first_success({"a": _forever(), "b": _forever()}, 0.1)
        assert winner is None
        assert time.monotonic() - start < 0.5

    @pytest.mark.asyncio
    async def test_reraises_when_every_branch_fails(self):
        with pytest.raises(RuntimeError, match="first"):
            await first_success(
                {
                    "a": _after(0.01, error=RuntimeError("first")),
                    "b": _after(0.03, error=ValueError("second")),
                },
                1.0,
            )

    @pytest.mark.asyncio
    async def test_losing_branch_is_cancelled(self):
        cancelled = asyncio.Event()

        async def loser():
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        await first_success({"win": _after(0.01), "lose": loser()}, 1.0)
        assert cancelled.is_set()


# ---------------------------------------------------------------------------
# advance()
# ---------------------------------------------------------------------------


class TestAdvance:
    @pytest.mark.asyncio
    async def test_indicator_path_settles(self, form_page, fast_timeouts):
        driver = SelectionDriver(form_page, fast_timeouts)

        target = await driver.advance(Stage.MAKE, "1")

        assert target == Stage.MODEL
        assert Stage.MODEL in form_page.enabled
        assert form_page.indicator_visible is False

    @pytest.mark.asyncio
    async def test_fast_path_without_indicator(self):
        """Indicator never renders; field enabled after 100ms still settles."""
        page = FakeFormPage(show_indicator=False, postback_delay=0.1)
        driver = SelectionDriver(page, DriverTimeouts(race=1.0, settle=1.0, read=1.0))

        target = await driver.advance(Stage.MAKE, "1")

        assert target == Stage.MODEL
        assert Stage.MODEL in page.enabled

    @pytest.mark.asyncio
    async def test_indicator_never_hides_times_out(self, fast_timeouts):
        page = FakeFormPage(indicator_never_hides=True)
        driver = SelectionDriver(page, fast_timeouts)

        start = time.monotonic()
        with pytest.raises(StageAdvanceTimeout) as exc_info:
            await driver.advance(Stage.MAKE, "7")
        elapsed = time.monotonic() - start

        err = exc_info.value
        assert err.trigger == Stage.MAKE
        assert err.target == Stage.MODEL
        assert err.value == "7"
        assert err.phase == "indicator"
        assert elapsed < fast_timeouts.race + fast_timeouts.settle + 0.5

    @pytest.mark.asyncio
    async def test_nothing_happens_times_out_in_race(self, fast_timeouts):
        page = FakeFormPage(show_indicator=False, postback_delay=10)
        driver = SelectionDriver(page, fast_timeouts)

        with pytest.raises(StageAdvanceTimeout) as exc_info:
            await driver.advance(Stage.MAKE, "1")

        assert exc_info.value.phase == "race"

    @pytest.mark.asyncio
    async def test_field_never_enabled_after_indicator_times_out(self, fast_timeouts):
        # Indicator shows and hides but the postback yields no models
        catalog = {(): [PLACEHOLDER, ("3", "Lada")]}
        page = FakeFormPage(catalog=catalog)
        driver = SelectionDriver(page, fast_timeouts)

        with pytest.raises(StageAdvanceTimeout) as exc_info:
            await driver.advance(Stage.MAKE, "3")

        assert exc_info.value.phase == "confirm"
        assert exc_info.value.target == Stage.MODEL

    @pytest.mark.asyncio
    async def test_unknown_value_times_out_on_select(self, form_page, fast_timeouts):
        driver = SelectionDriver(form_page, fast_timeouts)

        with pytest.raises(StageAdvanceTimeout) as exc_info:
            await driver.advance(Stage.MAKE, "999")

        assert exc_info.value.phase == "select"
        assert exc_info.value.value == "999"

    @pytest.mark.asyncio
    async def test_leaf_stage_cannot_advance(self, form_page, fast_timeouts):
        driver = SelectionDriver(form_page, fast_timeouts)

        with pytest.raises(ValueError):
            await driver.advance(Stage.ENGINE, "2700")

    @pytest.mark.asyncio
    async def test_late_indicator_is_waited_out(self):
        """Field wins the race but the indicator is up afterwards."""

        class LateIndicatorPage(FakeFormPage):
            async def wait_for_indicator_visible(self):
                await asyncio.Event().wait()

        page = LateIndicatorPage(postback_delay=0.05)
        page.indicator_never_hides = True
        driver = SelectionDriver(page, DriverTimeouts(race=1.0, settle=0.2, read=1.0))

        with pytest.raises(StageAdvanceTimeout) as exc_info:
            await driver.advance(Stage.MAKE, "1")

        assert exc_info.value.phase == "indicator"


# ---------------------------------------------------------------------------
# read_options()
# ---------------------------------------------------------------------------


class TestReadOptions:
    @pytest.mark.asyncio
    async def test_reads_makes_without_placeholder(self, form_page, fast_timeouts):
        driver = SelectionDriver(form_page, fast_timeouts)

        options = await driver.read_options(Stage.MAKE)

        assert options == [
            Option(id="1", name="Toyota"),
            Option(id="2", name="Nissan"),
            Option(id="7", name="Subaru"),
        ]

    @pytest.mark.asyncio
    async def test_disabled_field_fails(self, form_page, fast_timeouts):
        driver = SelectionDriver(form_page, fast_timeouts)

        with pytest.raises(OptionReadFailure) as exc_info:
            await driver.read_options(Stage.MODEL)

        assert exc_info.value.stage == Stage.MODEL


class TestParseOptions:
    def test_drops_only_first_entry(self):
        raw = [("", "Choose"), ("", "Blank but real"), ("a", "A")]
        assert [o.id for o in parse_options(raw)] == ["", "a"]

    def test_preserves_source_order(self):
        raw = [PLACEHOLDER, ("z", "Zulu"), ("a", "Alpha"), ("m", "Mike")]
        assert [o.name for o in parse_options(raw)] == ["Zulu", "Alpha", "Mike"]

    def test_trims_labels_not_ids(self):
        raw = [PLACEHOLDER, (" 1 ", "  Toyota\t")]
        assert parse_options(raw) == [Option(id=" 1 ", name="Toyota")]

    def test_duplicate_ids_keep_first(self):
        raw = [PLACEHOLDER, ("1", "Toyota"), ("1", "Toyota (dup)"), ("2", "Nissan")]
        assert parse_options(raw) == [
            Option(id="1", name="Toyota"),
            Option(id="2", name="Nissan"),
        ]

    def test_placeholder_only(self):
        assert parse_options([PLACEHOLDER]) == []
