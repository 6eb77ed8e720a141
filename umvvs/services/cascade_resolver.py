"""Walks the dependency chain up to the first unresolved stage."""

from ..core.enums import Stage
from ..core.exceptions import InvalidIdentifier
from ..core.logging import logger
from ..models.options import ResolutionResult, SelectionRequest
from .form_page import FormPage
from .selection_driver import DriverTimeouts, SelectionDriver


class CascadeResolver:
    """Resolves one SelectionRequest against a freshly loaded form page.

    The page must be in its initial state and must not be shared with any
    other resolution while this one runs.
    """

    def __init__(
        self,
        page: FormPage,
        timeouts: DriverTimeouts | None = None,
        validate_identifiers: bool = True,
        driver: SelectionDriver | None = None,
    ) -> None:
        self.driver = driver or SelectionDriver(page, timeouts)
        self.validate_identifiers = validate_identifiers

    async def resolve(self, request: SelectionRequest) -> ResolutionResult:
        """Drive every supplied selection in order, then read the next stage.

        Raises PreconditionViolation before touching the page when the
        supplied ids are not a contiguous prefix.
        """
        selections = request.selections()
        target = Stage(len(selections) + 1)
        logger.info(f"RESOLVE target={target.label} depth={len(selections)}")

        for stage, value in selections:
            if self.validate_identifiers:
                await self._check_identifier(stage, value)
            await self.driver.advance(stage, value)

        options = await self.driver.read_options(target)
        return ResolutionResult(stage=target, options=options)

    async def _check_identifier(self, stage: Stage, value: str) -> None:
        known = await self.driver.read_options(stage)
        if not any(option.id == value for option in known):
            raise InvalidIdentifier(stage, value, len(known))
