from typing import Any, Iterable

from pydantic import BaseModel, Field, field_validator

from ..core.enums import SELECTABLE_STAGES, Stage
from ..core.exceptions import PreconditionViolation


class Option(BaseModel):
    id: str  # value submitted for the next selection
    name: str  # trimmed display label


class SelectionRequest(BaseModel):
    """Identifiers already chosen, in chain order.

    Only meaningful as a prefix: each id is interpreted in the context of
    every id before it.
    """

    make_id: str | None = Field(default=None, alias="makeId")
    model_id: str | None = Field(default=None, alias="modelId")
    year_id: str | None = Field(default=None, alias="yearId")
    country_id: str | None = Field(default=None, alias="countryId")
    fuel_id: str | None = Field(default=None, alias="fuelId")

    model_config = {"populate_by_name": True, "protected_namespaces": ()}

    @field_validator("*", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def identifiers(self) -> tuple[str | None, ...]:
        """Supplied ids aligned with SELECTABLE_STAGES."""
        return (self.make_id, self.model_id, self.year_id, self.country_id, self.fuel_id)

    def depth(self) -> int:
        """Number of contiguous ids supplied starting from the make.

        Raises PreconditionViolation when an id follows a gap.
        """
        ids = self.identifiers()
        depth = 0
        while depth < len(ids) and ids[depth] is not None:
            depth += 1
        for stage, value in zip(SELECTABLE_STAGES[depth:], ids[depth:]):
            if value is not None:
                raise PreconditionViolation(missing=SELECTABLE_STAGES[depth], supplied=stage)
        return depth

    def selections(self) -> list[tuple[Stage, str]]:
        """(stage, id) pairs to drive, in order."""
        depth = self.depth()
        return [
            (stage, value)
            for stage, value in zip(SELECTABLE_STAGES[:depth], self.identifiers())
        ]


class ResolutionResult(BaseModel):
    stage: Stage
    options: list[Option]

    @property
    def result_key(self) -> str:
        return self.stage.result_key

    def as_payload(self) -> dict[str, list[dict[str, str]]]:
        return {self.result_key: [option.model_dump() for option in self.options]}


def parse_options(raw: Iterable[tuple[str, str]]) -> list[Option]:
    """Build an OptionSet from raw (value, label) pairs in display order.

    The first entry is the form's "choose..." placeholder and is dropped.
    Repeated ids keep their first occurrence.
    """
    options: list[Option] = []
    seen: set[str] = set()
    for index, (value, label) in enumerate(raw):
        if index == 0 or value in seen:
            continue
        seen.add(value)
        options.append(Option(id=value, name=(label or "").strip()))
    return options


# -----------------------------------------------------------------------------
# API Response Models
# -----------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    error: str
    details: str
    timestamp: str
    stage: str | None = None
    value: str | None = None
    target: str | None = None
    phase: str | None = None


class HealthResponse(BaseModel):
    status: str
    environment: str
    browser: str
    session: dict[str, Any] | None = None
