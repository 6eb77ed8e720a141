"""Enums for the dependent-field chain of the valuation form."""

from enum import IntEnum
from typing import NamedTuple


class StageDescriptor(NamedTuple):
    field_name: str  # suffix of the form field locator
    request_param: str  # query parameter carrying the chosen id
    result_key: str  # response key for this stage's options


class Stage(IntEnum):
    """Positions in the dependency chain, in selection order."""

    MAKE = 1
    MODEL = 2
    YEAR = 3
    COUNTRY = 4
    FUEL = 5
    ENGINE = 6

    @property
    def descriptor(self) -> StageDescriptor:
        return _DESCRIPTORS[self]

    @property
    def field_name(self) -> str:
        return self.descriptor.field_name

    @property
    def request_param(self) -> str:
        return self.descriptor.request_param

    @property
    def result_key(self) -> str:
        return self.descriptor.result_key

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def next(self) -> "Stage | None":
        """The stage whose options this stage's selection repopulates."""
        if self is LEAF_STAGE:
            return None
        return Stage(self + 1)

    @property
    def previous(self) -> "Stage | None":
        if self is Stage.MAKE:
            return None
        return Stage(self - 1)


_DESCRIPTORS: dict[Stage, StageDescriptor] = {
    Stage.MAKE: StageDescriptor("Make", "makeId", "makes"),
    Stage.MODEL: StageDescriptor("Model", "modelId", "models"),
    Stage.YEAR: StageDescriptor("Year", "yearId", "years"),
    Stage.COUNTRY: StageDescriptor("Country", "countryId", "countries"),
    Stage.FUEL: StageDescriptor("Fuel", "fuelId", "fuels"),
    Stage.ENGINE: StageDescriptor("Engine", "engineId", "engines"),
}

# Full chain, and the stages a caller can supply identifiers for
DEPENDENCY_CHAIN: tuple[Stage, ...] = tuple(Stage)
LEAF_STAGE = DEPENDENCY_CHAIN[-1]
SELECTABLE_STAGES: tuple[Stage, ...] = DEPENDENCY_CHAIN[:-1]
