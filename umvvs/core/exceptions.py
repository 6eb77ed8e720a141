"""Errors raised while resolving the dependent-field cascade.

Every error aborts the whole resolution; callers get no partial result.
Each carries the stage and attempted value when they are known so the
calling layer can decide between retrying on a fresh page, rejecting the
input, or failing the request.
"""

from typing import Any

from .enums import Stage


class CascadeError(Exception):
    """Base class for resolution failures."""

    def __init__(
        self, message: str, stage: Stage | None = None, value: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.value = value

    def detail(self) -> dict[str, Any]:
        """Context fields for error responses."""
        detail: dict[str, Any] = {}
        if self.stage is not None:
            detail["stage"] = self.stage.label
        if self.value is not None:
            detail["value"] = self.value
        return detail


class PreconditionViolation(CascadeError):
    """A later identifier was supplied while an earlier one is missing."""

    def __init__(self, missing: Stage, supplied: Stage) -> None:
        super().__init__(
            f"{supplied.request_param} requires {missing.request_param}",
            stage=missing,
        )
        self.missing = missing
        self.supplied = supplied


class InvalidIdentifier(CascadeError):
    """The supplied id is not among the options currently offered by a stage."""

    def __init__(self, stage: Stage, value: str, known_count: int) -> None:
        super().__init__(
            f"Unknown {stage.label} id {value!r} ({known_count} options available)",
            stage=stage,
            value=value,
        )
        self.known_count = known_count


class StageAdvanceTimeout(CascadeError):
    """A wait bound was exceeded while advancing one stage."""

    def __init__(
        self, trigger: Stage, value: str, target: Stage, phase: str, timeout: float
    ) -> None:
        super().__init__(
            f"Failed to load {target.label} after selecting {trigger.label}={value} "
            f"({phase} wait exceeded {timeout:g}s)",
            stage=trigger,
            value=value,
        )
        self.trigger = trigger
        self.target = target
        self.phase = phase
        self.timeout = timeout

    def detail(self) -> dict[str, Any]:
        detail = super().detail()
        detail["target"] = self.target.label
        detail["phase"] = self.phase
        return detail


class OptionReadFailure(CascadeError):
    """A stage's options could not be enumerated."""

    def __init__(self, stage: Stage, timeout: float) -> None:
        super().__init__(
            f"{stage.field_name} options not available within {timeout:g}s",
            stage=stage,
        )
        self.timeout = timeout


class FormLoadFailure(CascadeError):
    """The form page could not be opened."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Could not load {url}: {reason}")
        self.url = url
        self.reason = reason
