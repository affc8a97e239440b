from __future__ import annotations

from typing import Iterable, Optional


class ContextPipelineError(Exception):
    """Base error for every stage of the playlist-context pipeline."""

    stage = "pipeline"

    def __init__(self, message: str, *, stage: Optional[str] = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class AuthError(ContextPipelineError):
    stage = "auth"


class FetchError(ContextPipelineError):
    stage = "fetch"


class IncompleteJoin(ContextPipelineError):
    """Raised when tracks cannot be matched to a dense set of audio features."""

    stage = "assemble"

    def __init__(
        self,
        message: str,
        missing_ids: Iterable[str] = (),
        column: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.missing_ids = list(missing_ids)
        self.column = column


class SchemaError(ContextPipelineError):
    stage = "prepare"


class FitError(ContextPipelineError):
    """Raised when a classifier search or refit throws."""

    stage = "fit"

    def __init__(self, message: str, model_name: str = "", param_grid: Optional[dict] = None) -> None:
        super().__init__(message)
        self.model_name = model_name
        self.param_grid = param_grid or {}
