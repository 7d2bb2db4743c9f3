from __future__ import annotations

from typing import Any


class StampError(RuntimeError):
    """Base error. ``stage`` names the render stage or collaborator that failed."""

    def __init__(self, message: str, *, stage: Any = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        stage = getattr(self.stage, "value", self.stage)
        if stage:
            return f"[{stage}] {message}"
        return message


class SourceDecodeError(StampError):
    pass


class RenderTimeoutError(StampError):
    pass


class LogoLoadError(StampError):
    pass


class MetadataExtractionError(StampError):
    pass


class GPSResolutionError(StampError):
    pass


class PlaceLookupError(StampError):
    pass
