"""
Janitor DTOs

Architectural Intent:
- Data Transfer Objects for the resolve and mute use case boundaries
- Input validation at the application boundary, before any network call
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MuteDetectorRequest:
    detector: str
    duration: str
    description: str = ""

    def __post_init__(self) -> None:
        if not self.detector or not self.duration:
            raise ValueError("mute requires both detector and duration")


@dataclass(frozen=True)
class MuteDetectorResponse:
    detector: str
    start_ms: int
    stop_ms: int
    description: str


@dataclass(frozen=True)
class ResolveStaleResponse:
    found: int
    cleared: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed
