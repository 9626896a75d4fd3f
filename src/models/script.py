"""Script-related Pydantic models."""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

SRT_TIME_PATTERN = re.compile(r"^(\d{2}):([0-5]\d):([0-5]\d),(\d{3})$")


def srt_time_to_seconds(value: str) -> float:
    """Convert an ``HH:MM:SS,mmm`` timestamp to seconds."""
    match = SRT_TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"invalid timestamp: {value!r}")
    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def seconds_to_srt_time(value: float) -> str:
    """Convert seconds to an ``HH:MM:SS,mmm`` timestamp."""
    if value < 0:
        raise ValueError("timestamp cannot be negative")
    total_ms = int(round(value * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


class ScriptSegment(BaseModel):
    """A single captioned span of the narration script."""

    start_time: str
    end_time: str
    caption: str = Field(min_length=1)
    type: str = "demo"
    feature: str = "main"

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_timestamp(cls, v: str) -> str:
        """Validate the ``HH:MM:SS,mmm`` format."""
        srt_time_to_seconds(v)
        return v.strip()

    @field_validator("caption")
    @classmethod
    def caption_not_whitespace(cls, v: str) -> str:
        """Validate that caption is not only whitespace."""
        if not v.strip():
            raise ValueError("caption cannot be only whitespace")
        return v

    @model_validator(mode="after")
    def end_after_start(self) -> "ScriptSegment":
        if self.end_seconds <= self.start_seconds:
            raise ValueError("segment end_time must be after start_time")
        return self

    @property
    def start_seconds(self) -> float:
        return srt_time_to_seconds(self.start_time)

    @property
    def end_seconds(self) -> float:
        return srt_time_to_seconds(self.end_time)

    @property
    def duration(self) -> float:
        return self.end_seconds - self.start_seconds


class Script(BaseModel):
    """Ordered, non-overlapping narration segments."""

    segments: list[ScriptSegment] = Field(default_factory=list)

    @model_validator(mode="after")
    def ordered_and_disjoint(self) -> "Script":
        for previous, current in zip(self.segments, self.segments[1:]):
            if current.start_seconds < previous.end_seconds:
                raise ValueError(
                    f"segment starting at {current.start_time} overlaps "
                    f"segment ending at {previous.end_time}"
                )
        return self

    @property
    def first_caption(self) -> Optional[str]:
        return self.segments[0].caption if self.segments else None

    def to_srt(self) -> str:
        """Render the segments as a SubRip subtitle document."""
        blocks = []
        for index, segment in enumerate(self.segments, start=1):
            blocks.append(
                f"{index}\n{segment.start_time} --> {segment.end_time}\n{segment.caption}\n"
            )
        return "\n".join(blocks)


class Feature(BaseModel):
    """A product feature spotted in the demo video."""

    name: str = Field(min_length=1)
    start_time: str
    end_time: str
    description: str = ""

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_timestamp(cls, v: str) -> str:
        srt_time_to_seconds(v)
        return v.strip()


class FeatureAnalysis(BaseModel):
    """Structured result of feature analysis."""

    features: list[Feature] = Field(default_factory=list)
