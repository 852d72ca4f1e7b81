"""Configuration for chunk streams."""

from pydantic import BaseModel, ConfigDict, Field


class SplitOptions(BaseModel):
    """Options for a single ``chunks()`` invocation.

    Attributes:
        stream_id: Label attached to every telemetry record of the stream
        emit_telemetry: Whether chunk and stream lifecycle events are logged
    """

    stream_id: str = Field(default="chunks", min_length=1)
    emit_telemetry: bool = True

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")
