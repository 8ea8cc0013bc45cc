from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConnectionState(str, Enum):
    ESTABLISHED = "ESTABLISHED"
    SYN_SENT = "SYN_SENT"
    SYN_RECV = "SYN_RECV"
    FIN_WAIT1 = "FIN_WAIT1"
    FIN_WAIT2 = "FIN_WAIT2"
    TIME_WAIT = "TIME_WAIT"
    CLOSE = "CLOSE"
    CLOSE_WAIT = "CLOSE_WAIT"
    LAST_ACK = "LAST_ACK"
    LISTEN = "LISTEN"
    CLOSING = "CLOSING"
    NONE = "NONE"

    @classmethod
    def parse(cls, raw: object) -> ConnectionState:
        try:
            return cls(str(getattr(raw, "value", raw)).upper())
        except ValueError:
            return cls.NONE


class Endpoint(BaseModel):
    """A remote (address, port) pair. Frozen, so equal endpoints hash alike."""

    model_config = ConfigDict(frozen=True, strict=True)

    address: str = Field(min_length=7, max_length=15)
    port: int = Field(ge=0, le=65535)

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


class ConnectionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    remote_address: str
    remote_port: int = Field(ge=0, le=65535)
    state: ConnectionState


class ProcessHandle(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    pid: int = Field(ge=0)
    name: str
    create_time: float | None = None

    def __str__(self) -> str:
        return f"{self.name} (pid {self.pid})"


class DominantEndpoint(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)

    endpoint: Endpoint
    count: int = Field(ge=1)


class SampleReport(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    observations: list[Endpoint] = Field(default_factory=list)
    ticks: int = 0
    failed_ticks: int = 0


class InferenceResult(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    process: ProcessHandle
    dominant: DominantEndpoint | None = None
    observation_total: int = 0
    distinct_endpoints: int = 0
    ticks: int = 0
    failed_ticks: int = 0

    @property
    def found(self) -> bool:
        return self.dominant is not None


class PingSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    host: str
    replies: list[float | None] = Field(default_factory=list)
    sent: int = 0
    received: int = 0
    loss_percent: float = 0.0
    min_ms: float | None = None
    avg_ms: float | None = None
    max_ms: float | None = None
    jitter_ms: float | None = None
