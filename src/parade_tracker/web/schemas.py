"""Pydantic request/response schemas for the Web API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    status: str
    version: str


class OkResponse(BaseModel):
    ok: bool = True


class SyncStateResponse(_CamelModel):
    epoch: int
    has_location: bool = Field(alias="hasLocation")
    server_time: int = Field(alias="serverTime")


class ResetResponse(_CamelModel):
    ok: bool = True
    new_epoch: int = Field(alias="newEpoch")


class ReloadResponse(_CamelModel):
    ok: bool = True
    built_at: float = Field(alias="builtAt")
    source: str
    points: int
    total_km: float = Field(alias="totalKm")
