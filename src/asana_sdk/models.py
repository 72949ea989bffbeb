"""Typed shapes for the response bodies the dispatcher inspects."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AsanaModel(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


class ErrorDetail(AsanaModel):
    message: str | None = None
    help: str | None = None
    phrase: str | None = None


class ErrorResponse(AsanaModel):
    errors: list[ErrorDetail] = Field(default_factory=list)
