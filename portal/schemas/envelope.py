"""Uniform response envelope shared by every API route."""

from __future__ import annotations

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Successful response wrapper."""

    success: Literal[True] = True
    data: DataT


class ErrorEnvelope(BaseModel):
    """Failed response wrapper."""

    success: Literal[False] = False
    message: str = Field(description="Human-readable failure reason.")


class PageOut(BaseModel, Generic[DataT]):
    """Offset page returned by public reader endpoints."""

    items: list[DataT]
    has_more: bool
    total: int
    page: int
    page_size: int


class EmptyData(BaseModel):
    """Placeholder payload for operations with nothing to return."""
