"""Pydantic response models for the PLZ Geosearch API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class NeighborOut(BaseModel):
    zip_code: str
    dist: int = Field(..., ge=0, description="Distance in whole kilometres")


class ZipOut(BaseModel):
    zip_code: str
    name: str = ""
    lat: float
    lon: float
    nearest: list[NeighborOut] = Field(
        default_factory=list,
        description="Neighbors sorted by ascending distance",
    )


class SearchHit(BaseModel):
    zip_code: str
    name: str = ""
    lat: float
    lon: float
    score: float = Field(..., description="Text relevance; higher is better")
