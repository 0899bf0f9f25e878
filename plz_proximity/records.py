"""Typed records flowing through the proximity build."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .distance import Coordinate


@dataclass(frozen=True)
class NeighborEntry:
    """One precomputed neighbor: another zip code and its distance in km."""
    zip_code: str
    dist: int

    def to_dict(self) -> dict[str, Any]:
        return {"zip_code": self.zip_code, "dist": self.dist}


@dataclass(frozen=True)
class ZipRecord:
    """
    A geocoded postal-code centroid.

    ``nearest`` is empty when produced by the normalizer and filled exactly
    once by the builder, which returns a new record rather than mutating
    the shared input.

    A postal code may cover several places, so ``zip_code`` alone is not
    unique.  Stores key records by ``(zip_code, row_num)``, where
    ``row_num`` is the record's position in the build input (set by the
    builder).
    """

    zip_code: str
    name: str
    coordinate: Coordinate
    nearest: tuple[NeighborEntry, ...] = ()
    row_num: int = 0

    def to_document(self, *, include_nearest: bool = True) -> dict[str, Any]:
        """Serialize to the stored / API document shape."""
        doc: dict[str, Any] = {
            "zip_code": self.zip_code,
            "name": self.name,
            "lat": self.coordinate.latitude,
            "lon": self.coordinate.longitude,
            "row_num": self.row_num,
        }
        if include_nearest:
            doc["nearest"] = [n.to_dict() for n in self.nearest]
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "ZipRecord":
        """Rebuild a record from its stored document."""
        return cls(
            zip_code=str(doc["zip_code"]),
            name=doc.get("name") or "",
            coordinate=Coordinate(float(doc["lat"]), float(doc["lon"])),
            nearest=tuple(
                NeighborEntry(zip_code=str(n["zip_code"]), dist=int(n["dist"]))
                for n in doc.get("nearest") or []
            ),
            row_num=int(doc.get("row_num") or 0),
        )
