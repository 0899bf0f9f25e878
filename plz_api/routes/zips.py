"""Zip code lookup endpoints (point lookup with range, name search)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Path

from ..helpers import filter_nearest, get_sink
from ..models import SearchHit, ZipOut

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_LIMIT = 5


@router.get("/", include_in_schema=False)
async def missing_search():
    """Bare root: a search term is required."""
    raise HTTPException(status_code=400, detail="Bad Request")


@router.get("/{zip_code}/{rng}", response_model=ZipOut)
def zip_neighbors(
    zip_code: str,
    rng: float = Path(..., ge=0, description="Maximum neighbor distance in km"),
):
    """Record for ``zip_code`` with neighbors filtered to ``dist <= rng``."""
    try:
        doc = get_sink().get(zip_code)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Zip lookup failed")
        raise HTTPException(status_code=500, detail=str(e))

    if doc is None:
        raise HTTPException(status_code=404, detail="Zip code not found")
    return filter_nearest(doc, rng)


@router.get("/{search}", response_model=list[SearchHit])
def search_zips(search: str):
    """Up to 5 records whose name best matches ``search``; neighbors omitted."""
    if not search.strip():
        raise HTTPException(status_code=400, detail="Bad Request")
    try:
        return get_sink().search(search, SEARCH_LIMIT)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Name search failed")
        raise HTTPException(status_code=500, detail=str(e))
