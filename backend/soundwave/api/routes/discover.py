from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ...core.security import UserContext, resolve_user
from ...schemas.tracks import Candidate
from ...services.discovery import ALGORITHMS, DiscoveryEngine
from ..deps import get_discovery_engine

router = APIRouter(prefix="/api", tags=["discovery"])


@router.get("/discover", response_model=List[Candidate])
async def discover(
    algorithm: Optional[str] = Query(default=None, description=f"one of {', '.join(ALGORITHMS)}; defaults to mixed"),
    *,
    user: UserContext = Depends(resolve_user),
    engine: DiscoveryEngine = Depends(get_discovery_engine),
) -> List[Candidate]:
    return await engine.discover(user, algorithm)
