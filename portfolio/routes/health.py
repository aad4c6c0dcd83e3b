from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from portfolio.dependencies import get_content_store
from portfolio.stores import ContentStore

router = APIRouter(tags=["health"])


@router.get("/health")
def health(store: ContentStore = Depends(get_content_store)):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": store.backend_name,
    }
