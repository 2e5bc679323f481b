from typing import Any

from fastapi import APIRouter

from turbobar.core.time import utc_now_iso

router = APIRouter()


@router.get("/api/health")
def health() -> dict[str, Any]:
    return {"ok": True, "timestamp": utc_now_iso()}
