from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Liveness check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready", summary="Database readiness check")
async def ready(request: Request) -> dict[str, str]:
    health = getattr(request.app.state, "db_health", None)
    if health is None:
        raise HTTPException(status_code=503, detail="Database is not configured")
    try:
        await health.check()
    except (OSError, SQLAlchemyError) as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ok"}
