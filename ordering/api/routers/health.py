# ordering/api/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ordering.api.deps import get_cache
from ordering.data.database import get_db
from ordering.services.cache_service import CartCache

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db), cache: CartCache = Depends(get_cache)):
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"

    # redis is advisory, the service still works without it
    return {
        "service": "ordering",
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "cache": "ok" if cache.ping() else "unavailable",
    }
