"""
Update log router.

GET /updates — most recent ingestion runs, newest first
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.catalog import UpdateRecordResponse
from app.services.update_log import get_recent_updates

router = APIRouter(tags=["updates"])


@router.get("/updates", response_model=list[UpdateRecordResponse], summary="Recent update runs")
def recent_updates(
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return [UpdateRecordResponse.model_validate(r) for r in get_recent_updates(db, limit=limit)]
