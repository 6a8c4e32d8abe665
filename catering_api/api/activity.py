"""
Activity log API router
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import require_admin
from catering_api.models.order import ActivityLogOut
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/activity", tags=["activity"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[ActivityLogOut])
async def list_activity(
    limit: int = Query(default=100, ge=1, le=1000),
    order_id: Optional[int] = None,
    db: Session = Depends(get_db)
) -> Any:
    """Most recent entries first"""
    return CateringStorage(db).list_activity_logs(limit, order_id)
