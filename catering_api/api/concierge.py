"""
Concierge requests API router
"""
import json
from typing import Any, List
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user, require_admin
from catering_api.models.user import User
from catering_api.models.concierge import (
    ConciergeRequestCreate, ConciergeRequestOut, ConciergeRequestUpdate,
)
from catering_api.services.dispatch import dispatcher
from catering_api.services.notification_service import notification_service
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/concierge", tags=["concierge"])


@router.get("/requests", response_model=List[ConciergeRequestOut], dependencies=[Depends(require_admin)])
async def list_concierge_requests(db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).list_concierge_requests()


@router.get("/requests/user", response_model=List[ConciergeRequestOut])
async def list_my_concierge_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    return CateringStorage(db).list_concierge_requests(user_id=current_user.id)


@router.get("/requests/{request_id}", response_model=ConciergeRequestOut)
async def get_concierge_request(
    request_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    request = CateringStorage(db).get_concierge_request(request_id)
    if not request:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Concierge request not found"
        )
    if request.user_id != current_user.id and current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this request"
        )
    return request


@router.post("/requests", response_model=ConciergeRequestOut, status_code=status.HTTP_201_CREATED)
async def create_concierge_request(
    request_data: ConciergeRequestCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    request = storage.create_concierge_request({**request_data.model_dump(), "user_id": current_user.id})
    storage.create_activity_log({
        "user_id": current_user.id,
        "action": "CREATE_CONCIERGE_REQUEST",
        "details": json.dumps({"requestType": request.request_type, "urgent": request.urgent_request}),
        "resource_id": request.id,
        "resource_type": "concierge_request",
    })
    dispatcher.submit(background_tasks, f"concierge:new:{request.id}",
                      notification_service.send_concierge_created, request.id)
    return request


@router.patch("/requests/{request_id}", response_model=ConciergeRequestOut)
async def update_concierge_request(
    request_id: int,
    request_update: ConciergeRequestUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Any:
    """Admins review, quote and close requests"""
    storage = CateringStorage(db)
    request = storage.get_concierge_request(request_id)
    if not request:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Concierge request not found"
        )

    fields = request_update.model_dump(exclude_unset=True)
    if fields.get("status") is not None:
        fields["status"] = fields["status"].value
    status_changed = "status" in fields and fields["status"] != request.status
    request = storage.update_concierge_request(request, fields)
    storage.create_activity_log({
        "user_id": current_user.id,
        "action": "UPDATE_CONCIERGE_REQUEST",
        "details": json.dumps({"fields": sorted(fields), "status": request.status}),
        "resource_id": request.id,
        "resource_type": "concierge_request",
    })

    if status_changed:
        dispatcher.submit(background_tasks, f"concierge:status:{request.id}",
                          notification_service.send_concierge_status, request.id)
    return request
