"""
Integration settings API router (admin only)
"""
import json
from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import require_admin
from catering_api.models.integration import ZapierConfigOut, ZapierConfigUpdate, ZapierTestRequest
from catering_api.models.user import User
from catering_api.services.notification_service import notification_service
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/integrations", tags=["integrations"])


def zapier_config(zapier) -> ZapierConfigOut:
    return ZapierConfigOut(webhook_url=zapier.webhook_url or "", events=zapier.events)


@router.get("/zapier", response_model=ZapierConfigOut, dependencies=[Depends(require_admin)])
async def get_zapier_config(db: Session = Depends(get_db)) -> Any:
    return zapier_config(notification_service.zapier.configured(CateringStorage(db)))


@router.post("/zapier", response_model=ZapierConfigOut)
async def save_zapier_config(
    config: ZapierConfigUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Any:
    storage = CateringStorage(db)
    zapier = notification_service.zapier.save_config(storage, str(config.webhook_url), config.events)
    storage.create_activity_log({
        "user_id": current_user.id,
        "action": "UPDATE_INTEGRATION",
        "details": json.dumps({"service": "zapier", "events": zapier.events}),
        "resource_type": "integration",
    })
    return zapier_config(zapier)


@router.post("/zapier/test", dependencies=[Depends(require_admin)])
async def test_zapier_webhook(request: ZapierTestRequest) -> Any:
    if not notification_service.zapier.send_test(str(request.webhook_url)):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Test failed"
        )
    return {"message": "Test successful"}
