"""
Support chat API router, relayed to the operations Slack channel
"""
import json
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user, require_admin
from catering_api.models.integration import SupportRequestCreate
from catering_api.models.user import User
from catering_api.services.notification_service import notification_service
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/status")
async def chat_status() -> Any:
    available = notification_service.slack.enabled
    return {
        "available": available,
        "message": (
            "Slack integration is available" if available else
            "Slack integration is currently unavailable. Your message will still be recorded, "
            "but expect a delay in response."
        ),
    }


@router.post("/support")
async def create_support_request(
    support: SupportRequestCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Always recorded in the activity log, relayed to Slack when configured"""
    slack = notification_service.slack
    relayed = slack.create_support_request(
        current_user.username, current_user.email, support.message, support.order_number, support.order_id
    )
    log = CateringStorage(db).create_activity_log({
        "user_id": current_user.id,
        "order_id": support.order_id,
        "action": "SUPPORT_REQUEST",
        "details": json.dumps({
            "message": support.message,
            "orderNumber": support.order_number,
            "slackEnabled": slack.enabled,
            "relayed": relayed,
        }),
        "resource_type": "support",
    })
    return {
        "success": True,
        "message": "Support request sent to operations team" if relayed else "Support request recorded",
        "supportId": log.id,
        "slackEnabled": slack.enabled,
    }


@router.get("/test", dependencies=[Depends(require_admin)])
async def test_slack_connection() -> Any:
    slack = notification_service.slack
    success = slack.send_message("Air Gourmet Hellas support chat connection test")
    return {
        "success": success,
        "message": "Slack connection successful" if success else "Slack connection failed",
        "config": {"webhookConfigured": slack.enabled},
    }
