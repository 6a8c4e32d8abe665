"""
Data-protection API router: erasure requests, consent and data export
"""
import json
from datetime import datetime
from typing import Any, Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user, get_optional_user
from catering_api.models.gdpr import ConsentUpdate, DataDeletionRequest, PersonalDataExport
from catering_api.models.concierge import ConciergeRequestOut
from catering_api.models.order import OrderDetail
from catering_api.models.user import User, UserOut
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/gdpr", tags=["gdpr"])


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@router.post("/data-deletion-request")
async def request_data_deletion(
    deletion: DataDeletionRequest,
    request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
) -> Any:
    """Recorded for manual review; nothing is erased automatically"""
    CateringStorage(db).create_activity_log({
        "user_id": current_user.id if current_user else None,
        "action": "DATA_DELETION_REQUEST",
        "details": json.dumps({
            "email": deletion.email,
            "reason": deletion.reason,
            "timestamp": datetime.utcnow().isoformat(),
            "ip": client_ip(request),
            "status": "PENDING",
        }),
        "resource_type": "gdpr",
    })
    return {"message": "Data deletion request received successfully", "status": "PENDING"}


@router.post("/user-consent")
async def update_consent(
    consent: ConsentUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    CateringStorage(db).create_activity_log({
        "user_id": current_user.id,
        "action": "CONSENT_UPDATE",
        "details": json.dumps({
            **consent.model_dump(by_alias=True),
            "timestamp": datetime.utcnow().isoformat(),
            "ip": client_ip(request),
        }),
        "resource_id": current_user.id,
        "resource_type": "user",
    })
    return {"message": "Consent updated successfully"}


@router.get("/export-personal-data")
async def export_personal_data(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Everything stored about the caller, as a downloadable JSON document"""
    storage = CateringStorage(db)
    export = PersonalDataExport(
        exported_at=datetime.utcnow(),
        user=UserOut.model_validate(current_user),
        orders=[OrderDetail.model_validate(order) for order in storage.list_orders(user_id=current_user.id)],
        concierge_requests=[
            ConciergeRequestOut.model_validate(concierge)
            for concierge in storage.list_concierge_requests(user_id=current_user.id)
        ],
    )
    storage.create_activity_log({
        "user_id": current_user.id,
        "action": "DATA_EXPORT_REQUEST",
        "details": json.dumps({"timestamp": datetime.utcnow().isoformat(), "ip": client_ip(request)}),
        "resource_id": current_user.id,
        "resource_type": "user",
    })
    return JSONResponse(
        content=export.model_dump(mode="json", by_alias=True),
        headers={"Content-Disposition": "attachment; filename=personal-data.json"},
    )
