"""
Self-service profile API router
"""
import json
from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import get_current_user
from catering_api.models.user import User, UserOut, UserProfileUpdate
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=UserOut)
async def read_profile(current_user: User = Depends(get_current_user)) -> Any:
    return current_user


@router.patch("", response_model=UserOut)
async def update_profile(
    profile: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Any:
    """Contact details only; username, role and password are not accepted here"""
    storage = CateringStorage(db)
    fields = profile.model_dump(exclude_unset=True)
    user = storage.update_user(current_user, fields)
    storage.create_activity_log({
        "user_id": user.id,
        "action": "UPDATE_PROFILE",
        "details": json.dumps({"fields": sorted(fields)}),
        "resource_id": user.id,
        "resource_type": "user",
    })
    return user
