"""
Menu API router
"""
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from catering_api.core.database import get_db
from catering_api.api.auth import require_admin
from catering_api.models.menu import MenuItemCreate, MenuItemOut, MenuItemUpdate, KITCHEN_LOCATIONS
from catering_api.storage import CateringStorage

router = APIRouter(prefix="/menu-items", tags=["menu"])


@router.get("", response_model=List[MenuItemOut])
async def list_menu_items(
    category: Optional[str] = None,
    kitchen: Optional[str] = None,
    available_only: bool = False,
    db: Session = Depends(get_db)
) -> Any:
    """Public catalog; `kitchen` limits to items priced at that location"""
    items = CateringStorage(db).list_menu_items(category, available_only)
    if kitchen:
        if kitchen not in KITCHEN_LOCATIONS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown kitchen location: {kitchen}"
            )
        items = [item for item in items if item.price_for(kitchen) > 0]
    return items


@router.get("/{menu_item_id}", response_model=MenuItemOut)
async def get_menu_item(menu_item_id: int, db: Session = Depends(get_db)) -> Any:
    item = CateringStorage(db).get_menu_item(menu_item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )
    return item


@router.post("", response_model=MenuItemOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_admin)])
async def create_menu_item(item_data: MenuItemCreate, db: Session = Depends(get_db)) -> Any:
    return CateringStorage(db).create_menu_item(item_data.model_dump())


@router.patch("/{menu_item_id}", response_model=MenuItemOut, dependencies=[Depends(require_admin)])
async def update_menu_item(menu_item_id: int, item_update: MenuItemUpdate, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    item = storage.get_menu_item(menu_item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )
    return storage.update_menu_item(item, item_update.model_dump(exclude_unset=True))


@router.delete("/{menu_item_id}", dependencies=[Depends(require_admin)])
async def delete_menu_item(menu_item_id: int, db: Session = Depends(get_db)) -> Any:
    storage = CateringStorage(db)
    item = storage.get_menu_item(menu_item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )
    storage.delete_menu_item(item)
    return {"message": "Menu item deleted successfully"}
