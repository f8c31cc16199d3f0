# mealplan/api/routers/menu.py
from typing import List, Optional

from fastapi import APIRouter

from mealplan.domain import catalog
from mealplan.domain.schemas import MenuItemOut

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("/", response_model=List[MenuItemOut])
def list_menu(category: Optional[str] = None):
    return catalog.list_items(category)


@router.get("/categories", response_model=List[str])
def list_categories():
    return catalog.categories()
