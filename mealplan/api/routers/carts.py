# mealplan/api/routers/carts.py
from fastapi import APIRouter, Depends

from mealplan.api.deps import Actor, get_actor, get_cart_service
from mealplan.api.errors import http_error
from mealplan.domain.errors import MealPlanError
from mealplan.domain.schemas import CartOut, ItemIn, QuantityIn
from mealplan.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/me", response_model=CartOut)
def get_cart(actor: Actor = Depends(get_actor), svc: CartService = Depends(get_cart_service)):
    try:
        return svc.get_cart(actor.user_id)
    except MealPlanError as e:
        raise http_error(e)


@router.post("/me/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.add_item(actor.user_id, payload.item_id)
    except MealPlanError as e:
        raise http_error(e)


@router.delete("/me/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: str,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.remove_item(actor.user_id, item_id)
    except MealPlanError as e:
        raise http_error(e)


@router.put("/me/items/{item_id}", response_model=CartOut)
def set_quantity(
    item_id: str,
    payload: QuantityIn,
    actor: Actor = Depends(get_actor),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.set_quantity(actor.user_id, item_id, payload.quantity)
    except MealPlanError as e:
        raise http_error(e)


@router.delete("/me", response_model=CartOut)
def clear_cart(actor: Actor = Depends(get_actor), svc: CartService = Depends(get_cart_service)):
    try:
        return svc.clear(actor.user_id)
    except MealPlanError as e:
        raise http_error(e)
