# mealplan/api/routers/customers.py
from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from sqlalchemy.orm import Session

from mealplan.api.deps import Actor, get_actor, get_plan_service
from mealplan.api.errors import http_error
from mealplan.data.database import get_db
from mealplan.domain.errors import MealPlanError
from mealplan.domain.schemas import CustomerCreate, CustomerRead, CustomerUpdate, PlanOut
from mealplan.services.customer_service import CustomerService
from mealplan.services.plan_service import PlanService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("/", response_model=CustomerRead)
def create_customer(
    payload: CustomerCreate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    if payload.id != actor.user_id:
        raise HTTPException(status_code=403, detail={"code": "permission_denied", "message": "Can only register yourself"})
    return CustomerService(db).create_customer(payload)


@router.get("/me", response_model=CustomerRead)
def get_me(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    try:
        return CustomerService(db).get_customer(actor.user_id)
    except MealPlanError as e:
        raise http_error(e)


@router.patch("/me", response_model=CustomerRead)
def update_me(
    payload: CustomerUpdate,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    try:
        return CustomerService(db).update_profile(actor.user_id, payload)
    except MealPlanError as e:
        raise http_error(e)


@router.get("/me/plan", response_model=PlanOut)
def get_plan(actor: Actor = Depends(get_actor), svc: PlanService = Depends(get_plan_service)):
    try:
        return svc.get_plan(actor.user_id)
    except MealPlanError as e:
        raise http_error(e)


@router.post("/me/plan/receipt", response_model=PlanOut)
def submit_receipt(
    file: UploadFile = File(...),
    actor: Actor = Depends(get_actor),
    svc: PlanService = Depends(get_plan_service),
):
    """
    Upload the payment receipt (JPG/PNG); the plan waits for owner approval.
    """
    try:
        return svc.submit_receipt(
            customer_id=actor.user_id,
            filename=file.filename or "receipt",
            content_type=file.content_type or "",
            data=file.file.read(),
        )
    except MealPlanError as e:
        raise http_error(e)


@router.post("/me/plan/renewal", response_model=PlanOut)
def request_renewal(actor: Actor = Depends(get_actor), svc: PlanService = Depends(get_plan_service)):
    try:
        return svc.request_renewal(actor.user_id)
    except MealPlanError as e:
        raise http_error(e)
