from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from mealplan.api.errors import http_error
from mealplan.data.database import get_db
from mealplan.domain.errors import StoreUnavailableError
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except OperationalError as e:
        logger.error(f"Health check failed: {e}")
        raise http_error(StoreUnavailableError()) from e
    return {"status": "ok"}
