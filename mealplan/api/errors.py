# mealplan/api/errors.py
from fastapi import HTTPException

from mealplan.domain.errors import MealPlanError


def http_error(e: MealPlanError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())
