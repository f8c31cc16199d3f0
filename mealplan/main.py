# mealplan/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from mealplan.api.routers import health, menu, customers, carts, orders, owner
from mealplan.data.database import Base, init_db
from mealplan.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Meal Plan Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(menu.router)
    app.include_router(customers.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(owner.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
