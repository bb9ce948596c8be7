# storefront/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from storefront.api.responses import register_exception_handlers
from storefront.api.routers import admin_orders, carts, health, orders
from storefront.utils import settings
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.STORE_BACKEND == "sql":
        from storefront.data.database import init_db

        logger.info("Initializing database tables")
        init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Cart & Order Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(admin_orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
