"""Main FastAPI application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager

from tableside.core.config import settings
from tableside.core.logging import setup_logging
from tableside.db.database import init_db
from tableside.api import health, menu, cart, orders, kitchen, tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    await init_db()
    yield


app = FastAPI(
    title="Tableside",
    description=f"QR table ordering and kitchen board for {settings.restaurant_name}",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router, tags=["health"])
app.include_router(menu.router, tags=["menu"])
app.include_router(cart.router, tags=["cart"])
app.include_router(orders.router, tags=["orders"])
app.include_router(kitchen.router, tags=["kitchen"])
app.include_router(tables.router, tags=["tables"])


@app.get("/")
async def root():
    return {
        "message": "Tableside API",
        "version": "0.1.0",
        "restaurant": settings.restaurant_name,
    }


def run() -> None:
    """Console entry point."""
    import uvicorn

    uvicorn.run("tableside.main:app", host=settings.host, port=settings.port)
