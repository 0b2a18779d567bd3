# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.exceptions import (
    MarketplaceError,
    marketplace_error_handler,
    database_error_handler,
)
from app.core.limiter import limiter
from app.db.base_class import Base
from app.db.session import engine
from app.scheduler import init_scheduler, shutdown_scheduler
from app import models  # noqa: F401  registers every table on Base.metadata

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables checked and created if necessary.")
    init_scheduler()
    yield
    shutdown_scheduler()
    logger.info("Application shutting down...")


app = FastAPI(
    title="AsLogUz Cargo Marketplace",
    version="1.0.0",
    description="""
        **AsLogUz** connects clients who need cargo moved with carriers.

        ## Features

        * **Orders & Responses**: Clients post cargo, carriers bid
        * **Price Negotiation**: Counter-offers with a live change feed
        * **Deals**: Status tracking, chat, GPS positions and ratings
        * **Loyalty**: Points for delivered deals and ratings
        * **KYC**: Document submission with automated biometric checks
        * **Payments**: Subscriptions through Click and Payme
        * **Telegram**: Account linking and phone login codes

        ## Authentication

        Most endpoints require JWT authentication via the `Authorization: Bearer <token>` header.
        """,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(MarketplaceError, marketplace_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,  # Allow cookies and authorization headers
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "AsLogUz marketplace is running"}
