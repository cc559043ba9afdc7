import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

# Import after dotenv is loaded
from recipehub.core.config import settings, validate_config
from recipehub.core.database import create_all_tables, get_database_url
from recipehub.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from recipehub.core.logging import configure_logging
from recipehub.core.middleware.ratelimit import RateLimitMiddleware
from recipehub.core.middleware.request_id import RequestIdMiddleware
from recipehub.core.ratelimit import build_rate_limit_config
from recipehub.core.validation import validate_env
from recipehub.api import auth, chat, health, images, meal_plans, nutrition, recipes, subscriptions

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("recipehub")
    logger.info("Starting RecipeHub API...")
    app.state.startup_time = time.time()
    if get_database_url():
        create_all_tables()
    try:
        yield
    finally:
        logger.info("Stopping RecipeHub API...")


app = FastAPI(title="RecipeHub API", lifespan=lifespan)

# Last added runs first: CORS, then request id, then rate limiting
app.add_middleware(RateLimitMiddleware, config=build_rate_limit_config(settings))
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.root_router)
app.include_router(auth.router, prefix="/api")
app.include_router(subscriptions.router, prefix="/api")
app.include_router(recipes.router, prefix="/api")
app.include_router(meal_plans.router, prefix="/api")
app.include_router(nutrition.router, prefix="/api")
app.include_router(chat.router, prefix="/api")
app.include_router(images.router, prefix="/api")
