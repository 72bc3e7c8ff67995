import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.middleware.cors import CORSMiddleware
from dataBase import db
from lifecycle import InvalidTransition
from logging_config import configure_logging, get_logger
from routes import (
    profile_routes,
    item_routes,
    request_routes,
    chat_routes,
    payment_routes,
    review_routes,
    notification_routes,
    realtime_routes,
)

configure_logging(source="api")
logger = get_logger(__name__)


async def ensure_indexes():
    await db.profiles.create_index("user_id", unique=True)
    await db.conversations.create_index("borrow_request_id", unique=True)
    await db.reviews.create_index([("borrow_request_id", 1), ("reviewer_id", 1)], unique=True)
    await db.borrow_requests.create_index([("owner_id", 1), ("last_message_at", -1)])
    await db.borrow_requests.create_index([("borrower_id", 1), ("created_at", -1)])
    await db.messages.create_index([("conversation_id", 1), ("created_at", 1)])
    await db.notifications.create_index([("user_id", 1), ("created_at", -1)])
    await db.items.create_index([("is_available", 1), ("category", 1), ("created_at", -1)])


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await ensure_indexes()
        logger.info("Database indexes ensured")
    except Exception as e:
        logger.error(f"Could not ensure indexes: {e}")
    yield


app = FastAPI(title="BorrowHub API", version="1.0.0", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(profile_routes)
app.include_router(item_routes)
app.include_router(request_routes)
app.include_router(chat_routes)
app.include_router(payment_routes)
app.include_router(review_routes)
app.include_router(notification_routes)
app.include_router(realtime_routes)


@app.get("/")
def root():
    return RedirectResponse(url="/docs")


@app.get("/health")
async def health():
    return {"status": "ok"}
