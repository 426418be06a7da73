from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, File, Form, Query, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from othershorts.app.config import settings
from othershorts.app.logging_setup import setup_logging
from othershorts.app.db import connect, init_db, storage_errors
from othershorts.app.errors import AppError, ConfigurationError, NotFoundError, ValidationError
from othershorts.feed.selector import parse_id_list, select_batch
from othershorts.ratings.store import append_rating, count_ratings
from othershorts.takeout.parser import ingest_takeout
from othershorts.takeout.youtube import DurationLookup, YouTubeDurationClient
from othershorts.users.store import (
    create_or_fetch_user,
    get_user,
    list_countries,
    update_profile,
)

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ensure DB exists
    conn = connect()
    init_db(conn)
    conn.close()

    if not settings.youtube_api_key:
        logger.warning("YOUTUBE_API_KEY is not set, takeout uploads will fail")

    yield
    # nothing to clean up for sqlite here


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    lifespan=lifespan,
)

if settings.cors_origins_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# Errors: every failure goes out as {"error": "..."}
@app.exception_handler(AppError)
async def app_error_handler(_request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(_request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(e.get("type") == "missing" for e in errors):
        message = "Missing required fields"
    elif errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        message = f"{loc}: {errors[0].get('msg')}" if loc else str(errors[0].get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


def get_duration_lookup() -> DurationLookup | None:
    # None when no key is configured; the route reports it after its own checks
    if not settings.youtube_api_key:
        return None
    return YouTubeDurationClient(
        api_key=settings.youtube_api_key,
        api_url=settings.youtube_api_url,
        timeout=settings.youtube_timeout_seconds,
    )


@app.get("/health")
def health():
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env}


@app.get("/")
def root():
    return {"message": "OtherShorts API is running", "docs": "/docs", "health": "/health"}


# Debug endpoints
@app.get("/debug/videos")
def debug_videos(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=200),
):
    conn = connect()
    try:
        with storage_errors("debug videos"):
            rows = conn.execute(
                "SELECT id, url, user_id, created_at FROM videos WHERE user_id = ? ORDER BY id DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
    finally:
        conn.close()
    return [dict(r) for r in rows]


@app.get("/debug/ratings")
def debug_ratings(
    reviewer_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=200),
):
    conn = connect()
    try:
        with storage_errors("debug ratings"):
            total = count_ratings(conn, reviewer_id=reviewer_id)
            rows = conn.execute(
                """
                SELECT id, target_user_id, reviewer_id, video_url, rating, political, created_at
                FROM ratings
                WHERE reviewer_id = ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (reviewer_id, limit),
            ).fetchall()
    finally:
        conn.close()
    return {"total": total, "ratings": [dict(r) for r in rows]}


# Countries & users
@app.get("/api/countries")
def countries():
    conn = connect()
    try:
        with storage_errors("list countries"):
            return list_countries(conn)
    finally:
        conn.close()


class CreateUserRequest(BaseModel):
    googleId: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    age: int = Field(..., ge=1, le=130)
    gender: str = Field(..., min_length=1, max_length=32)
    countryId: int = Field(..., ge=1)


@app.post("/api/users")
def create_user(payload: CreateUserRequest):
    conn = connect()
    try:
        with storage_errors("create user"):
            return create_or_fetch_user(conn, payload.googleId)
    finally:
        conn.close()


@app.get("/api/users/{user_id}")
def read_user(user_id: str):
    conn = connect()
    try:
        with storage_errors("read user"):
            user = get_user(conn, user_id)
    finally:
        conn.close()
    if user is None:
        raise NotFoundError("User not found")
    return user


@app.put("/api/users/{user_id}")
def write_user(user_id: str, payload: ProfileUpdate):
    conn = connect()
    try:
        with storage_errors("update profile"):
            return update_profile(
                conn,
                user_id=user_id,
                age=payload.age,
                gender=payload.gender,
                country_id=payload.countryId,
            )
    finally:
        conn.close()


# Takeout upload (stores only shorts)
@app.post("/api/uploadTakeout")
def upload_takeout(
    file: UploadFile | None = File(None),
    userId: str | None = Form(None),
    lookup: DurationLookup | None = Depends(get_duration_lookup),
):
    if not userId or file is None:
        raise ValidationError("User ID or file is missing.")
    if lookup is None:
        logger.error("YOUTUBE_API_KEY is not defined")
        raise ConfigurationError("Server configuration error: Missing API Key.")

    raw = file.file.read()

    conn = connect()
    try:
        with storage_errors("takeout lookup user"):
            owner = get_user(conn, userId)
        if owner is None:
            raise NotFoundError("User not found")

        with storage_errors("takeout ingest"):
            result = ingest_takeout(
                conn,
                user_id=userId,
                raw=raw,
                lookup=lookup,
                max_seconds=settings.shorts_max_seconds,
                batch_size=settings.youtube_batch_size,
            )
    finally:
        conn.close()

    return {
        "message": f"{result.inserted} new shorts added successfully.",
        "found": result.found,
        "kept": result.kept,
        "inserted": result.inserted,
    }


# Ratings (append-only)
class RatingIn(BaseModel):
    userId: str = Field(..., min_length=1)       # uploader being rated
    reviewerId: str = Field(..., min_length=1)
    rating: float = Field(..., ge=0, le=100)
    political: bool
    videoUrl: str | None = Field(default=None, max_length=512)


@app.post("/api/ratings", status_code=204)
def submit_rating(payload: RatingIn):
    conn = connect()
    try:
        with storage_errors("append rating"):
            append_rating(
                conn,
                target_user_id=payload.userId,
                reviewer_id=payload.reviewerId,
                rating=round(payload.rating),
                political=payload.political,
                video_url=payload.videoUrl,
                unique=settings.enforce_unique_ratings,
            )
    finally:
        conn.close()
    return Response(status_code=204)


# Batch feed: one uploader's shorts per call, never the requester's own
@app.get("/api/batch/{user_id}")
def batch(
    user_id: str,
    seen: str | None = Query(default=None),
    submitted: str | None = Query(default=None),
):
    seen_ids = parse_id_list(seen)
    submitted_urls = parse_id_list(submitted)

    conn = connect()
    try:
        with storage_errors("batch feed"):
            videos = select_batch(
                conn,
                requester_id=user_id,
                seen=seen_ids,
                submitted=submitted_urls,
                limit=settings.feed_batch_size,
            )
    finally:
        conn.close()

    return {"videos": [v.to_dict() for v in videos]}
