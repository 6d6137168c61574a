"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the study planner backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses. Every data endpoint requires a
bearer token and only ever touches records owned by the caller.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /auth/me
- POST, GET /subjects; GET, PATCH, DELETE /subjects/{id}
- GET /subjects/{id}/activities
- POST, GET /activities; GET, PATCH, DELETE /activities/{id}
- POST, GET /notes; GET, PATCH, DELETE /notes/{id}
- POST, GET /pomodoros; GET, PATCH, DELETE /pomodoros/{id}
- GET /health
"""

import datetime as dt
import json
import logging
import time
import uuid
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from . import models, services
from .auth import get_current_user
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import AuthorizationError, StudyPlannerError
from .schemas import (
    ActivityCreate, ActivityOut, ActivityUpdate,
    LoginIn, NoteCreate, NoteOut, NoteUpdate,
    PomodoroCreate, PomodoroOut, PomodoroUpdate,
    RegisterIn, SubjectCreate, SubjectOut, SubjectUpdate,
    TokenOut, UserOut,
)
from .utils.rate_limit import InMemoryRateLimiter

app = FastAPI(title="Study Planner API")
logger = logging.getLogger("app.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
_login_rate_limiter = InMemoryRateLimiter(
    settings.AUTH_RATE_LIMIT_PER_MIN, settings.AUTH_RATE_LIMIT_WINDOW_SECONDS
)

# Wide-open CORS keeps local browser frontends working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    context["status_code"] = response.status_code
    context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


@app.exception_handler(StudyPlannerError)
async def study_planner_error_handler(request: Request, exc: StudyPlannerError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthorizationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": exc.message},
        headers=headers,
    )


def _enforce_login_rate_limit(request: Request) -> None:
    key = f"{request.client.host if request.client else 'unknown'}:{request.url.path}"
    allowed, retry_after = _login_rate_limiter.allow(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


def _page(limit: int = Query(100, ge=1, le=500), offset: int = Query(0, ge=0)) -> dict:
    return {"limit": limit, "offset": offset}


def subject_service(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.SubjectService(db, user)


def activity_service(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.ActivityService(db, user)


def note_service(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.NoteService(db, user)


def pomodoro_service(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return services.PomodoroService(db, user)


@app.post('/auth/register', response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user with email and password.

    Registering an address twice is rejected with 409.
    """
    return services.AuthService(db).register(payload.email, payload.password)


@app.post('/auth/login', response_model=TokenOut)
def login(payload: LoginIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `email` and is signed
    using the configured JWT secret. Attempts are rate limited per
    client address.
    """
    _enforce_login_rate_limit(request)
    token = services.AuthService(db).authenticate(payload.email, payload.password)
    return {'access_token': token, 'token_type': 'bearer'}


@app.get('/auth/me', response_model=UserOut)
def me(user: models.User = Depends(get_current_user)):
    return user


@app.post('/subjects', response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, svc: services.SubjectService = Depends(subject_service)):
    return svc.create(payload.model_dump())


@app.get('/subjects', response_model=List[SubjectOut])
def list_subjects(page: dict = Depends(_page), svc: services.SubjectService = Depends(subject_service)):
    return svc.list(**page)


@app.get('/subjects/{subject_id}', response_model=SubjectOut)
def get_subject(subject_id: int, svc: services.SubjectService = Depends(subject_service)):
    return svc.get(subject_id)


@app.patch('/subjects/{subject_id}', response_model=SubjectOut)
def update_subject(subject_id: int, payload: SubjectUpdate, svc: services.SubjectService = Depends(subject_service)):
    return svc.update(subject_id, payload.model_dump(exclude_unset=True))


@app.delete('/subjects/{subject_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_subject(subject_id: int, svc: services.SubjectService = Depends(subject_service)):
    """Delete a subject; linked activities follow `SUBJECT_DELETE_POLICY`."""
    svc.delete(subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get('/subjects/{subject_id}/activities', response_model=List[ActivityOut])
def list_subject_activities(
    subject_id: int,
    page: dict = Depends(_page),
    svc: services.SubjectService = Depends(subject_service),
):
    """List the activities that belong to one of the caller's subjects."""
    return svc.list_activities(subject_id, **page)


@app.post('/activities', response_model=ActivityOut, status_code=status.HTTP_201_CREATED)
def create_activity(payload: ActivityCreate, svc: services.ActivityService = Depends(activity_service)):
    return svc.create(payload.model_dump())


@app.get('/activities', response_model=List[ActivityOut])
def list_activities(
    date: Optional[dt.date] = None,
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    subject_id: Optional[int] = None,
    is_completed: Optional[bool] = None,
    page: dict = Depends(_page),
    svc: services.ActivityService = Depends(activity_service),
):
    """List the caller's activities.

    `date` selects a single day, `date_from`/`date_to` an inclusive range;
    both use the index on the activity date.
    """
    return svc.list(
        on_date=date,
        date_from=date_from,
        date_to=date_to,
        subject_id=subject_id,
        is_completed=is_completed,
        **page,
    )


@app.get('/activities/{activity_id}', response_model=ActivityOut)
def get_activity(activity_id: int, svc: services.ActivityService = Depends(activity_service)):
    return svc.get(activity_id)


@app.patch('/activities/{activity_id}', response_model=ActivityOut)
def update_activity(activity_id: int, payload: ActivityUpdate, svc: services.ActivityService = Depends(activity_service)):
    return svc.update(activity_id, payload.model_dump(exclude_unset=True))


@app.delete('/activities/{activity_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(activity_id: int, svc: services.ActivityService = Depends(activity_service)):
    svc.delete(activity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post('/notes', response_model=NoteOut, status_code=status.HTTP_201_CREATED)
def create_note(payload: NoteCreate, svc: services.NoteService = Depends(note_service)):
    return svc.create(payload.model_dump())


@app.get('/notes', response_model=List[NoteOut])
def list_notes(page: dict = Depends(_page), svc: services.NoteService = Depends(note_service)):
    return svc.list(**page)


@app.get('/notes/{note_id}', response_model=NoteOut)
def get_note(note_id: int, svc: services.NoteService = Depends(note_service)):
    return svc.get(note_id)


@app.patch('/notes/{note_id}', response_model=NoteOut)
def update_note(note_id: int, payload: NoteUpdate, svc: services.NoteService = Depends(note_service)):
    return svc.update(note_id, payload.model_dump(exclude_unset=True))


@app.delete('/notes/{note_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_note(note_id: int, svc: services.NoteService = Depends(note_service)):
    svc.delete(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post('/pomodoros', response_model=PomodoroOut, status_code=status.HTTP_201_CREATED)
def create_pomodoro(payload: PomodoroCreate, svc: services.PomodoroService = Depends(pomodoro_service)):
    """Record a finished focus session."""
    return svc.create(payload.model_dump())


@app.get('/pomodoros', response_model=List[PomodoroOut])
def list_pomodoros(
    completed_from: Optional[dt.datetime] = None,
    completed_to: Optional[dt.datetime] = None,
    page: dict = Depends(_page),
    svc: services.PomodoroService = Depends(pomodoro_service),
):
    return svc.list(completed_from=completed_from, completed_to=completed_to, **page)


@app.get('/pomodoros/{pomodoro_id}', response_model=PomodoroOut)
def get_pomodoro(pomodoro_id: int, svc: services.PomodoroService = Depends(pomodoro_service)):
    return svc.get(pomodoro_id)


@app.patch('/pomodoros/{pomodoro_id}', response_model=PomodoroOut)
def update_pomodoro(pomodoro_id: int, payload: PomodoroUpdate, svc: services.PomodoroService = Depends(pomodoro_service)):
    return svc.update(pomodoro_id, payload.model_dump(exclude_unset=True))


@app.delete('/pomodoros/{pomodoro_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_pomodoro(pomodoro_id: int, svc: services.PomodoroService = Depends(pomodoro_service)):
    svc.delete(pomodoro_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
