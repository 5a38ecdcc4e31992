import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException

from .config import CORS_ORIGINS
from .db import create_db_and_tables
from .errors import QuizroomError, Unavailable
from .routers import auth, exam_routers, session_routers, submission_routers
from .schemas.user_schema import UserCreate, UserRead, UserUpdate
from .security import auth_backend, app_users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # run once when app starts
    await create_db_and_tables()
    yield


def _error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    body = {"success": False, "error": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def _format_validation_error(err: dict) -> str:
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def register_exception_handlers(app: FastAPI):

    @app.exception_handler(QuizroomError)
    async def quizroom_error_handler(request: Request, exc: QuizroomError):
        return _error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(OperationalError)
    async def store_unavailable_handler(request: Request, exc: OperationalError):
        logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc.orig)
        err = Unavailable("Service temporarily unavailable")
        return _error_response(err.status_code, err.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [_format_validation_error(e) for e in exc.errors()]
        return _error_response(400, "Invalid request. " + " ".join(errors), errors)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        # details stay in the server log
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal server error")


def create_app() -> FastAPI:
    app = FastAPI(title="Quizroom", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,  # which sites can call this API
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(exam_routers.router, prefix="/api")
    app.include_router(session_routers.router, prefix="/api")
    app.include_router(submission_routers.router, prefix="/api")

    # Auth routers
    app.include_router(app_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
    app.include_router(auth.router)
    app.include_router(app_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
    app.include_router(app_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])
    return app


app = create_app()
