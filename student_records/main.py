import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.middleware.cors import CORSMiddleware

from student_records.api import auth_api, profile_api, student_api, view_api
from student_records.configs import settings
from student_records.configs.database import engine, init_db
from student_records.configs.logging_config import setup_logging
from student_records.exceptions import StudentRecordsError
from student_records.services import user_service

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    with Session(engine) as db:
        user_service.bootstrap_admin(db)
    yield

app = FastAPI(
    title="Student Records",
    description="Accounts, federated login and student record management",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_api.router)
app.include_router(student_api.router)
app.include_router(profile_api.router)
app.include_router(view_api.router)


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(StudentRecordsError)
async def student_records_error_handler(request: Request, exc: StudentRecordsError):
    return _failure(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    locations = {error["loc"][0] for error in exc.errors() if error.get("loc")}
    if "path" in locations:
        # /students/abc names no record
        return _failure(404, "Not found")
    if "body" in locations:
        return _failure(400, "Request body is malformed.")
    return _failure(400, "Request parameters are invalid.")


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _failure(500, "Server error")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return _failure(500, str(exc) if settings.DEBUG else "Server error")


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("student_records.main:app", host=settings.API_HOST, port=settings.API_PORT)
