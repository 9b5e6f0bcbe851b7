import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import LOG_LEVEL
from app.core.errors import DomainError
from app.core.logging_middleware import LoggingMiddleware
from app.db.init_db import init_db

from app.routers.admin import router as admin_router
from app.routers.batches import router as batches_router
from app.routers.courses import router as courses_router
from app.routers.faculty import router as faculty_router
from app.routers.grades import router as grades_router
from app.routers.students import router as students_router
from app.routers.submissions import router as submissions_router
from app.routers.tasks import router as tasks_router

logging.basicConfig(level=LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(title="SkillUp Academic Tasks")

# Middleware
app.add_middleware(LoggingMiddleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Health check
@app.get("/health")
def health():
    return {"status": "ok"}


# Startup event
@app.on_event("startup")
def on_startup():
    init_db()


# Include routers
app.include_router(admin_router, prefix="/admin", tags=["admin"])
app.include_router(batches_router, prefix="/batches", tags=["batches"])
app.include_router(students_router, prefix="/students", tags=["students"])
app.include_router(faculty_router, prefix="/faculty", tags=["faculty"])
app.include_router(courses_router, prefix="/courses", tags=["courses"])

# Task, submission and grade routes define their full paths
app.include_router(tasks_router, tags=["tasks"])
app.include_router(submissions_router, tags=["submissions"])
app.include_router(grades_router, tags=["grades"])
