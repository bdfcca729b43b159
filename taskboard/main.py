import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from taskboard.config import LOG_LEVEL
from taskboard.database import Base, engine
from taskboard.errors import TaskBoardError
from taskboard.models import user, project, task  # noqa: F401  register tables
from taskboard.routers import auth, projects, tasks

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("taskboard")

Base.metadata.create_all(bind=engine)

app = FastAPI(title="TaskBoard")

# API routers
app.include_router(auth.router)
app.include_router(projects.router)
app.include_router(tasks.router)


@app.exception_handler(TaskBoardError)
async def taskboard_error_handler(request: Request, exc: TaskBoardError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Generic error handler to return JSON errors for unexpected exceptions
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # Keep HTTPException behavior
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
