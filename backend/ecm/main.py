"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ecm.config import settings
from ecm.database import Base, engine
from ecm.errors import ECMError, PersistenceFailure

# Import routers
from ecm.routers import organizations, dashboard, ecrs, ecos, ecns, approvals, comments, notifications

# Import all models so Base.metadata knows about them
from ecm.models.organization import Organization       # noqa: F401
from ecm.models.ecr import Ecr                         # noqa: F401
from ecm.models.eco import Eco                         # noqa: F401
from ecm.models.ecn import Ecn                         # noqa: F401
from ecm.models.approval import Approval               # noqa: F401
from ecm.models.comment import Comment                 # noqa: F401
from ecm.models.notification import Notification      # noqa: F401
from ecm.models.sequence_counter import SequenceCounter  # noqa: F401
from ecm.models.activity_log import ActivityLog        # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Engineering Change Manager",
    description="ECR → ECO → ECN change management with approval workflows",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(organizations.router, prefix="/api/organizations", tags=["Organizations"])
app.include_router(dashboard.router, prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(ecrs.router, prefix="/api/ecr", tags=["ECR"])
app.include_router(ecos.router, prefix="/api/eco", tags=["ECO"])
app.include_router(ecns.router, prefix="/api/ecn", tags=["ECN"])
app.include_router(approvals.router, prefix="/api/approvals", tags=["Approvals"])
app.include_router(comments.router, prefix="/api/comments", tags=["Comments"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])


@app.exception_handler(ECMError)
async def ecm_error_handler(request: Request, exc: ECMError):
    """Domain errors carry their own status code and payload."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema validation failures are reported as 400 with the structured error list."""
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid data", "error": "validation_error", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def persistence_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Persistence failure on %s %s", request.method, request.url.path, exc_info=exc)
    failure = PersistenceFailure("Storage operation failed")
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
