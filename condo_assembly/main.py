"""
Main FastAPI application
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from condo_assembly.config import get_settings
from condo_assembly.database import engine, init_models
from condo_assembly.exceptions import AssemblyError
from condo_assembly.api import agenda_items, assemblies, attendance, minutes, otp, participants, session, votes
from condo_assembly.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models(engine)
    logger.info("Database tables created")
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AssemblyError)
async def assembly_error_handler(request: Request, exc: AssemblyError):
    logger.debug(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# Public routes with literal prefixes go first so they never match /{assembly_id}
PREFIX = "/api/assemblies"
app.include_router(session.router, prefix=PREFIX, tags=["Session"])
app.include_router(attendance.router, prefix=PREFIX, tags=["Attendance"])
app.include_router(otp.router, prefix=PREFIX, tags=["OTP"])
app.include_router(assemblies.router, prefix=PREFIX, tags=["Assemblies"])
app.include_router(agenda_items.router, prefix=PREFIX, tags=["Agenda Items"])
app.include_router(votes.router, prefix=PREFIX, tags=["Votes"])
app.include_router(participants.router, prefix=PREFIX, tags=["Participants"])
app.include_router(minutes.router, prefix=PREFIX, tags=["Minutes"])


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
