"""
FastAPI Application

Main entry point for the prescription engine web API.
"""

from contextlib import asynccontextmanager
from typing import Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from runeq.api.routes import alternatives, catalogs, paces, plans, workouts
from runeq.config import get_settings
from runeq.errors import (
    MissingEquipmentData,
    OutOfRangeGoal,
    PlanLoadError,
    StorageError,
    WorkoutNotFound,
)
from runeq.logging_config import setup_logging

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="RunEQ Training Prescription Engine API",
    description="Goal paces, periodized training plans, workout prescriptions and cross-training alternatives",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
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
app.include_router(paces.router, prefix="/api", tags=["Paces"])
app.include_router(plans.router, prefix="/api", tags=["Plans"])
app.include_router(catalogs.router, prefix="/api", tags=["Catalogs"])
app.include_router(workouts.router, prefix="/api", tags=["Workouts"])
app.include_router(alternatives.router, prefix="/api", tags=["Alternatives"])


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint - API information."""
    return {
        "name": "RunEQ Training Prescription Engine API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "runeq-api"}


# Exception handlers
@app.exception_handler(OutOfRangeGoal)
async def out_of_range_handler(request: Request, exc: OutOfRangeGoal):
    """Goal outside the pace table: user-correctable, so 422 with the valid range."""
    return JSONResponse(
        status_code=422,
        content={
            "error": "Goal Out of Range",
            "message": str(exc),
            "distance": exc.distance,
            "fastest": exc.fastest,
            "slowest": exc.slowest,
        },
    )


@app.exception_handler(WorkoutNotFound)
async def workout_not_found_handler(request: Request, exc: WorkoutNotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Workout Not Found", "message": str(exc)},
    )


@app.exception_handler(MissingEquipmentData)
async def missing_equipment_handler(request: Request, exc: MissingEquipmentData):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Missing Equipment", "message": str(exc)},
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    error = "Plan Load Failed" if isinstance(exc, PlanLoadError) else "Plan Save Failed"
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": error, "message": str(exc)},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "message": str(exc.detail)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": str(exc),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "runeq.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
        log_level="info",
    )
