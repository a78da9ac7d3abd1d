"""Main FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cashline import __version__
from cashline.config import settings
from cashline.engines import routes as pipeline_routes
from cashline.forecast import routes as forecast_routes
from cashline.optimizer import routes as optimizer_routes
from cashline.reconciliation import routes as reconciliation_routes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="Cashline API",
    description="Project cash forecasting, reconciliation and gap optimisation",
    version=__version__,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(forecast_routes.router, prefix=f"{settings.API_V1_PREFIX}/forecast", tags=["Forecast"])
app.include_router(reconciliation_routes.router, prefix=f"{settings.API_V1_PREFIX}/reconciliation", tags=["Reconciliation"])
app.include_router(optimizer_routes.router, prefix=f"{settings.API_V1_PREFIX}/optimizer", tags=["Optimizer"])
app.include_router(pipeline_routes.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Cashline API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cashline.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
