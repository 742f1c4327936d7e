"""Emotional Analytics Insights API - FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import insights

settings = get_settings()

app = FastAPI(
    title="Emotional Analytics Insights API",
    description="Stateless API for emotion labels, crisis risk and dashboard insights",
    version="1.0.0",
)

# Configure CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(insights.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for the API."""
    return {"status": "healthy", "service": "insights-api"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "server.insights_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
