"""FastAPI application."""

from fastapi import FastAPI

from backend.app.api.routes.chat import router as chat_router
from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.suggestions import router as suggestions_router
from backend.app.api.routes.votes import router as votes_router

app = FastAPI(title="Artifact Chat API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(chat_router)
app.include_router(documents_router)
app.include_router(suggestions_router)
app.include_router(votes_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Artifact Chat API", "version": "0.1.0"}
