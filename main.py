"""
MathSage Tutor Backend - FastAPI Application

Main entry point for the Socratic math tutoring API. The tutoring pipeline
itself lives in tutor.orchestration; this module wires configuration,
logging and routers.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import get_settings, validate_required_settings
from shared.api import health
from shared.services.secrets_service import SecretCache, SecretsService
from tutor.api import chat, feedback
from tutor.models.pipeline_logs import PipelineTraceStore

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

# Validate configuration on startup
validate_required_settings()

# Initialize FastAPI app
app = FastAPI(
    title="MathSage Tutor Backend",
    description="Adaptive Socratic math tutoring API",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide secret cache and trace store, injected through app state
app.state.secrets_service = SecretsService(
    SecretCache(ttl_seconds=settings.secret_cache_ttl_seconds),
    region=settings.aws_region,
    environment=settings.environment,
)
app.state.trace_store = PipelineTraceStore(
    max_conversations=settings.trace_max_conversations,
    max_logs_per_conversation=settings.trace_max_logs_per_conversation,
)

# Include routers
app.include_router(health.router)
app.include_router(chat.router)
app.include_router(feedback.router)

logger.info(f"MathSage Tutor Backend configured (environment={settings.environment}, model={settings.llm_model})")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
