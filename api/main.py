# api/main.py
from dotenv import load_dotenv
import os

env = os.getenv("APP_ENV", "local")
if env == "local":
    load_dotenv(".env.local")
else:
    load_dotenv(".env")

from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging
from database.db import init_db
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.rate_limit import RateLimitMiddleware, RATE_LIMITS
from api.routers import (
    health,
    graphs,
    tags,
    features,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
logger.info(f"🔧 Loaded environment: {env}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting Annobib Backend, initializing DB")
    try:
        init_db()
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {e}", exc_info=True)
        raise
    yield
    logger.info("🛑 Shutting down Annobib Backend")


app = FastAPI(
    title="Annobib - Annotated Bibliography API",
    version="1.0.0",
    description="Backend API for library relationship graphs, tags and feature flags.",
    lifespan=lifespan
)

# CORS Configuration
origins = []
if env == "local":
    origins = ["http://localhost:3000", "http://localhost:5173"]  # Common dev ports
else:
    origins_str = os.getenv("ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(RateLimitMiddleware(RATE_LIMITS["api"], bucket="api"))

app.include_router(health.router)
app.include_router(graphs.router, prefix="/api", tags=["Graphs"])
app.include_router(tags.router, prefix="/api", tags=["Tags"])
app.include_router(features.router, prefix="/api", tags=["Features"])


@app.get("/")
async def root():
    return {"message": "Annobib Backend Running Successfully 🚀"}
