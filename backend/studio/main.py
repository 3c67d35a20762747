"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio.config import settings
from studio.database import Base, dispose_engine, get_engine

# Import routers
from studio.routers import creations, credits, favorites, gallery, generation, payments, referrals, votes

# Import all models so Base.metadata knows about them
from studio.models.user import User                            # noqa: F401
from studio.models.credit_transaction import CreditTransaction  # noqa: F401
from studio.models.creation import Creation                    # noqa: F401
from studio.models.vote import Vote                            # noqa: F401
from studio.models.favorite import Favorite                    # noqa: F401
from studio.models.order import Order                          # noqa: F401
from studio.models.referral import Referral                    # noqa: F401

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Creation Studio",
    description="AI image and video generation with credits, a voted feed and crypto checkout",
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
app.include_router(generation.router, prefix="/api", tags=["Generation"])
app.include_router(creations.router, prefix="/api/creations", tags=["Creations"])
app.include_router(votes.router, prefix="/api", tags=["Votes"])
app.include_router(gallery.router, prefix="/api", tags=["Gallery"])
app.include_router(favorites.router, prefix="/api/favorites", tags=["Favorites"])
app.include_router(credits.router, prefix="/api/credits", tags=["Credits"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(referrals.router, prefix="/api/referrals", tags=["Referrals"])


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=get_engine())


@app.on_event("shutdown")
def on_shutdown():
    dispose_engine()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
