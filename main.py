"""Main application entry point."""
from datetime import datetime, timezone
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from onduty import __version__
from onduty.api import auth_router, register_exception_handlers, requests_router, users_router
from onduty.config import settings
from onduty.database import SessionLocal, init_db
from onduty.logging_config import configure_logging
from onduty.seed import seed_database


logger = logging.getLogger(__name__)

app = FastAPI(
    title="OnDuty Pro",
    description="Shift-change and leave requests for students, instructors and managers",
    version=__version__,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(auth_router, prefix=settings.api_prefix)
app.include_router(requests_router, prefix=settings.api_prefix)


@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    configure_logging()
    logger.info("Application starting up...")
    
    if settings.is_sqlite:
        init_db()
    
    if settings.seed_demo_data:
        db = SessionLocal()
        try:
            created = seed_database(db)
            logger.info(f"Seeded {created} demo users")
        finally:
            db.close()
    
    logger.info("Application startup complete")


@app.get("/")
async def root():
    """Welcome endpoint."""
    return {"message": "Welcome to On-Duty Pro API!"}


@app.get(f"{settings.api_prefix}/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "OK",
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.environ.get("PORT", 5000))
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.debug
    )
