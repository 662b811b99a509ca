from fastapi import FastAPI, APIRouter
from dotenv import load_dotenv
from starlette.middleware.cors import CORSMiddleware
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from database import Base, engine
from bootstrap import has_bootstrap_marker, run_bootstrap_migrations, seed_defaults
from routers import (
    attendance,
    auth_participant,
    auth_staff,
    events,
    events_admin,
    exports,
    gallery,
    participants_admin,
    performances,
    scoring,
    site,
    staff_admin,
    store,
)

app = FastAPI(title="Sigaram 2025 API", version="1.0.0")
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


# ==================== STARTUP ====================
@app.on_event("startup")
async def startup_event():
    Base.metadata.create_all(bind=engine)
    if has_bootstrap_marker():
        seed_defaults()
    else:
        logger.info("Bootstrap marker missing; running bootstrap migrations")
        run_bootstrap_migrations()


# ==================== PUBLIC ROUTES ====================
@api_router.get("/")
async def root():
    return {"message": "Sigaram 2025 API is running"}


@api_router.get("/health")
async def health_check():
    return {"status": "healthy"}


for module in (
    auth_staff,
    auth_participant,
    staff_admin,
    events,
    events_admin,
    participants_admin,
    attendance,
    scoring,
    performances,
    exports,
    gallery,
    store,
    site,
):
    api_router.include_router(module.router)


# Include router and add middleware
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)
