import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import model.leave_model  # noqa: F401  registers leave_requests on Base
import model.usermodels  # noqa: F401
from db.database import Base, engine
from utils.settings import get_settings

from admin.admin_routes import router as admin_router
from router.auth_router import router as auth_router
from router.dashboard_router import router as dashboard_router
from router.leave_management_router import router as leave_management_router
from router.user_router import router as user_router

settings = get_settings()

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

logger.info("Allowed CORS Origins: %s", settings.allowed_origins)

app = FastAPI(
    title="Smart Leave Management API",
    description="API for requesting, approving and tracking employee leave.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


# Routes
@app.get("/")
def read_root():
    return {
        "message": "Welcome to the Smart Leave Management API!",
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
def health():
    return {"status": "ok", "service": "smart-leave-management-api"}


#  All Routes are Declared here
app.include_router(auth_router, tags=["Auth"])
app.include_router(user_router, tags=["Users"])
app.include_router(admin_router, tags=["Admin"])
app.include_router(leave_management_router, tags=["Leave Management"])
app.include_router(dashboard_router, tags=["Dashboard"])
