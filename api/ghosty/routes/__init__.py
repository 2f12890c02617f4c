from fastapi import APIRouter, FastAPI

from .admin import router as admin_router
from .auth import router as auth_router
from .chat import router as chat_router
from .match import router as match_router
from .profile import router as profile_router
from .safety import router as safety_router
from .storage import router as storage_router
from .verification import router as verification_router

API_PREFIX = "/api"


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(auth_router, prefix=API_PREFIX, tags=["auth"])
    app.include_router(profile_router, prefix=API_PREFIX, tags=["profile"])
    app.include_router(verification_router, prefix=API_PREFIX, tags=["verification"])
    app.include_router(match_router, prefix=API_PREFIX, tags=["matches"])
    app.include_router(chat_router, prefix=API_PREFIX, tags=["chat"])
    app.include_router(safety_router, prefix=API_PREFIX, tags=["safety"])
    app.include_router(admin_router, prefix=API_PREFIX, tags=["admin"])
    app.include_router(storage_router, prefix=API_PREFIX, tags=["storage"])


__all__ = ["include_modular_routers", "APIRouter"]
