# api/v1/api_router.py
from fastapi import APIRouter

from api.v1.endpoints import admin, auth, repository, users

api_router = APIRouter()

# ========== Authentication & Users ==========
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# ========== Repository ==========
api_router.include_router(repository.router, prefix="/repository", tags=["Repository"])
api_router.include_router(repository.router, prefix="/files/repository", tags=["Repository"], include_in_schema=False)
