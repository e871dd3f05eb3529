"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Authentication is applied per route with Depends(get_current_identity)
or Depends(require_admin), because the auth router mixes open routes
(sign-up, sign-in, password reset) with protected ones (sign-out, me).
"""

from fastapi import APIRouter

from inkpress.api.auth import router as auth_router
from inkpress.api.health import router as health_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
