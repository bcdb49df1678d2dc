"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health, auth, catalog reads and market data
are open; profile and business chat need a session token; admin
checks are attached per route (require_role) so public reads and
admin writes can share a router.
"""

from fastapi import APIRouter, Depends

from bizdesk.api.auth import router as auth_router
from bizdesk.api.catalog import router as catalog_router
from bizdesk.api.chat import router as chat_router
from bizdesk.api.health import router as health_router
from bizdesk.api.market import router as market_router
from bizdesk.api.users import router as users_router
from bizdesk.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(catalog_router, tags=["articles", "reviews"])
api_router.include_router(market_router, tags=["market"])

# Protected routes: require a valid session token
api_router.include_router(users_router, tags=["users", "admin"], dependencies=_auth)
api_router.include_router(chat_router, tags=["business-chat"], dependencies=_auth)
