"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from venturelink.api.routes.interaction_routes import router as interaction_router
from venturelink.api.routes.nudge_routes import router as nudge_router
from venturelink.api.routes.connection_routes import router as connection_router
from venturelink.api.routes.startup_routes import router as startup_router
from venturelink.api.routes.investor_routes import router as investor_router
from venturelink.api.routes.user_routes import router as user_router
from venturelink.api.routes.notification_routes import router as notification_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(interaction_router)
api_router.include_router(nudge_router)
api_router.include_router(connection_router)
api_router.include_router(startup_router)
api_router.include_router(investor_router)
api_router.include_router(user_router)
api_router.include_router(notification_router)
