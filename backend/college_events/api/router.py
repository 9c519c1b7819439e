"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from college_events.api.routes import auth, events, event_requests, tickets

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(events.router)
api_router.include_router(event_requests.router)
api_router.include_router(tickets.router)
