"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers (events, teams, users) under
a unified prefix.
"""

from fastapi import APIRouter

from .endpoints import events, teams, users

router = APIRouter()

router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(teams.router, prefix="/teams", tags=["teams"])
router.include_router(users.router, prefix="/users", tags=["users"])
