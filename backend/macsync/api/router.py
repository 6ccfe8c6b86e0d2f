"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from macsync.api.routes import auth, me, users, roles, events, tickets, payments, webhooks, signups, stats

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
# /users/me/* must match before /users/{user_id}/*
api_router.include_router(me.router)
api_router.include_router(users.router)
api_router.include_router(roles.router)
api_router.include_router(events.router)
api_router.include_router(tickets.router)
api_router.include_router(payments.router)
api_router.include_router(webhooks.router)
api_router.include_router(signups.router)
api_router.include_router(stats.router)
