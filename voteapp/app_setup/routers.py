"""
Registre central des routers.
- API v1: payments, webhooks, votes, organizer (retraits), events, contestants, admin
- Health: health_router
"""
from fastapi import FastAPI
from voteapp.payments import views as payments_views
from voteapp.webhooks import views as webhooks_views
from voteapp.votes import views as votes_views
from voteapp.withdrawals import views as withdrawals_views
from voteapp.events import views as events_views
from voteapp.admin.views import router as admin_router
from voteapp.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """L’ordre n’a pas d’impact sauf conflits de chemins (évités par préfixes)."""
    # API v1
    app.include_router(payments_views.router)
    app.include_router(webhooks_views.router)
    app.include_router(votes_views.router)
    app.include_router(withdrawals_views.router)
    app.include_router(events_views.router)
    app.include_router(events_views.contestants_router)
    # Admin
    app.include_router(admin_router)
    # Health & monitoring
    app.include_router(health_router)
