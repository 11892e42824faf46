"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from triptracker.api.routes import users, trips, expenses, budget, shares, currencies

api_router = APIRouter()

# Include all route modules
api_router.include_router(users.router)
api_router.include_router(trips.router)
api_router.include_router(expenses.router)
api_router.include_router(budget.router)
api_router.include_router(shares.router)
api_router.include_router(currencies.router)
