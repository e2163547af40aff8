"""Router aggregation for the API surface."""

from fastapi import FastAPI

from . import categories, maintenance, recurring_transactions, transactions


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""

    app.include_router(categories.router, prefix="/api")
    app.include_router(transactions.router, prefix="/api")
    app.include_router(recurring_transactions.router, prefix="/api")
    app.include_router(maintenance.router, prefix="/api")
