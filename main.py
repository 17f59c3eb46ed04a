import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from config import Settings
from database import connect
from errors import install_error_handlers
from notifications import Notifier
from routers import addresses, admin, auth, cart, categories, orders, payments, products, returns, reviews, users

logger = logging.getLogger(__name__)

_UNSET = object()


def create_app(settings: Optional[Settings] = None, database=_UNSET, notifier: Optional[Notifier] = None) -> FastAPI:
    """Build the API with its settings, database handle and notifier attached to app.state."""
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="Ecommerce API")
    app.state.settings = settings
    app.state.db = connect(settings) if database is _UNSET else database
    app.state.notifier = notifier or Notifier.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    install_error_handlers(app)

    for module in (auth, products, cart, users, categories, reviews, orders, returns, payments, admin, addresses):
        app.include_router(module.router)
    app.include_router(users.account_router)
    app.include_router(users.wishlist_router)

    @app.get("/")
    def read_root():
        return {"message": "Ecommerce API"}

    @app.get("/test")
    def test_database(request: Request):
        db: Optional[Database] = request.app.state.db
        response = {
            "message": "OK",
            "backend": "Running",
            "database": "Not Available",
            "database_name": None,
            "collections": [],
        }
        if db is None:
            return response
        try:
            response["database_name"] = db.name
            response["collections"] = db.list_collection_names()[:20]
            response["database"] = "Connected"
        except Exception as exc:
            logger.warning("Database health check failed: %s", exc)
            response["database"] = f"Error: {str(exc)[:80]}"
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
