# cardshop/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from cardshop.api.routers import admin, carts, catalog, health, users, want_to_buy
from cardshop.services.session import Catalog, SessionRegistry, StoreContext
from cardshop.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(ctx: StoreContext | None = None) -> FastAPI:
    """
    Containers are built once here and reached by routes through
    app.state, never through module globals.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store_ctx = ctx or StoreContext.from_settings()
        store_ctx.create_schema()

        public_catalog = Catalog(store_ctx.restricted(user_id=None, role=None))
        public_catalog.mount()

        app.state.ctx = store_ctx
        app.state.catalog = public_catalog
        app.state.registry = SessionRegistry(store_ctx)
        logger.info("Storefront containers mounted")

        yield

        app.state.registry.close_all()
        public_catalog.close()
        logger.info("Storefront containers closed")

    app = FastAPI(
        title="Card Shop Storefront",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(catalog.router)
    app.include_router(carts.router)
    app.include_router(want_to_buy.router)
    app.include_router(users.router)
    app.include_router(admin.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
