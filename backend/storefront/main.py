from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.health import router as health_router
from storefront.api.routes_cart import router as cart_router
from storefront.api.routes_catalogue import router as catalogue_router
from storefront.api.routes_coupon import router as coupon_router
from storefront.api.routes_order import router as order_router
from storefront.config import settings
from storefront.db import init_db
from storefront.stores.session_storage import purge_expired_sessions
from storefront.utils.log import get_logger

log = get_logger("storefront.main", "APP")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()

    # scheduler for dropping abandoned guest carts
    scheduler = BackgroundScheduler()

    def purge_job():
        try:
            purge_expired_sessions(settings.GUEST_SESSION_TTL_SECONDS)
        except Exception:
            log.exception("guest session purge failed")

    scheduler.add_job(
        purge_job,
        "interval",
        seconds=settings.GUEST_SESSION_PURGE_INTERVAL_SECONDS,
        id="purge_guest_sessions",
    )
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Storefront Cart - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api")

app.include_router(catalogue_router)

app.include_router(cart_router)

app.include_router(coupon_router)

app.include_router(order_router)
