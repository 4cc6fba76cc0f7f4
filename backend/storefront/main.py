from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import settings
from storefront.routers import checkout, coupons

OPENAPI_TAGS = [
    {"name": "Checkout", "description": "Create payment sessions and settle paid orders."},
    {"name": "Coupons", "description": "Look up and validate per-user discount coupons."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description="Storefront checkout API: payment sessions, order settlement and coupons.",
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(coupons.router, prefix="/coupons", tags=["Coupons"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
