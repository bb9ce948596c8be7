# storefront/api/routers/health.py
from fastapi import APIRouter

from storefront.api.responses import ok

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return ok({"status": "ok"})
