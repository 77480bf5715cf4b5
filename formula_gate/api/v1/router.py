from fastapi import APIRouter

from formula_gate.api.v1.generate import router as generate_router
from formula_gate.api.v1.health import router as health_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(generate_router)
api_v1_router.include_router(health_router)
