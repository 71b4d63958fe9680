# intake_engine/api/v1/router.py
from fastapi import APIRouter

from intake_engine.api.v1.endpoints import (
    admissions,
    patients,
    visits,
    wards,
)

api_router = APIRouter()

api_router.include_router(patients.router, prefix="/patients", tags=["patients"])
api_router.include_router(visits.router, prefix="/visits", tags=["visits"])
api_router.include_router(admissions.router, prefix="/admissions", tags=["admissions"])
api_router.include_router(wards.router, prefix="/wards", tags=["wards"])
