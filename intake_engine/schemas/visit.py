# intake_engine/schemas/visit.py
from pydantic import BaseModel

from intake_engine.models.visit import VisitStatus


class VisitStatusUpdate(BaseModel):
    status: VisitStatus
