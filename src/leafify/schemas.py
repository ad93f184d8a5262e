"""Response models for the HTTP layer."""
from typing import List

from pydantic import BaseModel


class DiagnosisResponse(BaseModel):
    prediction: str
    confidence: str
    treatment: List[str]
    heatmap: str


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str
    model: str
    detail: str | None = None
