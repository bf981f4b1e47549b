from pydantic import BaseModel


class CreateChartResponse(BaseModel):
    success: bool
    url: str


class HealthResponse(BaseModel):
    success: bool
    version: str
