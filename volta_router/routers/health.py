from fastapi import APIRouter

from volta_router.models.processor import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="Ok")
