from fastapi import APIRouter, Request

from volta_router.models.processor import ProcessorHealthResponse, ProcessorStats

router = APIRouter()


@router.get(
    "/processors",
    response_model=ProcessorHealthResponse,
    response_model_exclude_none=True,
)
def get_processor_health(request: Request) -> ProcessorHealthResponse:
    """
    Current health of every catalog processor:
    - Approval rate and transaction count in the routing window
    - Circuit breaker state and open time (only when not closed)
    """
    engine = request.app.state.routing_engine
    return ProcessorHealthResponse(processors=engine.stats_of_all())


@router.get(
    "/processors/{name}",
    response_model=ProcessorStats,
    response_model_exclude_none=True,
)
def get_processor_by_name(name: str, request: Request) -> ProcessorStats:
    return request.app.state.routing_engine.stats_of(name)
