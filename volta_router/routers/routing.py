from fastapi import APIRouter, Request

from volta_router.models.routing import RoutingRequest, RoutingResponse, RoutingStats

router = APIRouter()


@router.post("/route", response_model=RoutingResponse, response_model_exclude_none=True)
def route_transaction(
    body: RoutingRequest,
    request: Request,
    simulate: bool = False,
    failover: bool = False,
) -> RoutingResponse:
    """
    Pick the processor with the best recent approval rate for the country.

    - `simulate=true` returns the same decision without recording it or
      moving any circuit breaker.
    - `failover=true` adds the 2nd and 3rd ranked processors as
      `fallback` / `last_resort` when they have data.
    """
    engine = request.app.state.routing_engine
    return engine.decide(body, simulate=simulate, want_failover=failover)


@router.get("/routing/stats", response_model=RoutingStats)
def get_routing_stats(request: Request) -> RoutingStats:
    """Distribution of the most recent routing decisions."""
    return request.app.state.routing_engine.routing_stats()
