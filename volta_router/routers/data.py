import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from volta_router.data.generator import load_transactions_from_file
from volta_router.models.processor import ErrorResponse
from volta_router.models.transaction import LoadDataResponse, TransactionDataset

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/transactions/load",
    response_model=LoadDataResponse,
    summary="Replace all state with the configured test dataset",
    responses={500: {"model": ErrorResponse}},
)
def load_test_data(request: Request):
    """
    Reads the dataset at TEST_DATA_PATH, resets ledger, circuit breakers and
    decision history in one step, then appends the dataset as one batch.
    """
    path = request.app.state.settings.TEST_DATA_PATH
    try:
        records = load_transactions_from_file(path)
    except (OSError, ValidationError) as exc:
        logger.error(f"Failed to load test data from {path}: {type(exc).__name__}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "load_failed", "message": f"Failed to load test data: {exc}"},
        )

    store = request.app.state.store
    store.clear()
    store.ledger.append_batch(records)
    logger.info(f"Loaded {len(records)} transactions from {path}")
    return LoadDataResponse(message="Test data loaded successfully", transactions_loaded=len(records))


@router.post("/transactions", response_model=LoadDataResponse)
def ingest_transactions(body: TransactionDataset, request: Request) -> LoadDataResponse:
    """Append a batch of processor outcomes from a live feed."""
    request.app.state.store.ledger.append_batch(body.transactions)
    return LoadDataResponse(
        message="Transactions recorded",
        transactions_loaded=len(body.transactions),
    )


@router.post("/transactions/reset", summary="Clear every store atomically")
def reset_state(request: Request) -> dict:
    request.app.state.store.clear()
    return {"action": "reset", "transactions": 0, "decisions": 0}
