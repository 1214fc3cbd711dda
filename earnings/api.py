import logging
from uuid import UUID
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import (
    ConflictError,
    EarningsError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from .models import (
    AccountSummary, CommissionEvent, CommitResult, DecidePayoutRequest,
    LedgerHistoryResponse, PayoutRequest, PostingStatus, SubmitPayoutRequest,
)
from .service import EarningsService

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Creator Earnings API",
    description="Commission ledger and payout workflow for creators and influencers",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

earnings_service = EarningsService(settings=settings)


def get_service() -> EarningsService:
    return earnings_service


@app.exception_handler(EarningsError)
async def earnings_error_handler(request: Request, exc: EarningsError) -> JSONResponse:
    headers = None
    if isinstance(exc, ValidationError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, ConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InfrastructureError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        headers = {"Retry-After": "1"}
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    if exc.retryable:
        logger.warning("Retryable failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": str(exc), "retryable": exc.retryable},
        headers=headers,
    )


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "creator-earnings"}


@app.post("/commissions", response_model=CommitResult, status_code=status.HTTP_201_CREATED, tags=["Commissions"])
def post_commission(event: CommissionEvent, service: EarningsService = Depends(get_service)):
    result = service.post_commission(event)
    if result.status == PostingStatus.ALREADY_POSTED:
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.model_dump(mode="json"))
    return result


@app.get("/creators/{creator_id}/summary", response_model=AccountSummary, tags=["Creators"])
def get_account_summary(creator_id: str, service: EarningsService = Depends(get_service)) -> AccountSummary:
    return service.get_account_summary(creator_id)


@app.get("/creators/{creator_id}/ledger", response_model=LedgerHistoryResponse, tags=["Creators"])
def get_ledger_history(
    creator_id: str, limit: int = 50, offset: int = 0, service: EarningsService = Depends(get_service)
) -> LedgerHistoryResponse:
    return service.get_ledger_history(creator_id, limit, offset)


@app.get("/creators/{creator_id}/payouts", response_model=list[PayoutRequest], tags=["Payouts"])
def list_payout_requests(creator_id: str, service: EarningsService = Depends(get_service)) -> list[PayoutRequest]:
    return service.list_payout_requests(creator_id)


@app.post(
    "/creators/{creator_id}/payouts",
    response_model=PayoutRequest,
    status_code=status.HTTP_201_CREATED,
    tags=["Payouts"],
)
def submit_payout_request(
    creator_id: str, request: SubmitPayoutRequest, service: EarningsService = Depends(get_service)
) -> PayoutRequest:
    return service.submit_payout_request(
        creator_id,
        request.requested_amount,
        request.destination,
        creator_notes=request.creator_notes,
        idempotency_key=request.idempotency_key,
    )


@app.get("/payouts/open", response_model=list[PayoutRequest], tags=["Admin"])
def list_open_payout_requests(service: EarningsService = Depends(get_service)) -> list[PayoutRequest]:
    return service.list_open_payout_requests()


@app.get("/payouts/{request_id}", response_model=PayoutRequest, tags=["Payouts"])
def get_payout_request(request_id: UUID, service: EarningsService = Depends(get_service)) -> PayoutRequest:
    return service.get_payout_request(request_id)


@app.post("/payouts/{request_id}/decision", response_model=PayoutRequest, tags=["Admin"])
def decide_payout_request(
    request_id: UUID, request: DecidePayoutRequest, service: EarningsService = Depends(get_service)
) -> PayoutRequest:
    return service.decide_payout_request(
        request_id, request.operator_id, request.decision, request.reason_or_reference
    )


@app.post("/admin/reset-monthly-sales", tags=["Admin"])
def reset_monthly_sales(service: EarningsService = Depends(get_service)):
    return {"reset": service.reset_monthly_sales()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
