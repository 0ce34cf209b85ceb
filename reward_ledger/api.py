import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .models import (
    BatchMintRequest, DeductPointsRequest, ErrorCode, LedgerResult, LedgerStats,
    MintRequest, Reward, RewardListResponse, RewardPermissions, TransferRequest,
    UpdatePointsRequest, MAX_LIST_LIMIT,
)
from .service import LedgerService

settings = get_settings()
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

ERROR_STATUS = {
    ErrorCode.NOT_AUTHORITY: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_OWNER: status.HTTP_403_FORBIDDEN,
    ErrorCode.INVALID_POINTS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INSUFFICIENT_POINTS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.ALREADY_BURNED: status.HTTP_409_CONFLICT,
}

app = FastAPI(
    title="Reward Ledger API",
    description="Single-authority ledger for minting, transferring and burning point-carrying rewards",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ledger_service = LedgerService(authority=settings.authority)


def get_ledger_service() -> LedgerService:
    return ledger_service


def _checked(result: LedgerResult) -> LedgerResult:
    if not result.ok:
        raise HTTPException(
            status_code=ERROR_STATUS[result.error],
            detail={"code": int(result.error), "kind": result.error.name, "message": result.message},
        )
    return result


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "reward-ledger"}


@app.post("/rewards", response_model=LedgerResult, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
def mint_reward(
    request: MintRequest,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.mint(caller, request.points))


@app.post("/rewards/batch", response_model=LedgerResult, status_code=status.HTTP_201_CREATED, tags=["Rewards"])
def batch_mint_rewards(
    request: BatchMintRequest,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.batch_mint(caller, request.points, request.metadata))


@app.get("/rewards", response_model=RewardListResponse, tags=["Rewards"])
def list_rewards(
    start_id: int = 1,
    limit: int = MAX_LIST_LIMIT,
    service: LedgerService = Depends(get_ledger_service),
) -> RewardListResponse:
    return service.list_rewards(start_id, limit)


@app.get("/rewards/{reward_id}", response_model=Reward, tags=["Rewards"])
def get_reward(reward_id: int, service: LedgerService = Depends(get_ledger_service)) -> Reward:
    reward = service.get_reward(reward_id)
    if reward is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Reward {reward_id} not found")
    return reward


@app.get("/rewards/{reward_id}/permissions", response_model=RewardPermissions, tags=["Rewards"])
def get_reward_permissions(
    reward_id: int,
    sender: Optional[str] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> RewardPermissions:
    return service.get_permissions(reward_id, sender)


@app.post("/rewards/{reward_id}/burn", response_model=LedgerResult, tags=["Rewards"])
def burn_reward(
    reward_id: int,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.burn(caller, reward_id))


@app.put("/rewards/{reward_id}/points", response_model=LedgerResult, tags=["Points"])
def update_reward_points(
    reward_id: int,
    request: UpdatePointsRequest,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.update_points(caller, reward_id, request.points))


@app.post("/rewards/{reward_id}/deduct", response_model=LedgerResult, tags=["Points"])
def deduct_reward_points(
    reward_id: int,
    request: DeductPointsRequest,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.deduct_points(caller, reward_id, request.amount))


@app.post("/rewards/{reward_id}/transfer", response_model=LedgerResult, tags=["Rewards"])
def transfer_reward(
    reward_id: int,
    request: TransferRequest,
    caller: str = Header(..., alias="X-Caller"),
    service: LedgerService = Depends(get_ledger_service),
) -> LedgerResult:
    return _checked(service.transfer(caller, reward_id, request.sender, request.recipient))


@app.get("/stats", response_model=LedgerStats, tags=["System"])
def get_stats(service: LedgerService = Depends(get_ledger_service)) -> LedgerStats:
    return service.stats()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
