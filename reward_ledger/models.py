from typing import Any, Optional
from pydantic import BaseModel, Field, ConfigDict

from .errors import ErrorCode, error_for_code


MAX_BATCH_SIZE = 100
MAX_METADATA_LENGTH = 256
MAX_LIST_LIMIT = 100


class MintRequest(BaseModel):
    points: int = Field(..., description="Initial point balance, must be at least 1")

    model_config = ConfigDict(json_schema_extra={"example": {"points": 100}})


class BatchMintRequest(BaseModel):
    points: list[int] = Field(..., description="Point values to mint, 1 to 100 items")
    metadata: Optional[list[Optional[str]]] = Field(
        default=None, description="Optional annotation per item, same length as points"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "points": [100, 250, 300],
            "metadata": ["spring-campaign", None, "vip"],
        }
    })


class UpdatePointsRequest(BaseModel):
    points: int


class DeductPointsRequest(BaseModel):
    amount: int


class TransferRequest(BaseModel):
    sender: str
    recipient: str


class Reward(BaseModel):
    id: int
    owner: str
    points: int
    burned: bool = False
    metadata: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    def is_valid(self) -> bool:
        return not self.burned

    def can_transfer(self, sender: str) -> bool:
        return self.is_valid() and self.owner == sender

    def can_burn(self, sender: str) -> bool:
        return self.is_valid() and self.owner == sender


class LedgerResult(BaseModel):
    """Tagged outcome of a mutation: either a value or an error code."""

    ok: bool
    value: Any = None
    error: Optional[ErrorCode] = None
    message: str = ""

    @classmethod
    def success(cls, value: Any, message: str = "") -> "LedgerResult":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorCode, message: str = "") -> "LedgerResult":
        return cls(ok=False, error=error, message=message)

    def unwrap(self) -> Any:
        if self.ok:
            return self.value
        raise error_for_code(self.error, self.message)


class RewardPermissions(BaseModel):
    reward_id: int
    sender: Optional[str] = None
    exists: bool
    is_valid: bool
    can_transfer: bool
    can_burn: bool


class RewardListResponse(BaseModel):
    rewards: list[Reward]
    start_id: int
    limit: int
    last_id: int


class LedgerStats(BaseModel):
    last_id: int
    total_minted: int
    live: int
    burned: int
