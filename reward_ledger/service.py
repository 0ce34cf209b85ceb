import logging
import threading
from typing import Any, Callable, Optional

from .config import get_settings
from .errors import (
    AlreadyBurnedError,
    ErrorCode,
    InsufficientPointsError,
    InvalidPointsError,
    LedgerServiceError,
    NotAuthorityError,
    RewardNotOwnedError,
)
from .models import (
    MAX_BATCH_SIZE,
    MAX_LIST_LIMIT,
    MAX_METADATA_LENGTH,
    LedgerResult,
    LedgerStats,
    Reward,
    RewardListResponse,
    RewardPermissions,
)

logger = logging.getLogger(__name__)

_MISSING = object()


class LedgerState:
    """Everything the ledger persists: the id counter and the per-id mappings.

    The lock lives with the state, so every service bound to the same state
    serializes on it. Writes made between begin() and commit() are journaled
    and can be undone with rollback().
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.last_id: int = 0
        self.owners: dict[int, str] = {}
        self.points: dict[int, int] = {}
        self.burned: dict[int, bool] = {}
        self.metadata: dict[int, str] = {}
        self._journal: Optional[list] = None
        self._journal_last_id = 0

    def begin(self) -> None:
        self._journal = []
        self._journal_last_id = self.last_id

    def write(self, mapping: str, reward_id: int, value: Any) -> None:
        table = getattr(self, mapping)
        if self._journal is not None:
            self._journal.append((mapping, reward_id, table.get(reward_id, _MISSING)))
        table[reward_id] = value

    def pending_writes(self) -> int:
        return len(self._journal) if self._journal is not None else 0

    def commit(self) -> None:
        self._journal = None

    def rollback(self) -> None:
        for mapping, reward_id, previous in reversed(self._journal or []):
            table = getattr(self, mapping)
            if previous is _MISSING:
                table.pop(reward_id, None)
            else:
                table[reward_id] = previous
        self.last_id = self._journal_last_id
        self._journal = None


def _is_valid_points(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


class LedgerService:
    """Single-authority reward ledger.

    Mutations are serialized on the state's lock and journaled, so a rejected
    call leaves the ledger exactly as it found it. Every mutation returns a
    LedgerResult instead of raising.
    """

    def __init__(self, authority: Optional[str] = None, state: Optional[LedgerState] = None):
        self.authority = authority if authority is not None else get_settings().authority
        self.state = state or LedgerState()

    def mint(self, caller: str, points: int) -> LedgerResult:
        return self._invoke("mint", "Reward minted successfully", self._mint, caller, points)

    def batch_mint(
        self,
        caller: str,
        points: list[int],
        metadata: Optional[list[Optional[str]]] = None,
    ) -> LedgerResult:
        return self._invoke(
            "batch_mint", "Batch processed", self._batch_mint, caller, points, metadata
        )

    def burn(self, caller: str, reward_id: int) -> LedgerResult:
        return self._invoke("burn", "Reward burned successfully", self._burn, caller, reward_id)

    def update_points(self, caller: str, reward_id: int, new_points: int) -> LedgerResult:
        return self._invoke(
            "update_points", "Points updated successfully",
            self._update_points, caller, reward_id, new_points,
        )

    def deduct_points(self, caller: str, reward_id: int, amount: int) -> LedgerResult:
        return self._invoke(
            "deduct_points", "Points deducted successfully",
            self._deduct_points, caller, reward_id, amount,
        )

    def transfer(self, caller: str, reward_id: int, sender: str, recipient: str) -> LedgerResult:
        return self._invoke(
            "transfer", "Reward transferred successfully",
            self._transfer, caller, reward_id, sender, recipient,
        )

    def points_of(self, reward_id: int) -> Optional[int]:
        with self.state.lock:
            return self.state.points.get(reward_id)

    def owner_of(self, reward_id: int) -> Optional[str]:
        with self.state.lock:
            return self.state.owners.get(reward_id)

    def is_burned(self, reward_id: int) -> Optional[bool]:
        with self.state.lock:
            return self.state.burned.get(reward_id)

    def metadata_of(self, reward_id: int) -> Optional[str]:
        with self.state.lock:
            return self.state.metadata.get(reward_id)

    def exists(self, reward_id: int) -> bool:
        with self.state.lock:
            return reward_id in self.state.owners

    def last_id(self) -> int:
        with self.state.lock:
            return self.state.last_id

    def total_minted(self) -> int:
        # ids are never reused, so the counter is the mint count
        return self.last_id()

    def has_at_least_points(self, reward_id: int, minimum: int) -> bool:
        points = self.points_of(reward_id)
        return points is not None and points >= minimum

    def is_valid(self, reward_id: int) -> bool:
        reward = self.get_reward(reward_id)
        return reward is not None and reward.is_valid()

    def can_transfer(self, reward_id: int, sender: str) -> bool:
        reward = self.get_reward(reward_id)
        return reward is not None and reward.can_transfer(sender)

    def can_burn(self, reward_id: int, sender: str) -> bool:
        reward = self.get_reward(reward_id)
        return reward is not None and reward.can_burn(sender)

    def get_reward(self, reward_id: int) -> Optional[Reward]:
        with self.state.lock:
            return self._reward_view(reward_id)

    def get_permissions(self, reward_id: int, sender: Optional[str] = None) -> RewardPermissions:
        reward = self.get_reward(reward_id)
        return RewardPermissions(
            reward_id=reward_id,
            sender=sender,
            exists=reward is not None,
            is_valid=reward is not None and reward.is_valid(),
            can_transfer=reward is not None and sender is not None and reward.can_transfer(sender),
            can_burn=reward is not None and sender is not None and reward.can_burn(sender),
        )

    def list_rewards(self, start_id: int = 1, limit: int = MAX_LIST_LIMIT) -> RewardListResponse:
        start_id = max(start_id, 1)
        limit = min(max(limit, 1), MAX_LIST_LIMIT)
        with self.state.lock:
            end_id = min(start_id + limit, self.state.last_id + 1)
            rewards = [
                view for view in (self._reward_view(i) for i in range(start_id, end_id))
                if view is not None
            ]
            return RewardListResponse(
                rewards=rewards, start_id=start_id, limit=limit, last_id=self.state.last_id
            )

    def stats(self) -> LedgerStats:
        with self.state.lock:
            burned = sum(1 for flag in self.state.burned.values() if flag)
            return LedgerStats(
                last_id=self.state.last_id,
                total_minted=self.state.last_id,
                live=len(self.state.owners) - burned,
                burned=burned,
            )

    def _invoke(self, operation: str, message: str, fn: Callable, *args) -> LedgerResult:
        with self.state.lock:
            self.state.begin()
            try:
                value = fn(*args)
            except LedgerServiceError as e:
                self.state.rollback()
                if e.code is None:
                    raise
                logger.warning("%s rejected with %s: %s", operation, e.code.name, e)
                return LedgerResult.failure(e.code, str(e))
            except Exception:
                self.state.rollback()
                raise
            self.state.commit()
            return LedgerResult.success(value, message)

    def _mint(self, caller: str, points: int) -> int:
        self._require_authority(caller)
        self._require_valid_points(points)
        reward_id = self._allocate(caller, points)
        logger.info("Minted reward %d with %d points", reward_id, points)
        return reward_id

    def _batch_mint(
        self,
        caller: str,
        points: list[int],
        metadata: Optional[list[Optional[str]]],
    ) -> list[int]:
        self._require_authority(caller)
        if not 1 <= len(points) <= MAX_BATCH_SIZE:
            raise InvalidPointsError(
                f"Batch must contain between 1 and {MAX_BATCH_SIZE} items, got {len(points)}"
            )
        if metadata is not None and len(metadata) != len(points):
            raise InvalidPointsError("Metadata must have one entry per batch item")

        annotations = metadata if metadata is not None else [None] * len(points)
        minted: list[int] = []
        for index, (value, note) in enumerate(zip(points, annotations)):
            problem = self._check_batch_item(value, note)
            if problem is not None:
                logger.debug("Skipping batch item %d: %s", index, problem.name)
                continue
            minted.append(self._allocate(caller, value, note))

        logger.info("Batch mint created %d of %d rewards", len(minted), len(points))
        return minted

    def _burn(self, caller: str, reward_id: int) -> bool:
        self._require_owner(reward_id, caller)
        self._require_not_burned(reward_id)
        self.state.write("burned", reward_id, True)
        logger.info("Burned reward %d", reward_id)
        return True

    def _update_points(self, caller: str, reward_id: int, new_points: int) -> bool:
        self._require_owner_or_authority(reward_id, caller)
        self._require_not_burned(reward_id)
        self._require_valid_points(new_points)
        self.state.write("points", reward_id, new_points)
        logger.info("Reward %d points set to %d", reward_id, new_points)
        return True

    def _deduct_points(self, caller: str, reward_id: int, amount: int) -> int:
        self._require_owner_or_authority(reward_id, caller)
        self._require_not_burned(reward_id)
        self._require_valid_points(amount)
        balance = self.state.points[reward_id]
        if amount > balance:
            raise InsufficientPointsError(
                f"Reward {reward_id} has {balance} points, cannot deduct {amount}"
            )
        self.state.write("points", reward_id, balance - amount)
        logger.info("Deducted %d points from reward %d", amount, reward_id)
        return balance - amount

    def _transfer(self, caller: str, reward_id: int, sender: str, recipient: str) -> bool:
        if reward_id not in self.state.owners:
            raise RewardNotOwnedError(f"Reward {reward_id} not found")
        if sender != caller:
            raise RewardNotOwnedError("Sender must be the caller")
        self._require_owner(reward_id, sender)
        self._require_not_burned(reward_id)
        self.state.write("owners", reward_id, recipient)
        logger.info("Transferred reward %d to %s", reward_id, recipient)
        return True

    def _allocate(self, owner: str, points: int, metadata: Optional[str] = None) -> int:
        reward_id = self.state.last_id + 1
        self.state.write("owners", reward_id, owner)
        self.state.write("points", reward_id, points)
        self.state.write("burned", reward_id, False)
        if metadata is not None:
            self.state.write("metadata", reward_id, metadata)
        self.state.last_id = reward_id
        return reward_id

    def _reward_view(self, reward_id: int) -> Optional[Reward]:
        owner = self.state.owners.get(reward_id)
        if owner is None:
            return None
        return Reward(
            id=reward_id,
            owner=owner,
            points=self.state.points[reward_id],
            burned=self.state.burned.get(reward_id, False),
            metadata=self.state.metadata.get(reward_id),
        )

    @staticmethod
    def _check_batch_item(points: Any, note: Optional[str]) -> Optional[ErrorCode]:
        if not _is_valid_points(points):
            return ErrorCode.INVALID_POINTS
        if note is not None and len(note) > MAX_METADATA_LENGTH:
            return ErrorCode.INVALID_POINTS
        return None

    def _require_authority(self, caller: str) -> None:
        if caller != self.authority:
            raise NotAuthorityError(f"{caller} is not the ledger authority")

    @staticmethod
    def _require_valid_points(points: Any) -> None:
        if not _is_valid_points(points):
            raise InvalidPointsError(f"Points must be a positive integer, got {points!r}")

    def _require_owner(self, reward_id: int, caller: str) -> None:
        owner = self.state.owners.get(reward_id)
        if owner is None:
            raise RewardNotOwnedError(f"Reward {reward_id} not found")
        if owner != caller:
            raise RewardNotOwnedError(f"{caller} does not own reward {reward_id}")

    def _require_owner_or_authority(self, reward_id: int, caller: str) -> None:
        if caller == self.authority and reward_id in self.state.owners:
            return
        self._require_owner(reward_id, caller)

    def _require_not_burned(self, reward_id: int) -> None:
        if self.state.burned.get(reward_id, False):
            raise AlreadyBurnedError(f"Reward {reward_id} is already burned")
