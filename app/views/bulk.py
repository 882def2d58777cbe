"""
Bulk actions over selected agent listings.

Selection helpers, the confirm/process state machine, and the executor that
fires one request per listing and settles them all.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import logging

from app.schemas.property import PropertyStatus
from app.services.bulk import SettledResults, settle_all
from app.services.property import PropertyService

logger = logging.getLogger(__name__)

BULK_FAILURE_MESSAGE = "Some actions failed. Please try again."
BULK_MODAL = "bulk_action"


class BulkActionType(str, Enum):
    STATUS = "status"
    DELETE = "delete"


class BulkPhase(str, Enum):
    IDLE = "idle"
    CONFIRMING = "confirming"
    PROCESSING = "processing"


class IllegalTransitionError(Exception):
    """Raised when a bulk action is driven out of order."""


@dataclass
class BulkResult:
    results: SettledResults
    message: str

    @property
    def ok(self) -> bool:
        return self.results.ok


def toggle_selection(selected: Iterable[str], item_id: str) -> List[str]:
    selected = list(selected)
    if item_id in selected:
        selected.remove(item_id)
    else:
        selected.append(item_id)
    return selected


def select_all(item_ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(item_ids))


def clear_selection() -> List[str]:
    return []


@dataclass
class BulkActionState:
    """
    Confirmation state of a bulk action.

    idle -> confirming -> processing -> idle on success; a failure returns to
    confirming with an error so the agent may retry or cancel.
    """
    phase: BulkPhase = BulkPhase.IDLE
    action_type: Optional[BulkActionType] = None
    target_status: Optional[PropertyStatus] = None
    selected_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def confirming(self) -> bool:
        return self.phase == BulkPhase.CONFIRMING

    @property
    def processing(self) -> bool:
        return self.phase == BulkPhase.PROCESSING

    def _require(self, *phases: BulkPhase) -> None:
        if self.phase not in phases:
            raise IllegalTransitionError(
                f"Bulk action cannot move from {self.phase.value} in this step"
            )

    def _confirm(self, action_type: BulkActionType, selected_ids: Iterable[str]) -> None:
        self._require(BulkPhase.IDLE, BulkPhase.CONFIRMING)
        ids = select_all(selected_ids)
        if not ids:
            raise IllegalTransitionError("Select at least one listing first")
        self.phase = BulkPhase.CONFIRMING
        self.action_type = action_type
        self.selected_ids = ids
        self.error = None

    def request_status_change(self, selected_ids: Iterable[str], target_status: PropertyStatus) -> None:
        self._confirm(BulkActionType.STATUS, selected_ids)
        self.target_status = PropertyStatus(target_status)

    def request_delete(self, selected_ids: Iterable[str]) -> None:
        self._confirm(BulkActionType.DELETE, selected_ids)
        self.target_status = None

    def start(self) -> None:
        self._require(BulkPhase.CONFIRMING)
        self.phase = BulkPhase.PROCESSING
        self.error = None

    def succeed(self) -> None:
        self._require(BulkPhase.PROCESSING)
        self.reset()

    def fail(self, message: str = BULK_FAILURE_MESSAGE) -> None:
        self._require(BulkPhase.PROCESSING)
        self.phase = BulkPhase.CONFIRMING
        self.error = message

    def cancel(self) -> None:
        self._require(BulkPhase.IDLE, BulkPhase.CONFIRMING)
        self.reset()

    def reset(self) -> None:
        self.phase = BulkPhase.IDLE
        self.action_type = None
        self.target_status = None
        self.selected_ids = []
        self.error = None

    @property
    def success_message(self) -> str:
        count = len(self.selected_ids)
        if self.action_type == BulkActionType.DELETE:
            return f"{count} listing(s) deleted"
        return f"{count} listing(s) updated to {self.target_status.value}"

    def to_modal_data(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "action_type": self.action_type.value if self.action_type else None,
            "target_status": self.target_status.value if self.target_status else None,
            "selected_ids": list(self.selected_ids),
            "error": self.error,
        }

    @classmethod
    def from_modal_data(cls, data: Optional[Dict[str, Any]]) -> "BulkActionState":
        if not data:
            return cls()
        return cls(
            phase=BulkPhase(data.get("phase") or BulkPhase.IDLE),
            action_type=BulkActionType(data["action_type"]) if data.get("action_type") else None,
            target_status=PropertyStatus(data["target_status"]) if data.get("target_status") else None,
            selected_ids=list(data.get("selected_ids") or []),
            error=data.get("error"),
        )


async def execute_bulk_action(
    state: BulkActionState,
    properties: PropertyService,
    token: str
) -> BulkResult:
    """
    Run a confirmed bulk action, one request per selected listing.

    All requests run concurrently and are all awaited; the action has failed
    if any of them failed, in which case the state returns to confirming.

    Args:
        state: Confirming bulk action
        properties: Property service
        token: Agent bearer token

    Returns:
        BulkResult with the toast message to show
    """
    state.start()
    if state.action_type == BulkActionType.DELETE:
        calls = {pid: properties.delete_property(pid, token) for pid in state.selected_ids}
    else:
        calls = {pid: properties.update_status(pid, state.target_status, token) for pid in state.selected_ids}

    results = await settle_all(calls)
    action = state.action_type.value
    if results.ok:
        message = state.success_message
        logger.info(f"Bulk {action} succeeded for {len(state.selected_ids)} listings")
        state.succeed()
        return BulkResult(results=results, message=message)

    logger.warning(
        f"Bulk {action} failed for {len(results.failed)} of {len(state.selected_ids)} listings",
        extra={"failed_ids": [o.key for o in results.failed]}
    )
    state.fail(BULK_FAILURE_MESSAGE)
    return BulkResult(results=results, message=BULK_FAILURE_MESSAGE)
