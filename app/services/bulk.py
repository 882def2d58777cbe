"""
Concurrent execution of independent API calls with all-settled semantics.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional

from app.utils.exceptions import APIException

logger = logging.getLogger(__name__)


@dataclass
class Outcome:
    """Result of one settled call."""
    key: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def message(self) -> Optional[str]:
        if self.error is None:
            return None
        if isinstance(self.error, APIException):
            return self.error.message
        return str(self.error)


@dataclass
class SettledResults:
    """Per-key outcomes of a settle_all run."""
    outcomes: Dict[str, Outcome] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes.values())

    @property
    def failed(self) -> List[Outcome]:
        return [o for o in self.outcomes.values() if not o.ok]

    @property
    def succeeded(self) -> List[Outcome]:
        return [o for o in self.outcomes.values() if o.ok]

    def value(self, key: str, default: Any = None) -> Any:
        outcome = self.outcomes.get(key)
        return outcome.value if outcome and outcome.ok else default


async def settle_all(calls: Mapping[str, Awaitable[Any]]) -> SettledResults:
    """
    Run independent awaitables concurrently and wait for all of them.

    A failing call never cancels the others; its exception is recorded in
    its outcome. The aggregate is failed if any outcome failed.

    Args:
        calls: Mapping of key to awaitable

    Returns:
        SettledResults keyed like the input
    """
    keys = list(calls.keys())
    results = await asyncio.gather(*calls.values(), return_exceptions=True)

    settled = SettledResults()
    for key, result in zip(keys, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            logger.warning(f"Concurrent call failed: {key}", extra={"error": str(result)})
            settled.outcomes[key] = Outcome(key=key, ok=False, error=result)
        else:
            settled.outcomes[key] = Outcome(key=key, ok=True, value=result)
    return settled
