"""Check pipeline.

Runs check units in registration order and reports the outcome as a value.
The first CheckException ends the run; any other exception propagates
untouched.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from gallery_gate.core.checks import CheckUnit
from gallery_gate.core.request import GateRequest
from gallery_gate.exceptions import CheckException

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"


@dataclass(frozen=True)
class CheckOutcome:
    """Terminal result of a pipeline run.

    Attributes:
        state: PASSED or FAILED.
        failure: The failure that stopped the run, if any.
        unit_index: Index of the failing unit, or None when passed.
    """

    state: PipelineState
    failure: CheckException | None = None
    unit_index: int | None = None

    @property
    def passed(self) -> bool:
        return self.state is PipelineState.PASSED

    @classmethod
    def ok(cls) -> "CheckOutcome":
        return cls(state=PipelineState.PASSED)

    @classmethod
    def failed(cls, failure: CheckException, unit_index: int | None = None) -> "CheckOutcome":
        return cls(state=PipelineState.FAILED, failure=failure, unit_index=unit_index)


class CheckPipeline:
    """Ordered check units for a single request.

    A pipeline is built per request and runs at most once; failures are
    terminal and never retried.
    """

    def __init__(self, units: Sequence[CheckUnit]) -> None:
        self._units = tuple(units)
        self._state = PipelineState.PENDING
        self._unit_index: int | None = None

    @property
    def units(self) -> tuple[CheckUnit, ...]:
        return self._units

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def unit_index(self) -> int | None:
        """Index of the unit currently (or last) running."""
        return self._unit_index

    def run(self, request: GateRequest) -> CheckOutcome:
        """Run every unit in order, stopping at the first failure.

        Raises:
            RuntimeError: If the pipeline already ran.
            Exception: Any non-check exception raised by a unit.
        """
        if self._state is not PipelineState.PENDING:
            raise RuntimeError(f"Check pipeline already ran (state: {self._state.value})")

        self._state = PipelineState.RUNNING
        for index, unit in enumerate(self._units):
            self._unit_index = index
            try:
                unit.apply(request)
            except CheckException as exc:
                self._state = PipelineState.FAILED
                logger.debug(
                    "Check unit failed",
                    extra={"unit": type(unit).__name__, "index": index, "code": exc.code},
                )
                return CheckOutcome.failed(exc, index)

        self._state = PipelineState.PASSED
        return CheckOutcome.ok()
