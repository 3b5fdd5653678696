"""Exceptions."""
from typing import List, Optional, Sequence, Tuple


class SkyBakeError(Exception):
    """Base class for all skybake errors."""


class InvalidInputError(SkyBakeError, ValueError):
    """Raised when the step inputs are malformed or contradictory.

    Always detected before any call to the compute provider.
    """


class InvalidConfigError(InvalidInputError):
    """Raised when a source server config fails validation."""


class ComputeApiError(SkyBakeError):
    """Raised when the compute service rejects a call."""

    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ServerNotFoundError(ComputeApiError):
    """Raised when the compute service no longer knows a server."""

    def __init__(self, server_id: str) -> None:
        super().__init__(f'Server {server_id!r} not found.', status_code=404)
        self.server_id = server_id


class ZonesExhaustedError(ComputeApiError):
    """Raised when launching failed in every candidate availability zone.

    The message is the one of the last zone attempted; the failures of all
    zones are kept in `failover_history` in attempt order.
    """

    def __init__(self, message: str,
                 failover_history: Sequence[Tuple[str, Exception]]) -> None:
        super().__init__(message)
        self.failover_history: List[Tuple[str,
                                          Exception]] = list(failover_history)


class StateWaitError(SkyBakeError):
    """Base class for failures while waiting on a resource state."""


class UnexpectedStateError(StateWaitError):
    """Raised when a resource reports a state that is neither pending nor a
    target."""

    def __init__(self, state: str, target: Sequence[str]) -> None:
        super().__init__(
            f'unexpected state {state!r}, wanted target {list(target)!r}')
        self.state = state
        self.target = list(target)


class StateTimeoutError(StateWaitError):
    """Raised when a resource did not reach a target state in time."""


class WaitInterruptedError(StateWaitError):
    """Raised when the owning pipeline is cancelled or halted mid-wait."""

    def __init__(self) -> None:
        super().__init__('interrupted')
