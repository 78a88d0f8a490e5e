"""Result of a reconciliation operation"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Action(Enum):
    """What the caller should do with the event after an operation"""

    CONTINUE = "continue"
    RETRY = "retry"
    STOP = "stop"


@dataclass(frozen=True)
class OperationResult:
    """
    Tri-state outcome of an operation:
    continue with the next operation,
    retry the whole event (error holds the reason),
    stop processing the event.
    """

    action: Action
    error: Optional[Exception] = None

    @property
    def should_retry(self) -> bool:
        """Whether the event should be delivered again"""
        return self.action is Action.RETRY

    @property
    def should_stop(self) -> bool:
        """Whether no further operations should run for the event"""
        return self.action is not Action.CONTINUE


def continue_processing() -> OperationResult:
    """The operation is done, proceed with the next one"""
    return OperationResult(action=Action.CONTINUE)


def retry_with_error(error: Exception) -> OperationResult:
    """The operation failed transiently, deliver the event again"""
    return OperationResult(action=Action.RETRY, error=error)


def retry_or_stop(status_error: Optional[Exception]) -> OperationResult:
    """
    The operation failed and its failure was recorded on the subject object.
    Retry only if recording the failure failed as well.
    :param status_error: error raised while writing the status, if any
    """
    if status_error is not None:
        return retry_with_error(status_error)
    return OperationResult(action=Action.STOP)
