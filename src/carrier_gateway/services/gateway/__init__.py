"""Gateway dispatch services."""

from .dispatcher import FAILURE_STATUS_CODES, DispatchResult, GatewayDispatcher
from .states import DispatchState, DispatchTrace, InvalidTransition

__all__ = [
    "GatewayDispatcher",
    "DispatchResult",
    "DispatchState",
    "DispatchTrace",
    "InvalidTransition",
    "FAILURE_STATUS_CODES",
]
