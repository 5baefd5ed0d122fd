"""
Notification events emitted by the position orchestration.
"""

import logging
from dataclasses import dataclass, asdict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiquidityPositionCreated:
    """Позиция создана."""
    position_id: int
    owner: str
    liquidity: int
    amount0: int
    amount1: int
    tick_lower: int
    tick_upper: int
    tx_hash: str = None


@dataclass(frozen=True)
class ExcessTokensRefunded:
    """Неиспользованный остаток токена переведён владельцу (только при фактическом transfer)."""
    owner: str
    token: str
    amount: int


class LoggingEventSink:
    """Sink по умолчанию: пишет события в лог."""

    def __init__(self, log: logging.Logger = None):
        self.log = log or logger

    def emit(self, event):
        self.log.info(f"{type(event).__name__}: {asdict(event)}")
