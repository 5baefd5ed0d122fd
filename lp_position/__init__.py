"""
Symmetric-width liquidity positions for Uniswap V3 / PancakeSwap V3 pools.
"""

from .errors import (
    PositionError,
    InvalidWidth,
    InvalidPriceRange,
    InvalidTickRange,
    ExcessiveTickDeviation,
    ArithmeticDomainError,
    InvalidTokenAmounts,
    InvalidSlippage,
)
from .position import PoolState, PositionMetadata, prepare_position, MAX_TICK_DEVIATION
from .liquidity_manager import LiquidityPositionManager, PositionResult
