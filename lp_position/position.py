"""
Position preparation

Из снимка состояния пула и ширины позиции строит метаданные для mint:
sqrt-границы, тики выровненные по tick_spacing, токены и fee.
Никаких внешних вызовов - только чтение переданного снимка.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

from .errors import ExcessiveTickDeviation, InvalidTickRange
from .math.price_range import resolve_price_range
from .math.ticks import get_tick_at_sqrt_ratio, align_tick_to_spacing, tick_to_price

logger = logging.getLogger(__name__)

# Позиции не создаются, если пул в экстремальном состоянии
MAX_TICK_DEVIATION = 200


@dataclass(frozen=True)
class PoolState:
    """Снимок состояния пула (slot0 + параметры пула)."""
    token0: str
    token1: str
    fee: int
    sqrt_price_x96: int
    tick: int
    tick_spacing: int


@dataclass(frozen=True)
class PositionMetadata:
    """Параметры позиции для передачи в mint."""
    token0: str
    token1: str
    fee: int
    lower_sqrt_price_x96: int
    upper_sqrt_price_x96: int
    lower_tick: int
    upper_tick: int

    @property
    def price_range(self) -> Tuple[float, float]:
        """(price_lower, price_upper) для выровненных тиков."""
        return tick_to_price(self.lower_tick), tick_to_price(self.upper_tick)


def check_tick_deviation(tick: int, max_deviation: int = MAX_TICK_DEVIATION) -> None:
    if abs(tick) > max_deviation:
        raise ExcessiveTickDeviation(tick=tick, max_deviation=max_deviation)


def prepare_position(
    pool_state: PoolState,
    width_bps: int,
    max_tick_deviation: int = MAX_TICK_DEVIATION
) -> PositionMetadata:
    """
    Подготовка метаданных позиции.

    Args:
        pool_state: Снимок состояния пула
        width_bps: Полуширина диапазона в bps (500 = ±5%)
        max_tick_deviation: Допустимое отклонение текущего тика от нуля

    Returns:
        PositionMetadata

    Raises:
        ExcessiveTickDeviation: Текущий тик вне ±max_tick_deviation
        InvalidWidth, InvalidPriceRange, ArithmeticDomainError: из resolve_price_range
        InvalidTickRange: После выравнивания lower_tick >= upper_tick
    """
    check_tick_deviation(pool_state.tick, max_tick_deviation)

    lower_sqrt_price_x96, upper_sqrt_price_x96 = resolve_price_range(
        pool_state.sqrt_price_x96, width_bps
    )

    lower_tick = align_tick_to_spacing(
        get_tick_at_sqrt_ratio(lower_sqrt_price_x96), pool_state.tick_spacing
    )
    upper_tick = align_tick_to_spacing(
        get_tick_at_sqrt_ratio(upper_sqrt_price_x96), pool_state.tick_spacing
    )

    # Выравнивание может схлопнуть узкий диапазон в один тик
    if lower_tick >= upper_tick:
        raise InvalidTickRange(
            f"aligned lower tick {lower_tick} >= upper tick {upper_tick} "
            f"(spacing {pool_state.tick_spacing})"
        )

    logger.debug(
        f"Prepared position: tick={pool_state.tick}, width={width_bps} bps, "
        f"ticks [{lower_tick}, {upper_tick})"
    )

    return PositionMetadata(
        token0=pool_state.token0,
        token1=pool_state.token1,
        fee=pool_state.fee,
        lower_sqrt_price_x96=lower_sqrt_price_x96,
        upper_sqrt_price_x96=upper_sqrt_price_x96,
        lower_tick=lower_tick,
        upper_tick=upper_tick
    )
