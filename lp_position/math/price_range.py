"""
Symmetric price range around the current pool price.

    lower = price * (10000 - width_bps) / 10000
    upper = price * (10000 + width_bps) / 10000

Каждая граница проходит sqrtPrice -> tick -> sqrtPrice, чтобы итоговые
границы были sqrt-ценами ровно на тиках, а не сырыми расчётными значениями.
"""

import logging
from typing import Tuple

from ..errors import InvalidWidth, InvalidPriceRange
from .fixed_point import mul_div, sqrt_price_x96_to_price_x128, price_x128_to_sqrt_price_x96
from .ticks import get_tick_at_sqrt_ratio, get_sqrt_ratio_at_tick

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10000


def validate_width(width_bps: int) -> int:
    """Ширина должна быть строго в (0, 10000) bps."""
    if width_bps <= 0 or width_bps >= BPS_DENOMINATOR:
        raise InvalidWidth(f"width {width_bps} bps not in (0, {BPS_DENOMINATOR})")
    return width_bps


def _snap_to_tick(price_x128: int) -> int:
    sqrt_price_x96 = price_x128_to_sqrt_price_x96(price_x128)
    return get_sqrt_ratio_at_tick(get_tick_at_sqrt_ratio(sqrt_price_x96))


def resolve_price_range(sqrt_price_x96: int, width_bps: int) -> Tuple[int, int]:
    """
    Расчёт границ sqrt-цены для симметричной позиции.

    Args:
        sqrt_price_x96: Текущая sqrtPriceX96 пула
        width_bps: Полуширина диапазона в базисных пунктах (500 = ±5%)

    Returns:
        (lower_sqrt_price_x96, upper_sqrt_price_x96), обе на тиках

    Raises:
        InvalidWidth: width_bps вне (0, 10000)
        InvalidPriceRange: границы не охватывают текущую цену
            (lower < sqrt_price_x96 < upper), например при ширине меньше шага тика
        ArithmeticDomainError: sqrt-цена вне домена или переполнение
    """
    validate_width(width_bps)
    get_tick_at_sqrt_ratio(sqrt_price_x96)  # domain check

    price_x128 = sqrt_price_x96_to_price_x128(sqrt_price_x96)
    lower_price_x128 = mul_div(price_x128, BPS_DENOMINATOR - width_bps, BPS_DENOMINATOR)
    upper_price_x128 = mul_div(price_x128, BPS_DENOMINATOR + width_bps, BPS_DENOMINATOR)

    lower_sqrt_price_x96 = _snap_to_tick(lower_price_x128)
    upper_sqrt_price_x96 = _snap_to_tick(upper_price_x128)

    if not lower_sqrt_price_x96 < sqrt_price_x96 < upper_sqrt_price_x96:
        raise InvalidPriceRange(
            f"range [{lower_sqrt_price_x96}, {upper_sqrt_price_x96}] does not contain current {sqrt_price_x96}"
        )

    logger.debug(
        f"Resolved range for width {width_bps} bps: "
        f"sqrt [{lower_sqrt_price_x96}, {upper_sqrt_price_x96}]"
    )
    return lower_sqrt_price_x96, upper_sqrt_price_x96
