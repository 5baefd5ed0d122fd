from .ticks import (
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    align_tick_to_spacing,
    tick_to_price,
    sqrt_price_x96_to_price,
    get_tick_spacing,
)
from .price_range import resolve_price_range, BPS_DENOMINATOR
