"""
Uniswap V3 Tick Mathematics

Основные формулы:
- price(i) = 1.0001^i
- sqrtPriceX96 = sqrt(price) * 2^96

Конвертация тик <-> sqrtPriceX96 выполняется в целых числах,
бит-в-бит как TickMath.sol, поэтому результат совпадает с on-chain.

Tick spacing по fee tier:
- 0.01% (100) -> spacing 1
- 0.05% (500) -> spacing 10
- 0.30% (3000) -> spacing 60
- 1.00% (10000) -> spacing 200
"""

from ..errors import ArithmeticDomainError
from .fixed_point import Q96, MAX_UINT256

# Константы
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# Fee tier -> tick spacing
FEE_TO_TICK_SPACING = {
    100: 1,      # 0.01%
    500: 10,     # 0.05%
    2500: 50,    # 0.25% (PancakeSwap)
    3000: 60,    # 0.30% (Uniswap)
    10000: 200,  # 1.00%
}

# sqrt(1.0001)^-(2^i) в Q128.128 для i = 1..19
_TICK_MULTIPLIERS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)

# log_sqrt(1.0001)(2) в Q64.64 и поправки для границ тика
_LOG_SQRT10001_MULTIPLIER = 255738958999603826347141
_TICK_LOW_OFFSET = 3402992956809132418596140100660247210
_TICK_HIGH_OFFSET = 291339464771989622907027621153398088495


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    Конвертация тика в sqrtPriceX96 (TickMath.getSqrtRatioAtTick).

    Args:
        tick: Номер тика в [MIN_TICK, MAX_TICK]

    Returns:
        sqrtPriceX96 = sqrt(1.0001^tick) * 2^96, округлённый вверх

    Raises:
        ArithmeticDomainError: Если тик вне допустимого диапазона
    """
    abs_tick = abs(tick)
    if abs_tick > MAX_TICK:
        raise ArithmeticDomainError(f"tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")

    ratio = 0xfffcb933bd6fad37aa2d162d1a594001 if abs_tick & 0x1 else 0x100000000000000000000000000000000
    for mask, multiplier in _TICK_MULTIPLIERS:
        if abs_tick & mask:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, округление вверх: тогда get_tick_at_sqrt_ratio
    # от результата всегда возвращает исходный тик
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def _most_significant_bit(value: int) -> int:
    msb = 0
    for power, threshold in (
        (7, 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF),
        (6, 0xFFFFFFFFFFFFFFFF),
        (5, 0xFFFFFFFF),
        (4, 0xFFFF),
        (3, 0xFF),
        (2, 0xF),
        (1, 0x3),
    ):
        if value > threshold:
            msb |= 1 << power
            value >>= 1 << power
    if value > 0x1:
        msb |= 1
    return msb


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """
    Конвертация sqrtPriceX96 в тик (TickMath.getTickAtSqrtRatio).

    Возвращает наибольший тик, для которого
    get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96.

    log2 считается в фиксированной точке: целая часть через MSB,
    14 дробных бит через последовательное возведение в квадрат.

    Raises:
        ArithmeticDomainError: Если sqrt_price_x96 вне [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
    """
    # Вторая граница строгая: цена никогда не достигает цены MAX_TICK
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ArithmeticDomainError(f"sqrtPriceX96 {sqrt_price_x96} outside sqrt price domain")

    ratio = sqrt_price_x96 << 32
    msb = _most_significant_bit(ratio)

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    # int256 в Solidity: для msb < 128 log_2 отрицательный,
    # Python побитовые операции над отрицательными ведут себя так же
    log_2 = (msb - 128) << 64

    for bit in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << bit
        r >>= f

    log_sqrt10001 = log_2 * _LOG_SQRT10001_MULTIPLIER  # Q128.128

    tick_low = (log_sqrt10001 - _TICK_LOW_OFFSET) >> 128
    tick_high = (log_sqrt10001 + _TICK_HIGH_OFFSET) >> 128

    if tick_low == tick_high:
        return tick_low
    return tick_high if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96 else tick_low


def align_tick_to_spacing(tick: int, tick_spacing: int, round_down: bool = True) -> int:
    """
    Выравнивание тика к tick_spacing.

    В Uniswap V3 можно использовать только тики, кратные tick_spacing.

    Args:
        tick: Исходный тик
        tick_spacing: Шаг тиков (зависит от fee tier)
        round_down: True = округление вниз (к -∞), False = вверх (к +∞)

    Returns:
        Выровненный тик

    Example:
        align_tick_to_spacing(27, 10)   # 20
        align_tick_to_spacing(-27, 10)  # -30, а не -20
    """
    if tick_spacing <= 0:
        raise ValueError("Tick spacing must be positive")

    # Деление с усечением к нулю (как int24 / int24 в Solidity)
    quotient = abs(tick) // tick_spacing
    if tick < 0:
        quotient = -quotient

    remainder = tick - quotient * tick_spacing
    if remainder == 0:
        return tick  # Already aligned

    if round_down:
        # Усечение к нулю для отрицательных тиков округляет ВВЕРХ,
        # для floor нужно сделать ещё шаг вниз
        if tick < 0:
            quotient -= 1
    elif tick > 0:
        quotient += 1

    return quotient * tick_spacing


def tick_to_price(tick: int, invert: bool = False) -> float:
    """
    Конвертация тика в цену.

    Args:
        tick: Номер тика
        invert: Если True, возвращает цену token0/token1

    Returns:
        Цена token1/token0 (или token0/token1 если invert=True)
    """
    pool_price = 1.0001 ** tick
    if invert:
        return 1.0 / pool_price
    return pool_price


def sqrt_price_x96_to_price(sqrt_price_x96: int) -> float:
    """
    Конвертация sqrtPriceX96 в цену.

    price = (sqrtPriceX96 / 2^96)^2
    """
    sqrt_price = sqrt_price_x96 / Q96
    return sqrt_price ** 2


def get_tick_spacing(fee: int) -> int:
    """
    Получение tick_spacing по fee tier.

    Raises:
        ValueError: Если fee tier неизвестен
    """
    if fee in FEE_TO_TICK_SPACING:
        return FEE_TO_TICK_SPACING[fee]

    valid_fees = sorted(FEE_TO_TICK_SPACING.keys())
    raise ValueError(f"Unknown fee tier: {fee}. Valid V3 fee tiers are: {valid_fees}.")
