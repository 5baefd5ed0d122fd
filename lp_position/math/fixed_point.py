"""
Fixed-point helpers (Q64.96 / Q128.128).

Python int не переполняется, поэтому разрядность проверяется явно:
любое значение шире uint256 (или uint160 для sqrt-цены) - это ошибка,
а не тихое усечение.
"""

import math

from ..errors import ArithmeticDomainError

Q96 = 2 ** 96
Q128 = 2 ** 128
MAX_UINT160 = 2 ** 160 - 1
MAX_UINT256 = 2 ** 256 - 1

# Q192 -> Q128.128
PRICE_SHIFT = 64


def check_uint(value: int, bits: int = 256) -> int:
    """Проверка что value помещается в uintN."""
    if value < 0 or value >> bits:
        raise ArithmeticDomainError(f"value {value} does not fit in uint{bits}")
    return value


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    floor(a * b / denominator) с полной точностью.

    Промежуточное произведение может быть шире 256 бит (как 512-битный
    FullMath.mulDiv), результат - нет.
    """
    if denominator == 0:
        raise ArithmeticDomainError("division by zero")
    return check_uint((a * b) // denominator)


def sqrt_price_x96_to_price_x128(sqrt_price_x96: int) -> int:
    """
    Квадрат sqrt-цены со сдвигом вправо: (sqrtP^2) >> 64.

    sqrtP^2 это цена в Q192; сдвиг на 64 оставляет Q128.128,
    который помещается в 256 бит для любого sqrtP < 2^160.
    """
    check_uint(sqrt_price_x96, 160)
    return mul_div(sqrt_price_x96, sqrt_price_x96, 1 << PRICE_SHIFT)


def price_x128_to_sqrt_price_x96(price_x128: int) -> int:
    """Обратное преобразование: floor(sqrt(price_x128 << 64))."""
    check_uint(price_x128)
    return check_uint(math.isqrt(price_x128 << PRICE_SHIFT), 160)
