"""
Ошибки расчёта и создания позиции.

Все ошибки - это ошибки валидации, а не временные сбои:
операция прерывается целиком, ничего не ретраится и не клампится.
"""

from dataclasses import dataclass


class PositionError(ValueError):
    """Базовая ошибка для всех отказов при подготовке позиции."""
    reason = "Position rejected"

    def __str__(self):
        details = super().__str__()
        return f"{self.reason}: {details}" if details else self.reason


class InvalidWidth(PositionError):
    """Ширина позиции равна нулю или >= 100% (10000 bps)."""
    reason = "Invalid position width"


class InvalidPriceRange(PositionError):
    """Границы sqrt-цены не охватывают текущую цену (до выравнивания)."""
    reason = "Invalid price range"


class InvalidTickRange(PositionError):
    """После выравнивания по tick_spacing диапазон схлопнулся."""
    reason = "Invalid tick range"


class ArithmeticDomainError(PositionError):
    """Значение вышло за допустимую разрядность или за границы тиков."""
    reason = "Arithmetic domain error"


class InvalidTokenAmounts(PositionError):
    reason = "Invalid token amounts"


class InvalidSlippage(PositionError):
    reason = "Invalid slippage"


@dataclass(eq=False)
class ExcessiveTickDeviation(PositionError):
    """Текущий тик пула вне допустимой полосы вокруг нуля."""
    tick: int
    max_deviation: int
    reason = "Tick deviation too high"

    def __str__(self):
        return f"{self.reason}: tick {self.tick} outside ±{self.max_deviation}"
