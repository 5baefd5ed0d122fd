"""
Liquidity Position Manager

Создание симметричной позиции вокруг текущей цены пула:
расчёт диапазона -> забор токенов -> mint -> возврат остатка -> события.

Весь расчёт и валидация выполняются ДО любого перемещения токенов,
поэтому отклонённый расчёт никогда не двигает средства.
"""

import logging
import threading
import time
from dataclasses import dataclass

from .errors import InvalidTokenAmounts, InvalidSlippage
from .events import LiquidityPositionCreated, ExcessTokensRefunded, LoggingEventSink
from .math.price_range import validate_width
from .position import PositionMetadata, prepare_position, MAX_TICK_DEVIATION
from .contracts.position_manager import MintParams, MintResult, MintEventMissing
from .utils import TransactionPending

# Настройка логгера
logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)

# Создаём handler для консоли если его нет
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

DEFAULT_SLIPPAGE_PERCENT = 1
DEFAULT_DEADLINE_MINUTES = 60


@dataclass
class PositionResult:
    """
    Результат создания позиции.

    refund0/refund1 - возвращённый остаток, unrefunded0/unrefunded1 - остаток,
    который не удалось вернуть (лежит на аккаунте оператора).
    """
    metadata: PositionMetadata
    mint: MintResult
    refund0: int
    refund1: int
    unrefunded0: int = 0
    unrefunded1: int = 0

    @property
    def token_id(self) -> int:
        return self.mint.token_id


def min_amount_for_slippage(amount: int, slippage_percent: int) -> int:
    """Минимально допустимая сумма: amount * (100 - slippage) / 100."""
    return amount * (100 - slippage_percent) // 100


class LiquidityPositionManager:
    """
    Оркестрация создания позиции.

    Коллабораторы:
    - pool_reader.get_pool_state(pool_address) -> PoolState
    - minter.mint(MintParams) -> MintResult, minter.address - spender для approve
    - custody.pull / approve / refund
    - event_sink.emit(event)

    Пример использования:
    ```python
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    account = Account.from_key(private_key)
    nonce_manager = NonceManager(w3, account.address)

    manager = LiquidityPositionManager(
        pool_reader=V3PoolReader(w3),
        minter=UniswapV3PositionManager(w3, position_manager_address, account, nonce_manager),
        custody=Erc20Custody(w3, account, nonce_manager),
    )

    result = manager.create_liquidity_position(
        pool_address, amount0, amount1, width_bps=500, slippage_percent=1, owner=account.address
    )
    ```
    """

    def __init__(
        self,
        pool_reader,
        minter,
        custody,
        event_sink=None,
        max_tick_deviation: int = MAX_TICK_DEVIATION,
        deadline_minutes: int = DEFAULT_DEADLINE_MINUTES
    ):
        self.pool_reader = pool_reader
        self.minter = minter
        self.custody = custody
        self.event_sink = event_sink or LoggingEventSink()
        self.max_tick_deviation = max_tick_deviation
        self.deadline_minutes = deadline_minutes
        # Одна позиция за раз: custody и mint не должны перемежаться
        self._lock = threading.Lock()

    def preview_position(self, pool_address: str, width_bps: int) -> PositionMetadata:
        """Расчёт метаданных позиции без перемещения токенов."""
        pool_state = self.pool_reader.get_pool_state(pool_address)
        return prepare_position(pool_state, width_bps, self.max_tick_deviation)

    def _return_pulled(self, owner: str, pulled: list):
        for token, amount in pulled:
            try:
                self.custody.refund(token, owner, amount)
            except Exception as e:
                logger.error(f"Failed to return {amount} of {token} to {owner}: {e}", exc_info=True)

    def _refund_excess(self, token: str, owner: str, excess: int) -> tuple:
        """
        Возврат неиспользованного остатка после mint.

        Returns:
            (refunded, unrefunded). ExcessTokensRefunded только если был transfer:
            custody не переводит токены, когда владелец - сам оператор.
        """
        if excess <= 0:
            return 0, 0
        try:
            tx_hash = self.custody.refund(token, owner, excess)
        except Exception as e:
            logger.error(f"Failed to refund {excess} of {token} to {owner}: {e}", exc_info=True)
            return 0, excess

        if tx_hash is not None:
            self.event_sink.emit(ExcessTokensRefunded(owner=owner, token=token, amount=excess))
        return excess, 0

    def create_liquidity_position(
        self,
        pool_address: str,
        amount0_desired: int,
        amount1_desired: int,
        width_bps: int,
        slippage_percent: int = DEFAULT_SLIPPAGE_PERCENT,
        owner: str = None
    ) -> PositionResult:
        """
        Создание позиции шириной ±width_bps вокруг текущей цены.

        Args:
            pool_address: Адрес пула
            amount0_desired: Желаемое количество token0 (wei)
            amount1_desired: Желаемое количество token1 (wei)
            width_bps: Полуширина диапазона в bps
            slippage_percent: Допустимое проскальзывание в процентах [0, 100)
            owner: Владелец токенов и получатель позиции

        Returns:
            PositionResult

        Raises:
            InvalidTokenAmounts, InvalidWidth, InvalidSlippage: некорректный ввод
            ExcessiveTickDeviation, InvalidPriceRange, InvalidTickRange,
            ArithmeticDomainError: отказ при расчёте диапазона
            MintEventMissing, TransactionPending: mint отправлен, суммы неизвестны,
                остаток не возвращается (сверка по tx_hash)
        """
        if owner is None:
            raise ValueError("Position owner is required")

        with self._lock:
            if amount0_desired <= 0 or amount1_desired <= 0:
                raise InvalidTokenAmounts(f"amount0={amount0_desired}, amount1={amount1_desired}")
            validate_width(width_bps)
            if not 0 <= slippage_percent < 100:
                raise InvalidSlippage(f"slippage {slippage_percent}% not in [0, 100)")

            metadata = self.preview_position(pool_address, width_bps)
            logger.info(
                f"Position range for pool {pool_address[:10]}...: "
                f"ticks [{metadata.lower_tick}, {metadata.upper_tick})"
            )

            # Расчёт завершён - дальше только перемещение токенов
            pulled = []
            minting = False
            try:
                for token, amount in ((metadata.token0, amount0_desired), (metadata.token1, amount1_desired)):
                    self.custody.pull(token, owner, amount)
                    pulled.append((token, amount))

                self.custody.approve(metadata.token0, self.minter.address, amount0_desired)
                self.custody.approve(metadata.token1, self.minter.address, amount1_desired)

                params = MintParams(
                    token0=metadata.token0,
                    token1=metadata.token1,
                    fee=metadata.fee,
                    tick_lower=metadata.lower_tick,
                    tick_upper=metadata.upper_tick,
                    amount0_desired=amount0_desired,
                    amount1_desired=amount1_desired,
                    amount0_min=min_amount_for_slippage(amount0_desired, slippage_percent),
                    amount1_min=min_amount_for_slippage(amount1_desired, slippage_percent),
                    recipient=owner,
                    deadline=int(time.time()) + self.deadline_minutes * 60
                )
                minting = True
                mint_result = self.minter.mint(params)

            except (MintEventMissing, TransactionPending) as e:
                if not minting:
                    # pull/approve без receipt: mint не отправлялся
                    logger.error(f"Position creation failed: {e}, returning pulled tokens")
                    self._return_pulled(owner, pulled)
                    raise
                # Mint отправлен: токены могут быть уже потрачены, возврат
                # с более поздним nonce заплатил бы из средств оператора
                logger.error(f"Mint outcome unknown, skipping refund. TX: {e.tx_hash}")
                raise
            except Exception as e:
                logger.error(f"Position creation failed: {e}, returning pulled tokens")
                self._return_pulled(owner, pulled)
                raise

            # Позиция уже on-chain: событие и результат не зависят от возврата остатка
            self.event_sink.emit(LiquidityPositionCreated(
                position_id=mint_result.token_id,
                owner=owner,
                liquidity=mint_result.liquidity,
                amount0=mint_result.amount0,
                amount1=mint_result.amount1,
                tick_lower=metadata.lower_tick,
                tick_upper=metadata.upper_tick,
                tx_hash=mint_result.tx_hash
            ))

            refund0, unrefunded0 = self._refund_excess(
                metadata.token0, owner, amount0_desired - mint_result.amount0
            )
            refund1, unrefunded1 = self._refund_excess(
                metadata.token1, owner, amount1_desired - mint_result.amount1
            )

            return PositionResult(
                metadata=metadata,
                mint=mint_result,
                refund0=refund0,
                refund1=refund1,
                unrefunded0=unrefunded0,
                unrefunded1=unrefunded1
            )
