"""
V3 pool state reader

Снимок состояния пула для расчёта позиции: токены, fee, slot0, tickSpacing.
"""

import logging
from web3 import Web3

from .abis import POOL_ABI
from ..math.ticks import get_tick_spacing
from ..position import PoolState

logger = logging.getLogger(__name__)

# keccak("slot0()")[:4]
SLOT0_SELECTOR = bytes.fromhex('3850c7bd')


class V3PoolReader:
    """
    Чтение состояния Uniswap V3 / PancakeSwap V3 пула.

    Только view-вызовы: пул не изменяется.
    """

    def __init__(self, w3: Web3):
        self.w3 = w3

    def _read_slot0(self, pool, address: str) -> tuple:
        """(sqrtPriceX96, tick) из slot0."""
        try:
            slot0 = pool.functions.slot0().call()
            return slot0[0], slot0[1]
        except Exception as e:
            # PancakeSwap V3 slot0 возвращает 8 полей (feeProtocol: uint32),
            # ABI decode падает - читаем первые два слова напрямую
            logger.debug(f"slot0 ABI decode failed, trying raw eth_call: {e}")
            raw = self.w3.eth.call({'to': address, 'data': SLOT0_SELECTOR})
            if len(raw) < 64:
                raise ValueError(f"Unexpected slot0 response from pool {address}: {raw!r}")
            sqrt_price_x96 = int.from_bytes(raw[0:32], 'big')
            tick_raw = int.from_bytes(raw[32:64], 'big')
            tick = tick_raw - 2**256 if tick_raw >= 2**255 else tick_raw
            return sqrt_price_x96, tick

    def get_pool_state(self, pool_address: str) -> PoolState:
        """
        Получение снимка состояния пула.

        Args:
            pool_address: Адрес пула

        Returns:
            PoolState

        Raises:
            ValueError: Пул не инициализирован (sqrtPriceX96 == 0)
        """
        address = Web3.to_checksum_address(pool_address)
        pool = self.w3.eth.contract(address=address, abi=POOL_ABI)

        token0 = pool.functions.token0().call()
        token1 = pool.functions.token1().call()
        fee = pool.functions.fee().call()

        sqrt_price_x96, tick = self._read_slot0(pool, address)
        if sqrt_price_x96 == 0:
            raise ValueError(f"Pool {address} is not initialized")

        try:
            tick_spacing = pool.functions.tickSpacing().call()
        except Exception as e:
            logger.warning(f"tickSpacing() failed for pool {address}: {e}, using fee tier table")
            tick_spacing = get_tick_spacing(fee)

        logger.info(
            f"Pool {address[:10]}...: fee={fee}, tick={tick}, "
            f"spacing={tick_spacing}, sqrtPriceX96={sqrt_price_x96}"
        )

        return PoolState(
            token0=token0,
            token1=token1,
            fee=fee,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            tick_spacing=tick_spacing
        )
