"""
Configuration for the liquidity position manager

Адреса NonfungiblePositionManager по сетям и параметры создания позиции.
Секреты и RPC берутся из окружения (.env загружается в main.py).
"""

import os
from dataclasses import dataclass
from typing import Optional

from lp_position.position import MAX_TICK_DEVIATION as POSITION_MAX_TICK_DEVIATION
from lp_position.math.ticks import FEE_TO_TICK_SPACING
from lp_position.liquidity_manager import DEFAULT_SLIPPAGE_PERCENT, DEFAULT_DEADLINE_MINUTES


@dataclass
class ChainConfig:
    """Конфигурация сети."""
    chain_id: int
    rpc_url: str
    explorer_url: str
    native_token: str
    position_manager: str


# ============================================================
# CHAIN CONFIGURATIONS
# ============================================================

# BNB Chain (BSC Mainnet) - PancakeSwap V3
BNB_CHAIN = ChainConfig(
    chain_id=56,
    rpc_url="https://bsc-dataseed.binance.org/",
    explorer_url="https://bscscan.com",
    native_token="BNB",
    # PancakeSwap V3 NonfungiblePositionManager
    position_manager="0x46A15B0b27311cedF172AB29E4f4766fbE7F4364",
)

# Ethereum Mainnet - Uniswap V3
ETHEREUM = ChainConfig(
    chain_id=1,
    rpc_url="https://eth.llamarpc.com",
    explorer_url="https://etherscan.io",
    native_token="ETH",
    position_manager="0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
)

# Base Mainnet - Uniswap V3
BASE = ChainConfig(
    chain_id=8453,
    rpc_url="https://base.llamarpc.com",
    explorer_url="https://basescan.org",
    native_token="ETH",
    position_manager="0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1"
)

# Tick spacing для каждого fee tier
TICK_SPACING = dict(FEE_TO_TICK_SPACING)

# ============================================================
# DEFAULT SETTINGS
# ============================================================

DEFAULT_SLIPPAGE = DEFAULT_SLIPPAGE_PERCENT  # 1%, целые проценты
DEFAULT_WIDTH_BPS = 500  # ±5%

# Отказ, если |текущий тик пула| больше
MAX_TICK_DEVIATION = POSITION_MAX_TICK_DEVIATION


@dataclass
class PositionSettings:
    """Настройки запуска (из окружения)."""
    chain: ChainConfig
    rpc_url: str
    private_key: Optional[str] = None
    slippage_percent: int = DEFAULT_SLIPPAGE
    deadline_minutes: int = DEFAULT_DEADLINE_MINUTES
    max_tick_deviation: int = MAX_TICK_DEVIATION


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_chain_config(chain_id: int) -> ChainConfig:
    """Получение конфигурации по chain_id."""
    configs = {
        56: BNB_CHAIN,
        1: ETHEREUM,
        8453: BASE,
    }
    if chain_id not in configs:
        raise ValueError(f"Unknown chain_id: {chain_id}")
    return configs[chain_id]


def _env_int(environ, name: str, default: int) -> int:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def load_settings(environ=None) -> PositionSettings:
    """
    Настройки из переменных окружения.

    CHAIN_ID (56), RPC_URL (из ChainConfig), PRIVATE_KEY,
    SLIPPAGE_PERCENT, DEADLINE_MINUTES, MAX_TICK_DEVIATION.
    """
    environ = os.environ if environ is None else environ

    chain = get_chain_config(_env_int(environ, "CHAIN_ID", 56))
    return PositionSettings(
        chain=chain,
        rpc_url=environ.get("RPC_URL") or chain.rpc_url,
        private_key=environ.get("PRIVATE_KEY") or None,
        slippage_percent=_env_int(environ, "SLIPPAGE_PERCENT", DEFAULT_SLIPPAGE),
        deadline_minutes=_env_int(environ, "DEADLINE_MINUTES", DEFAULT_DEADLINE_MINUTES),
        max_tick_deviation=_env_int(environ, "MAX_TICK_DEVIATION", MAX_TICK_DEVIATION),
    )
