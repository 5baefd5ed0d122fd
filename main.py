"""
Uniswap/PancakeSwap V3 Symmetric Position Tool

Позиция шириной ±width вокруг текущей цены пула:
- Диапазон считается от sqrtPriceX96 пула
- Тики выравниваются по tick_spacing пула
- Позиция не создаётся, если пул в экстремальном состоянии
"""

import sys
from dotenv import load_dotenv
from web3 import Web3
from eth_account import Account

from lp_position import (
    PoolState,
    PositionMetadata,
    PositionError,
    prepare_position,
    LiquidityPositionManager,
)
from lp_position.math.ticks import get_sqrt_ratio_at_tick, sqrt_price_x96_to_price
from lp_position.contracts import V3PoolReader, UniswapV3PositionManager, Erc20Custody
from lp_position.utils import NonceManager, GasEstimator
from config import load_settings, DEFAULT_WIDTH_BPS, TICK_SPACING

load_dotenv()

PLACEHOLDER_TOKEN0 = "0x0000000000000000000000000000000000000000"
PLACEHOLDER_TOKEN1 = "0x0000000000000000000000000000000000000001"


def ask_int(prompt: str, default: int = None, check=None, error: str = "Некорректное значение") -> int:
    """Ввод целого числа с повтором до корректного значения."""
    while True:
        raw = input(prompt).strip()
        if raw == "" and default is not None:
            return default
        try:
            value = int(raw)
        except ValueError:
            print("Введите целое число")
            continue
        if check is None or check(value):
            return value
        print(error)


def print_metadata(metadata: PositionMetadata, current_sqrt_price_x96: int = None):
    """Вывод параметров позиции в консоль."""
    price_lower, price_upper = metadata.price_range

    print("\n" + "=" * 70)
    print("POSITION")
    print("=" * 70)
    if current_sqrt_price_x96:
        print(f"Current price:      {sqrt_price_x96_to_price(current_sqrt_price_x96):.8f}")
    print(f"Lower sqrtPriceX96: {metadata.lower_sqrt_price_x96}")
    print(f"Upper sqrtPriceX96: {metadata.upper_sqrt_price_x96}")
    print(f"Ticks:              [{metadata.lower_tick}, {metadata.upper_tick})")
    print(f"Prices:             {price_lower:.8f} - {price_upper:.8f}")
    print(f"Fee:                {metadata.fee}")


def offline_calculator(settings):
    """Расчёт диапазона без подключения к сети."""
    print("\n" + "=" * 70)
    print("OFFLINE RANGE CALCULATOR")
    print("=" * 70)

    tick = ask_int("\nТекущий тик пула [0]: ", default=0)

    print("\nFee tier пула:")
    for fee, spacing in TICK_SPACING.items():
        print(f"  {fee:>5} -> spacing {spacing}")
    fee = ask_int("Fee tier [3000]: ", default=3000,
                  check=lambda v: v in TICK_SPACING, error="Неизвестный fee tier")

    width_bps = ask_int(f"Ширина позиции в bps [{DEFAULT_WIDTH_BPS}]: ", default=DEFAULT_WIDTH_BPS)

    try:
        sqrt_price_x96 = get_sqrt_ratio_at_tick(tick)
        pool_state = PoolState(
            token0=PLACEHOLDER_TOKEN0,
            token1=PLACEHOLDER_TOKEN1,
            fee=fee,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            tick_spacing=TICK_SPACING[fee]
        )
        metadata = prepare_position(pool_state, width_bps, settings.max_tick_deviation)
    except PositionError as e:
        print(f"\nREJECTED: {e}")
        return

    print_metadata(metadata, sqrt_price_x96)


def build_manager(settings, account=None) -> LiquidityPositionManager:
    """Сборка оркестрации с web3-коллабораторами."""
    w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
    nonce_manager = NonceManager(w3, account.address) if account else None
    gas_estimator = GasEstimator(w3, buffer_percent=20)

    return LiquidityPositionManager(
        pool_reader=V3PoolReader(w3),
        minter=UniswapV3PositionManager(
            w3,
            settings.chain.position_manager,
            account,
            nonce_manager=nonce_manager,
            gas_estimator=gas_estimator
        ),
        custody=Erc20Custody(w3, account, nonce_manager, gas_estimator) if account else None,
        max_tick_deviation=settings.max_tick_deviation,
        deadline_minutes=settings.deadline_minutes
    )


def preview_from_pool(settings):
    """Расчёт диапазона по живому пулу (только чтение)."""
    pool_address = input("\nАдрес пула: ").strip()
    width_bps = ask_int(f"Ширина позиции в bps [{DEFAULT_WIDTH_BPS}]: ", default=DEFAULT_WIDTH_BPS)

    manager = build_manager(settings)
    try:
        metadata = manager.preview_position(pool_address, width_bps)
    except PositionError as e:
        print(f"\nREJECTED: {e}")
        return
    except ValueError as e:
        print(f"\nERROR: {e}")
        return

    print_metadata(metadata)


def create_position_interactive(settings):
    """Интерактивное создание реальной позиции."""
    print("\n" + "=" * 70)
    print("CREATE LIQUIDITY POSITION")
    print("=" * 70)

    if not settings.private_key:
        print("\nERROR: PRIVATE_KEY not found in .env file")
        print("Create .env file with: PRIVATE_KEY=0x...")
        return

    account = Account.from_key(settings.private_key)
    print(f"\nAccount: {account.address}")

    pool_address = input("Адрес пула: ").strip()
    width_bps = ask_int(f"Ширина позиции в bps [{DEFAULT_WIDTH_BPS}]: ", default=DEFAULT_WIDTH_BPS)
    amount0 = ask_int("Количество token0 (wei): ", check=lambda v: v > 0, error="Должно быть > 0")
    amount1 = ask_int("Количество token1 (wei): ", check=lambda v: v > 0, error="Должно быть > 0")

    manager = build_manager(settings, account)

    try:
        metadata = manager.preview_position(pool_address, width_bps)
    except PositionError as e:
        print(f"\nREJECTED: {e}")
        return
    except ValueError as e:
        print(f"\nERROR: {e}")
        return

    print("\n--- Preview ---")
    print_metadata(metadata)

    confirm = input("\nСоздать эту позицию? (yes/no): ")
    if confirm.lower() != "yes":
        print("Отменено")
        return

    print("\nСоздание позиции...")
    try:
        result = manager.create_liquidity_position(
            pool_address,
            amount0,
            amount1,
            width_bps,
            slippage_percent=settings.slippage_percent,
            owner=account.address
        )
    except PositionError as e:
        print(f"\n REJECTED: {e}")
        return
    except Exception as e:
        print(f"\n FAILED: {e}")
        return

    print(f"\n SUCCESS!")
    print(f"TX: {settings.chain.explorer_url}/tx/0x{result.mint.tx_hash.removeprefix('0x')}")
    print(f"Token ID: {result.token_id}")
    print(f"Liquidity: {result.mint.liquidity}")
    print(f"Used: {result.mint.amount0} / {result.mint.amount1}")
    print(f"Refunded: {result.refund0} / {result.refund1}")
    if result.unrefunded0 or result.unrefunded1:
        print(f"NOT refunded (on operator account): {result.unrefunded0} / {result.unrefunded1}")


def main():
    """Главная функция."""
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Ошибка конфигурации: {e}")
        sys.exit(1)

    print("""
    Uniswap/PancakeSwap V3 Symmetric Position Tool
    """)
    print(f"Chain: {settings.chain.chain_id} ({settings.chain.native_token}), Position Manager: {settings.chain.position_manager}")

    print("\nВыбери действие:")
    print("1. Калькулятор диапазона (без сети)")
    print("2. Предпросмотр по пулу")
    print("3. Создать позицию (требует PRIVATE_KEY)")
    print("4. Выход")

    choice = input("\nВыбор (1-4): ").strip()

    if choice == "1":
        offline_calculator(settings)
    elif choice == "2":
        preview_from_pool(settings)
    elif choice == "3":
        create_position_interactive(settings)
    elif choice == "4":
        print("Выход")
    else:
        print("Неверный выбор")


if __name__ == "__main__":
    main()
