"""
Uniswap V3 Position Manager Integration

Минтинг позиции через NonfungiblePositionManager.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from web3 import Web3
from web3.contract import Contract
from eth_account.signers.local import LocalAccount
import time

from .abis import POSITION_MANAGER_ABI
from ..utils import NonceManager, GasEstimator, send_transaction

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class MintEventMissing(Exception):
    """Mint в блоке, но фактические суммы неизвестны (нет IncreaseLiquidity)."""

    def __init__(self, tx_hash: str):
        self.tx_hash = tx_hash
        super().__init__(f"Mint succeeded but IncreaseLiquidity not found in receipt. TX: {tx_hash}")


@dataclass
class MintParams:
    """Параметры для создания позиции."""
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    amount0_min: int = 0
    amount1_min: int = 0
    recipient: str = None
    deadline: int = None

    def to_tuple(self, recipient: str = None, deadline: int = None) -> tuple:
        """Конвертация в tuple для контракта (порядок полей как в MintParams struct)."""
        recipient = recipient or self.recipient
        if recipient is None:
            raise ValueError("Mint recipient is not set")

        if deadline is None:
            deadline = self.deadline
        if deadline is None:
            deadline = int(time.time()) + 3600  # +1 час

        return (
            Web3.to_checksum_address(self.token0),
            Web3.to_checksum_address(self.token1),
            self.fee,
            self.tick_lower,
            self.tick_upper,
            self.amount0_desired,
            self.amount1_desired,
            self.amount0_min,
            self.amount1_min,
            Web3.to_checksum_address(recipient),
            deadline
        )


@dataclass
class MintResult:
    """Результат создания позиции."""
    token_id: int
    liquidity: int
    amount0: int
    amount1: int
    tx_hash: str


class UniswapV3PositionManager:
    """
    Минтер позиций через NonfungiblePositionManager.

    Пример:
    ```python
    pm = UniswapV3PositionManager(w3, "0xC36442b4a4522E871399CD717aBDD847Ab11FE88", account)
    result = pm.mint(params)
    print(result.token_id, result.liquidity)
    ```
    """

    def __init__(
        self,
        w3: Web3,
        position_manager_address: str,
        account: LocalAccount = None,
        nonce_manager: NonceManager = None,
        gas_estimator: GasEstimator = None
    ):
        self.w3 = w3
        self.account = account
        self.nonce_manager = nonce_manager
        self.gas_estimator = gas_estimator
        self.position_manager_address = Web3.to_checksum_address(position_manager_address)
        self.contract: Contract = w3.eth.contract(
            address=self.position_manager_address,
            abi=POSITION_MANAGER_ABI
        )

    @property
    def address(self) -> str:
        return self.position_manager_address

    def _parse_mint_events(self, receipt) -> Optional[dict]:
        """
        Парсинг события IncreaseLiquidity из receipt.

        Returns:
            dict с token_id, liquidity, amount0, amount1 или None
        """
        try:
            events = self.contract.events.IncreaseLiquidity().process_receipt(receipt)
            if events:
                args = events[0]['args']
                return {
                    'token_id': args['tokenId'],
                    'liquidity': args['liquidity'],
                    'amount0': args['amount0'],
                    'amount1': args['amount1']
                }
        except Exception as e:
            logger.warning(f"IncreaseLiquidity decode failed: {e}")

        # Transfer (mint от address(0)) даёт только tokenId - без фактических
        # сумм нельзя посчитать остаток к возврату, поэтому используется лишь для лога
        try:
            for event in self.contract.events.Transfer().process_receipt(receipt):
                if event['args']['from'] == ZERO_ADDRESS:
                    logger.warning(
                        f"Position {event['args']['tokenId']} minted, "
                        f"but IncreaseLiquidity event is missing"
                    )
        except Exception as e:
            logger.debug(f"Transfer decode failed: {e}")

        return None

    def mint(self, params: MintParams, gas_limit: int = None, timeout: int = 300) -> MintResult:
        """
        Создание позиции.

        Args:
            params: Параметры позиции (recipient по умолчанию - account)
            gas_limit: Лимит газа (по умолчанию - оценка GasEstimator или 500000)
            timeout: Таймаут ожидания подтверждения в секундах

        Returns:
            MintResult

        Raises:
            TransactionReverted: mint откатился
            MintEventMissing: mint прошёл, но IncreaseLiquidity не найден в receipt
        """
        if not self.account:
            raise ValueError("Account not configured")

        mint_fn = self.contract.functions.mint(
            params.to_tuple(params.recipient or self.account.address)
        )

        if gas_limit is None:
            gas_limit = self.gas_estimator.estimate(
                mint_fn, self.account.address, default_type='mint_position'
            ) if self.gas_estimator else 500000

        logger.info(
            f"Minting position ticks [{params.tick_lower}, {params.tick_upper}), "
            f"amounts {params.amount0_desired}/{params.amount1_desired}"
        )

        tx_hash, receipt = send_transaction(
            self.w3,
            self.account,
            mint_fn,
            gas_limit,
            nonce_manager=self.nonce_manager,
            timeout=timeout,
            label="Mint"
        )

        event_data = self._parse_mint_events(receipt)
        if not event_data:
            raise MintEventMissing(tx_hash)

        return MintResult(
            token_id=event_data['token_id'],
            liquidity=event_data['liquidity'],
            amount0=event_data['amount0'],
            amount1=event_data['amount1'],
            tx_hash=tx_hash
        )
