"""
Shared fixtures for all tests.
"""

import pytest
from unittest.mock import Mock, MagicMock

from lp_position import PoolState
from lp_position.math.ticks import get_sqrt_ratio_at_tick


class MockWeb3:
    """Переиспользуемый мок Web3 для тестов."""

    def __init__(self, initial_nonce: int = 100):
        self._nonce = initial_nonce
        self.eth = MagicMock()
        self.eth.get_transaction_count = MagicMock(return_value=self._nonce)
        self.eth.gas_price = 5_000_000_000  # 5 gwei
        self.eth.chain_id = 56
        self.eth.send_raw_transaction = MagicMock(return_value=b'\x12\x34' * 16)
        self.eth.wait_for_transaction_receipt = MagicMock(return_value={
            'status': 1,
            'gasUsed': 300_000,
            'logs': [],
            'transactionHash': b'\x12\x34' * 16
        })
        self.eth.call = MagicMock(return_value=b'\x00' * 64)
        self.eth.contract = MagicMock()

    def set_nonce(self, nonce: int):
        self._nonce = nonce
        self.eth.get_transaction_count.return_value = nonce


@pytest.fixture
def mock_w3():
    """Мок Web3 instance."""
    return MockWeb3()


@pytest.fixture
def mock_account():
    """Мок LocalAccount."""
    account = Mock()
    account.address = OPERATOR
    account.sign_transaction = Mock(return_value=Mock(raw_transaction=b'signed_tx'))
    return account


@pytest.fixture
def mock_receipt_success():
    """Успешный receipt транзакции."""
    return {
        'status': 1,
        'gasUsed': 300_000,
        'logs': [],
        'transactionHash': b'\x12\x34' * 16,
        'blockNumber': 40_000_000,
    }


@pytest.fixture
def mock_receipt_fail():
    """Неуспешный receipt транзакции."""
    return {
        'status': 0,
        'gasUsed': 300_000,
        'logs': [],
        'transactionHash': b'\xde\xad' * 16,
        'blockNumber': 40_000_000,
    }


def make_pool_state(tick: int = 0, tick_spacing: int = 60, fee: int = 3000, sqrt_price_x96: int = None) -> PoolState:
    """PoolState с sqrt-ценой ровно на тике (если не задана явно)."""
    if sqrt_price_x96 is None:
        sqrt_price_x96 = get_sqrt_ratio_at_tick(tick)
    return PoolState(
        token0=TOKEN_A,
        token1=TOKEN_B,
        fee=fee,
        sqrt_price_x96=sqrt_price_x96,
        tick=tick,
        tick_spacing=tick_spacing
    )


@pytest.fixture
def pool_state():
    """Пул на тике 0, fee 0.3%, spacing 60."""
    return make_pool_state()


# Тестовые адреса
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x9999999999999999999999999999999999999999"
OPERATOR = "0x1234567890123456789012345678901234567890"
OWNER = "0x3333333333333333333333333333333333333333"
POOL = "0x5555555555555555555555555555555555555555"
POSITION_MANAGER = "0x46A15B0b27311cedF172AB29E4f4766fbE7F4364"
