"""
Tests for UniswapV3PositionManager (mint + receipt parsing).
"""

import pytest
import time
from unittest.mock import Mock, MagicMock, patch

from lp_position.contracts.position_manager import (
    UniswapV3PositionManager,
    MintParams,
    MintResult,
    MintEventMissing,
    ZERO_ADDRESS,
)
from lp_position.utils import TransactionReverted, TransactionPending, NonceManager

from conftest import TOKEN_A, TOKEN_B, OWNER, OPERATOR, POSITION_MANAGER


def make_params(**overrides) -> MintParams:
    fields = dict(
        token0=TOKEN_A,
        token1=TOKEN_B,
        fee=3000,
        tick_lower=-540,
        tick_upper=480,
        amount0_desired=1000,
        amount1_desired=2000,
        amount0_min=990,
        amount1_min=1980,
    )
    fields.update(overrides)
    return MintParams(**fields)


# ============================================================
# MintParams Tests
# ============================================================

class TestMintParams:
    """Tests for MintParams dataclass."""

    def test_default_values(self):
        params = MintParams(
            token0=TOKEN_A,
            token1=TOKEN_B,
            fee=2500,
            tick_lower=-100,
            tick_upper=100,
            amount0_desired=1000,
            amount1_desired=2000,
        )
        assert params.amount0_min == 0
        assert params.amount1_min == 0
        assert params.recipient is None
        assert params.deadline is None

    def test_to_tuple_correct_order(self):
        """to_tuple возвращает поля в порядке MintParams struct."""
        result = make_params().to_tuple(recipient=OWNER, deadline=1234)

        assert len(result) == 11
        assert result[2] == 3000   # fee
        assert result[3] == -540   # tick_lower
        assert result[4] == 480    # tick_upper
        assert result[5] == 1000   # amount0_desired
        assert result[6] == 2000   # amount1_desired
        assert result[7] == 990    # amount0_min
        assert result[8] == 1980   # amount1_min
        assert result[9] == OWNER
        assert result[10] == 1234

    def test_to_tuple_uses_own_recipient_and_deadline(self):
        result = make_params(recipient=OWNER, deadline=999).to_tuple()

        assert result[9] == OWNER
        assert result[10] == 999

    def test_to_tuple_default_deadline(self):
        """deadline не задан нигде -> +1 час."""
        before = int(time.time()) + 3600
        result = make_params().to_tuple(recipient=OWNER)
        after = int(time.time()) + 3600

        assert before <= result[10] <= after

    def test_to_tuple_without_recipient_raises(self):
        with pytest.raises(ValueError, match="recipient"):
            make_params().to_tuple()


# ============================================================
# UniswapV3PositionManager Tests
# ============================================================

class TestUniswapV3PositionManager:
    """Tests for UniswapV3PositionManager.mint."""

    @pytest.fixture
    def pm(self, mock_w3, mock_account):
        pm = UniswapV3PositionManager(mock_w3, POSITION_MANAGER, mock_account)
        pm.contract = MagicMock()
        pm.contract.events.IncreaseLiquidity.return_value.process_receipt.return_value = [{
            'args': {'tokenId': 42, 'liquidity': 123456, 'amount0': 700, 'amount1': 2000}
        }]
        pm.contract.events.Transfer.return_value.process_receipt.return_value = []
        return pm

    def test_address(self, pm):
        assert pm.address == POSITION_MANAGER

    def test_mint_success(self, pm, mock_w3):
        result = pm.mint(make_params(recipient=OWNER))

        assert isinstance(result, MintResult)
        assert result.token_id == 42
        assert result.liquidity == 123456
        assert result.amount0 == 700
        assert result.amount1 == 2000
        assert result.tx_hash == ('1234' * 16)
        mock_w3.eth.send_raw_transaction.assert_called_once_with(b'signed_tx')

    def test_mint_recipient_defaults_to_account(self, pm):
        pm.mint(make_params())

        mint_tuple = pm.contract.functions.mint.call_args[0][0]
        assert mint_tuple[9] == OPERATOR

    def test_mint_default_gas_limit(self, pm):
        pm.mint(make_params(recipient=OWNER))

        tx_params = pm.contract.functions.mint.return_value.build_transaction.call_args[0][0]
        assert tx_params['gas'] == 500000
        assert tx_params['nonce'] == 100

    def test_mint_uses_gas_estimator(self, pm):
        pm.gas_estimator = Mock()
        pm.gas_estimator.estimate.return_value = 420000

        pm.mint(make_params(recipient=OWNER))

        tx_params = pm.contract.functions.mint.return_value.build_transaction.call_args[0][0]
        assert tx_params['gas'] == 420000
        assert pm.gas_estimator.estimate.call_args[1]['default_type'] == 'mint_position'

    def test_mint_without_account(self, mock_w3):
        pm = UniswapV3PositionManager(mock_w3, POSITION_MANAGER)

        with pytest.raises(ValueError, match="Account not configured"):
            pm.mint(make_params(recipient=OWNER))

    def test_mint_reverted(self, pm, mock_w3):
        mock_w3.eth.wait_for_transaction_receipt.return_value = {'status': 0, 'logs': []}

        with pytest.raises(TransactionReverted, match="Mint reverted"):
            pm.mint(make_params(recipient=OWNER))

    def test_mint_receipt_timeout(self, pm, mock_w3):
        """Mint ушёл в сеть без receipt - TransactionPending с хешем для сверки."""
        mock_w3.eth.wait_for_transaction_receipt.side_effect = TimeoutError("timeout")

        with pytest.raises(TransactionPending, match="Mint sent but not confirmed") as exc_info:
            pm.mint(make_params(recipient=OWNER))

        assert exc_info.value.tx_hash == '1234' * 16

    def test_mint_event_missing(self, pm):
        pm.contract.events.IncreaseLiquidity.return_value.process_receipt.return_value = []

        with pytest.raises(MintEventMissing) as exc_info:
            pm.mint(make_params(recipient=OWNER))

        assert exc_info.value.tx_hash == '1234' * 16

    def test_transfer_only_is_not_enough(self, pm):
        """Transfer от нулевого адреса без IncreaseLiquidity - суммы неизвестны."""
        pm.contract.events.IncreaseLiquidity.return_value.process_receipt.return_value = []
        pm.contract.events.Transfer.return_value.process_receipt.return_value = [{
            'args': {'from': ZERO_ADDRESS, 'to': OWNER, 'tokenId': 42}
        }]

        with pytest.raises(MintEventMissing):
            pm.mint(make_params(recipient=OWNER))

    def test_decode_error_treated_as_missing(self, pm):
        pm.contract.events.IncreaseLiquidity.return_value.process_receipt.side_effect = ValueError("bad log")

        with pytest.raises(MintEventMissing):
            pm.mint(make_params(recipient=OWNER))

    def test_mint_confirms_nonce(self, mock_w3, mock_account):
        nonce_manager = NonceManager(mock_w3, OPERATOR)
        pm = UniswapV3PositionManager(mock_w3, POSITION_MANAGER, mock_account, nonce_manager=nonce_manager)
        pm.contract = MagicMock()
        pm.contract.events.IncreaseLiquidity.return_value.process_receipt.return_value = [{
            'args': {'tokenId': 1, 'liquidity': 1, 'amount0': 1, 'amount1': 1}
        }]

        pm.mint(make_params(recipient=OWNER))

        assert nonce_manager.get_pending_count() == 0
