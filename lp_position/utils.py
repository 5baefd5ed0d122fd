"""
Utility classes for transaction management.

Includes:
- NonceManager: Thread-safe nonce tracking for sequential transactions
- GasEstimator: Gas estimation with fallbacks
- send_transaction: build -> sign -> send -> wait с корректной работой с nonce
"""

import logging
import threading
import time
from typing import Optional
from web3 import Web3
from web3.exceptions import ContractLogicError

logger = logging.getLogger(__name__)


class TransactionReverted(Exception):
    """Транзакция попала в блок, но откатилась (status != 1)."""

    def __init__(self, tx_hash: str, label: str = "Transaction"):
        self.tx_hash = tx_hash
        super().__init__(f"{label} reverted! TX: {tx_hash}")


class TransactionPending(Exception):
    """TX отправлен в сеть, но receipt не получен: результат неизвестен."""

    def __init__(self, tx_hash: str, label: str = "Transaction"):
        self.tx_hash = tx_hash
        super().__init__(f"{label} sent but not confirmed. TX: {tx_hash}")


class NonceManager:
    """
    Thread-safe nonce manager.

    Создание позиции - это несколько транзакций подряд (transferFrom x2,
    approve x2, mint), и `get_transaction_count('pending')` может вернуть
    один и тот же nonce для быстро отправленных транзакций.

    Usage:
        nonce_mgr = NonceManager(w3, account_address)
        nonce = nonce_mgr.get_next_nonce()
        ...
        nonce_mgr.confirm_transaction(nonce)   # TX в блоке
        nonce_mgr.release_nonce(nonce)         # TX не был отправлен
    """

    def __init__(self, w3: Web3, account_address: str, sync_interval: float = 30.0):
        self.w3 = w3
        self.account_address = Web3.to_checksum_address(account_address)
        self._lock = threading.Lock()
        self._current_nonce: Optional[int] = None
        self._pending_nonces: set = set()
        self._last_sync_time: float = 0
        self._sync_interval = sync_interval

    def _sync_nonce(self) -> int:
        return self.w3.eth.get_transaction_count(self.account_address, 'pending')

    def get_next_nonce(self, force_sync: bool = False) -> int:
        """Get the next available nonce, re-syncing with the chain when stale."""
        with self._lock:
            now = time.time()

            if (self._current_nonce is None or
                    force_sync or
                    now - self._last_sync_time > self._sync_interval):
                chain_nonce = self._sync_nonce()

                # Nonces below the chain nonce are already mined
                self._pending_nonces = {n for n in self._pending_nonces if n >= chain_nonce}

                if self._current_nonce is None:
                    self._current_nonce = chain_nonce
                else:
                    # External transactions may have advanced the chain nonce
                    self._current_nonce = max(self._current_nonce, chain_nonce)

                self._last_sync_time = now
                logger.debug(f"Synced nonce with blockchain: {self._current_nonce}")

            nonce = self._current_nonce
            self._current_nonce += 1
            self._pending_nonces.add(nonce)

            logger.debug(f"Allocated nonce: {nonce}, pending: {len(self._pending_nonces)}")
            return nonce

    def confirm_transaction(self, nonce: int):
        """Mark a nonce as consumed (transaction included in block)."""
        with self._lock:
            self._pending_nonces.discard(nonce)

    def release_nonce(self, nonce: int):
        """
        Release a nonce that was never sent.

        Если это последний выданный nonce - он переиспользуется,
        чтобы не накапливать пропуски при повторных ошибках.
        """
        with self._lock:
            self._pending_nonces.discard(nonce)
            if self._current_nonce is not None and nonce == self._current_nonce - 1:
                self._current_nonce = nonce
            logger.debug(f"Released nonce: {nonce}, current: {self._current_nonce}")

    def get_pending_count(self) -> int:
        with self._lock:
            return len(self._pending_nonces)

    def get_pending_nonces(self) -> set:
        with self._lock:
            return self._pending_nonces.copy()


class GasEstimator:
    """
    Gas estimation with a buffer and per-operation fallbacks.

    Usage:
        estimator = GasEstimator(w3, buffer_percent=20)
        gas_limit = estimator.estimate(token.functions.approve(...), from_address, default_type='approve')
    """

    DEFAULTS = {
        'approve': 60000,
        'transfer': 65000,
        'transfer_from': 80000,
        'mint_position': 500000,
    }

    def __init__(self, w3: Web3, buffer_percent: int = 20):
        self.w3 = w3
        self.buffer_percent = buffer_percent

    def estimate(
        self,
        contract_function,
        from_address: str,
        default_type: str = 'approve',
        max_gas: int = 3000000
    ) -> int:
        try:
            estimated = contract_function.estimate_gas({
                'from': Web3.to_checksum_address(from_address)
            })
            with_buffer = int(estimated * (1 + self.buffer_percent / 100))
            return min(with_buffer, max_gas)

        except ContractLogicError as e:
            logger.warning(f"Gas estimation failed (contract error): {e}")
            return self.DEFAULTS.get(default_type, 200000)

        except Exception as e:
            logger.warning(f"Gas estimation failed: {e}, using default for '{default_type}'")
            return self.DEFAULTS.get(default_type, 200000)


def send_transaction(
    w3: Web3,
    account,
    contract_function,
    gas_limit: int,
    nonce_manager: NonceManager = None,
    timeout: int = 120,
    label: str = "Transaction"
):
    """
    Подписать и отправить вызов контракта, дождаться receipt.

    Nonce: если TX не ушёл в сеть - release, если ушёл (даже с revert) - confirm.

    Returns:
        (tx_hash_hex, receipt)

    Raises:
        TransactionReverted: receipt.status != 1
        TransactionPending: TX отправлен, но receipt не получен (таймаут, RPC)
    """
    nonce = nonce_manager.get_next_nonce() if nonce_manager else \
        w3.eth.get_transaction_count(account.address, 'pending')

    try:
        tx = contract_function.build_transaction({
            'from': account.address,
            'nonce': nonce,
            'gas': gas_limit,
            'gasPrice': w3.eth.gas_price
        })

        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    except Exception:
        if nonce_manager:
            nonce_manager.release_nonce(nonce)
        raise

    # TX в сети - nonce израсходован, даже если receipt не дождались или revert
    if nonce_manager:
        nonce_manager.confirm_transaction(nonce)

    tx_hash_hex = tx_hash.hex()
    try:
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
    except Exception as e:
        logger.error(f"{label} sent, receipt not received: {e}. TX: {tx_hash_hex}")
        raise TransactionPending(tx_hash_hex, label) from e

    if receipt['status'] != 1:
        raise TransactionReverted(tx_hash_hex, label)

    logger.info(f"{label} confirmed. TX: {tx_hash_hex}")
    return tx_hash_hex, receipt
