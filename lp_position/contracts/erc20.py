"""
ERC20 token custody

Перемещение токенов вокруг mint: забрать у владельца (transferFrom),
выдать allowance Position Manager (approve), вернуть остаток (transfer).
"""

import logging
from web3 import Web3
from web3.contract import Contract
from eth_account.signers.local import LocalAccount

from .abis import ERC20_ABI
from ..utils import NonceManager, GasEstimator, send_transaction

logger = logging.getLogger(__name__)

MAX_UINT256 = 2**256 - 1


class Erc20Custody:
    """
    Custody на аккаунте оператора.

    Если владелец токенов и есть аккаунт оператора, pull/refund ничего
    не делают: токены и так лежат на нужном адресе.
    """

    def __init__(
        self,
        w3: Web3,
        account: LocalAccount,
        nonce_manager: NonceManager = None,
        gas_estimator: GasEstimator = None,
        timeout: int = 120
    ):
        self.w3 = w3
        self.account = account
        self.nonce_manager = nonce_manager
        self.gas_estimator = gas_estimator or GasEstimator(w3)
        self.timeout = timeout

    def _token(self, token_address: str) -> Contract:
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(token_address),
            abi=ERC20_ABI
        )

    def _is_self(self, owner: str) -> bool:
        return owner.lower() == self.account.address.lower()

    def _send(self, contract_function, default_type: str, label: str) -> str:
        gas_limit = self.gas_estimator.estimate(
            contract_function, self.account.address, default_type=default_type
        )
        tx_hash, _ = send_transaction(
            self.w3,
            self.account,
            contract_function,
            gas_limit,
            nonce_manager=self.nonce_manager,
            timeout=self.timeout,
            label=label
        )
        return tx_hash

    def balance_of(self, token_address: str, address: str = None) -> int:
        address = address or self.account.address
        return self._token(token_address).functions.balanceOf(
            Web3.to_checksum_address(address)
        ).call()

    def pull(self, token_address: str, owner: str, amount: int):
        """Забрать amount токенов у owner на аккаунт оператора."""
        if amount == 0 or self._is_self(owner):
            return None
        fn = self._token(token_address).functions.transferFrom(
            Web3.to_checksum_address(owner),
            self.account.address,
            amount
        )
        logger.info(f"Pulling {amount} of {token_address[:10]}... from {owner[:10]}...")
        return self._send(fn, 'transfer_from', "TransferFrom")

    def approve(self, token_address: str, spender: str, amount: int):
        """
        Allowance для spender (Position Manager).

        Returns:
            tx_hash если был approve, None если allowance уже достаточно
        """
        token = self._token(token_address)
        spender = Web3.to_checksum_address(spender)

        current_allowance = token.functions.allowance(self.account.address, spender).call()
        if current_allowance >= amount:
            logger.info(f"Token {token_address[:10]}... already approved")
            return None

        logger.info(f"Approving token {token_address[:10]}...")
        return self._send(token.functions.approve(spender, MAX_UINT256), 'approve', "Approve")

    def refund(self, token_address: str, owner: str, amount: int):
        """Вернуть amount токенов владельцу."""
        if amount == 0 or self._is_self(owner):
            return None
        fn = self._token(token_address).functions.transfer(
            Web3.to_checksum_address(owner),
            amount
        )
        logger.info(f"Refunding {amount} of {token_address[:10]}... to {owner[:10]}...")
        return self._send(fn, 'transfer', "Transfer")
