"""
Web3 plumbing shared by the registry services.

Creates contract handles, performs read calls, sends transactions and awaits their receipts,
and translates contract reverts into :mod:`ensemble.exceptions` errors.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.logs import DISCARD
from web3.middleware import ExtraDataToPOAMiddleware

from ensemble.exceptions import (
    ConnectionFailedError,
    ContractError,
    EventNotFoundError,
    SignerRequiredError,
    TransactionFailedError,
    error_for_revert,
)
from ensemble.logging import init_logger

if TYPE_CHECKING:
    from web3.contract.contract import ContractFunction
    from web3.types import EventData, TxReceipt

    from ensemble.config import Config


def revert_reason(exc: ContractLogicError) -> str:
    """The human readable part of a revert, e.g. ``Agent already registered``"""
    message = str(exc.args[0]) if exc.args else str(exc)
    prefix = "execution reverted:"
    if message.startswith(prefix):
        message = message[len(prefix) :]
    return message.strip()


class ContractService:
    """
    Wraps a :class:`web3.Web3` connection and an optional local signing account.

    If an ``account`` is given, transactions are signed locally and sent raw.
    Otherwise they're sent with ``eth_sendTransaction`` from the node's
    default (unlocked) account.
    """

    def __init__(
        self,
        web3: Web3,
        account: LocalAccount | None = None,
        chain_id: int | None = None,
        gas_price_gwei: float | None = None,
        receipt_timeout: float = 120.0,
    ):
        self.web3 = web3
        self.account = account
        self.gas_price_gwei = gas_price_gwei
        self.receipt_timeout = receipt_timeout
        self._chain_id = chain_id
        self.logger = init_logger("contracts")

    @classmethod
    def from_config(cls, config: Config | None = None) -> ContractService:
        """
        Connect to the node described by :attr:`.Config.network`

        Raises:
            :class:`.ConnectionFailedError` if the node can't be reached
        """
        if config is None:
            from ensemble.config import config

        web3 = Web3(Web3.HTTPProvider(config.network.rpc_url, request_kwargs={"timeout": 30}))

        if config.network.is_poa:
            web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        if not web3.is_connected():
            raise ConnectionFailedError(f"Failed to connect to {config.network.rpc_url}")

        account = None
        if config.private_key is not None:
            account = Account.from_key(config.private_key.get_secret_value())

        return cls(
            web3,
            account=account,
            chain_id=config.network.chain_id,
            gas_price_gwei=config.gas_price_gwei,
            receipt_timeout=config.receipt_timeout,
        )

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.web3.eth.chain_id
        return self._chain_id

    @property
    def address(self) -> str:
        """
        Address transactions are sent from

        Raises:
            :class:`.SignerRequiredError` if there is no local account and the node has none either
        """
        if self.account is not None:
            return self.account.address
        if self.web3.eth.default_account:
            return self.web3.eth.default_account
        try:
            accounts = self.web3.eth.accounts
        except Web3Exception as e:
            raise SignerRequiredError("Could not list node accounts") from e
        if not accounts:
            raise SignerRequiredError(
                "No private key configured and the node has no unlocked accounts"
            )
        return accounts[0]

    @property
    def block_number(self) -> int:
        try:
            return self.web3.eth.block_number
        except Web3Exception as e:
            raise ContractError(f"Could not get the latest block: {e}") from e

    def create_contract(self, address: str, abi: list[dict[str, Any]]) -> Contract:
        checksum_address = Web3.to_checksum_address(address)
        return self.web3.eth.contract(address=checksum_address, abi=abi)

    def call(self, fn: ContractFunction) -> Any:
        """Read-only call of a contract function"""
        try:
            return fn.call()
        except ContractLogicError as e:
            raise self._translate(fn, e) from e
        except Web3Exception as e:
            raise ContractError(f"Call to {fn.fn_name} failed: {e}") from e

    def transact(self, fn: ContractFunction, value: int = 0) -> TxReceipt:
        """
        Send a transaction calling ``fn`` and wait for its receipt.

        Args:
            fn: A contract function with its arguments bound,
                e.g. ``contract.functions.completeTask(1, "done")``
            value: Wei to send along with the call

        Returns:
            The transaction receipt

        Raises:
            :class:`.ContractError` (or a subclass matching the revert reason)
            if the call reverts, and :class:`.TransactionFailedError` if
            the transaction was mined with a failing status
        """
        try:
            if self.account is not None:
                tx_hash = self._send_signed(fn, value)
            else:
                tx_hash = fn.transact({"from": self.address, "value": value})
            self.logger.debug("Transaction sent for %s: %s", fn.fn_name, Web3.to_hex(tx_hash))
            receipt = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except ContractLogicError as e:
            raise self._translate(fn, e) from e
        except TimeExhausted as e:
            raise TransactionFailedError(
                f"No receipt for {fn.fn_name} after {self.receipt_timeout}s"
            ) from e
        except Web3Exception as e:
            raise ContractError(f"Transaction {fn.fn_name} failed: {e}") from e

        if receipt["status"] != 1:
            raise TransactionFailedError(
                f"Transaction {fn.fn_name} failed: {Web3.to_hex(receipt['transactionHash'])}"
            )
        self.logger.debug(
            "Transaction confirmed for %s: %s",
            fn.fn_name,
            Web3.to_hex(receipt["transactionHash"]),
        )
        return receipt

    def find_event(self, contract: Contract, event_name: str, receipt: TxReceipt) -> EventData:
        """
        Decode the first ``event_name`` log emitted by ``contract`` in ``receipt``

        Raises:
            :class:`.EventNotFoundError`
        """
        event = getattr(contract.events, event_name)
        logs = event().process_receipt(receipt, errors=DISCARD)
        if not logs:
            raise EventNotFoundError(
                f"{event_name} not found in receipt {Web3.to_hex(receipt['transactionHash'])}"
            )
        return logs[0]

    def get_logs(
        self,
        contract: Contract,
        event_name: str,
        from_block: int,
        to_block: int,
        argument_filters: Mapping[str, Any] | None = None,
    ) -> list[EventData]:
        event = getattr(contract.events, event_name)
        try:
            return list(
                event().get_logs(
                    argument_filters=dict(argument_filters) if argument_filters else None,
                    from_block=from_block,
                    to_block=to_block,
                )
            )
        except Web3Exception as e:
            raise ContractError(f"Could not fetch {event_name} logs: {e}") from e

    def _send_signed(self, fn: ContractFunction, value: int) -> bytes:
        address = self.account.address
        tx_params: dict[str, Any] = {
            "from": address,
            "value": value,
            "nonce": self.web3.eth.get_transaction_count(address),
            "chainId": self.chain_id,
        }
        if self.gas_price_gwei:
            tx_params["gasPrice"] = self.web3.to_wei(self.gas_price_gwei, "gwei")

        # gas is estimated by build_transaction
        tx = fn.build_transaction(tx_params)
        signed = self.account.sign_transaction(tx)
        return self.web3.eth.send_raw_transaction(signed.raw_transaction)

    def _translate(self, fn: ContractFunction, exc: ContractLogicError) -> ContractError:
        reason = revert_reason(exc)
        err_type = error_for_revert(reason)
        return err_type(f"{fn.fn_name} reverted: {reason}")
