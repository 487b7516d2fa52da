import os
import re
import typing
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from ape import chain, networks, project
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractTransactionHandler
from ape.logging import logger
from ape.utils import EMPTY_BYTES32
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from ethpm_types import MethodABI
from web3.auto import w3
from web3.exceptions import TransactionNotFound

from rollout.confirm import _confirm_action, _continue
from rollout.constants import (
    EIP1967_ADMIN_SLOT,
    INITIALIZER_METHOD,
    OZ_DEPENDENCY_NAME,
    OZ_DEPENDENCY_VERSION,
)
from rollout.networks import is_local_network


class ProxyDeployment(typing.NamedTuple):
    """Addresses produced by an upgradeable-proxy create."""

    address: ChecksumAddress
    implementation: ChecksumAddress


class ChainClient(ABC):
    """The operations the rollout engines need from a blockchain backend."""

    @property
    @abstractmethod
    def chain_id(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def deploy(self, contract_name: str, args: List[Any]) -> ChecksumAddress:
        """Creates a plain contract and waits for it to be mined."""
        raise NotImplementedError

    @abstractmethod
    def deploy_proxy(self, contract_name: str, init_args: List[Any]) -> ProxyDeployment:
        """Creates an implementation behind a new proxy, initialized with `init_args`."""
        raise NotImplementedError

    @abstractmethod
    def upgrade_proxy(self, proxy_address: str, contract_name: str) -> ChecksumAddress:
        """Swaps the implementation behind `proxy_address`; returns the new implementation."""
        raise NotImplementedError

    @abstractmethod
    def transact(
        self, contract_name: str, address: str, function_name: str, args: List[Any]
    ) -> str:
        """Submits a method call and returns its transaction hash."""
        raise NotImplementedError

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> Optional[Any]:
        """Returns the receipt of `tx_hash`, or None while it is pending."""
        raise NotImplementedError

    @abstractmethod
    def verify(self, address: str, constructor_args: List[Any]) -> None:
        """Publishes the source of the contract at `address` to the block explorer."""
        raise NotImplementedError


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def oz_dependency():
    return project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]


_DECIMAL_RE = re.compile(r"-?[0-9]+")


def _coerce_abi_value(abi_type: str, value: Any) -> Any:
    """Converts decimal strings to int for (u)int inputs, including array elements."""
    if abi_type.endswith("]") and isinstance(value, list):
        item_type = abi_type[: abi_type.rindex("[")]
        return [_coerce_abi_value(item_type, item) for item in value]
    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        if _DECIMAL_RE.fullmatch(value):
            return int(value)
    return value


def _match_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Tuple[List[Any], typing.Dict[str, Any]]:
    """
    Finds the ABI matching the transaction arguments and returns the
    arguments converted for encoding, along with their names.
    """
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        coerced_args = list()
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            arg = _coerce_abi_value(abi_input.type, arg)
            if not w3.is_encodable(abi_input.type, arg):
                break
            coerced_args.append(arg)
            named_args[abi_input.name] = arg
        else:
            return coerced_args, named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    api_key = os.environ.get(explorer_envvar)
    if not api_key:
        raise ValueError(f"{explorer_envvar} is not set.")


class ApeChainClient(ChainClient):
    """
    ChainClient backed by the connected ape provider; every transaction is
    sent from a single account, optionally after interactive confirmation.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    @property
    def account(self) -> AccountAPI:
        return self._account

    @property
    def chain_id(self) -> int:
        return networks.provider.chain_id

    def deploy(self, contract_name: str, args: List[Any]) -> ChecksumAddress:
        container = get_contract_container(contract_name)
        if not self._autosign:
            _confirm_action("deploy", contract_name, args)
        instance = self._account.deploy(container, *args)
        return instance.address

    def deploy_proxy(self, contract_name: str, init_args: List[Any]) -> ProxyDeployment:
        implementation = self.deploy(contract_name, [])
        container = get_contract_container(contract_name)
        data = self._encode_initializer(container, implementation, init_args)

        proxy_container = oz_dependency().TransparentUpgradeableProxy
        logger.info(f"Deploying {proxy_container.contract_type.name} to proxy {contract_name}.")
        proxy_args = [implementation, self._account.address, data]
        if not self._autosign:
            _confirm_action("deploy", proxy_container.contract_type.name, proxy_args)
        proxy = self._account.deploy(proxy_container, *proxy_args)
        return ProxyDeployment(address=proxy.address, implementation=implementation)

    @staticmethod
    def _encode_initializer(
        container: ContractContainer, implementation: str, init_args: List[Any]
    ) -> bytes:
        initializer_abis = [
            abi for abi in container.contract_type.methods if abi.name == INITIALIZER_METHOD
        ]
        if not initializer_abis:
            if init_args:
                raise ValueError(
                    f"{container.contract_type.name} has no '{INITIALIZER_METHOD}' method "
                    f"for initializer arguments {init_args}"
                )
            return b""
        init_args, _ = _match_method_args(method_abis=initializer_abis, args=init_args)
        instance = container.at(implementation)
        method_handler = getattr(instance, INITIALIZER_METHOD)
        return method_handler.encode_input(*init_args)

    def upgrade_proxy(self, proxy_address: str, contract_name: str) -> ChecksumAddress:
        admin_slot = chain.provider.get_storage_at(address=proxy_address, slot=EIP1967_ADMIN_SLOT)
        if admin_slot == EMPTY_BYTES32:
            raise ValueError(
                f"Admin slot for contract at {proxy_address} is empty. "
                "Are you sure this is an EIP1967-compatible proxy?"
            )
        admin_address = to_checksum_address(admin_slot[-20:])
        proxy_admin = oz_dependency().ProxyAdmin.at(admin_address)

        implementation = self.deploy(contract_name, [])
        self._transact(proxy_admin.upgradeAndCall, proxy_address, implementation, b"")
        return implementation

    def transact(
        self, contract_name: str, address: str, function_name: str, args: List[Any]
    ) -> str:
        container = get_contract_container(contract_name)
        instance = container.at(address)
        method = getattr(instance, function_name)
        receipt = self._transact(method, *args)
        return receipt.txn_hash

    def _transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        args, named_args = _match_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"Transacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        logger.info(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account)

    def get_receipt(self, tx_hash: str) -> Optional[Any]:
        try:
            return chain.provider.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def verify(self, address: str, constructor_args: List[Any]) -> None:
        """
        Publishes the contract at `address` through the network's explorer plugin.
        ape-etherscan reads the ABI-encoded constructor arguments from the
        contract's creation transaction, so `constructor_args` are only logged.
        """
        logger.debug(f"Constructor arguments for {address}: {constructor_args}")
        explorer = networks.provider.network.explorer
        if explorer is None:
            raise ValueError(f"No explorer available for {networks.provider.network.name}.")
        explorer.publish_contract(address)
