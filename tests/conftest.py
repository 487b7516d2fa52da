import copy
import json

import pytest

from rollout.chain import ChainClient, ProxyDeployment
from rollout.config import ConfirmationPolicy

CHAIN_ID = 97
NO_WAIT = ConfirmationPolicy(poll_interval=0, settle_delay=0, timeout=None)


# Utility functions
def write_json(filepath, data):
    with open(filepath, "w") as file:
        json.dump(data, file, indent=2)


def read_json(filepath):
    with open(filepath, "r") as file:
        return json.load(file)


def unit_record(**fields):
    record = {"address": "", "deployed": False, "verified": False}
    record.update(fields)
    return record


class FakeChainClient(ChainClient):
    """
    In-memory stand-in for a chain: hands out sequential addresses and
    records every operation. `failures` maps (kind, name) to the exception
    to raise, where kind is one of deploy/upgrade/call/verify.
    """

    def __init__(self, chain_id=CHAIN_ID):
        self._chain_id = chain_id
        self._nonce = 0
        self.deployments = list()
        self.proxies = list()
        self.upgrades = list()
        self.transactions = list()
        self.verifications = list()
        self.receipts = dict()
        self.failures = dict()
        self.pending_polls = 0
        self.receipt_polls = 0

    @property
    def chain_id(self):
        return self._chain_id

    def _next_address(self):
        self._nonce += 1
        return "0x" + f"{self._nonce:040x}"

    def _maybe_fail(self, kind, name):
        error = self.failures.get((kind, name))
        if error is not None:
            raise error

    def deploy(self, contract_name, args):
        self._maybe_fail("deploy", contract_name)
        address = self._next_address()
        self.deployments.append((contract_name, list(args), address))
        return address

    def deploy_proxy(self, contract_name, init_args):
        self._maybe_fail("deploy", contract_name)
        implementation = self._next_address()
        address = self._next_address()
        self.proxies.append((contract_name, list(init_args), address, implementation))
        return ProxyDeployment(address=address, implementation=implementation)

    def upgrade_proxy(self, proxy_address, contract_name):
        self._maybe_fail("upgrade", contract_name)
        implementation = self._next_address()
        self.upgrades.append((contract_name, proxy_address, implementation))
        return implementation

    def transact(self, contract_name, address, function_name, args):
        self._maybe_fail("call", f"{contract_name}.{function_name}")
        tx_hash = "0x" + f"{len(self.transactions) + 1:064x}"
        self.transactions.append((contract_name, address, function_name, copy.deepcopy(args)))
        self.receipts[tx_hash] = {"transactionHash": tx_hash, "status": 1}
        return tx_hash

    def get_receipt(self, tx_hash):
        self.receipt_polls += 1
        if self.pending_polls:
            self.pending_polls -= 1
            return None
        return self.receipts.get(tx_hash)

    def verify(self, address, constructor_args):
        self._maybe_fail("verify", address)
        self.verifications.append((address, list(constructor_args)))


# Fixtures
@pytest.fixture
def client():
    return FakeChainClient()


@pytest.fixture
def manifest_dir(tmp_path):
    return tmp_path


@pytest.fixture
def units_filepath(manifest_dir):
    return manifest_dir / ".data.json"


@pytest.fixture
def calls_filepath(manifest_dir):
    return manifest_dir / ".setup.json"
