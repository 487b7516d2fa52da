import typing
from typing import List, Optional

from ape.logging import logger

from rollout.chain import ChainClient
from rollout.config import ConfirmationPolicy
from rollout.errors import CallInvocationError
from rollout.manifest import CallDirective, CallManifest, UnitManifest
from rollout.placeholders import MatchPolicy, resolve_args
from rollout.polling import wait_for_receipt


class SweepResult(typing.NamedTuple):
    called: List[str]
    error: Optional[CallInvocationError] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None


def resolve_call_directives(calls: CallManifest, units: UnitManifest) -> None:
    """
    Fills in each directive's target address (only when still empty) and
    substitutes unit addresses into its arguments at any depth of nesting.
    """
    for name, address in units.known_addresses().items():
        for directive in calls:
            if directive.name == name and not directive.contract_addr:
                directive.contract_addr = address
            if directive.args:
                directive.args = resolve_args(directive.args, name, address, MatchPolicy.CONTAINS)


class CallEngine:
    """
    Invokes the eligible call directives, in order, and waits for each to be
    confirmed. A directive is committed (marked called and written to disk)
    as soon as its transaction is confirmed; the first failure stops the
    sweep, so the next run resumes at that directive.
    """

    def __init__(
        self,
        client: ChainClient,
        calls: CallManifest,
        confirmation: Optional[ConfirmationPolicy] = None,
    ):
        self.client = client
        self.calls = calls
        self.confirmation = confirmation or ConfirmationPolicy()

    def run(self) -> SweepResult:
        called = list()
        for directive in self.calls:
            if not directive.eligible:
                if directive.call and directive.called:
                    logger.info(f"Call {directive.label} already done.")
                continue
            try:
                self._invoke(directive)
            except CallInvocationError as e:
                logger.error(f"{e}; stopping the sweep.")
                return SweepResult(called=called, error=e)
            self.calls.commit(directive)
            called.append(directive.label)

        logger.info(f"Call sweep done; {len(called)} call(s) made.")
        return SweepResult(called=called)

    def _invoke(self, directive: CallDirective) -> None:
        logger.info(f"Call {directive.label} at {directive.contract_addr} ...")
        try:
            tx_hash = self.client.transact(
                directive.contract_name,
                directive.contract_addr,
                directive.function_name,
                directive.args,
            )
            wait_for_receipt(self.client, tx_hash, self.confirmation)
        except Exception as e:
            raise CallInvocationError(directive.label, e) from e
        logger.success(f"Call {directive.label} txhash: {tx_hash}")
