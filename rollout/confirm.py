from typing import Any, List

from ape.utils import ZERO_ADDRESS


def _abort() -> None:
    print("Aborting rollout!")
    exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    answer = input("Continue Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_zero_address() -> None:
    answer = input("Zero Address detected in arguments; Continue? Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_action(action: str, contract_name: str, args: List[Any]) -> None:
    """Asks the user to confirm a create/upgrade/call of `contract_name` with `args`."""
    if not args:
        print(f"\n(i) No arguments for {action} {contract_name}")
    else:
        print(f"\nArguments for {action} {contract_name}")
        for position, value in enumerate(args):
            print(f"\t[{position}]={value}")

    answer = input(f"{action.capitalize()} {contract_name} Y/N? ")
    if answer.lower().strip() == "n":
        _abort()
    if ZERO_ADDRESS in args:
        _confirm_zero_address()
