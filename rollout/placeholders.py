"""
Address placeholders.

Manifest arguments refer to the address of another unit with a
``${<unit name>.address}`` token. Tokens are rewritten in place as soon as the
referenced unit has an address, so the persisted manifest always shows what was
actually sent on-chain.

Two matching policies exist. Constructor and initializer arguments use
``MatchPolicy.EXACT``: only a top-level slot equal to the whole token is
replaced. Call arguments use ``MatchPolicy.CONTAINS``: every leaf of an
arbitrarily nested list or mapping whose string value contains the token is
replaced by the address; mapping keys and non-string leaves are left alone.
"""

import re
import typing
from enum import Enum
from typing import Any, List, Optional

from rollout.constants import PLACEHOLDER_PATTERN, PLACEHOLDER_TEMPLATE

_PLACEHOLDER_RE = re.compile(PLACEHOLDER_PATTERN)


class MatchPolicy(Enum):
    EXACT = "exact"
    CONTAINS = "contains"


def placeholder(name: str) -> str:
    """Returns the placeholder token for the address of unit `name`."""
    return PLACEHOLDER_TEMPLATE.format(name=name)


def placeholder_target(value: Any) -> Optional[str]:
    """Returns the unit name if `value` is exactly one placeholder token."""
    if not isinstance(value, str):
        return None
    match = _PLACEHOLDER_RE.fullmatch(value)
    return match.group(1) if match else None


def _resolve_exact(args: List[Any], token: str, address: str) -> List[Any]:
    return [address if value == token else value for value in args]


def _resolve_contains(value: Any, token: str, address: str) -> Any:
    if isinstance(value, list):
        return [_resolve_contains(v, token, address) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_contains(v, token, address) for k, v in value.items()}
    if isinstance(value, str) and token in value:
        return address
    return value


def resolve_args(
    args: typing.Optional[List[Any]], name: str, address: str, policy: MatchPolicy
) -> typing.Optional[List[Any]]:
    """Rewrites the placeholders for unit `name` found in `args` with `address`."""
    if not args:
        return args
    token = placeholder(name)
    if policy is MatchPolicy.EXACT:
        return _resolve_exact(args, token, address)
    return [_resolve_contains(value, token, address) for value in args]


def _embedded_targets(value: Any) -> List[str]:
    if isinstance(value, list):
        names = list()
        for item in value:
            names.extend(_embedded_targets(item))
        return names
    if isinstance(value, dict):
        return _embedded_targets(list(value.values()))
    if isinstance(value, str):
        return _PLACEHOLDER_RE.findall(value)
    return []


def referenced_units(
    args: typing.Optional[List[Any]], policy: MatchPolicy = MatchPolicy.EXACT
) -> List[str]:
    """
    Returns the names of the units still referenced by `args`, in order of appearance.
    Only tokens the given policy is able to resolve are reported.
    """
    if not args:
        return []
    if policy is MatchPolicy.EXACT:
        names = [placeholder_target(value) for value in args]
    else:
        names = _embedded_targets(args)
    return list(dict.fromkeys(name for name in names if name))
