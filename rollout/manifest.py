"""
On-disk state of a rollout.

Two JSON manifests live side by side in a manifest directory:

* ``.data.json`` - an object mapping unit names to unit records (what to
  deploy, and what has been deployed, upgraded and verified so far).
* ``.setup.json`` - an array of post-deploy call directives.

Either may be qualified with a chain id (``.data.<chainId>.json``), in which
case the qualified file wins. Records are kept as the raw JSON dictionaries so
that keys this package does not know about survive a load/write cycle.
"""

import json
import typing
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ape.logging import logger

from rollout.errors import ManifestConfigError, ManifestParseError
from rollout.placeholders import MatchPolicy, referenced_units, resolve_args
from rollout.utils import _load_json, _write_json

UnitName = str


def _read_manifest(filepath: Path, expected_type: type) -> Any:
    """Reads a manifest, returning an empty one if the file does not exist."""
    if not filepath.exists():
        logger.info(f"No manifest at {filepath}; starting from scratch.")
        return expected_type()
    try:
        data = _load_json(filepath)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(filepath, e) from e
    if not isinstance(data, expected_type):
        raise ManifestParseError(
            filepath, TypeError(f"expected a JSON {expected_type.__name__} at the top level")
        )
    return data


class Unit:
    """A named deployable entry of the units manifest."""

    def __init__(self, name: UnitName, data: Dict[str, Any]):
        self.name = name
        self.data = data

    def __repr__(self) -> str:
        return f"Unit({self.name}, address={self.address or None})"

    @property
    def contract_name(self) -> str:
        return self.data.get("contractName", self.name)

    @property
    def only_deploy(self) -> bool:
        return bool(self.data.get("onlyDeploy", False))

    @property
    def constructor_args(self) -> Optional[List[Any]]:
        return self.data.get("constructorArgs")

    @constructor_args.setter
    def constructor_args(self, value: Optional[List[Any]]) -> None:
        if value is not None:
            self.data["constructorArgs"] = value

    @property
    def upgrade_args(self) -> Optional[List[Any]]:
        return self.data.get("upgradeArgs")

    @upgrade_args.setter
    def upgrade_args(self, value: Optional[List[Any]]) -> None:
        if value is not None:
            self.data["upgradeArgs"] = value

    @property
    def deploy_args(self) -> List[Any]:
        """Constructor args for a plain create, initializer args for a proxy create."""
        args = self.constructor_args if self.only_deploy else self.upgrade_args
        return list(args or [])

    @property
    def address(self) -> str:
        return self.data.get("address") or ""

    @property
    def upgraded_address(self) -> str:
        return self.data.get("upgradedAddress") or ""

    @property
    def deployed(self) -> bool:
        return bool(self.data.get("deployed", False))

    @property
    def upgraded(self) -> bool:
        return bool(self.data.get("upgraded", False))

    @property
    def verified(self) -> bool:
        return bool(self.data.get("verified", False))

    def mark_deployed(
        self, address: str, implementation: Optional[str] = None, track_upgrades: bool = False
    ) -> None:
        self.data["address"] = address
        self.data["deployed"] = True
        if track_upgrades:
            self.data["upgraded"] = True
        if implementation:
            self.data["upgradedAddress"] = implementation
        self.data["verified"] = False

    def mark_upgraded(self, implementation: Optional[str] = None) -> None:
        self.data["deployed"] = True
        self.data["upgraded"] = True
        if implementation:
            self.data["upgradedAddress"] = implementation
        self.data["verified"] = False

    def mark_verified(self) -> None:
        self.data["verified"] = True


class UnitManifest:
    """The units manifest: unit name -> unit record, in declaration order."""

    def __init__(self, filepath: Path, units: typing.OrderedDict[UnitName, Unit]):
        self.filepath = Path(filepath)
        self.units = units

    @classmethod
    def from_file(cls, filepath: Path) -> "UnitManifest":
        filepath = Path(filepath)
        data = _read_manifest(filepath, dict)
        units = OrderedDict()
        for name, record in data.items():
            if not isinstance(record, dict):
                raise ManifestConfigError(f"Malformed manifest entry for unit '{name}'.")
            units[name] = Unit(name=name, data=record)
        return cls(filepath=filepath, units=units)

    def __iter__(self) -> Iterator[Unit]:
        return iter(list(self.units.values()))

    def __len__(self) -> int:
        return len(self.units)

    def __contains__(self, name: UnitName) -> bool:
        return name in self.units

    def __getitem__(self, name: UnitName) -> Unit:
        return self.units[name]

    def known_addresses(self) -> typing.OrderedDict[UnitName, str]:
        return OrderedDict((unit.name, unit.address) for unit in self if unit.address)

    def resolve(self, name: UnitName, address: str) -> None:
        """Substitutes `address` for every whole-slot reference to `name`."""
        for unit in self:
            unit.constructor_args = resolve_args(
                unit.constructor_args, name, address, MatchPolicy.EXACT
            )
            unit.upgrade_args = resolve_args(unit.upgrade_args, name, address, MatchPolicy.EXACT)

    def resolve_known_addresses(self) -> None:
        for name, address in self.known_addresses().items():
            self.resolve(name, address)

    def validate(self) -> None:
        """Checks the manifest invariants and that every reference names a unit."""
        for unit in self:
            if unit.deployed and not unit.address:
                raise ManifestConfigError(f"{unit.name} is marked deployed but has no address.")
            if unit.upgraded and not unit.deployed:
                raise ManifestConfigError(f"{unit.name} is marked upgraded but not deployed.")
            if unit.address and not unit.deployed:
                logger.warning(f"{unit.name} has address {unit.address} but is not deployed.")
            for args in (unit.constructor_args, unit.upgrade_args):
                for target in referenced_units(args):
                    if target not in self:
                        raise ManifestConfigError(
                            f"{unit.name} references unknown unit '{target}'."
                        )

    def to_dict(self) -> typing.OrderedDict[UnitName, Dict[str, Any]]:
        return OrderedDict((name, unit.data) for name, unit in self.units.items())

    def write(self) -> Path:
        filepath = _write_json(self.to_dict(), self.filepath)
        logger.info(f"Manifest written to {filepath}")
        return filepath


class CallDirective:
    """A method invocation to perform once the units are deployed."""

    def __init__(self, index: int, data: Dict[str, Any]):
        self.index = index
        self.data = data

    def __repr__(self) -> str:
        return f"CallDirective({self.label}, called={self.called})"

    @property
    def name(self) -> str:
        return self.data.get("name") or ""

    @property
    def contract_name(self) -> str:
        return self.data.get("contractName", self.name)

    @property
    def function_name(self) -> str:
        return self.data.get("functionName") or ""

    @property
    def label(self) -> str:
        return f"{self.name}.{self.function_name}"

    @property
    def contract_addr(self) -> str:
        return self.data.get("contractAddr") or ""

    @contract_addr.setter
    def contract_addr(self, value: str) -> None:
        self.data["contractAddr"] = value

    @property
    def args(self) -> List[Any]:
        return self.data.get("args") or []

    @args.setter
    def args(self, value: List[Any]) -> None:
        self.data["args"] = value

    @property
    def call(self) -> bool:
        return bool(self.data.get("call", False))

    @property
    def called(self) -> bool:
        return bool(self.data.get("called", False))

    @property
    def repeat(self) -> bool:
        return bool(self.data.get("repeat", False))

    @property
    def eligible(self) -> bool:
        """Whether this directive should be invoked in the current sweep."""
        pending = not self.called or self.repeat
        return self.call and pending and bool(self.contract_addr) and bool(self.name)


class CallManifest:
    """The call manifest: an ordered list of call directives."""

    def __init__(self, filepath: Path, directives: List[CallDirective]):
        self.filepath = Path(filepath)
        self.directives = directives

    @classmethod
    def from_file(cls, filepath: Path) -> "CallManifest":
        filepath = Path(filepath)
        data = _read_manifest(filepath, list)
        directives = list()
        for index, record in enumerate(data):
            if not isinstance(record, dict):
                raise ManifestConfigError(f"Malformed call directive at position {index}.")
            directives.append(CallDirective(index=index, data=record))
        return cls(filepath=filepath, directives=directives)

    def __iter__(self) -> Iterator[CallDirective]:
        return iter(self.directives)

    def __len__(self) -> int:
        return len(self.directives)

    def __getitem__(self, index: int) -> CallDirective:
        return self.directives[index]

    def commit(self, directive: CallDirective) -> None:
        """Marks `directive` as called and persists the manifest right away."""
        directive.data["called"] = True
        _write_json(self.to_list(), self.filepath)

    def to_list(self) -> List[Dict[str, Any]]:
        return [directive.data for directive in self.directives]

    def write(self) -> Path:
        filepath = _write_json(self.to_list(), self.filepath)
        logger.info(f"Call manifest written to {filepath}")
        return filepath
