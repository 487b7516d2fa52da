import pytest

from rollout.errors import ManifestConfigError, ManifestParseError
from rollout.manifest import CallManifest, UnitManifest
from rollout.utils import manifest_filepath
from tests.conftest import read_json, unit_record, write_json


def test_missing_manifest_is_empty(units_filepath, calls_filepath):
    assert len(UnitManifest.from_file(units_filepath)) == 0
    assert len(CallManifest.from_file(calls_filepath)) == 0


def test_invalid_json_is_fatal(units_filepath):
    units_filepath.write_text('{"GameToken": {"address": ""')
    with pytest.raises(ManifestParseError):
        UnitManifest.from_file(units_filepath)


def test_undecodable_bytes_are_fatal(units_filepath, calls_filepath):
    units_filepath.write_bytes(b'{"GameToken": {"address": "\xff"}}')
    with pytest.raises(ManifestParseError):
        UnitManifest.from_file(units_filepath)

    calls_filepath.write_bytes(b"\xfe\xff[]")
    with pytest.raises(ManifestParseError):
        CallManifest.from_file(calls_filepath)


def test_wrong_root_type_is_fatal(units_filepath, calls_filepath):
    write_json(units_filepath, [])
    with pytest.raises(ManifestParseError):
        UnitManifest.from_file(units_filepath)

    write_json(calls_filepath, {})
    with pytest.raises(ManifestParseError):
        CallManifest.from_file(calls_filepath)


def test_malformed_unit_entry(units_filepath):
    write_json(units_filepath, {"GameToken": "0x1234"})
    with pytest.raises(ManifestConfigError):
        UnitManifest.from_file(units_filepath)


def test_chain_qualified_manifest_is_preferred(manifest_dir):
    default_filepath = manifest_dir / ".data.json"
    assert manifest_filepath(manifest_dir, "data", 97) == default_filepath

    chain_filepath = manifest_dir / ".data.97.json"
    write_json(chain_filepath, {})
    assert manifest_filepath(manifest_dir, "data", 97) == chain_filepath
    assert manifest_filepath(manifest_dir, "data", 56) == default_filepath
    assert manifest_filepath(manifest_dir, "data") == default_filepath


def test_write_keeps_order_and_unknown_keys(units_filepath):
    data = {
        "GameToken": unit_record(upgradeArgs=[], note="treasury token"),
        "GameConfig": unit_record(upgradeArgs=[]),
    }
    write_json(units_filepath, data)

    manifest = UnitManifest.from_file(units_filepath)
    manifest["GameConfig"].mark_deployed("0x" + "1" * 40)
    manifest.write()

    written = read_json(units_filepath)
    assert list(written) == ["GameToken", "GameConfig"]
    assert written["GameToken"]["note"] == "treasury token"
    assert written["GameConfig"]["deployed"] is True
    assert not (units_filepath.parent / ".data.json.tmp").exists()
    assert units_filepath.read_text().startswith('{\n  "GameToken"')


def test_unit_defaults(units_filepath):
    write_json(units_filepath, {"GamePoolDay": {"contractName": "GamePool"}, "GameToken": {}})
    manifest = UnitManifest.from_file(units_filepath)

    pool = manifest["GamePoolDay"]
    assert pool.contract_name == "GamePool"
    assert not pool.only_deploy
    assert pool.address == ""
    assert pool.deploy_args == []
    assert manifest["GameToken"].contract_name == "GameToken"


def test_resolve_known_addresses(units_filepath):
    address = "0x" + "a" * 40
    data = {
        "TestToken": unit_record(address=address, deployed=True, onlyDeploy=True),
        "GameTicket": unit_record(upgradeArgs=["${TestToken.address}", "1000"]),
        "Farm": unit_record(onlyDeploy=True, constructorArgs=["${TestToken.address}"]),
    }
    write_json(units_filepath, data)

    manifest = UnitManifest.from_file(units_filepath)
    manifest.resolve_known_addresses()
    assert manifest["GameTicket"].upgrade_args == [address, "1000"]
    assert manifest["Farm"].constructor_args == [address]
    assert "constructorArgs" not in manifest["GameTicket"].data


def test_validate_unknown_reference(units_filepath):
    write_json(units_filepath, {"GameTicket": unit_record(upgradeArgs=["${TestTokn.address}"])})
    manifest = UnitManifest.from_file(units_filepath)
    with pytest.raises(ManifestConfigError, match="unknown unit 'TestTokn'"):
        manifest.validate()


@pytest.mark.parametrize(
    "record",
    [
        unit_record(deployed=True),
        unit_record(upgraded=True),
    ],
)
def test_validate_state_invariants(units_filepath, record):
    write_json(units_filepath, {"GameToken": record})
    manifest = UnitManifest.from_file(units_filepath)
    with pytest.raises(ManifestConfigError):
        manifest.validate()


def test_call_manifest_commit_persists_immediately(calls_filepath):
    directives = [
        {"name": "GameTicket", "contractAddr": "", "functionName": "setupConfig", "args": []},
        {"name": "GameTicket", "contractAddr": "", "functionName": "setRewardPool", "args": []},
    ]
    write_json(calls_filepath, directives)

    calls = CallManifest.from_file(calls_filepath)
    assert calls[0].label == "GameTicket.setupConfig"
    calls.commit(calls[0])

    written = read_json(calls_filepath)
    assert written[0]["called"] is True
    assert "called" not in written[1]
