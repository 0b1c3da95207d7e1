import json
import logging

import pytest
from click.testing import CliRunner
from eth_abi import decode as abi_decode

import hookminer.cli as cli_module
from conftest import MATCH, MISS, TOKEN, USER
from hookminer import encoding
from hookminer.cli import cli
from hookminer.launcher import MIGRATOR_TUPLE


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class FakeOracle:
    answer = MATCH
    error = None

    def __init__(self, rpc_url, factory):
        self.rpc_url = rpc_url
        self.factory = factory

    @classmethod
    def from_rpc_url(cls, rpc_url, factory):
        return cls(rpc_url, factory)

    async def block_number(self):
        return 777

    async def __call__(self, inner_salt, request):
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def fake_oracle(monkeypatch):
    monkeypatch.setattr(cli_module, "FactoryOracle", FakeOracle)
    FakeOracle.answer = MATCH
    FakeOracle.error = None
    return FakeOracle


def test_check_valid_and_invalid():
    runner = CliRunner()
    ok = runner.invoke(cli, ["check", "0xabcd" + "00" * 16 + "2000"])
    assert ok.exit_code == 0
    assert json.loads(ok.output)["valid"] is True

    bad = runner.invoke(cli, ["check", "0xabcd" + "00" * 16 + "0000"])
    assert bad.exit_code == 1


def test_check_rejects_bad_address():
    result = CliRunner().invoke(cli, ["check", "0x1234"])
    assert result.exit_code == 2


def test_inner_salt_matches_library():
    result = CliRunner().invoke(cli, ["inner-salt", "--user", USER, "--salt", "0x2a"])
    assert result.exit_code == 0
    out = json.loads(result.output)
    assert out["salt"] == "0x" + (42).to_bytes(32, "big").hex()
    assert out["inner_salt"] == "0x" + encoding.inner_salt(USER, 42).hex()

    decimal = CliRunner().invoke(cli, ["inner-salt", "--user", USER, "--salt", "42"])
    assert json.loads(decimal.output)["inner_salt"] == out["inner_salt"]


def test_config_data_with_explicit_block():
    result = CliRunner().invoke(cli, ["config-data", "--user", USER, "--block", "100"])
    assert result.exit_code == 0
    migrator, _ = abi_decode([MIGRATOR_TUPLE, "bytes"], bytes.fromhex(result.output.strip()[2:]))
    assert migrator[0] == 105 + 7200 + 100


def test_mine_found_json(fake_oracle):
    result = CliRunner().invoke(
        cli, ["--log-level", "CRITICAL", "mine", "--token", TOKEN, "--user", USER, "--json", "--max-attempts", "5"]
    )
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["status"] == "found"
    assert out["attempts_used"] == 1
    expected = encoding.outer_salt(encoding.base_num(TOKEN, USER), 0)
    assert out["salt"] == "0x" + expected.hex()
    assert out["inner_salt"] == "0x" + encoding.inner_salt(USER, expected).hex()


def test_mine_found_text(fake_oracle):
    result = CliRunner().invoke(
        cli, ["mine", "--token", TOKEN, "--user", USER, "--config-data", "0x01", "--max-attempts", "5"]
    )
    assert result.exit_code == 0, result.output
    assert "FOUND VALID SALT" in result.output
    assert "0x2000" in result.output


def test_mine_exhausted(fake_oracle):
    fake_oracle.answer = MISS
    result = CliRunner().invoke(cli, ["mine", "--token", TOKEN, "--user", USER, "--block", "1", "--max-attempts", "3"])
    assert result.exit_code == 1
    assert "No valid salt in 3 attempts" in result.output


def test_mine_reports_oracle_unavailable(fake_oracle):
    fake_oracle.error = ConnectionError("refused")
    result = CliRunner().invoke(
        cli, ["--log-level", "CRITICAL", "mine", "--token", TOKEN, "--user", USER, "--block", "1", "--max-attempts", "3", "--json"]
    )
    assert result.exit_code == 1
    out = json.loads(result.output)
    assert out["status"] == "exhausted"
    assert out["oracle_unavailable"] is True
    assert out["oracle_errors"] == 3


def test_mine_rejects_bad_limits(fake_oracle):
    result = CliRunner().invoke(cli, ["mine", "--token", TOKEN, "--user", USER, "--block", "1", "--max-attempts", "0"])
    assert result.exit_code == 1
    assert "max_attempts" in result.output


def test_mine_rejects_bad_mask(fake_oracle):
    result = CliRunner().invoke(
        cli, ["mine", "--token", TOKEN, "--user", USER, "--mask", "0xff", "--required-bits", "0x2000"]
    )
    assert result.exit_code == 2


def test_mine_failure_goes_through_click_error(fake_oracle):
    fake_oracle.answer = MISS
    result = CliRunner().invoke(
        cli, ["mine", "--token", TOKEN, "--user", USER, "--block", "1", "--max-attempts", "3"]
    )
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert isinstance(result.exception, SystemExit)
