"""Unit tests for the solgraph command line."""

import json

import pytest

from solgraph import __version__
from solgraph.cli.cli import create_parser, main, setup_logging
from solgraph.monitor import LogLevel


class TestParser:
    """Test cases for argument parsing."""

    def test_subcommand_arguments(self):
        args = create_parser().parse_args(["-f", "json", "impl", "snap", "IERC20", "transfer", "--context", "Vault"])

        assert args.command == "impl"
        assert args.format == "json"
        assert (args.interface, args.method, args.context) == ("IERC20", "transfer", "Vault")

    @pytest.mark.parametrize("flags,expected", [
        ([], LogLevel.INFO),
        (["-v"], LogLevel.DEBUG),
        (["-q"], LogLevel.OFF),
    ])
    def test_setup_logging(self, flags, expected):
        args = create_parser().parse_args(flags + ["chains", "snap"])

        assert setup_logging(args).level == expected

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])

        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestCommands:
    """Test cases for running subcommands against a snapshot directory."""

    def test_impl_text(self, snapshot_dir, capsys):
        assert main(["-q", "impl", str(snapshot_dir), "IVault", "withdraw"]) == 0

        out = capsys.readouterr().out
        assert "Vault.withdraw(uint256 amount)" in out
        assert "inherited" in out

    def test_impl_json(self, snapshot_dir, capsys):
        assert main(["-q", "-f", "json", "impl", str(snapshot_dir), "IERC20", "safeTransfer",
                     "--context", "Vault"]) == 0

        results = json.loads(capsys.readouterr().out)
        assert [r['contract_name'] for r in results] == ["SafeERC20"]
        assert results[0]['contract_kind'] == "library"

    def test_impl_empty_result_succeeds(self, snapshot_dir, capsys):
        assert main(["-q", "impl", str(snapshot_dir), "IVault", "nothing"]) == 0
        assert "No implementations" in capsys.readouterr().out

    def test_flow_json_with_trace(self, snapshot_dir, capsys):
        assert main(["-q", "-f", "json", "flow", str(snapshot_dir), "Vault", "withdraw", "--trace", "amount"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data['type'] == "Vault"
        assert [s['kind'] for s in data['graph']['sinks']] == ["state-write"]
        assert data['trace']['backward'] == ["amount"]
        assert {n['name'] for n in data['trace']['forward']} == {"balances", "amount"}
        assert data['reentrancy_patterns'] == []

    def test_flow_text(self, snapshot_dir, capsys):
        assert main(["-q", "flow", str(snapshot_dir), "ChildVault", "deposit"]) == 0

        out = capsys.readouterr().out
        assert "BaseVault.deposit" in out
        assert "totalAssets += amount" in out

    def test_chains_json(self, snapshot_dir, capsys):
        assert main(["-q", "-f", "json", "chains", str(snapshot_dir)]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data['chains']['ChildVault'] == ["ChildVault", "Vault", "BaseVault", "IVault"]
        assert data['libraries']['IERC20'] == ["SafeERC20"]
        assert data['metrics']['cycles'] == []

    def test_calls_text(self, snapshot_dir, capsys):
        assert main(["-q", "calls", str(snapshot_dir), "Vault", "harvest"]) == 0

        out = capsys.readouterr().out
        assert "line 41: IERC20.safeTransfer -> SafeERC20.safeTransfer" in out
        assert "line 42: IVault.withdraw -> Vault.withdraw" in out


class TestErrors:
    """Test cases for exit codes on bad input."""

    def test_unknown_type(self, snapshot_dir):
        assert main(["-q", "flow", str(snapshot_dir), "Nope", "withdraw"]) == 1

    def test_unknown_function(self, snapshot_dir):
        assert main(["-q", "calls", str(snapshot_dir), "Vault", "nope"]) == 1

    def test_missing_snapshot_path(self, tmp_path):
        assert main(["-q", "chains", str(tmp_path / "missing")]) == 1

    def test_errors_are_reported_on_stderr(self, tmp_path, capsys):
        assert main(["chains", str(tmp_path / "missing")]) == 1

        captured = capsys.readouterr()
        assert "Error:" in captured.err
        assert captured.out == ""

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()
