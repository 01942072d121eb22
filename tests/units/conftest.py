"""Shared test fixtures for resolver, data flow and call-site tests."""

import json

import pytest
from unittest.mock import Mock

from solgraph.core.models import (
    ContractKind,
    ContractRecord,
    FunctionRecord,
    ParameterRecord,
    SourceLocation,
    StateFieldRecord,
    UsingDirective,
)


def _make_function(name, body="", params=(), returns=(), start_line=1, signature=None, file_path="test.sol"):
    """Build a FunctionRecord whose full source is ``signature + " " + body``."""
    parameters = [ParameterRecord(name=n, type_name=t) for t, n in params]
    return_parameters = [ParameterRecord(name=n, type_name=t) for t, n in returns]
    if signature is None:
        signature = f"function {name}({', '.join(f'{t} {n}' for t, n in params)}) public"
    full_source = f"{signature} {body}" if body else f"{signature};"
    end_line = start_line + full_source.count("\n")
    return FunctionRecord(
        name=name,
        parameters=parameters,
        return_parameters=return_parameters,
        body=body,
        full_source=full_source,
        location=SourceLocation(start_line, 0, end_line, 1),
        file_path=file_path
    )


def _make_contract(name, kind=ContractKind.CONTRACT, bases=(), functions=(), fields=(),
                  directives=(), file_path="test.sol"):
    for func in functions:
        func.file_path = file_path
    return ContractRecord(
        name=name,
        kind=kind,
        base_contracts=list(bases),
        using_directives=[UsingDirective(library_name=lib, for_type=for_type) for lib, for_type in directives],
        functions=list(functions),
        state_variables=[StateFieldRecord(name=f, contract_name=name, file_path=file_path) for f in fields],
        file_path=file_path
    )


@pytest.fixture
def mock_logger():
    """Logger double recording ``log`` calls."""
    return Mock()


@pytest.fixture
def withdraw_function():
    """Vault withdraw with a fee, a state write, a transfer and an event."""
    body = """{
        uint256 fee = amount / 100;
        uint256 net = amount - fee;
        balances[msg.sender] -= amount;
        token.safeTransfer(to, net);
        emit Withdraw(msg.sender, net);
    }"""
    return _make_function(
        "withdraw",
        body=body,
        params=[("uint256", "amount"), ("address", "to")],
        start_line=10,
        signature="function withdraw(uint256 amount, address to) external"
    )


@pytest.fixture
def workspace():
    """A small DeFi-shaped workspace spread over several files."""
    ivault = _make_contract(
        "IVault", kind=ContractKind.INTERFACE, file_path="interfaces/IVault.sol",
        functions=[_make_function("withdraw", params=[("uint256", "amount")],
                                 signature="function withdraw(uint256 amount) external")])
    ierc20 = _make_contract(
        "IERC20", kind=ContractKind.INTERFACE, file_path="interfaces/IERC20.sol",
        functions=[_make_function("transfer", params=[("address", "to"), ("uint256", "amount")],
                                 signature="function transfer(address to, uint256 amount) external")])

    safe_erc20 = _make_contract(
        "SafeERC20", kind=ContractKind.LIBRARY, file_path="libraries/SafeERC20.sol",
        functions=[_make_function("safeTransfer",
                                 body="{ require(token.transfer(to, value)); }",
                                 params=[("IERC20", "token"), ("address", "to"), ("uint256", "value")])])
    lib_a = _make_contract(
        "LibA", kind=ContractKind.LIBRARY, file_path="libraries/LibA.sol",
        functions=[_make_function("helper", body="{ return x + 1; }", params=[("IFace", "x")])])
    math_lib = _make_contract(
        "MathLib", kind=ContractKind.LIBRARY, file_path="libraries/MathLib.sol",
        functions=[_make_function("scale", body="{ return x * 2; }", params=[("uint256", "x")])])

    base_vault = _make_contract(
        "BaseVault", kind=ContractKind.ABSTRACT, file_path="src/Vault.sol",
        fields=["totalAssets"],
        functions=[_make_function("deposit", body="{ totalAssets += amount; }", params=[("uint256", "amount")])])
    vault = _make_contract(
        "Vault", bases=["BaseVault", "IVault"], file_path="src/Vault.sol",
        fields=["balances", "token", "vault"],
        directives=[("SafeERC20", "IERC20")],
        functions=[
            _make_function("withdraw", body="{ balances[msg.sender] -= amount; }",
                          params=[("uint256", "amount")]),
            _make_function("harvest",
                          body="{\n        token.safeTransfer(msg.sender, amount);\n"
                               "        IVault(vault).withdraw(amount);\n    }",
                          params=[("IERC20", "token"), ("uint256", "amount")],
                          start_line=40,
                          signature="function harvest(IERC20 token, uint256 amount) external"),
        ])
    child_vault = _make_contract("ChildVault", bases=["Vault"], file_path="src/ChildVault.sol")
    token = _make_contract(
        "Token", bases=["IERC20"], file_path="src/Token.sol",
        functions=[_make_function("transfer", body="{ balanceOf[to] += amount; return true; }",
                                 params=[("address", "to"), ("uint256", "amount")])])
    registry = _make_contract(
        "Registry", file_path="src/Registry.sol",
        directives=[("LibA", "IFace"), ("MathLib", "*")],
        functions=[_make_function("sweep", body="{ owner = msg.sender; }")])

    return {
        "interfaces/IVault.sol": [ivault],
        "interfaces/IERC20.sol": [ierc20],
        "libraries/SafeERC20.sol": [safe_erc20],
        "libraries/LibA.sol": [lib_a],
        "libraries/MathLib.sol": [math_lib],
        "src/Vault.sol": [base_vault, vault],
        "src/ChildVault.sol": [child_vault],
        "src/Token.sol": [token],
        "src/Registry.sol": [registry],
    }


@pytest.fixture
def snapshot_dir(tmp_path, workspace):
    """The workspace written out as one JSON snapshot per source file."""
    for index, (file_path, contracts) in enumerate(workspace.items()):
        payload = {"file_path": file_path, "contracts": [c.to_dict() for c in contracts]}
        (tmp_path / f"snapshot_{index}.json").write_text(json.dumps(payload), encoding="utf-8")
    return tmp_path


@pytest.fixture
def make_function():
    """Factory for FunctionRecord instances."""
    return _make_function


@pytest.fixture
def make_contract():
    """Factory for ContractRecord instances."""
    return _make_contract
