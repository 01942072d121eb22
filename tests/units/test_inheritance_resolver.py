"""Unit tests for inheritance graph construction and implementation lookup."""

import pytest

from solgraph.core.inheritance_resolver import InheritanceResolver
from solgraph.core.models import ContractKind


class TestBuildGraph:
    """Test cases for building the resolver indices."""

    def setup_method(self):
        self.resolver = InheritanceResolver()

    def test_chain_starts_with_type_itself(self, workspace):
        self.resolver.build_graph(workspace)

        for name in self.resolver.contracts:
            chain = self.resolver.get_inheritance_chain(name)
            assert chain[0] == name
            assert chain.count(name) == 1

    def test_chain_is_depth_first_in_declaration_order(self, workspace):
        self.resolver.build_graph(workspace)

        assert self.resolver.get_inheritance_chain("Vault") == ["Vault", "BaseVault", "IVault"]
        assert self.resolver.get_inheritance_chain("ChildVault") == ["ChildVault", "Vault", "BaseVault", "IVault"]

    def test_diamond_bases_appear_once(self, make_contract):
        workspace = {"a.sol": [
            make_contract("Root"),
            make_contract("Left", bases=["Root"]),
            make_contract("Right", bases=["Root"]),
            make_contract("Leaf", bases=["Left", "Right"]),
        ]}
        self.resolver.build_graph(workspace)

        assert self.resolver.get_inheritance_chain("Leaf") == ["Leaf", "Left", "Root", "Right"]

    def test_cyclic_declarations_terminate(self, make_contract):
        workspace = {"cycle.sol": [
            make_contract("A", bases=["B"]),
            make_contract("B", bases=["A"]),
        ]}
        self.resolver.build_graph(workspace)

        assert self.resolver.get_inheritance_chain("A") == ["A", "B"]
        assert self.resolver.get_inheritance_chain("B") == ["B", "A"]
        assert self.resolver.get_graph_metrics()['cycles']

    def test_unknown_base_is_kept_in_chain(self, make_contract):
        self.resolver.build_graph({"a.sol": [make_contract("A", bases=["Ownable"])]})

        assert self.resolver.get_inheritance_chain("A") == ["A", "Ownable"]
        assert "Ownable" in self.resolver.get_graph_metrics()['unresolved_bases']

    def test_duplicate_names_last_seen_wins(self, mock_logger, make_contract):
        resolver = InheritanceResolver(logger=mock_logger)
        first = make_contract("Token", file_path="a.sol")
        second = make_contract("Token", file_path="b.sol", bases=["IERC20"])

        resolver.build_graph({"a.sol": [first], "b.sol": [second]})

        assert resolver.get_type("Token") is second
        levels = [call.kwargs.get('level') for call in mock_logger.log.call_args_list]
        assert "WARNING" in levels

    def test_library_map_is_deduplicated(self, make_contract):
        workspace = {"a.sol": [
            make_contract("A", directives=[("SafeERC20", "IERC20")]),
            make_contract("B", directives=[("SafeERC20", "IERC20"), ("Extra", "IERC20")]),
        ]}
        self.resolver.build_graph(workspace)

        assert self.resolver.get_libraries_for_type("IERC20") == ["SafeERC20", "Extra"]

    def test_rebuild_replaces_indices(self, workspace, make_contract):
        self.resolver.build_graph(workspace)
        self.resolver.build_graph({"only.sol": [make_contract("Solo")]})

        assert list(self.resolver.contracts) == ["Solo"]
        assert self.resolver.type_to_libraries == {}
        assert self.resolver.contract_directives == {}
        assert self.resolver.inheritance_graph.number_of_nodes() == 1


class TestFindImplementations:
    """Test cases for interface and library implementation lookup."""

    def setup_method(self):
        self.resolver = InheritanceResolver()

    def test_single_direct_implementation(self, make_contract, make_function):
        workspace = {"vault.sol": [
            make_contract("IVault", kind=ContractKind.INTERFACE,
                          functions=[make_function("withdraw", params=[("uint256", "amount")])]),
            make_contract("TypeX", bases=["IVault"],
                          functions=[make_function("withdraw", body="{ total -= amount; }",
                                                   params=[("uint256", "amount")])]),
        ]}
        self.resolver.build_graph(workspace)

        results = self.resolver.find_implementations("IVault", "withdraw")

        assert len(results) == 1
        assert results[0].contract_name == "TypeX"
        assert results[0].is_inherited is False

    def test_inherited_implementation(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_implementations("IVault", "withdraw")
        by_implementer = {r.inheritance_chain[0]: r for r in results}

        assert set(by_implementer) == {"Vault", "ChildVault"}
        assert by_implementer["ChildVault"].contract_name == "Vault"
        assert by_implementer["ChildVault"].is_inherited is True

    def test_implementation_found_on_abstract_base(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_implementations("BaseVault", "deposit")

        assert {r.contract_name for r in results} == {"BaseVault"}
        assert all(r.is_inherited for r in results)

    def test_never_returns_interfaces_or_bodyless_functions(self, workspace):
        self.resolver.build_graph(workspace)

        for interface in ("IVault", "IERC20", "BaseVault"):
            for method in ("withdraw", "transfer", "deposit"):
                for result in self.resolver.find_implementations(interface, method):
                    assert result.contract_kind != ContractKind.INTERFACE
                    assert result.function.has_body

    def test_unknown_interface_returns_empty(self, workspace):
        self.resolver.build_graph(workspace)

        assert self.resolver.find_implementations("IMissing", "withdraw") == []
        assert self.resolver.get_implementing_types("IMissing") == []

    def test_implementing_types_are_transitive(self, workspace):
        self.resolver.build_graph(workspace)

        assert self.resolver.get_implementing_types("IVault") == ["Vault", "ChildVault"]
        assert self.resolver.get_implementing_types("BaseVault") == ["Vault", "ChildVault"]

    def test_library_method_through_context_directive(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_library_methods("IERC20", "safeTransfer", context_type="Vault")

        assert len(results) == 1
        assert results[0].contract_name == "SafeERC20"
        assert results[0].contract_kind == ContractKind.LIBRARY
        assert results[0].inheritance_chain == ["SafeERC20"]

    def test_global_directive_resolves_without_context(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_library_methods("IFace", "helper")

        assert [r.contract_name for r in results] == ["LibA"]

    def test_wildcard_directive_applies_to_any_type(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_library_methods("uint256", "scale")

        assert [r.contract_name for r in results] == ["MathLib"]

    def test_widening_context_never_loses_results(self, workspace):
        self.resolver.build_graph(workspace)

        for type_name, method in (("IERC20", "safeTransfer"), ("IFace", "helper"), ("IVault", "withdraw")):
            narrow = self.resolver.find_all_implementations(type_name, method)
            for context in ("Vault", "Registry"):
                wide = self.resolver.find_all_implementations(type_name, method, context_type=context)
                assert len(wide) >= len(narrow)

    def test_all_implementations_falls_back_to_method_name(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_all_implementations("IUnrelated", "sweep")

        assert [r.contract_name for r in results] == ["Registry"]

    def test_no_fallback_when_targeted_lookup_succeeds(self, workspace):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_all_implementations("IERC20", "transfer")

        assert [r.contract_name for r in results] == ["Token"]

    @pytest.mark.parametrize("param_count,expected", [(None, 1), (2, 1), (3, 0)])
    def test_types_with_method_parameter_filter(self, workspace, param_count, expected):
        self.resolver.build_graph(workspace)

        results = self.resolver.find_types_with_method("transfer", param_count)

        assert len(results) == expected


class TestQueries:
    """Test cases for index queries and metrics."""

    def setup_method(self):
        self.resolver = InheritanceResolver()

    def test_type_queries(self, workspace):
        self.resolver.build_graph(workspace)

        assert self.resolver.has_type("Vault")
        assert not self.resolver.has_type("Nope")
        assert self.resolver.get_interface_definition("IVault").name == "IVault"
        assert self.resolver.get_interface_definition("Vault") is None
        assert {c.name for c in self.resolver.get_all_interfaces()} == {"IVault", "IERC20"}
        assert {c.name for c in self.resolver.get_all_libraries()} == {"SafeERC20", "LibA", "MathLib"}
        assert "IVault" not in {c.name for c in self.resolver.get_all_concrete_types()}

    def test_graph_metrics(self, workspace):
        self.resolver.build_graph(workspace)

        metrics = self.resolver.get_graph_metrics()

        assert metrics['num_types'] == len(self.resolver.contracts)
        assert metrics['num_edges'] == 4
        assert "ChildVault" in metrics['leaves']
        assert "IVault" in metrics['roots']
        assert metrics['cycles'] == []

    def test_debug_dump_logs_at_debug(self, workspace, mock_logger):
        resolver = InheritanceResolver(logger=mock_logger)
        resolver.build_graph(workspace)
        mock_logger.reset_mock()

        resolver.debug_dump()

        assert mock_logger.log.called
        assert all(call.kwargs.get('level') == "DEBUG" for call in mock_logger.log.call_args_list)
