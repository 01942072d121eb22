"""Inheritance graph construction and implementation resolution across a workspace."""

import networkx as nx
from typing import Dict, List, Set, Optional, Any

from solgraph.core.models import (
    ContractKind,
    ContractRecord,
    ImplementationResult,
    UsingDirective,
)

WILDCARD = "*"


class InheritanceResolver:
    """Maps interface and library method references to concrete implementations.

    One instance belongs to one analysis session. ``build_graph`` replaces
    every index wholesale; the maps are not valid while a build is running,
    so an instance must not be shared across concurrent builds.
    """

    def __init__(self, logger=None):
        """Initialize inheritance resolver.

        Args:
            logger: Logger instance
        """
        self.logger = logger
        self.inheritance_graph = nx.DiGraph()
        self.contracts: Dict[str, ContractRecord] = {}
        self.inheritance_chains: Dict[str, List[str]] = {}
        self.type_to_libraries: Dict[str, List[str]] = {}
        self.contract_directives: Dict[str, List[UsingDirective]] = {}

    def build_graph(self, workspace: Dict[str, List[ContractRecord]]) -> nx.DiGraph:
        """Build the inheritance graph from a workspace snapshot.

        Args:
            workspace: Mapping of file path to the contracts declared in it

        Returns:
            NetworkX directed graph with derived -> base edges
        """
        contracts: Dict[str, ContractRecord] = {}
        type_to_libraries: Dict[str, List[str]] = {}
        contract_directives: Dict[str, List[UsingDirective]] = {}

        for file_path, records in workspace.items():
            for contract in records:
                previous = contracts.get(contract.name)
                if previous is not None and self.logger:
                    self.logger.log(
                        f"Duplicate type name {contract.name}: {contract.file_path or file_path} "
                        f"shadows {previous.file_path}",
                        level="WARNING"
                    )
                contracts[contract.name] = contract

                if contract.using_directives:
                    contract_directives[contract.name] = list(contract.using_directives)
                    for directive in contract.using_directives:
                        libraries = type_to_libraries.setdefault(directive.for_type, [])
                        if directive.library_name not in libraries:
                            libraries.append(directive.library_name)

        graph = nx.DiGraph()
        for name, contract in contracts.items():
            graph.add_node(name, kind=contract.kind.value)
        for name, contract in contracts.items():
            for base_name in contract.base_contracts:
                graph.add_edge(name, base_name)

        self.contracts = contracts
        self.type_to_libraries = type_to_libraries
        self.contract_directives = contract_directives
        self.inheritance_graph = graph
        self.inheritance_chains = {name: self._compute_chain(name, set()) for name in contracts}

        if self.logger:
            self.logger.log(
                f"Built inheritance graph with {graph.number_of_nodes()} types "
                f"and {graph.number_of_edges()} base edges",
                level="DEBUG"
            )

        return graph

    def _compute_chain(self, name: str, path: Set[str]) -> List[str]:
        """Depth-first linearization in declaration order (not a full C3 merge)."""
        if name in path:
            return []
        path = path | {name}

        chain = [name]
        contract = self.contracts.get(name)
        if contract:
            for base_name in contract.base_contracts:
                for ancestor in self._compute_chain(base_name, path):
                    if ancestor not in chain:
                        chain.append(ancestor)
        return chain

    def get_inheritance_chain(self, name: str) -> List[str]:
        """Get the linearized chain of a type, most-derived first."""
        return list(self.inheritance_chains.get(name, [name]))

    def get_implementing_types(self, name: str) -> List[str]:
        """Get all types that directly or indirectly inherit from ``name``."""
        if name not in self.inheritance_graph:
            return []

        result: List[str] = []
        seen = {name}
        queue = [name]
        while queue:
            current = queue.pop(0)
            for inheritor in self.inheritance_graph.predecessors(current):
                if inheritor not in seen:
                    seen.add(inheritor)
                    result.append(inheritor)
                    queue.append(inheritor)
        return result

    def find_implementations(self, interface_name: str, method_name: str) -> List[ImplementationResult]:
        """Find implementations of a method declared by an interface or base contract.

        Args:
            interface_name: The interface or contract name (e.g. "IERC20")
            method_name: The method name (e.g. "transfer")

        Returns:
            One result per concrete implementer, most-derived match first
        """
        implementations = []

        for contract_name in self.get_implementing_types(interface_name):
            contract = self.contracts.get(contract_name)
            if not contract or contract.is_interface:
                continue

            impl = self._find_method_in_chain(contract_name, method_name)
            if impl:
                implementations.append(impl)

        return implementations

    def _find_method_in_chain(self, contract_name: str, method_name: str) -> Optional[ImplementationResult]:
        chain = self.get_inheritance_chain(contract_name)

        for name in chain:
            contract = self.contracts.get(name)
            if not contract or contract.is_interface:
                continue

            func = contract.find_implementation(method_name)
            if func:
                return ImplementationResult(
                    contract_name=name,
                    contract_kind=contract.kind,
                    function=func,
                    file_path=contract.file_path,
                    is_inherited=name != contract_name,
                    inheritance_chain=chain
                )

        return None

    def find_types_with_method(self, method_name: str, param_count: Optional[int] = None) -> List[ImplementationResult]:
        """Find every non-interface type implementing a method, regardless of relationship.

        Args:
            method_name: The method name
            param_count: Only keep functions with exactly this many parameters

        Returns:
            List of implementations
        """
        implementations = []

        for name, contract in self.contracts.items():
            if contract.is_interface:
                continue

            for func in contract.functions:
                if func.name != method_name or not func.has_body:
                    continue
                if param_count is not None and len(func.parameters) != param_count:
                    continue
                implementations.append(ImplementationResult(
                    contract_name=name,
                    contract_kind=contract.kind,
                    function=func,
                    file_path=contract.file_path,
                    is_inherited=False,
                    inheritance_chain=self.get_inheritance_chain(name)
                ))

        return implementations

    def find_library_methods(self, type_name: str, method_name: str,
                             context_type: Optional[str] = None) -> List[ImplementationResult]:
        """Find library functions attached to a type through using-directives.

        Handles the ``using SafeERC20 for IERC20`` pattern.

        Args:
            type_name: The type being extended (e.g. "IERC20")
            method_name: The method name (e.g. "safeApprove")
            context_type: Type in which the call is made, for its own directives

        Returns:
            List of library implementations
        """
        candidates: List[str] = []

        if context_type:
            for directive in self.contract_directives.get(context_type, []):
                if directive.applies_to(type_name) and directive.library_name not in candidates:
                    candidates.append(directive.library_name)

        for library_name in self.type_to_libraries.get(type_name, []):
            if library_name not in candidates:
                candidates.append(library_name)

        for library_name in self.type_to_libraries.get(WILDCARD, []):
            if library_name not in candidates:
                candidates.append(library_name)

        implementations = []
        for library_name in candidates:
            library = self.contracts.get(library_name)
            if not library or library.kind != ContractKind.LIBRARY:
                continue

            func = library.find_implementation(method_name)
            if func:
                implementations.append(ImplementationResult(
                    contract_name=library_name,
                    contract_kind=ContractKind.LIBRARY,
                    function=func,
                    file_path=library.file_path,
                    is_inherited=False,
                    inheritance_chain=[library_name]
                ))

        return implementations

    def find_all_implementations(self, interface_name: str, method_name: str,
                                 context_type: Optional[str] = None) -> List[ImplementationResult]:
        """Find library extension methods and interface implementations for a call.

        Falls back to a workspace-wide search by method name only when both
        targeted lookups come back empty. Several results are a normal outcome;
        picking one is left to the caller.
        """
        implementations = []
        implementations.extend(self.find_library_methods(interface_name, method_name, context_type))
        implementations.extend(self.find_implementations(interface_name, method_name))

        if not implementations:
            implementations.extend(self.find_types_with_method(method_name))

        return implementations

    def get_libraries_for_type(self, type_name: str) -> List[str]:
        return list(self.type_to_libraries.get(type_name, []))

    def has_type(self, name: str) -> bool:
        return name in self.contracts

    def get_type(self, name: str) -> Optional[ContractRecord]:
        return self.contracts.get(name)

    def get_interface_definition(self, name: str) -> Optional[ContractRecord]:
        contract = self.contracts.get(name)
        if contract and contract.is_interface:
            return contract
        return None

    def get_all_interfaces(self) -> List[ContractRecord]:
        return [c for c in self.contracts.values() if c.is_interface]

    def get_all_concrete_types(self) -> List[ContractRecord]:
        return [c for c in self.contracts.values() if not c.is_interface]

    def get_all_libraries(self) -> List[ContractRecord]:
        return [c for c in self.contracts.values() if c.kind == ContractKind.LIBRARY]

    def get_graph_metrics(self) -> Dict[str, Any]:
        """Get metrics about the inheritance graph.

        Returns:
            Dictionary with node/edge counts, root and leaf types, and cycles
        """
        graph = self.inheritance_graph
        return {
            'num_types': graph.number_of_nodes(),
            'num_edges': graph.number_of_edges(),
            # Roots have no bases; leaves are inherited by nobody
            'roots': [n for n in graph.nodes() if graph.out_degree(n) == 0],
            'leaves': [n for n in graph.nodes() if graph.in_degree(n) == 0],
            'unresolved_bases': [n for n in graph.nodes() if n not in self.contracts],
            'cycles': [list(cycle) for cycle in nx.simple_cycles(graph)],
        }

    def debug_dump(self) -> None:
        """Log the resolver indices at DEBUG level."""
        if not self.logger:
            return

        for name, contract in self.contracts.items():
            self.logger.log(
                f"{name} ({contract.kind.value}): inherits [{', '.join(contract.base_contracts)}]",
                level="DEBUG"
            )
        for name in self.inheritance_graph.nodes():
            inheritors = list(self.inheritance_graph.predecessors(name))
            if inheritors:
                self.logger.log(f"{name}: inherited by [{', '.join(inheritors)}]", level="DEBUG")
        for name, chain in self.inheritance_chains.items():
            self.logger.log(f"{name}: {' -> '.join(chain)}", level="DEBUG")
        for type_name, libraries in self.type_to_libraries.items():
            self.logger.log(f"{type_name}: [{', '.join(libraries)}]", level="DEBUG")
