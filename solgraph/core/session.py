"""Analysis session: one snapshot, one resolver, one analyzer."""

from typing import List, Optional, Tuple

from solgraph.core.inheritance_resolver import InheritanceResolver
from solgraph.core.models import ContractRecord, FunctionRecord, ImplementationResult
from solgraph.core.snapshot import SourceModelProvider
from solgraph.ir.call_sites import CallSiteResolver
from solgraph.ir.data_flow_graph import DataFlowAnalyzer
from solgraph.ir.models import CallSiteResolution, DataFlowGraph
from solgraph.utils import content_hash


class AnalysisSession:
    """Owns the resolver indices built from one provider's snapshots.

    Not safe to share across threads while ``refresh`` is running.
    """

    def __init__(self, provider: SourceModelProvider, logger=None):
        self.provider = provider
        self.logger = logger
        self.resolver = InheritanceResolver(logger=logger)
        self.analyzer = DataFlowAnalyzer(logger=logger)
        self.call_sites = CallSiteResolver(self.resolver, logger=logger)
        self.snapshot_hash: Optional[str] = None

    def refresh(self) -> bool:
        """Reload the snapshot and rebuild the resolver if its content changed.

        Returns:
            True when the resolver was rebuilt
        """
        workspace = self.provider.load_workspace()
        digest = content_hash({path: [c.to_dict() for c in contracts]
                               for path, contracts in workspace.items()})

        if digest == self.snapshot_hash:
            if self.logger:
                self.logger.log("Snapshot unchanged, keeping resolver", level="DEBUG")
            return False

        self.resolver.build_graph(workspace)
        self.snapshot_hash = digest
        return True

    def _ensure_built(self):
        if self.snapshot_hash is None:
            self.refresh()

    def find_all_implementations(self, interface_name: str, method_name: str,
                                 context_type: Optional[str] = None) -> List[ImplementationResult]:
        self._ensure_built()
        return self.resolver.find_all_implementations(interface_name, method_name, context_type)

    def find_library_methods(self, type_name: str, method_name: str,
                             context_type: Optional[str] = None) -> List[ImplementationResult]:
        self._ensure_built()
        return self.resolver.find_library_methods(type_name, method_name, context_type)

    def get_implementing_types(self, name: str) -> List[str]:
        self._ensure_built()
        return self.resolver.get_implementing_types(name)

    def locate_function(self, type_name: str,
                        function_name: str) -> Tuple[Optional[ContractRecord], Optional[FunctionRecord]]:
        """Find the type along ``type_name``'s chain that declares ``function_name``.

        Implemented functions are preferred over bodyless declarations.
        """
        self._ensure_built()
        chain = [self.resolver.get_type(n) for n in self.resolver.get_inheritance_chain(type_name)]
        chain = [c for c in chain if c is not None]

        for contract in chain:
            func = contract.find_implementation(function_name)
            if func:
                return contract, func
        for contract in chain:
            func = contract.get_function(function_name)
            if func:
                return contract, func
        return None, None

    def field_names_for(self, type_name: str) -> List[str]:
        """State fields visible in ``type_name``, inherited ones included."""
        names: List[str] = []
        for name in self.resolver.get_inheritance_chain(type_name):
            contract = self.resolver.get_type(name)
            if not contract:
                continue
            for field_name in contract.field_names:
                if field_name not in names:
                    names.append(field_name)
        return names

    def analyze_function(self, type_name: str, function_name: str) -> DataFlowGraph:
        """Build the data flow graph of a function; empty when it is not found."""
        contract, func = self.locate_function(type_name, function_name)
        if func is None:
            return DataFlowGraph()
        return self.analyzer.analyze(func, self.field_names_for(contract.name))

    def resolve_call_sites(self, type_name: str, function_name: str) -> List[CallSiteResolution]:
        """Resolve the call sites of a function against the workspace."""
        contract, func = self.locate_function(type_name, function_name)
        if func is None:
            return []
        return self.call_sites.resolve(func, context_type=contract.name)
