"""solgraph: inheritance resolution and data flow graphs for smart contract workspaces."""

__version__ = "0.3.0"

from solgraph.core.models import ContractKind, ContractRecord, FunctionRecord, ImplementationResult
from solgraph.core.session import AnalysisSession
from solgraph.cli.cli import cli_main

__all__ = ['ContractKind', 'ContractRecord', 'FunctionRecord', 'ImplementationResult',
           'AnalysisSession', 'cli_main']
