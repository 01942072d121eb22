"""Core modules: source model records, snapshot providers and inheritance resolution.

Provides the per-session resolver mapping interface and library method
references to concrete implementations.
"""

from .models import (
    ContractKind,
    SourceLocation,
    ParameterRecord,
    FunctionRecord,
    UsingDirective,
    StructRecord,
    EnumRecord,
    StateFieldRecord,
    ContractRecord,
    ImplementationResult,
)

from .inheritance_resolver import InheritanceResolver
from .snapshot import SourceModelProvider, JsonSnapshotProvider
from .session import AnalysisSession

__all__ = [
    # Models
    'ContractKind',
    'SourceLocation',
    'ParameterRecord',
    'FunctionRecord',
    'UsingDirective',
    'StructRecord',
    'EnumRecord',
    'StateFieldRecord',
    'ContractRecord',
    'ImplementationResult',
    # Resolution
    'InheritanceResolver',
    'SourceModelProvider',
    'JsonSnapshotProvider',
    'AnalysisSession'
]
