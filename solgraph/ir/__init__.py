"""IR (Intermediate Representation) module for per-function data flow graphs.

This module provides classes and utilities for building and querying
intermediate representations of function bodies, including:
- Def/use data flow graphs with sinks and domain tags
- Call-site detection and resolution
"""

from .models import (
    NodeKind,
    DomainTag,
    EdgeKind,
    SinkKind,
    DataFlowNode,
    DataFlowEdge,
    SinkRecord,
    DataFlowGraph,
    ReentrancyPattern,
    BalanceCheck,
    DomainFlowSummary,
    InterfaceCall,
    CallSiteResolution,
)

from .data_flow_graph import (
    DataFlowAnalyzer,
    trace_backward,
    trace_forward,
    get_variables_flowing_to_sink,
    get_domain_flow_summary,
    serialize_graph,
    deserialize_graph,
)
from .call_sites import CallSiteResolver, detect_interface_calls, find_matching_paren, infer_variable_types

__all__ = [
    # Models
    'NodeKind',
    'DomainTag',
    'EdgeKind',
    'SinkKind',
    'DataFlowNode',
    'DataFlowEdge',
    'SinkRecord',
    'DataFlowGraph',
    'ReentrancyPattern',
    'BalanceCheck',
    'DomainFlowSummary',
    'InterfaceCall',
    'CallSiteResolution',
    # Builders and queries
    'DataFlowAnalyzer',
    'trace_backward',
    'trace_forward',
    'get_variables_flowing_to_sink',
    'get_domain_flow_summary',
    'serialize_graph',
    'deserialize_graph',
    'CallSiteResolver',
    'detect_interface_calls',
    'find_matching_paren',
    'infer_variable_types'
]
