"""IR (Intermediate Representation) data models for per-function data flow graphs."""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
from enum import Enum

from solgraph.core.models import ImplementationResult


class NodeKind(Enum):
    """Kinds of variables tracked by the data flow graph."""
    PARAMETER = "parameter"
    LOCAL = "local"
    STATE = "state"
    RETURN = "return"
    MSG = "msg"
    BLOCK = "block"
    TX = "tx"


class DomainTag(Enum):
    """Heuristic semantic role of a variable, for display and risk hinting."""
    TOKEN_AMOUNT = "token-amount"
    ADDRESS_TARGET = "address-target"
    MSG_VALUE = "msg-value"
    MSG_SENDER = "msg-sender"
    BALANCE = "balance"


class EdgeKind(Enum):
    """Types of data flow edges."""
    ASSIGN = "assign"
    USE = "use"
    CALL_ARG = "call-arg"
    RETURN = "return"
    STATE_WRITE = "state-write"
    STATE_READ = "state-read"
    EXTERNAL_CALL = "external-call"


class SinkKind(Enum):
    """Program points with an externally observable effect."""
    EXTERNAL_CALL = "external-call"
    STATE_WRITE = "state-write"
    RETURN = "return"
    EVENT_EMIT = "event-emit"


@dataclass
class DataFlowNode:
    """A variable definition or use at a source position."""
    name: str
    kind: NodeKind
    line: int
    column: int
    is_definition: bool
    type_name: Optional[str] = None
    tag: Optional[DomainTag] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'name': self.name,
            'kind': self.kind.value,
            'line': self.line,
            'column': self.column,
            'is_definition': self.is_definition,
            'type_name': self.type_name,
            'tag': self.tag.value if self.tag else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DataFlowNode":
        return cls(
            name=data['name'],
            kind=NodeKind(data['kind']),
            line=data['line'],
            column=data['column'],
            is_definition=data['is_definition'],
            type_name=data.get('type_name'),
            tag=DomainTag(data['tag']) if data.get('tag') else None
        )


@dataclass
class DataFlowEdge:
    """Data flowing from one node to another."""
    source: DataFlowNode
    target: DataFlowNode
    kind: EdgeKind
    transformation: Optional[str] = None  # e.g. "+=" for compound assignments


@dataclass
class SinkRecord:
    """Where data ultimately flows: external calls, state writes, returns, events."""
    kind: SinkKind
    line: int
    column: int
    description: str
    input_vars: List[str] = field(default_factory=list)
    call_target: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'kind': self.kind.value,
            'line': self.line,
            'column': self.column,
            'description': self.description,
            'input_vars': list(self.input_vars),
            'call_target': self.call_target
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SinkRecord":
        return cls(
            kind=SinkKind(data['kind']),
            line=data['line'],
            column=data['column'],
            description=data['description'],
            input_vars=list(data.get('input_vars') or []),
            call_target=data.get('call_target')
        )


@dataclass
class DataFlowGraph:
    """Complete data flow graph for one function."""
    nodes: List[DataFlowNode] = field(default_factory=list)
    edges: List[DataFlowEdge] = field(default_factory=list)
    sinks: List[SinkRecord] = field(default_factory=list)
    definitions: Dict[str, List[DataFlowNode]] = field(default_factory=dict)
    uses: Dict[str, List[DataFlowNode]] = field(default_factory=dict)

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'num_nodes': len(self.nodes),
            'num_edges': len(self.edges),
            'num_sinks': len(self.sinks),
            'num_defined_names': len(self.definitions),
            'num_used_names': len(self.uses)
        }


@dataclass
class ReentrancyPattern:
    """An external call followed, later in the text, by a state write."""
    call_line: int
    state_write_line: int
    state_var: str


@dataclass
class BalanceCheck:
    """A line querying balances, reserves or supply."""
    line: int
    pattern: str


@dataclass
class DomainFlowSummary:
    """Nodes grouped by domain tag, plus the effectful sinks."""
    token_amounts: List[DataFlowNode] = field(default_factory=list)
    addresses: List[DataFlowNode] = field(default_factory=list)
    msg_value: List[DataFlowNode] = field(default_factory=list)
    msg_sender: List[DataFlowNode] = field(default_factory=list)
    balance_checks: List[DataFlowNode] = field(default_factory=list)
    external_calls: List[SinkRecord] = field(default_factory=list)
    state_writes: List[SinkRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'token_amounts': [n.to_dict() for n in self.token_amounts],
            'addresses': [n.to_dict() for n in self.addresses],
            'msg_value': [n.to_dict() for n in self.msg_value],
            'msg_sender': [n.to_dict() for n in self.msg_sender],
            'balance_checks': [n.to_dict() for n in self.balance_checks],
            'external_calls': [s.to_dict() for s in self.external_calls],
            'state_writes': [s.to_dict() for s in self.state_writes]
        }


@dataclass
class InterfaceCall:
    """A ``Type(...).method(`` call shape found on a line."""
    interface_name: str
    method_name: str
    method_pos: int


@dataclass
class CallSiteResolution:
    """Implementations resolved for one call site."""
    line: int
    receiver_type: str
    method_name: str
    context_type: Optional[str] = None
    implementations: List[ImplementationResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'line': self.line,
            'receiver_type': self.receiver_type,
            'method_name': self.method_name,
            'context_type': self.context_type,
            'implementations': [impl.to_dict() for impl in self.implementations]
        }
