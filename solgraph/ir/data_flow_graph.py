"""Intraprocedural data flow graph construction and reachability queries."""

import networkx as nx
import re
from typing import Dict, Iterable, List, Set, Tuple, Optional, Any

from solgraph.config import load_dataflow_config
from solgraph.core.models import FunctionRecord
from solgraph.ir.call_sites import find_matching_paren
from solgraph.ir.models import (
    BalanceCheck,
    DataFlowEdge,
    DataFlowGraph,
    DataFlowNode,
    DomainFlowSummary,
    DomainTag,
    EdgeKind,
    NodeKind,
    ReentrancyPattern,
    SinkKind,
    SinkRecord,
)

IDENTIFIER_PATTERN = re.compile(r'(?<![\w.])([A-Za-z_][a-zA-Z0-9_]*)\b')

DECLARATION_PATTERN = re.compile(
    r'\b(uint\d*|int\d*|address(?:\s+payable)?|bool|bytes\d*|string|mapping\s*\([^)]*\)'
    r'|[A-Z][a-zA-Z0-9_]*(?:\.[A-Z][a-zA-Z0-9_]*)?)'
    r'(?:\s*\[[^\]]*\])*'
    r'\s+(?:memory\s+|storage\s+|calldata\s+)?'
    r'([a-z_][a-zA-Z0-9_]*)\s*(?=[=;,)])'
)

TUPLE_PATTERN = re.compile(r'\(\s*([^()]+?)\s*\)\s*=(?![=>])')

ASSIGNMENT_PATTERN = re.compile(
    r'(?<![\w.\]])([A-Za-z_][a-zA-Z0-9_]*)'
    r'((?:\s*\[[^\]]*\]|\s*\.\s*[A-Za-z_][a-zA-Z0-9_]*)*)'
    r'\s*(<<|>>|[+\-*/%&|^])?=(?![=>])'
    r'\s*([^;]*)'
)

POSTFIX_UPDATE_PATTERN = re.compile(r'(?<![\w.\]])([A-Za-z_][a-zA-Z0-9_]*)((?:\s*\[[^\]]*\])*)\s*(\+\+|--)')
PREFIX_UPDATE_PATTERN = re.compile(r'(\+\+|--)\s*([A-Za-z_][a-zA-Z0-9_]*)((?:\s*\[[^\]]*\])*)')

RETURN_PATTERN = re.compile(r'(?<![\w.])return\s+([^;]+)')
EMIT_PATTERN = re.compile(r'(?<![\w.])emit\s+([A-Za-z_][a-zA-Z0-9_.]*)\s*\(')

LOCAL_NAME = re.compile(r'^[a-z_][a-zA-Z0-9_]*$')

# Seeded at the start line, before any body line is scanned
SEED_KINDS = (NodeKind.PARAMETER, NodeKind.RETURN)


def _words_regex(words: Iterable[str]) -> str:
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


class DataFlowAnalyzer:
    """Builds def/use/sink graphs for single function bodies.

    Detection is line-oriented pattern matching over the function source.
    It both over- and under-approximates, and ignores control flow.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, logger=None):
        """Initialize data flow analyzer.

        Args:
            config: Vocabulary configuration; defaults to the bundled dataflow.json
            logger: Logger instance
        """
        self.logger = logger
        self.config = config if config is not None else load_dataflow_config()
        self._init_patterns()

    def _init_patterns(self):
        """Compile the configured vocabularies."""
        cfg = self.config
        self.skip_words: Set[str] = set(cfg.get('skip_words', []))

        self.amount_pattern = re.compile(
            rf"^(?:{_words_regex(cfg.get('amount_names', []))})_?[0-9]*$", re.IGNORECASE)
        self.address_pattern = re.compile(
            rf"^(?:{_words_regex(cfg.get('address_names', []))})_?[0-9]*$", re.IGNORECASE)

        call_alternatives = [_words_regex(cfg.get('external_call_methods', []))]
        call_alternatives += [re.escape(p) + r"\w*" for p in cfg.get('external_call_prefixes', [])]
        self.external_call_pattern = re.compile(
            rf"\.\s*(?:{'|'.join(a for a in call_alternatives if a)})\s*[({{]")
        self.call_target_pattern = re.compile(
            rf"\b([A-Za-z_][a-zA-Z0-9_]*(?:\.[A-Za-z_][a-zA-Z0-9_]*)*)\s*\.\s*"
            rf"(?:{_words_regex(cfg.get('call_target_methods', []))})\b")
        self.reentrancy_call_pattern = re.compile(
            rf"\.\s*(?:{_words_regex(cfg.get('reentrancy_call_methods', []))})\s*[({{]")
        self.balance_check_patterns = [re.compile(p) for p in cfg.get('balance_check_patterns', [])]

        self.environment_globals: List[Tuple[re.Pattern, str, NodeKind, Optional[DomainTag]]] = []
        for entry in cfg.get('environment_globals', []):
            pattern = re.compile(rf"(?<![\w.]){re.escape(entry['name'])}(?!\w)")
            tag = DomainTag(entry['tag']) if entry.get('tag') else None
            self.environment_globals.append((pattern, entry['name'], NodeKind(entry['kind']), tag))

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def analyze(self, function: FunctionRecord, field_names: Optional[Iterable[str]] = None) -> DataFlowGraph:
        """Analyze data flow in a function.

        Args:
            function: Function to analyze
            field_names: State field names of the enclosing type

        Returns:
            Freshly built data flow graph
        """
        fields = set(field_names or [])
        graph = DataFlowGraph()
        start_line = function.location.start_line

        self._seed_parameters(function, start_line, graph)

        for offset, line in enumerate(self._source_lines(function)):
            line_num = start_line + offset
            if not line.strip():
                continue
            # Columns occupied by definition sites on this line
            def_columns: Set[int] = set()

            self._extract_local_declarations(line, line_num, graph, fields, def_columns)
            writes = self._extract_assignments(line, line_num, graph, fields, def_columns)
            self._extract_uses(line, line_num, graph, fields, def_columns)
            self._extract_environment_uses(line, line_num, graph)
            self._extract_sinks(line, line_num, graph, writes)

        self._connect_uses(graph)

        if self.logger:
            self.logger.log(
                f"Data flow for {function.name}: {len(graph.nodes)} nodes, "
                f"{len(graph.edges)} edges, {len(graph.sinks)} sinks",
                level="DEBUG"
            )

        return graph

    def _source_lines(self, function: FunctionRecord) -> List[str]:
        """Function source split into lines with the signature blanked out."""
        source = function.full_source or function.body
        if not source:
            return []

        body_start = self._body_offset(function, source)
        header = "".join(ch if ch == "\n" else " " for ch in source[:body_start])
        return (header + source[body_start:]).split("\n")

    def _body_offset(self, function: FunctionRecord, source: str) -> int:
        body = function.body.strip() if function.body else ""
        if body:
            index = source.find(body)
            if index >= 0:
                return index

        open_pos = source.find("(")
        search_from = 0
        if open_pos >= 0:
            close_pos = find_matching_paren(source, open_pos)
            search_from = close_pos + 1 if close_pos >= 0 else open_pos + 1
        brace = source.find("{", search_from)
        # Bodyless declarations have nothing to scan
        return brace if brace >= 0 else len(source)

    def _seed_parameters(self, function: FunctionRecord, start_line: int, graph: DataFlowGraph):
        for params, kind in ((function.parameters, NodeKind.PARAMETER),
                             (function.return_parameters, NodeKind.RETURN)):
            for param in params:
                if not param.name:
                    continue
                node = DataFlowNode(
                    name=param.name,
                    kind=kind,
                    line=start_line,
                    column=0,
                    is_definition=True,
                    type_name=param.type_name,
                    tag=self.infer_tag(param.name, param.type_name)
                )
                self._add_definition(graph, node)

    def _extract_local_declarations(self, line: str, line_num: int, graph: DataFlowGraph,
                                    fields: Set[str], def_columns: Set[int]):
        for match in DECLARATION_PATTERN.finditer(line):
            type_name = re.sub(r"\s+", " ", match.group(1))
            var_name = match.group(2)
            column = match.start(2)

            # Fields are never locally redeclared
            if var_name in fields or var_name in self.skip_words:
                continue

            def_columns.add(column)
            self._add_definition(graph, DataFlowNode(
                name=var_name,
                kind=NodeKind.LOCAL,
                line=line_num,
                column=column,
                is_definition=True,
                type_name=type_name,
                tag=self.infer_tag(var_name, type_name)
            ))

        tuple_match = TUPLE_PATTERN.search(line)
        if not tuple_match:
            return

        search_pos = tuple_match.start(1)
        for element in tuple_match.group(1).split(","):
            parts = element.split()
            if not parts:
                continue
            var_name = parts[-1]
            if (not LOCAL_NAME.match(var_name) or var_name in fields
                    or var_name in self.skip_words):
                continue

            found = re.compile(rf"\b{re.escape(var_name)}\b").search(line, search_pos)
            column = found.start() if found else tuple_match.start(1)
            if found:
                search_pos = found.end()
            if column in def_columns:
                continue

            type_name = parts[0] if len(parts) > 1 else None
            def_columns.add(column)
            self._add_definition(graph, DataFlowNode(
                name=var_name,
                kind=NodeKind.LOCAL,
                line=line_num,
                column=column,
                is_definition=True,
                type_name=type_name,
                tag=self.infer_tag(var_name, type_name)
            ))

    def _extract_assignments(self, line: str, line_num: int, graph: DataFlowGraph,
                             fields: Set[str], def_columns: Set[int]) -> List[Dict[str, Any]]:
        """Create definition nodes and edges for assignments; return the field writes."""
        writes = []

        for match in ASSIGNMENT_PATTERN.finditer(line):
            target = match.group(1)
            path = match.group(2) or ""
            operator = match.group(3) or ""
            expression = match.group(4)
            column = match.start(1)

            if not self._is_assignable(target, fields):
                continue

            target_node = self._define_target(graph, target, line_num, column, fields)
            def_columns.add(column)

            edge_kind = EdgeKind.STATE_WRITE if target in fields else EdgeKind.ASSIGN
            transformation = f"{operator}=" if operator else None
            for source_var in self._extract_flow_sources(expression):
                source_node = self._most_recent_definition(graph, source_var, line_num, exclude=target_node)
                if source_node is not None:
                    graph.edges.append(DataFlowEdge(
                        source=source_node,
                        target=target_node,
                        kind=edge_kind,
                        transformation=transformation
                    ))

            if target in fields:
                writes.append({
                    'field': target,
                    'column': column,
                    'text': line[match.start():match.end()].strip(),
                    'inputs': self.extract_variables(f"{path} {expression}", exclude={target})
                })

        for match in POSTFIX_UPDATE_PATTERN.finditer(line):
            writes.extend(self._record_update(line, line_num, graph, fields, def_columns,
                                              match.group(1), match.group(2), match.group(3),
                                              match.start(1), match))
        for match in PREFIX_UPDATE_PATTERN.finditer(line):
            writes.extend(self._record_update(line, line_num, graph, fields, def_columns,
                                              match.group(2), match.group(3), match.group(1),
                                              match.start(2), match))

        return writes

    def _record_update(self, line: str, line_num: int, graph: DataFlowGraph, fields: Set[str],
                       def_columns: Set[int], target: str, path: str, operator: str,
                       column: int, match: re.Match) -> List[Dict[str, Any]]:
        """Handle ``x++`` / ``--x`` on a tracked name as a compound assignment."""
        if column in def_columns or not self._is_assignable(target, fields):
            return []
        if target not in fields and target not in graph.definitions:
            return []

        previous = self._most_recent_definition(graph, target, line_num)
        target_node = self._define_target(graph, target, line_num, column, fields)
        def_columns.add(column)

        if previous is not None:
            graph.edges.append(DataFlowEdge(
                source=previous,
                target=target_node,
                kind=EdgeKind.STATE_WRITE if target in fields else EdgeKind.ASSIGN,
                transformation=operator
            ))

        if target not in fields:
            return []
        return [{
            'field': target,
            'column': column,
            'text': line[match.start():match.end()].strip(),
            'inputs': self.extract_variables(path, exclude={target})
        }]

    def _is_assignable(self, target: str, fields: Set[str]) -> bool:
        if target in self.skip_words:
            return False
        return target in fields or target[0].islower() or target[0] == "_"

    def _define_target(self, graph: DataFlowGraph, target: str, line_num: int,
                       column: int, fields: Set[str]) -> DataFlowNode:
        # A declaration on this line already defines the target
        for node in graph.definitions.get(target, []):
            if node.line == line_num and node.column == column:
                return node

        type_name = self._declared_type(graph, target)
        node = DataFlowNode(
            name=target,
            kind=NodeKind.STATE if target in fields else NodeKind.LOCAL,
            line=line_num,
            column=column,
            is_definition=True,
            type_name=type_name,
            tag=self.infer_tag(target, type_name)
        )
        self._add_definition(graph, node)
        return node

    def _extract_uses(self, line: str, line_num: int, graph: DataFlowGraph,
                      fields: Set[str], def_columns: Set[int]):
        seen_on_line: Set[str] = set()

        for match in IDENTIFIER_PATTERN.finditer(line):
            var_name = match.group(1)
            column = match.start(1)

            if var_name in self.skip_words or column in def_columns or var_name in seen_on_line:
                continue

            is_state = var_name in fields
            if not is_state and var_name not in graph.definitions:
                continue
            seen_on_line.add(var_name)

            if is_state:
                kind = NodeKind.STATE
            else:
                kind = graph.definitions[var_name][0].kind
            type_name = self._declared_type(graph, var_name)

            self._add_use(graph, DataFlowNode(
                name=var_name,
                kind=kind,
                line=line_num,
                column=column,
                is_definition=False,
                type_name=type_name,
                tag=self.infer_tag(var_name, type_name)
            ))

    def _extract_environment_uses(self, line: str, line_num: int, graph: DataFlowGraph):
        """Record msg.*, block.* and tx.* pseudo-variables."""
        for pattern, name, kind, tag in self.environment_globals:
            for match in pattern.finditer(line):
                self._add_use(graph, DataFlowNode(
                    name=name,
                    kind=kind,
                    line=line_num,
                    column=match.start(),
                    is_definition=False,
                    tag=tag
                ))

    def _extract_sinks(self, line: str, line_num: int, graph: DataFlowGraph,
                       writes: List[Dict[str, Any]]):
        # At most one external-call sink per line
        call_match = self.external_call_pattern.search(line)
        if call_match:
            target_match = self.call_target_pattern.search(line)
            graph.sinks.append(SinkRecord(
                kind=SinkKind.EXTERNAL_CALL,
                line=line_num,
                column=target_match.start(1) if target_match else call_match.start(),
                description=line.strip(),
                input_vars=self.extract_variables(line),
                call_target=target_match.group(1) if target_match else None
            ))

        return_match = RETURN_PATTERN.search(line)
        if return_match:
            expression = return_match.group(1).strip()
            graph.sinks.append(SinkRecord(
                kind=SinkKind.RETURN,
                line=line_num,
                column=return_match.start(),
                description=f"return {expression}",
                input_vars=self.extract_variables(expression)
            ))

        emit_match = EMIT_PATTERN.search(line)
        if emit_match:
            open_pos = emit_match.end() - 1
            close_pos = find_matching_paren(line, open_pos)
            arguments = line[open_pos + 1:close_pos] if close_pos >= 0 else line[open_pos + 1:]
            graph.sinks.append(SinkRecord(
                kind=SinkKind.EVENT_EMIT,
                line=line_num,
                column=emit_match.start(),
                description=f"emit {emit_match.group(1)}(...)",
                input_vars=self.extract_variables(arguments)
            ))

        for write in writes:
            graph.sinks.append(SinkRecord(
                kind=SinkKind.STATE_WRITE,
                line=line_num,
                column=write['column'],
                description=write['text'],
                input_vars=write['inputs']
            ))

    def _connect_uses(self, graph: DataFlowGraph):
        """Link every use to the most recent same-name definition."""
        for var_name, use_nodes in graph.uses.items():
            if not graph.definitions.get(var_name):
                continue
            for use_node in use_nodes:
                definition = self._most_recent_definition(graph, var_name, use_node.line,
                                                          earlier_lines_only=True)
                if definition is None:
                    continue
                graph.edges.append(DataFlowEdge(
                    source=definition,
                    target=use_node,
                    kind=EdgeKind.USE
                ))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _add_definition(graph: DataFlowGraph, node: DataFlowNode):
        graph.nodes.append(node)
        graph.definitions.setdefault(node.name, []).append(node)

    @staticmethod
    def _add_use(graph: DataFlowGraph, node: DataFlowNode):
        graph.nodes.append(node)
        graph.uses.setdefault(node.name, []).append(node)

    @staticmethod
    def _most_recent_definition(graph: DataFlowGraph, var_name: str, line: int,
                                exclude: Optional[DataFlowNode] = None,
                                earlier_lines_only: bool = False) -> Optional[DataFlowNode]:
        """Definition with the largest line <= ``line``; the earliest wins on ties.

        With ``earlier_lines_only`` the definitions made by scanning ``line``
        itself are skipped. Parameter and return seeds still qualify.
        """
        best = None
        for node in graph.definitions.get(var_name, []):
            if node is exclude or node.line > line:
                continue
            if earlier_lines_only and node.line == line and node.kind not in SEED_KINDS:
                continue
            if best is None or node.line > best.line:
                best = node
        return best

    @staticmethod
    def _declared_type(graph: DataFlowGraph, var_name: str) -> Optional[str]:
        for node in graph.definitions.get(var_name, []):
            if node.type_name:
                return node.type_name
        return None

    def _extract_flow_sources(self, expression: str) -> List[str]:
        """Identifiers of an expression, excluding called function names."""
        sources = []
        for match in IDENTIFIER_PATTERN.finditer(expression):
            name = match.group(1)
            if name in self.skip_words or name in sources:
                continue
            if re.match(r"\s*\(", expression[match.end():]):
                continue
            sources.append(name)
        return sources

    def extract_variables(self, expression: str, exclude: Optional[Set[str]] = None) -> List[str]:
        """Variable names in an expression, environment pseudo-variables included.

        Args:
            expression: Source text
            exclude: Names to leave out

        Returns:
            Names in first-occurrence order
        """
        exclude = exclude or set()
        found: List[Tuple[int, str]] = []

        for pattern, name, _, _ in self.environment_globals:
            match = pattern.search(expression)
            if match:
                found.append((match.start(), name))
        for match in IDENTIFIER_PATTERN.finditer(expression):
            found.append((match.start(1), match.group(1)))

        variables: List[str] = []
        for _, name in sorted(found):
            if name in self.skip_words or name in exclude or name in variables:
                continue
            variables.append(name)
        return variables

    def infer_tag(self, var_name: str, type_name: Optional[str] = None) -> Optional[DomainTag]:
        """Infer the domain tag of a variable from its name and declared type."""
        if var_name == "msg.value":
            return DomainTag.MSG_VALUE
        if var_name == "msg.sender":
            return DomainTag.MSG_SENDER

        # Balance is more specific than amount
        if "balance" in var_name.lower():
            return DomainTag.BALANCE
        if self.amount_pattern.match(var_name):
            return DomainTag.TOKEN_AMOUNT
        if self.address_pattern.match(var_name) or (type_name or "").split(" ")[0] == "address":
            return DomainTag.ADDRESS_TARGET
        return None

    # ------------------------------------------------------------------
    # Pattern detectors
    # ------------------------------------------------------------------

    def detect_reentrancy_patterns(self, function: FunctionRecord,
                                   field_names: Optional[Iterable[str]] = None) -> List[ReentrancyPattern]:
        """Find external calls that precede a state write later in the text.

        Ordering is purely textual; branches and loops are not considered.
        """
        fields = list(dict.fromkeys(field_names or []))
        start_line = function.location.start_line
        write_patterns = [
            (name,
             re.compile(rf"(?<![\w.]){re.escape(name)}\s*(?:<<|>>|[+\-*/%&|^])?=(?![=>])"),
             re.compile(rf"(?<![\w.]){re.escape(name)}\s*\[[^\]]+\]\s*(?:<<|>>|[+\-*/%&|^])?=(?![=>])"))
            for name in fields
        ]

        call_lines: List[int] = []
        write_lines: List[Tuple[int, str]] = []

        for offset, line in enumerate(self._source_lines(function)):
            line_num = start_line + offset
            if self.reentrancy_call_pattern.search(line):
                call_lines.append(line_num)
            for name, direct, indexed in write_patterns:
                if direct.search(line) or indexed.search(line):
                    write_lines.append((line_num, name))

        patterns = []
        for call_line in call_lines:
            for write_line, name in write_lines:
                if write_line > call_line:
                    patterns.append(ReentrancyPattern(
                        call_line=call_line,
                        state_write_line=write_line,
                        state_var=name
                    ))
        return patterns

    def detect_balance_check_patterns(self, function: FunctionRecord) -> List[BalanceCheck]:
        """Find lines querying balances, reserves or total supply."""
        checks = []
        start_line = function.location.start_line

        for offset, line in enumerate(self._source_lines(function)):
            for pattern in self.balance_check_patterns:
                if pattern.search(line):
                    checks.append(BalanceCheck(line=start_line + offset, pattern=line.strip()))
                    break
        return checks


# ----------------------------------------------------------------------
# Queries over a built graph
# ----------------------------------------------------------------------

def build_name_graph(graph: DataFlowGraph) -> nx.DiGraph:
    """Collapse a data flow graph to variable names.

    Returns:
        NetworkX directed graph with one node per variable name
    """
    name_graph = nx.DiGraph()
    for node in graph.nodes:
        name_graph.add_node(node.name)
    for edge in graph.edges:
        name_graph.add_edge(edge.source.name, edge.target.name, kind=edge.kind.value)
    return name_graph


def trace_backward(graph: DataFlowGraph, *var_names: str) -> Set[str]:
    """All names whose data can reach the given names, the names included."""
    name_graph = build_name_graph(graph)
    result = set(var_names)
    for var_name in var_names:
        if var_name in name_graph:
            result |= nx.ancestors(name_graph, var_name)
    return result


def trace_forward(graph: DataFlowGraph, var_name: str) -> List[DataFlowNode]:
    """All nodes that data from ``var_name`` flows into, in edge order."""
    name_graph = build_name_graph(graph)
    if var_name not in name_graph:
        return []

    reachable = nx.descendants(name_graph, var_name) | {var_name}
    targets: List[DataFlowNode] = []
    seen: Set[int] = set()
    for edge in graph.edges:
        if edge.source.name in reachable and id(edge.target) not in seen:
            seen.add(id(edge.target))
            targets.append(edge.target)
    return targets


def get_variables_flowing_to_sink(graph: DataFlowGraph, sink: SinkRecord) -> List[str]:
    """Sink inputs and every name that reaches them, in backward-walk order."""
    found: Dict[str, None] = {}
    for var_name in sink.input_vars:
        found.setdefault(var_name)
        _walk_backward(graph, var_name, found)
    return list(found)


def _walk_backward(graph: DataFlowGraph, var_name: str, found: Dict[str, None]):
    for edge in graph.edges:
        if edge.target.name == var_name and edge.source.name not in found:
            found[edge.source.name] = None
            _walk_backward(graph, edge.source.name, found)


def get_domain_flow_summary(graph: DataFlowGraph) -> DomainFlowSummary:
    """Group nodes by domain tag and pick out the effectful sinks."""
    summary = DomainFlowSummary()
    buckets = {
        DomainTag.TOKEN_AMOUNT: summary.token_amounts,
        DomainTag.ADDRESS_TARGET: summary.addresses,
        DomainTag.MSG_VALUE: summary.msg_value,
        DomainTag.MSG_SENDER: summary.msg_sender,
        DomainTag.BALANCE: summary.balance_checks,
    }
    for node in graph.nodes:
        if node.tag in buckets:
            buckets[node.tag].append(node)

    summary.external_calls = [s for s in graph.sinks if s.kind == SinkKind.EXTERNAL_CALL]
    summary.state_writes = [s for s in graph.sinks if s.kind == SinkKind.STATE_WRITE]
    return summary


def serialize_graph(graph: DataFlowGraph) -> Dict[str, Any]:
    """Flatten a graph for transport; edges and indices refer to nodes by id."""
    ids = {id(node): index for index, node in enumerate(graph.nodes)}

    def node_ref(node: DataFlowNode) -> Dict[str, Any]:
        return {'id': ids[id(node)], **node.to_dict()}

    return {
        'nodes': [node_ref(node) for node in graph.nodes],
        'edges': [
            {
                'source': ids[id(edge.source)],
                'target': ids[id(edge.target)],
                'kind': edge.kind.value,
                'transformation': edge.transformation
            }
            for edge in graph.edges
        ],
        'sinks': [sink.to_dict() for sink in graph.sinks],
        'definitions': [[name, [node_ref(n) for n in nodes]] for name, nodes in graph.definitions.items()],
        'uses': [[name, [node_ref(n) for n in nodes]] for name, nodes in graph.uses.items()],
    }


def deserialize_graph(data: Dict[str, Any]) -> DataFlowGraph:
    """Rebuild a graph from its transport form, restoring node identity."""
    nodes_by_id: Dict[int, DataFlowNode] = {}
    nodes = []
    for entry in data.get('nodes', []):
        node = DataFlowNode.from_dict(entry)
        nodes_by_id[entry['id']] = node
        nodes.append(node)

    edges = [
        DataFlowEdge(
            source=nodes_by_id[entry['source']],
            target=nodes_by_id[entry['target']],
            kind=EdgeKind(entry['kind']),
            transformation=entry.get('transformation')
        )
        for entry in data.get('edges', [])
    ]

    return DataFlowGraph(
        nodes=nodes,
        edges=edges,
        sinks=[SinkRecord.from_dict(entry) for entry in data.get('sinks', [])],
        definitions={name: [nodes_by_id[n['id']] for n in refs] for name, refs in data.get('definitions', [])},
        uses={name: [nodes_by_id[n['id']] for n in refs] for name, refs in data.get('uses', [])},
    )
