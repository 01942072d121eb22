"""Call-site detection: interface casts, typed receivers and their implementations."""

import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

from solgraph.config import load_callsites_config
from solgraph.core.models import FunctionRecord
from solgraph.ir.models import CallSiteResolution, InterfaceCall

INTERFACE_NAME = re.compile(r'^I[A-Z]')

# Declaration shapes that carry a user-defined type
TYPED_DECLARATION = re.compile(
    r'\b([A-Z][a-zA-Z0-9_]*)\s+(?:memory\s+|storage\s+|calldata\s+)?([a-z_][a-zA-Z0-9_]*)\b')
TYPED_ARRAY_DECLARATION = re.compile(
    r'\b([A-Z][a-zA-Z0-9_]*)\s*\[\s*\]\s*(?:memory\s+|storage\s+|calldata\s+)?([a-z_][a-zA-Z0-9_]*)\b')
MAPPING_DECLARATION = re.compile(
    r'mapping\s*\([^)]*=>\s*([A-Z][a-zA-Z0-9_]*)\s*\)\s*(?:public\s+|private\s+|internal\s+)?([a-z_][a-zA-Z0-9_]*)\b')
CONSTRUCTION_ASSIGNMENT = re.compile(r'\b([a-z_][a-zA-Z0-9_]*)\s*=\s*([A-Z][a-zA-Z0-9_]*)\s*\(')

MEMBER_CALL = re.compile(r'(?<![\w.])([a-z_][a-zA-Z0-9_]*)\s*\.\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\(')


@lru_cache(maxsize=1)
def _vocabulary() -> Dict[str, Any]:
    config = load_callsites_config()
    return {
        'interface_prefixes': tuple(config.get('interface_prefixes', [])),
        'external_library_types': frozenset(config.get('external_library_types', [])),
        'elementary_types': frozenset(config.get('elementary_types', [])),
        'keywords': frozenset(config.get('keywords', [])),
    }


def find_matching_paren(line: str, open_pos: int) -> int:
    """Return the index of the ``)`` closing the ``(`` at ``open_pos``, or -1.

    Quoted strings are skipped, honoring backslash escapes.
    """
    if open_pos < 0 or open_pos >= len(line) or line[open_pos] != '(':
        return -1

    depth = 1
    i = open_pos + 1
    while i < len(line):
        char = line[i]
        if char == '(':
            depth += 1
        elif char == ')':
            depth -= 1
            if depth == 0:
                return i
        elif char in ('"', "'"):
            quote = char
            i += 1
            while i < len(line) and line[i] != quote:
                if line[i] == '\\':
                    i += 1
                i += 1
        i += 1

    return -1


def looks_like_interface(name: str, prefixes: Optional[Sequence[str]] = None) -> bool:
    """``I`` followed by an uppercase letter, or a well-known interface prefix."""
    if INTERFACE_NAME.match(name):
        return True
    if prefixes is None:
        prefixes = _vocabulary()['interface_prefixes']
    return any(name.startswith(prefix) for prefix in prefixes)


def _skip_spaces(line: str, i: int) -> int:
    while i < len(line) and line[i].isspace():
        i += 1
    return i


def _read_word(line: str, i: int) -> int:
    while i < len(line) and (line[i].isalnum() or line[i] == '_'):
        i += 1
    return i


def detect_interface_calls(line: str, prefixes: Optional[Sequence[str]] = None) -> List[InterfaceCall]:
    """Find ``TypeName(<anything>).method(`` shapes on one line.

    Args:
        line: Source line
        prefixes: Interface name prefixes; defaults to the bundled vocabulary

    Returns:
        Interface calls in order of appearance
    """
    calls = []
    i = 0
    while i < len(line):
        # A type name starts uppercase and is not the tail of another word
        if not line[i].isupper() or (i > 0 and (line[i - 1].isalnum() or line[i - 1] == '_')):
            i += 1
            continue

        type_start = i
        i = _read_word(line, i)
        type_name = line[type_start:i]

        i = _skip_spaces(line, i)
        if i >= len(line) or line[i] != '(':
            continue

        close_pos = find_matching_paren(line, i)
        if close_pos == -1:
            i += 1
            continue

        i = _skip_spaces(line, close_pos + 1)
        if i >= len(line) or line[i] != '.':
            continue

        i = _skip_spaces(line, i + 1)
        if i >= len(line) or not (line[i].islower() or line[i] == '_'):
            continue

        method_start = i
        i = _read_word(line, i)
        method_name = line[method_start:i]

        # Only a call confirms the shape; the scan resumes at the paren either way
        i = _skip_spaces(line, i)
        if i < len(line) and line[i] == '(' and looks_like_interface(type_name, prefixes):
            calls.append(InterfaceCall(
                interface_name=type_name,
                method_name=method_name,
                method_pos=method_start
            ))

    return calls


def is_builtin_type(name: str) -> bool:
    vocabulary = _vocabulary()
    if name in vocabulary['external_library_types'] or name in vocabulary['keywords']:
        return True
    return any(name.startswith(t) for t in vocabulary['elementary_types'])


def infer_variable_types(source: str) -> Dict[str, str]:
    """Map variable names to the user-defined types they are declared with.

    Explicit declarations override each other in source order; a
    ``var = Type(...)`` construction only fills in names not yet typed.
    """
    normalized = re.sub(r'\s+', ' ', source)
    var_types: Dict[str, str] = {}

    for pattern in (TYPED_DECLARATION, TYPED_ARRAY_DECLARATION, MAPPING_DECLARATION):
        for match in pattern.finditer(normalized):
            type_name, var_name = match.group(1), match.group(2)
            if not is_builtin_type(type_name) and var_name not in _vocabulary()['keywords']:
                var_types[var_name] = type_name

    for match in CONSTRUCTION_ASSIGNMENT.finditer(normalized):
        var_name, type_name = match.group(1), match.group(2)
        if not is_builtin_type(type_name):
            var_types.setdefault(var_name, type_name)

    return var_types


class CallSiteResolver:
    """Resolves the calls inside a function body to candidate implementations."""

    def __init__(self, resolver, logger=None):
        """Initialize call-site resolver.

        Args:
            resolver: InheritanceResolver with a built graph
            logger: Logger instance
        """
        self.resolver = resolver
        self.logger = logger

    def resolve(self, function: FunctionRecord, context_type: Optional[str] = None) -> List[CallSiteResolution]:
        """Resolve interface casts and typed member calls, line by line.

        Args:
            function: Function whose body is scanned
            context_type: Type the function belongs to, for its using-directives

        Returns:
            One resolution per detected call site, including unresolved ones
        """
        source = function.full_source or function.body
        if not source:
            return []

        var_types = infer_variable_types(source)
        resolutions = []

        for offset, line in enumerate(source.split('\n')):
            line_num = function.location.start_line + offset

            for call in detect_interface_calls(line):
                resolutions.append(self._resolve_one(
                    line_num, call.interface_name, call.method_name, context_type))

            for match in MEMBER_CALL.finditer(line):
                receiver_type = var_types.get(match.group(1))
                if receiver_type:
                    resolutions.append(self._resolve_one(
                        line_num, receiver_type, match.group(2), context_type))

        if self.logger:
            unresolved = sum(1 for r in resolutions if not r.implementations)
            self.logger.log(
                f"Resolved {len(resolutions) - unresolved}/{len(resolutions)} call sites in {function.name}",
                level="DEBUG"
            )

        return resolutions

    def _resolve_one(self, line_num: int, receiver_type: str, method_name: str,
                     context_type: Optional[str]) -> CallSiteResolution:
        return CallSiteResolution(
            line=line_num,
            receiver_type=receiver_type,
            method_name=method_name,
            context_type=context_type,
            implementations=self.resolver.find_all_implementations(receiver_type, method_name, context_type)
        )
