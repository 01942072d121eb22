"""Source model records: the per-file snapshot of declared types and members."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any

from solgraph.utils import SnapshotError


class ContractKind(Enum):
    """Kinds of contract-like types."""
    CONTRACT = "contract"
    INTERFACE = "interface"
    LIBRARY = "library"
    ABSTRACT = "abstract"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ContractKind":
        """Parse a kind string, defaulting to CONTRACT when absent."""
        if not value:
            return cls.CONTRACT
        try:
            return cls(str(value).lower())
        except ValueError:
            raise SnapshotError(f"Unknown contract kind: {value}")


@dataclass
class SourceLocation:
    """Start/end position of a declaration (1-based lines, 0-based columns)."""
    start_line: int = 1
    start_column: int = 0
    end_line: int = 1
    end_column: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start': {'line': self.start_line, 'column': self.start_column},
            'end': {'line': self.end_line, 'column': self.end_column}
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SourceLocation":
        if not data:
            return cls()
        start = data.get('start') or {}
        end = data.get('end') or {}
        return cls(
            start_line=int(start.get('line', 1)),
            start_column=int(start.get('column', 0)),
            end_line=int(end.get('line', start.get('line', 1))),
            end_column=int(end.get('column', 0))
        )


@dataclass
class ParameterRecord:
    """A function parameter or named return value."""
    name: str
    type_name: str
    storage_location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type_name': self.type_name,
            'storage_location': self.storage_location
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParameterRecord":
        return cls(
            name=data.get('name') or '',
            type_name=data.get('type_name') or 'unknown',
            storage_location=data.get('storage_location')
        )


@dataclass
class FunctionRecord:
    """A function declared inside a contract-like type."""
    name: str
    visibility: str = "public"
    state_mutability: Optional[str] = None
    parameters: List[ParameterRecord] = field(default_factory=list)
    return_parameters: List[ParameterRecord] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    body: str = ""
    full_source: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    file_path: str = ""

    @property
    def has_body(self) -> bool:
        """True when the function carries an implementation."""
        return bool(self.body and self.body.strip())

    @property
    def signature(self) -> str:
        """Compact signature, e.g. ``(address to, uint256 amount) returns (bool)``."""
        params = ", ".join(f"{p.type_name} {p.name}".strip() for p in self.parameters)
        returns = ""
        if self.return_parameters:
            returns = f" returns ({', '.join(p.type_name for p in self.return_parameters)})"
        return f"({params}){returns}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'visibility': self.visibility,
            'state_mutability': self.state_mutability,
            'parameters': [p.to_dict() for p in self.parameters],
            'return_parameters': [p.to_dict() for p in self.return_parameters],
            'modifiers': list(self.modifiers),
            'body': self.body,
            'full_source': self.full_source,
            'location': self.location.to_dict(),
            'file_path': self.file_path
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_path: str = "") -> "FunctionRecord":
        if not data.get('name'):
            raise SnapshotError("Function record without a name")
        return cls(
            name=data['name'],
            visibility=data.get('visibility') or 'public',
            state_mutability=data.get('state_mutability'),
            parameters=[ParameterRecord.from_dict(p) for p in data.get('parameters') or []],
            return_parameters=[ParameterRecord.from_dict(p) for p in data.get('return_parameters') or []],
            modifiers=list(data.get('modifiers') or []),
            body=data.get('body') or '',
            full_source=data.get('full_source') or '',
            location=SourceLocation.from_dict(data.get('location')),
            file_path=data.get('file_path') or file_path
        )


@dataclass
class UsingDirective:
    """A ``using Library for Type`` attachment."""
    library_name: str
    for_type: str = "*"
    is_global: bool = False

    def applies_to(self, type_name: str) -> bool:
        return self.for_type == type_name or self.for_type == "*"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'library_name': self.library_name,
            'for_type': self.for_type,
            'is_global': self.is_global
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsingDirective":
        if not data.get('library_name'):
            raise SnapshotError("Using directive without a library name")
        return cls(
            library_name=data['library_name'],
            for_type=data.get('for_type') or '*',
            is_global=bool(data.get('is_global', False))
        )


@dataclass
class StructRecord:
    """A struct definition."""
    name: str
    members: List[ParameterRecord] = field(default_factory=list)
    full_source: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    file_path: str = ""
    contract_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'members': [{'name': m.name, 'type_name': m.type_name} for m in self.members],
            'full_source': self.full_source,
            'location': self.location.to_dict(),
            'file_path': self.file_path,
            'contract_name': self.contract_name
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_path: str = "",
                  contract_name: Optional[str] = None) -> "StructRecord":
        return cls(
            name=data.get('name') or '',
            members=[ParameterRecord.from_dict(m) for m in data.get('members') or []],
            full_source=data.get('full_source') or '',
            location=SourceLocation.from_dict(data.get('location')),
            file_path=data.get('file_path') or file_path,
            contract_name=data.get('contract_name', contract_name)
        )


@dataclass
class EnumRecord:
    """An enum definition."""
    name: str
    members: List[str] = field(default_factory=list)
    full_source: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    file_path: str = ""
    contract_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'members': list(self.members),
            'full_source': self.full_source,
            'location': self.location.to_dict(),
            'file_path': self.file_path,
            'contract_name': self.contract_name
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_path: str = "",
                  contract_name: Optional[str] = None) -> "EnumRecord":
        return cls(
            name=data.get('name') or '',
            members=list(data.get('members') or []),
            full_source=data.get('full_source') or '',
            location=SourceLocation.from_dict(data.get('location')),
            file_path=data.get('file_path') or file_path,
            contract_name=data.get('contract_name', contract_name)
        )


@dataclass
class StateFieldRecord:
    """A state variable declared on a contract."""
    name: str
    type_name: str = "unknown"
    visibility: str = "internal"
    full_source: str = ""
    location: SourceLocation = field(default_factory=SourceLocation)
    file_path: str = ""
    contract_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type_name': self.type_name,
            'visibility': self.visibility,
            'full_source': self.full_source,
            'location': self.location.to_dict(),
            'file_path': self.file_path,
            'contract_name': self.contract_name
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_path: str = "",
                  contract_name: str = "") -> "StateFieldRecord":
        if not data.get('name'):
            raise SnapshotError("State field without a name")
        return cls(
            name=data['name'],
            type_name=data.get('type_name') or 'unknown',
            visibility=data.get('visibility') or 'internal',
            full_source=data.get('full_source') or '',
            location=SourceLocation.from_dict(data.get('location')),
            file_path=data.get('file_path') or file_path,
            contract_name=data.get('contract_name') or contract_name
        )


@dataclass
class ContractRecord:
    """A contract, interface, library or abstract contract."""
    name: str
    kind: ContractKind = ContractKind.CONTRACT
    base_contracts: List[str] = field(default_factory=list)
    using_directives: List[UsingDirective] = field(default_factory=list)
    functions: List[FunctionRecord] = field(default_factory=list)
    structs: List[StructRecord] = field(default_factory=list)
    enums: List[EnumRecord] = field(default_factory=list)
    state_variables: List[StateFieldRecord] = field(default_factory=list)
    location: SourceLocation = field(default_factory=SourceLocation)
    file_path: str = ""

    @property
    def is_interface(self) -> bool:
        return self.kind == ContractKind.INTERFACE

    @property
    def field_names(self) -> List[str]:
        return [sv.name for sv in self.state_variables]

    def get_function(self, name: str) -> Optional[FunctionRecord]:
        """First function declared with the given name."""
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def find_implementation(self, name: str) -> Optional[FunctionRecord]:
        """First function with the given name that has a non-empty body."""
        for func in self.functions:
            if func.name == name and func.has_body:
                return func
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'kind': self.kind.value,
            'base_contracts': list(self.base_contracts),
            'using_directives': [d.to_dict() for d in self.using_directives],
            'functions': [f.to_dict() for f in self.functions],
            'structs': [s.to_dict() for s in self.structs],
            'enums': [e.to_dict() for e in self.enums],
            'state_variables': [sv.to_dict() for sv in self.state_variables],
            'location': self.location.to_dict(),
            'file_path': self.file_path
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_path: str = "") -> "ContractRecord":
        """Build a record from its dict form.

        Raises:
            SnapshotError: If the dict cannot describe a contract
        """
        if not isinstance(data, dict) or not data.get('name'):
            raise SnapshotError("Contract record without a name")

        name = data['name']
        path = data.get('file_path') or file_path
        try:
            return cls(
                name=name,
                kind=ContractKind.parse(data.get('kind')),
                base_contracts=[b for b in data.get('base_contracts') or [] if b],
                using_directives=[UsingDirective.from_dict(d) for d in data.get('using_directives') or []],
                functions=[FunctionRecord.from_dict(f, path) for f in data.get('functions') or []],
                structs=[StructRecord.from_dict(s, path, name) for s in data.get('structs') or []],
                enums=[EnumRecord.from_dict(e, path, name) for e in data.get('enums') or []],
                state_variables=[StateFieldRecord.from_dict(sv, path, name)
                                 for sv in data.get('state_variables') or []],
                location=SourceLocation.from_dict(data.get('location')),
                file_path=path
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"Malformed contract record {name}: {e}")


@dataclass
class ImplementationResult:
    """A resolved concrete implementation of a method."""
    contract_name: str
    contract_kind: ContractKind
    function: FunctionRecord
    file_path: str
    is_inherited: bool = False
    inheritance_chain: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'contract_name': self.contract_name,
            'contract_kind': self.contract_kind.value,
            'function_name': self.function.name,
            'signature': self.function.signature,
            'line': self.function.location.start_line,
            'file_path': self.file_path,
            'is_inherited': self.is_inherited,
            'inheritance_chain': list(self.inheritance_chain)
        }
