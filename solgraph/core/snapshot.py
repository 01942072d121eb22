"""Source model providers: where workspace snapshots come from."""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Protocol, Union

from solgraph.core.models import ContractRecord
from solgraph.utils import SnapshotError

Workspace = Dict[str, List[ContractRecord]]


class SourceModelProvider(Protocol):
    """Anything that can materialize the declared types of a workspace."""

    def load_workspace(self) -> Workspace:
        ...


class JsonSnapshotProvider:
    """Reads ``*.json`` snapshots produced by an external front-end.

    Each file holds either a list of contract dicts or an object of the
    form ``{"file_path": ..., "contracts": [...]}``. Files that cannot be
    read or converted are left out of the workspace.
    """

    def __init__(self, paths: Union[str, Path, Iterable[Union[str, Path]]], logger=None):
        """Initialize snapshot provider.

        Args:
            paths: A snapshot directory, a single file, or a list of files
            logger: Logger instance
        """
        if isinstance(paths, (str, Path)):
            paths = [paths]
        self.paths = [Path(p) for p in paths]
        self.logger = logger

    def snapshot_files(self) -> List[Path]:
        files = []
        for path in self.paths:
            if path.is_dir():
                files.extend(sorted(path.rglob("*.json")))
            else:
                files.append(path)
        return files

    def load_workspace(self) -> Workspace:
        """Load every snapshot file into a file path -> contracts mapping."""
        workspace: Workspace = {}

        for snapshot_file in self.snapshot_files():
            try:
                file_path, contracts = self._load_file(snapshot_file)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError, SnapshotError) as e:
                if self.logger:
                    self.logger.log(f"Skipping snapshot {snapshot_file}: {e}", level="DEBUG")
                continue
            workspace.setdefault(file_path, []).extend(contracts)

        if self.logger:
            total = sum(len(c) for c in workspace.values())
            self.logger.log(f"Loaded {total} types from {len(workspace)} files", level="DEBUG")

        return workspace

    def _load_file(self, snapshot_file: Path):
        with open(snapshot_file, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if isinstance(data, dict):
            file_path = data.get('file_path') or str(snapshot_file)
            entries = data.get('contracts')
        else:
            file_path = str(snapshot_file)
            entries = data

        if not isinstance(entries, list):
            raise SnapshotError(f"No contract list in {snapshot_file}")

        return file_path, [ContractRecord.from_dict(entry, file_path) for entry in entries]
