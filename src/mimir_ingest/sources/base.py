from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

import structlog
from mimir_ingest.core.errors import CommandError, ExecutableNotFoundError

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class IndexOptions:
    """
    Which sub-entities an indexer imports.

    Only the map-extract indexer reads these; the other indexers import a
    single entity kind and ignore them.
    """

    import_admin: bool = False
    import_way: bool = False
    import_poi: bool = False
    city_level: int = 8


@runtime_checkable
class SourceHandler(Protocol):
    name: str
    supports_transform: bool

    def download(self, working_dir: Path, region: str) -> Path: ...

    def transform(self, input_path: Path, working_dir: Path, region: str) -> Path: ...

    def index_options(self, index_type: str) -> IndexOptions: ...

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None: ...


def release_binary(root: Path, name: str) -> Path:
    return Path(root) / "target" / "release" / name


def run_command(executable: Path, args: Sequence[str | Path]) -> str:
    """
    Run an external tool to completion and return its stdout.

    Raises ExecutableNotFoundError before spawning when the binary is missing,
    CommandError (stderr verbatim) on non-zero exit.
    """
    executable = Path(executable)
    if not executable.is_file():
        raise ExecutableNotFoundError(executable)

    argv = [str(executable), *(str(a) for a in args)]
    log.info("command.start", argv=argv)

    proc = subprocess.run(argv, capture_output=True, text=True, check=False)
    if proc.returncode != 0:
        log.warning(
            "command.failed",
            executable=executable.name,
            returncode=proc.returncode,
        )
        raise CommandError(
            executable=executable, returncode=proc.returncode, stderr=proc.stderr
        )

    log.info("command.finish", executable=executable.name)
    return proc.stdout


def indexer_args(index_endpoint: str, path: Path) -> list[str | Path]:
    return ["--connection-string", index_endpoint, "--input", path]


class BaseHandler:
    """
    Defaults shared by the handlers: no transform step, index options unused.
    """

    name: str = ""
    supports_transform: bool = False

    def download(self, working_dir: Path, region: str) -> Path:
        raise NotImplementedError

    def transform(self, input_path: Path, working_dir: Path, region: str) -> Path:
        raise NotImplementedError(f"{self.name} has no transform step")

    def index_options(self, index_type: str) -> IndexOptions:
        return IndexOptions()

    def index(
        self,
        handlers_dir: Path,
        index_endpoint: str,
        path: Path,
        options: IndexOptions,
    ) -> None:
        raise NotImplementedError
