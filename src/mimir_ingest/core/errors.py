from __future__ import annotations

from pathlib import Path


class IngestError(RuntimeError):
    """Base error"""


class FetchError(IngestError):
    """Base error for the file fetcher"""


class FetchIOError(FetchError):
    """Local filesystem failure while fetching (cannot create dir, cannot write)"""


class NetworkError(FetchError):
    """Remote side failed: connection, timeout or unexpected HTTP status"""


class MalformedUrlError(FetchError):
    """The URL cannot be parsed or does not point to an http(s) host"""


class ProtocolError(IngestError):
    """
    Content was received but cannot be understood (undecodable portal response,
    truncated pub/sub message).
    """


class ExecutableNotFoundError(IngestError):
    """A handler executable is missing from its configured location"""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Executable not found: {path}")
        self.path = path


class CommandError(IngestError):
    """
    An external executable exited with a non-zero status.

    stderr is kept verbatim so operators see what the tool said.
    """

    def __init__(self, *, executable: Path, returncode: int, stderr: str) -> None:
        msg = f"{executable.name} exited with status {returncode}"
        if stderr:
            msg += f" => {stderr.strip()}"
        super().__init__(msg)
        self.executable = executable
        self.returncode = returncode
        self.stderr = stderr


class UnknownSourceError(IngestError):
    """No handler registered for a data source"""


class UnsupportedIndexTypeError(IngestError):
    """The data source cannot produce the requested index type"""


class ValidationFailed(IngestError):
    """The index did not come up after indexing"""


class PublishError(IngestError):
    """The state channel cannot be opened or a state cannot be sent"""
