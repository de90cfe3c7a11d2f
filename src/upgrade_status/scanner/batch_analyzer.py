"""Batched invocation of the external deprecation analyzer."""

import json
import logging
import re
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol, Sequence

from upgrade_status.errors import AnalyzerCrashError, BatchDecodeError, ConfigurationError

logger = logging.getLogger(__name__)

# Exit codes a shell reports for SIGKILL (out-of-memory killer) and SIGSEGV.
CRASH_EXIT_CODES = (137, 139)

_TRACEBACK_LOCATION = re.compile(r'File "(?P<file>[^"]+)", line (?P<line>\d+)')


@dataclass
class BatchResult:
    """Decoded analyzer output for one batch."""

    errors: int = 0
    file_errors: int = 0
    files: dict[str, list[dict[str, Any]]] = field(default_factory=dict)


def partition(paths: Sequence[Path], size: int) -> list[list[Path]]:
    """Split a file list into consecutive batches of at most ``size`` files."""
    if size < 1:
        raise ConfigurationError(f"Batch size must be positive, got {size}")
    return [list(paths[i:i + size]) for i in range(0, len(paths), size)]


def decode_batch(raw: str | bytes | dict[str, Any] | None) -> BatchResult:
    """Decode and validate analyzer output.

    Expected shape::

        {"totals": {"errors": int, "file_errors": int},
         "files": {<path>: {"errors": int, "messages": [{"message": str, "line": int}]}}}

    Raises:
        BatchDecodeError: If the output is not a conforming structured result
    """
    if raw is None:
        raise BatchDecodeError("Analyzer produced no output")

    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            raise BatchDecodeError("Analyzer produced no output")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise BatchDecodeError(f"Analyzer output is not JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise BatchDecodeError(f"Analyzer output is a {type(data).__name__}, expected an object")

    totals = data.get("totals")
    if not isinstance(totals, dict):
        raise BatchDecodeError("Analyzer output has no totals")

    files = data.get("files", {})
    # Some analyzers encode an empty file map as an empty list.
    if files == []:
        files = {}
    if not isinstance(files, dict):
        raise BatchDecodeError("Analyzer output files is not an object")

    result = BatchResult()
    try:
        result.errors = int(totals.get("errors", 0))
        result.file_errors = int(totals.get("file_errors", 0))

        for path, entry in files.items():
            messages = []
            for message in entry["messages"]:
                messages.append({
                    "message": str(message["message"]),
                    "line": int(message.get("line") or 0),
                })
            result.files[str(path)] = messages
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise BatchDecodeError(f"Malformed analyzer output: {e!r}") from e

    return result


class BatchAnalyzer(Protocol):
    """Runs the external analyzer over one batch of files."""

    def run_batch(self, paths: list[Path], config_path: Path | None = None) -> str | dict[str, Any]:
        ...


class SubprocessBatchAnalyzer:
    """Runs the analyzer as a child process, one process per batch."""

    def __init__(
        self,
        command: list[str],
        timeout: float = 600,
        cwd: Path | None = None,
    ) -> None:
        """Initialize the analyzer invoker.

        Args:
            command: Analyzer argv prefix requesting JSON output
            timeout: Seconds before a batch is abandoned
            cwd: Working directory of the analyzer process
        """
        if not command:
            raise ConfigurationError("Analyzer command is empty")
        self.command = list(command)
        self.timeout = timeout
        self.cwd = cwd

    def run_batch(self, paths: list[Path], config_path: Path | None = None) -> str:
        """Analyze one batch.

        Returns:
            Raw analyzer output (empty if the batch timed out)

        Raises:
            AnalyzerCrashError: If the analyzer process was killed
            ConfigurationError: If the analyzer executable is missing
        """
        args = list(self.command)
        if config_path is not None:
            args += ["--config", str(config_path)]
        args += [str(path) for path in paths]

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"Analyzer executable not found: {self.command[0]}") from e
        except subprocess.TimeoutExpired:
            logger.warning(f"Analyzer timed out after {self.timeout}s on a batch of {len(paths)} files")
            return ""

        if result.returncode < 0 or result.returncode in CRASH_EXIT_CODES:
            raise self._crash_error(result, paths)

        if result.stderr:
            logger.debug(f"Analyzer stderr: {result.stderr.strip()}")

        return result.stdout

    @staticmethod
    def _crash_error(result: subprocess.CompletedProcess, paths: list[Path]) -> AnalyzerCrashError:
        """Build a crash error from the dead process's output."""
        stderr = (result.stderr or "").strip()
        lines = [line.strip() for line in stderr.splitlines() if line.strip()]

        returncode = result.returncode
        signum = -returncode if returncode < 0 else returncode - 128
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)

        message = lines[-1] if lines else f"Analyzer process terminated by {signal_name}"

        batch = {str(path) for path in paths}
        file = None
        line = 0
        for match in _TRACEBACK_LOCATION.finditer(stderr):
            if match.group("file") in batch:
                file = match.group("file")
                line = int(match.group("line"))

        return AnalyzerCrashError(message, file=file, line=line)


class CallableBatchAnalyzer:
    """Runs an in-process analyzer function."""

    def __init__(self, func: Callable[[list[Path], Path | None], str | dict[str, Any]]) -> None:
        self.func = func

    def run_batch(self, paths: list[Path], config_path: Path | None = None) -> str | dict[str, Any]:
        return self.func(paths, config_path)
