"""Composable, mockable execution of external programs.

- executor.py: ExecConfig value object and the subprocess-backed CommandExecutor
- testing.py: RecordingExecutor, a recording/faking double for tests
"""

from .executor import CommandExecutor, CommandResult, ExecConfig, inherit_path
from .testing import Execution, RecordingExecutor

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "ExecConfig",
    "Execution",
    "RecordingExecutor",
    "inherit_path",
]
