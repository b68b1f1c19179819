"""
统一的错误类型。

所有致命错误都以 `ToolkitError` 抛出，并通过 `kind` 区分类别，
由命令行入口统一转换为 CI 失败信息。
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    PLATFORM = "platform"
    INPUT = "input"
    CERTIFICATE = "certificate"
    TOOL_NOT_FOUND = "tool-not-found"
    TOOL_FAILED = "tool-failed"
    CONSISTENCY = "consistency"
    IDENTITY_NOT_FOUND = "identity-not-found"
    PROFILE = "profile"
    CLEANUP = "cleanup"


class ToolkitError(RuntimeError):
    """带错误类别的运行时异常。"""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ToolError(ToolkitError):
    """外部命令执行失败（非零退出码或无法启动）。"""

    def __init__(self, cmd: str, returncode: int, stderr: str) -> None:
        super().__init__(
            ErrorKind.TOOL_FAILED,
            f"Command failed ({returncode}): {cmd}\n{stderr.strip()}".rstrip(),
        )
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
