"""
外部命令执行封装：`security` / `openssl` / `PlistBuddy` / `base64` / `grep`。

所有调用都按名称在 PATH 中解析，找不到时抛出 `TOOL_NOT_FOUND`；
非零退出码抛出携带 stderr 的 `ToolError`。
"""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import IO

from . import actions
from .errors import ErrorKind, ToolError, ToolkitError

LineSink = Callable[[str], None]


@dataclass(frozen=True)
class ToolResult:
    stdout: str
    stderr: str
    returncode: int


def which(name: str) -> str:
    """返回命令的绝对路径，不存在时抛出异常。"""
    if os.path.isabs(name):
        if os.path.isfile(name) and os.access(name, os.X_OK):
            return name
        raise ToolkitError(ErrorKind.TOOL_NOT_FOUND, f"Tool not found: {name}")
    path = shutil.which(name)
    if not path:
        raise ToolkitError(ErrorKind.TOOL_NOT_FOUND, f"Tool not found: {name}")
    return path


def _redact(cmd: Sequence[str], secrets: Iterable[str]) -> str:
    text = " ".join(cmd)
    for s in secrets:
        if s:
            text = text.replace(s, "***")
    return text


def _spawn_failed(display: str, e: OSError) -> ToolError:
    return ToolError(display, -1, f"failed to start: {e}")


def run(
    name: str,
    args: Sequence[str],
    *,
    check: bool = True,
    secrets: Iterable[str] = (),
) -> ToolResult:
    """执行命令并一次性收集 stdout/stderr。"""
    cmd = [which(name), *args]
    display = _redact(cmd, secrets)
    actions.debug(f"+ {display}")
    try:
        p = subprocess.run(cmd, capture_output=True, check=False)
    except OSError as e:
        raise _spawn_failed(display, e) from e
    result = ToolResult(
        stdout=p.stdout.decode(errors="replace"),
        stderr=p.stderr.decode(errors="replace"),
        returncode=p.returncode,
    )
    if check and p.returncode != 0:
        raise ToolError(display, p.returncode, result.stderr)
    return result


def _pump(stream: IO[bytes], sink: LineSink | None, keep: list[str] | None) -> None:
    for raw in iter(stream.readline, b""):
        line = raw.decode(errors="replace").rstrip("\r\n")
        if keep is not None:
            keep.append(line)
        if sink is not None:
            sink(line)
    stream.close()


def stream(
    name: str,
    args: Sequence[str],
    *,
    on_stdout: LineSink | None = None,
    on_stderr: LineSink | None = None,
    check: bool = True,
    secrets: Iterable[str] = (),
) -> ToolResult:
    """
    执行命令并逐行把输出交给回调。

    stdout 不会保留在结果中（只交给 `on_stdout`），适合可能包含敏感内容的输出；
    stderr 会额外保留，用于失败时的错误信息。
    """
    cmd = [which(name), *args]
    display = _redact(cmd, secrets)
    actions.debug(f"+ {display}")
    try:
        p = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except OSError as e:
        raise _spawn_failed(display, e) from e

    err_lines: list[str] = []
    # stderr 在后台线程读取，避免任一管道写满导致子进程阻塞。
    t = threading.Thread(target=_pump, args=(p.stderr, on_stderr, err_lines), daemon=True)
    t.start()
    try:
        _pump(p.stdout, on_stdout, None)
    finally:
        # 回调抛出异常时 stdout 还没读完，先结束子进程再回收。
        if not p.stdout.closed:
            p.kill()
            p.stdout.close()
        t.join()
        returncode = p.wait()

    stderr = "\n".join(err_lines)
    if check and returncode != 0:
        raise ToolError(display, returncode, stderr)
    return ToolResult(stdout="", stderr=stderr, returncode=returncode)
