"""
GitHub Actions 运行时的轻量适配层。

- 输入：读取 `INPUT_<NAME>` 环境变量。
- 输出：向 `$GITHUB_ENV` 追加变量，供同一 job 的后续步骤（包括清理步骤）读取。
- 日志：输出 `::debug::` / `::warning::` / `::error::` 等工作流命令。
"""

from __future__ import annotations

import os
import uuid

from .errors import ErrorKind, ToolkitError

_PREFIX = "[apple-cert-toolkit]"


def _escape_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _input_env_name(name: str) -> str:
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, *, required: bool = False) -> str:
    """读取 action 输入；`required` 且为空时抛出输入错误。"""
    value = os.environ.get(_input_env_name(name), "").strip()
    if required and not value:
        raise ToolkitError(ErrorKind.INPUT, f"Input required and not supplied: {name}")
    return value


def get_bool_input(name: str) -> bool:
    return get_input(name).lower() == "true"


def export_variable(name: str, value: str) -> None:
    """导出变量：当前进程立即可见，后续步骤通过 `$GITHUB_ENV` 可见。"""
    os.environ[name] = value
    env_file = os.environ.get("GITHUB_ENV", "")
    if not env_file:
        debug(f"GITHUB_ENV not set; {name} only exported to current process")
        return
    # 使用 heredoc 形式，值中包含换行时也能正确写入。
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    if delimiter in name or delimiter in value:
        raise ToolkitError(ErrorKind.INPUT, f"Unexpected delimiter in value of {name}")
    with open(env_file, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


def set_secret(value: str) -> None:
    """让 runner 在日志中屏蔽该值。"""
    if value:
        print(f"::add-mask::{_escape_data(value)}")


def debug(message: str) -> None:
    print(f"::debug::{_escape_data(message)}")


def info(message: str) -> None:
    print(f"{_PREFIX} {message}")


def warning(message: str) -> None:
    print(f"::warning::{_escape_data(message)}")


def error(message: str) -> None:
    print(f"::error::{_escape_data(message)}")


def set_failed(message: str) -> int:
    """报告失败并返回进程退出码。"""
    error(message)
    return 1
