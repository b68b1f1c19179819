"""
macOS 钥匙串管理：创建、解锁、导入、分区 ACL、搜索列表与删除。

所有操作都通过 `/usr/bin/security` 完成。变更操作前先做存在性检查，
而不是依赖重试，因为 `security` 的创建/删除/搜索列表修改本身都不是幂等的。
"""

from __future__ import annotations

import os
import secrets

from . import actions, tools
from .errors import ErrorKind, ToolError, ToolkitError
from .text_extract import extract_quoted_identity, parse_keychain_list
from .types import KeychainSetup

# 6 小时，与付费托管 runner 的 job 最长时长一致。
AUTO_LOCK_TIMEOUT = 21600
TEMP_KEYCHAIN_NAME = "ios_signing_temp.keychain"
# `security import` 默认给私钥 `apple-tool:`，codesign 需要 `apple:`。
PARTITION_LIST = "apple-tool:,apple:"

_UNKNOWN_COMMAND = "security: unknown command"


def temp_keychain_path() -> str:
    return os.path.join("/tmp", TEMP_KEYCHAIN_NAME)


def generate_password() -> str:
    return secrets.token_urlsafe(24)


def exists(path: str) -> bool:
    """钥匙串文件是否存在（Sierra 起 `x.keychain` 实际落盘为 `x.keychain-db`）。"""
    if not path:
        return False
    return os.path.exists(path) or os.path.exists(path + "-db")


def unlock(path: str, password: str) -> None:
    tools.run("security", ["unlock-keychain", "-p", password, path], secrets=[password])


def delete(path: str) -> None:
    """删除钥匙串；不存在时直接返回。"""
    if not exists(path):
        actions.debug(f"Keychain not found, nothing to delete: {path}")
        return
    tools.run("security", ["delete-keychain", path])


def ensure(path: str, password: str, *, reuse_if_exists: bool) -> KeychainSetup:
    """保证钥匙串存在且已解锁，返回本次是新建还是复用。"""
    if reuse_if_exists and exists(path):
        setup = KeychainSetup.REUSED
        actions.debug(f"Reusing existing keychain: {path}")
    else:
        setup = KeychainSetup.CREATED
        delete(path)
        tools.run("security", ["create-keychain", "-p", password, path], secrets=[password])
        tools.run(
            "security",
            ["set-keychain-settings", "-lut", str(AUTO_LOCK_TIMEOUT), path],
        )

    unlock(path, password)
    return setup


def import_certificate(path: str, cert_file: str, cert_password: str | None) -> None:
    """把 P12 中的证书与私钥导入已解锁的钥匙串。"""
    # 空密码必须显式传 `-P ""`，省略 `-P` 会让 security 交互式询问密码。
    pwd = cert_password or ""
    tools.run(
        "security",
        ["import", cert_file, "-P", pwd, "-A", "-t", "cert", "-f", "pkcs12", "-k", path],
        secrets=[pwd],
    )


def grant_partition_access(path: str, password: str, private_key_name: str) -> None:
    """
    为导入的私钥设置 partition_id ACL，避免 codesign 在 CI 中弹出授权提示。

    `set-key-partition-list` 从 macOS 10.12 开始提供；更早的系统不需要这一步。
    """
    if not private_key_name:
        return
    actions.debug(f"Setting the partition_id ACL for {private_key_name}")

    unknown_command = False

    def on_stderr(line: str) -> None:
        nonlocal unknown_command
        if _UNKNOWN_COMMAND in line:
            unknown_command = True

    try:
        tools.stream(
            "security",
            [
                "set-key-partition-list",
                "-S",
                PARTITION_LIST,
                "-s",
                "-l",
                private_key_name,
                "-k",
                password,
                path,
            ],
            on_stderr=on_stderr,
            secrets=[password],
        )
    except ToolError as e:
        if unknown_command:
            actions.info("set-key-partition-list is not available on this macOS; skipping")
            return
        actions.error(str(e))
        raise ToolkitError(ErrorKind.TOOL_FAILED, "set-key-partition-list failed") from e


def list_search_path() -> list[str]:
    """当前用户钥匙串搜索列表（保持原有顺序）。"""
    out = tools.run("security", ["list-keychain", "-d", "user"]).stdout
    return parse_keychain_list(out)


def _normalize_keychain_path(path: str) -> str:
    # security 会把 `/tmp/x.keychain` 显示为 `/private/tmp/x.keychain-db`。
    path = path.strip()
    if path.endswith("-db"):
        path = path[: -len("-db")]
    if path.startswith("/private/"):
        path = path[len("/private"):]
    return path


def _in_search_path(path: str, entries: list[str]) -> bool:
    want = _normalize_keychain_path(path)
    return any(_normalize_keychain_path(entry) == want for entry in entries)


def register_in_search_path(path: str) -> None:
    """把钥匙串追加到用户搜索列表，并在修改后再次列出确认。"""
    entries = list_search_path()
    actions.debug(f"Keychain search list: {entries}")
    if not _in_search_path(path, entries):
        tools.run("security", ["list-keychain", "-d", "user", "-s", *entries, path])

    if not _in_search_path(path, list_search_path()):
        raise ToolkitError(ErrorKind.CONSISTENCY, f"Temp keychain setup failed: {path}")


def find_signing_identity(path: str) -> str:
    """返回钥匙串中第一个有效的 codesigning 身份名。"""
    identity: str | None = None

    def on_stdout(line: str) -> None:
        nonlocal identity
        if identity is None:
            identity = extract_quoted_identity(line)

    tools.stream("security", ["find-identity", "-v", "-p", "codesigning", path], on_stdout=on_stdout)
    if not identity:
        raise ToolkitError(ErrorKind.IDENTITY_NOT_FOUND, f"Signing identity not found in {path}")
    actions.debug(f"findSigningIdentity = {identity}")
    return identity


def default_keychain_path() -> str:
    out = tools.run("security", ["default-keychain"]).stdout
    path = "".join(c for c in out.strip() if c not in '",\n\r\f\v').strip()
    if not exists(path):
        raise ToolkitError(ErrorKind.TOOL_FAILED, f"Received invalid default keychain path: {path!r}")
    return path
