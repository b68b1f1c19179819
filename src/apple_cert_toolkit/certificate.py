"""
P12 证书信息读取与校验。

通过 `openssl pkcs12` 把证书/私钥导出到调用方提供的临时目录，
再用 `openssl x509` 与 `grep` 读取所需字段。
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

from . import actions, tools
from .errors import ErrorKind, ToolError, ToolkitError
from .keychain import generate_password
from .text_extract import (
    extract_common_name,
    extract_friendly_name,
    normalize_fingerprint,
    parse_openssl_date,
    split_key_value,
)
from .types import CertificateProperties


def parse_x509_output(output: str) -> CertificateProperties:
    """解析 `openssl x509 -noout -fingerprint -subject -dates` 的输出。"""
    fingerprint = ""
    common_name = ""
    not_before: datetime | None = None
    not_after: datetime | None = None

    for line in output.splitlines():
        kv = split_key_value(line)
        if kv is None:
            continue
        key, value = kv
        # OpenSSL 3 prints `sha1 Fingerprint=`.
        if key.lower() == "sha1 fingerprint":
            fingerprint = normalize_fingerprint(value)
        elif key == "subject":
            common_name = extract_common_name(value) or ""
        elif key == "notBefore":
            not_before = parse_openssl_date(value)
        elif key == "notAfter":
            not_after = parse_openssl_date(value)

    return CertificateProperties(
        fingerprint=fingerprint,
        common_name=common_name,
        not_before=not_before,
        not_after=not_after,
    )


def get_p12_properties(p12_path: str, p12_password: str | None, workdir: str) -> CertificateProperties:
    """读取 P12 中证书的 SHA-1 指纹、CN 与有效期。"""
    pwd = p12_password or ""
    certs_pem = os.path.join(workdir, "certs.pem")
    try:
        tools.run(
            "openssl",
            ["pkcs12", "-in", p12_path, "-out", certs_pem, "-nokeys", "-passin", "pass:" + pwd],
            secrets=[pwd],
        )
        output = tools.run(
            "openssl",
            ["x509", "-in", certs_pem, "-noout", "-fingerprint", "-subject", "-dates"],
        ).stdout
    except ToolError:
        if not pwd:
            actions.warning("No password supplied for the P12 certificate; it may be password protected.")
        raise
    finally:
        if os.path.exists(certs_pem):
            os.remove(certs_pem)

    props = parse_x509_output(output)
    actions.debug(f"P12 fingerprint: {props.fingerprint}")
    actions.debug(f"P12 common name (CN): {props.common_name}")
    actions.debug(f"NotBefore: {props.not_before}")
    actions.debug(f"NotAfter: {props.not_after}")
    return props


def get_p12_private_key_name(p12_path: str, p12_password: str | None, workdir: str) -> str:
    """读取 P12 中私钥的 friendlyName（即钥匙串里的 key 标签）。"""
    pwd = p12_password or ""
    # 私钥内容无法省略，先用密码加密再交给 grep，且不在日志中输出。
    key_password = pwd or generate_password()
    key_pem = os.path.join(workdir, "key.pem")
    name: str | None = None

    def on_stdout(line: str) -> None:
        nonlocal name
        found = extract_friendly_name(line)
        if found:
            name = found

    try:
        tools.run(
            "openssl",
            [
                "pkcs12",
                "-in",
                p12_path,
                "-out",
                key_pem,
                "-nocerts",
                "-passin",
                "pass:" + pwd,
                "-passout",
                "pass:" + key_password,
            ],
            secrets=[pwd, key_password],
        )
        tools.stream("grep", ["friendlyName", key_pem], on_stdout=on_stdout, check=False)
    finally:
        if os.path.exists(key_pem):
            os.remove(key_pem)

    actions.debug(f"P12 private key name = {name}")
    if not name:
        raise ToolkitError(ErrorKind.CERTIFICATE, f"P12 private key name not found: {p12_path}")
    return name


def validate_properties(props: CertificateProperties, *, now: datetime | None = None) -> None:
    """证书必须有指纹与 CN，且当前时间位于有效期内。"""
    if not props.fingerprint or not props.common_name:
        raise ToolkitError(ErrorKind.CERTIFICATE, "Invalid certificate: missing SHA-1 fingerprint or common name.")

    if props.not_before is None or props.not_after is None:
        raise ToolkitError(ErrorKind.CERTIFICATE, "Certificate dates are invalid or undefined.")

    current = now or datetime.now(timezone.utc)
    if props.not_before > current or props.not_after < current:
        raise ToolkitError(
            ErrorKind.CERTIFICATE,
            f"Certificate dates are invalid: valid from {props.not_before} to {props.not_after}.",
        )
