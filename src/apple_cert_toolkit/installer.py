from __future__ import annotations

"""
签名证书安装流程。

High-level flow:
1) Decode the BASE64 secret into a P12 file inside a per-run temporary directory.
2) Read fingerprint / common name / validity window with openssl and validate them.
3) Resolve the target keychain (temp / default / custom).
4) Create or reuse the keychain, unlock it, import the P12.
5) For a reused keychain, grant codesign access to the private key.
6) Make sure the keychain is in the user search list.
7) Export the results for later steps (and for the cleanup step).
The temporary directory (BASE64 + P12) is always removed at the end.
"""

import dataclasses
import os
import sys
import tempfile

from . import actions, keychain, tools
from .certificate import get_p12_private_key_name, get_p12_properties, validate_properties
from .errors import ErrorKind, ToolkitError
from .types import InstallOptions, InstallResult, KeychainSetup

KEYCHAIN_MODES = ("temp", "default", "custom")

# 后续步骤读取的变量名。
ENV_SHA1 = "APPLE_CERTIFICATE_SHA1HASH"
ENV_SIGNING_IDENTITY = "APPLE_CERTIFICATE_SIGNING_IDENTITY"
ENV_KEYCHAIN = "APPLE_CERTIFICATE_KEYCHAIN"
OUT_SIGNING_IDENTITY = "signingIdentity"
OUT_KEYCHAIN_PATH = "keychainPath"
OUT_KEYCHAIN_PASSWORD = "keychainPassword"


def require_macos() -> None:
    if sys.platform != "darwin":
        raise ToolkitError(ErrorKind.PLATFORM, "Installing a signing certificate requires macOS.")


def decode_certificate(encoded: str, workdir: str) -> str:
    """把 BASE64 文本解码为 `<workdir>/cert.p12`，中间文件始终删除。"""
    base64_file = os.path.join(workdir, "cert.base64")
    p12_file = os.path.join(workdir, "cert.p12")
    with open(base64_file, "w", encoding="utf-8") as f:
        f.write(encoded)
    try:
        tools.run("base64", ["-d", "-i", base64_file, "-o", p12_file])
    finally:
        os.remove(base64_file)
        actions.debug("Removed base64 version of signing certificate.")
    return p12_file


def resolve_keychain(options: InstallOptions) -> tuple[str, str]:
    """按模式返回 `(keychain_path, keychain_password)`。"""
    if options.keychain == "temp":
        # temp 模式忽略传入的密码，每次重新生成。
        password = keychain.generate_password()
        actions.set_secret(password)
        return keychain.temp_keychain_path(), password
    if options.keychain == "default":
        return keychain.default_keychain_path(), options.keychain_password
    if options.keychain == "custom":
        if not options.custom_keychain_path:
            raise ToolkitError(ErrorKind.INPUT, "Input required and not supplied: customKeychainPath")
        if not options.keychain_password:
            raise ToolkitError(ErrorKind.INPUT, "Input required and not supplied: keychainPassword")
        return options.custom_keychain_path, options.keychain_password
    raise ToolkitError(
        ErrorKind.INPUT,
        f"Unable to set location for keychain: unknown mode {options.keychain!r} "
        f"(expected one of {', '.join(KEYCHAIN_MODES)})",
    )


def export_result(result: InstallResult) -> None:
    actions.export_variable(ENV_SHA1, result.fingerprint)
    actions.export_variable(OUT_SIGNING_IDENTITY, result.signing_identity)
    actions.export_variable(OUT_KEYCHAIN_PATH, result.keychain_path)
    if result.keychain_password is not None:
        actions.export_variable(OUT_KEYCHAIN_PASSWORD, result.keychain_password)
    # 兼容旧版本的固定变量名；同一 job 内多次安装时以最后一次为准。
    actions.export_variable(ENV_SIGNING_IDENTITY, result.signing_identity)
    actions.export_variable(ENV_KEYCHAIN, result.keychain_path)


def install_certificate(options: InstallOptions) -> InstallResult:
    """安装签名证书并导出结果；任何致命问题都以 `ToolkitError` 抛出。"""
    require_macos()

    if not options.encoded_certificate.strip():
        raise ToolkitError(
            ErrorKind.INPUT,
            "Secret containing BASE64 of P12 cert not valid, or contents invalid.",
        )
    if not options.certificate_password:
        actions.warning("No certificate password supplied; importing the P12 with an empty password.")

    with tempfile.TemporaryDirectory(prefix="signing_cert_") as td:
        actions.info("Decoding signing certificate")
        p12_file = decode_certificate(options.encoded_certificate, td)

        actions.info("Reading certificate properties")
        props = get_p12_properties(p12_file, options.certificate_password, td)
        # CN 解析失败时，允许调用方直接指定签名身份。
        if options.signing_identity_override:
            props = dataclasses.replace(props, common_name=options.signing_identity_override)
        validate_properties(props)

        keychain_path, keychain_password = resolve_keychain(options)
        actions.info(f"Installing certificate into keychain: {keychain_path}")
        setup = keychain.ensure(keychain_path, keychain_password, reuse_if_exists=True)
        keychain.import_certificate(keychain_path, p12_file, options.certificate_password)

        # 新建的钥匙串默认 ACL 已允许 codesign；导入到已有钥匙串（如 login）才需要设置。
        if setup is KeychainSetup.REUSED:
            key_name = get_p12_private_key_name(p12_file, options.certificate_password, td)
            keychain.grant_partition_access(keychain_path, keychain_password, key_name)

        keychain.register_in_search_path(keychain_path)

    result = InstallResult(
        fingerprint=props.fingerprint,
        signing_identity=props.common_name,
        keychain_path=keychain_path,
        keychain_setup=setup,
        keychain_password=keychain_password if options.keychain == "temp" else None,
    )
    export_result(result)
    actions.info(f"Installed signing identity: {result.signing_identity} ({result.fingerprint})")
    return result
