"""
`apple-cert-toolkit` 的命令行入口模块。

每个参数都可以省略，此时回退到 GitHub Actions 的 `INPUT_<NAME>` 输入，
因此同一个入口既可以本地调用，也可以直接作为 action 的步骤运行。
"""

import argparse
from collections.abc import Sequence

from . import actions
from .errors import ToolkitError
from .installer import install_certificate
from .keychain import find_signing_identity, temp_keychain_path
from .provisioning import (
    get_cloud_entitlement,
    get_ios_profile_type,
    get_macos_profile_type,
    get_provisioning_profile_name,
    install_provisioning_profile,
)
from .teardown import ENV_PROFILE_UUID, cleanup
from .types import InstallOptions


def _arg_or_input(value: str | None, name: str, *, required: bool = False) -> str:
    """命令行参数优先，否则读取 action 输入。"""
    if value:
        return value.strip()
    return actions.get_input(name, required=required)


def _cmd_install(ns: argparse.Namespace) -> int:
    options = InstallOptions(
        encoded_certificate=_arg_or_input(ns.encoded_certificate, "encoded-certificate"),
        # 空密码是合法输入（无密码的 P12），因此这里不做必填校验。
        certificate_password=(
            ns.certificate_password
            if ns.certificate_password is not None
            else actions.get_input("certificate-password")
        ),
        keychain=_arg_or_input(ns.keychain, "keychain", required=True),
        keychain_password=_arg_or_input(ns.keychain_password, "keychainPassword"),
        custom_keychain_path=_arg_or_input(ns.custom_keychain_path, "customKeychainPath"),
        signing_identity_override=_arg_or_input(ns.signing_identity, "certSigningIdentity"),
    )
    actions.set_secret(options.certificate_password)
    actions.set_secret(options.keychain_password)
    install_certificate(options)
    return 0


def _cmd_cleanup(ns: argparse.Namespace) -> int:
    remove_profile = ns.remove_profile or actions.get_bool_input("removeProfile")
    cleanup(remove_profile=remove_profile)
    return 0


def _cmd_install_profile(ns: argparse.Namespace) -> int:
    path = _arg_or_input(ns.profile, "provisioning-profile", required=True)
    info = install_provisioning_profile(path)
    actions.export_variable(ENV_PROFILE_UUID, info.uuid)
    actions.export_variable("provisioningProfileUuid", info.uuid)
    actions.export_variable("provisioningProfileName", info.name)
    actions.info(f"Installed provisioning profile: {info.name or '-'} ({info.uuid})")
    return 0


def _cmd_profile_info(ns: argparse.Namespace) -> int:
    path = ns.profile
    if ns.platform == "macos":
        profile_type = get_macos_profile_type(path)
    else:
        profile_type = get_ios_profile_type(path)
    export_method = ns.export_method or profile_type or ""
    cloud = get_cloud_entitlement(path, export_method)

    print("Provisioning Profile:")
    print(f"  Path  : {path}")
    print(f"  Name  : {get_provisioning_profile_name(path) or '-'}")
    print(f"  Type  : {profile_type or '-'}")
    print(f"  iCloud: {cloud or '-'}")
    return 0


def _cmd_find_identity(ns: argparse.Namespace) -> int:
    print(find_signing_identity(ns.keychain or temp_keychain_path()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """构建并返回 `apple-cert-toolkit` 命令行参数解析器。"""
    p = argparse.ArgumentParser(
        prog="apple-cert-toolkit",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Install an Apple signing certificate (BASE64 P12) into a keychain on a CI runner,\n"
            "and remove the temporary keychain when the job is done.\n"
            "Every option falls back to the matching GitHub Actions input (INPUT_<NAME>)."
        ),
    )
    sub = p.add_subparsers(dest="command", required=True)

    install = sub.add_parser(
        "install",
        formatter_class=argparse.RawTextHelpFormatter,
        help="Install the signing certificate",
    )
    install.add_argument(
        "--encoded-certificate",
        default=None,
        help="BASE64 encoded P12 (input: encoded-certificate)",
    )
    install.add_argument(
        "--certificate-password",
        default=None,
        help="P12 password, may be empty (input: certificate-password)",
    )
    install.add_argument(
        "--keychain",
        default=None,
        help="temp | default | custom (input: keychain)",
    )
    install.add_argument(
        "--keychain-password",
        default=None,
        help="Keychain password, required for custom (input: keychainPassword)",
    )
    install.add_argument(
        "--custom-keychain-path",
        default=None,
        help="Keychain path for custom mode (input: customKeychainPath)",
    )
    install.add_argument(
        "--signing-identity",
        default=None,
        help="Override the certificate common name (input: certSigningIdentity)",
    )
    install.set_defaults(func=_cmd_install)

    clean = sub.add_parser("cleanup", help="Delete the temporary keychain created by install")
    clean.add_argument(
        "--remove-profile",
        action="store_true",
        help=f"Also delete the provisioning profile recorded in {ENV_PROFILE_UUID} (input: removeProfile)",
    )
    clean.set_defaults(func=_cmd_cleanup)

    prof = sub.add_parser("install-profile", help="Install a provisioning profile for the current user")
    prof.add_argument("profile", nargs="?", default=None, help="Profile path (input: provisioning-profile)")
    prof.set_defaults(func=_cmd_install_profile)

    info = sub.add_parser("profile-info", help="Print provisioning profile name / type / iCloud tier")
    info.add_argument("profile", help="Profile path")
    info.add_argument("--platform", choices=("ios", "macos"), default="ios")
    info.add_argument("--export-method", default="", help="Export method used for the iCloud tier")
    info.set_defaults(func=_cmd_profile_info)

    ident = sub.add_parser("find-identity", help="Print the first codesigning identity in a keychain")
    ident.add_argument("--keychain", default="", help="Keychain path (default: temp keychain)")
    ident.set_defaults(func=_cmd_find_identity)

    return p


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 入口：解析参数并执行子命令，致命错误转换为 CI 失败信息与退出码 1。"""
    parser = build_parser()
    ns = parser.parse_args(argv)
    try:
        return ns.func(ns)
    except (ToolkitError, OSError) as e:
        return actions.set_failed(str(e))
