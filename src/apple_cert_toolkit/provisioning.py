"""
签名描述文件（`mobileprovision` / `provisionprofile`）安装、分类与删除。

描述文件本质是 CMS 封装的 plist：先通过 `security cms -D -i` 解码到临时 plist，
再用 `PlistBuddy -c "Print <Key>"` 读取单个字段。
"""

from __future__ import annotations

import glob
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager

from . import actions, tools
from .errors import ErrorKind, ToolError, ToolkitError
from .text_extract import plist_bool
from .types import ProfileInfo

PLIST_BUDDY = "/usr/libexec/PlistBuddy"

# 这些导出方式使用生产环境的 iCloud 容器。
_PRODUCTION_EXPORT_METHODS = ("app-store", "enterprise", "developer-id")


def user_profiles_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Library", "MobileDevice", "Provisioning Profiles")


def decode_profile(profile_path: str, out_plist: str) -> None:
    """把描述文件解码为 XML plist 写入 `out_plist`。"""
    if not os.path.isfile(profile_path):
        raise ToolkitError(ErrorKind.PROFILE, f"Provisioning profile not found: {profile_path}")
    data = tools.run("security", ["cms", "-D", "-i", profile_path]).stdout
    if not data.strip():
        raise ToolkitError(ErrorKind.PROFILE, f"Provisioning profile details not found: {profile_path}")
    with open(out_plist, "w", encoding="utf-8") as f:
        f.write(data)


def plist_print(key: str, plist_file: str) -> str | None:
    """读取 plist 字段；字段不存在（PlistBuddy 非零退出）时返回 `None`。"""
    try:
        out = tools.run(PLIST_BUDDY, ["-c", f"Print {key}", plist_file]).stdout.strip()
    except ToolError as e:
        actions.debug(f"{key}: {e.stderr.strip()}")
        return None
    return out or None


@contextmanager
def _decoded(profile_path: str) -> Iterator[str]:
    """在临时目录中解码描述文件，返回 plist 路径；退出时自动清理。"""
    with tempfile.TemporaryDirectory(prefix="provprofile_") as td:
        plist = os.path.join(td, "profile.plist")
        decode_profile(profile_path, plist)
        yield plist


def install_provisioning_profile(profile_path: str) -> ProfileInfo:
    """把描述文件复制到 `~/Library/MobileDevice/Provisioning Profiles/<UUID><ext>`。"""
    with _decoded(profile_path) as plist:
        uuid = plist_print("UUID", plist)
        name = plist_print("Name", plist)

    if not uuid:
        raise ToolkitError(ErrorKind.PROFILE, f"Provisioning profile UUID not found: {profile_path}")
    if not name:
        actions.warning(f"Provisioning profile name not found: {profile_path}")
        name = ""

    # Xcode 从未运行过的机器上目录可能不存在。
    dest_dir = user_profiles_dir()
    os.makedirs(dest_dir, exist_ok=True)
    ext = os.path.splitext(profile_path)[1]
    dest = os.path.join(dest_dir, uuid.strip() + ext)
    actions.debug(f"copying provisioning profile to destination: {dest}")
    shutil.copyfile(profile_path, dest)
    return ProfileInfo(uuid=uuid.strip(), name=name, installed_path=dest)


def get_provisioning_profile_name(profile_path: str) -> str | None:
    with _decoded(profile_path) as plist:
        name = plist_print("Name", plist)
    actions.debug(f"getProvisioningProfileName: profile name = {name}")
    return name


def get_ios_profile_type(profile_path: str) -> str | None:
    """iOS 描述文件类型：`enterprise` / `development` / `app-store` / `ad-hoc`。"""
    try:
        with _decoded(profile_path) as plist:
            # 企业证书描述文件带 ProvisionsAllDevices = true。
            if plist_bool(plist_print("ProvisionsAllDevices", plist)):
                return "enterprise"
            if plist_bool(plist_print("Entitlements:get-task-allow", plist)):
                return "development"
            if not plist_print("ProvisionedDevices", plist):
                return "app-store"
            return "ad-hoc"
    except ToolkitError as e:
        actions.debug(str(e))
        return None


def get_macos_profile_type(profile_path: str) -> str | None:
    """macOS 描述文件类型：`developer-id` / `app-store` / `development`。"""
    try:
        with _decoded(profile_path) as plist:
            if plist_bool(plist_print("ProvisionsAllDevices", plist)):
                return "developer-id"
            if not plist_print("ProvisionedDevices", plist):
                return "app-store"
            return "development"
    except ToolkitError as e:
        actions.debug(str(e))
        return None


def get_cloud_entitlement(profile_path: str, export_method: str) -> str | None:
    """描述文件包含 iCloud 容器权限时，按导出方式返回 `Production` 或 `Development`。"""
    with _decoded(profile_path) as plist:
        env = plist_print("Entitlements:com.apple.developer.icloud-container-environment", plist)
    if not env:
        return None
    actions.debug("Provisioning profile contains cloud entitlement")
    return "Production" if export_method in _PRODUCTION_EXPORT_METHODS else "Development"


def delete_provisioning_profile(uuid: str) -> list[str]:
    """删除用户描述文件目录中所有以 `uuid` 开头的文件，返回已删除路径。"""
    if not uuid or not uuid.strip():
        return []
    profiles_dir = user_profiles_dir()
    deleted: list[str] = []
    for path in sorted(glob.glob(os.path.join(glob.escape(profiles_dir), glob.escape(uuid.strip()) + "*"))):
        if os.path.isfile(path):
            actions.info(f"Deleting provisioning profile: {path}")
            os.remove(path)
            deleted.append(path)
    return deleted
