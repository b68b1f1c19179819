"""
job 结束时的清理：删除安装步骤创建的临时钥匙串，可选删除描述文件。

清理是尽力而为的：任何异常只记录为警告，不会让 job 失败。
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping

from . import actions, keychain, provisioning
from .installer import ENV_KEYCHAIN

ENV_PROFILE_UUID = "APPLE_PROV_PROFILE_UUID"


def cleanup(*, remove_profile: bool, environ: Mapping[str, str] | None = None) -> None:
    env = os.environ if environ is None else environ
    if sys.platform != "darwin":
        actions.debug("Cleanup skipped: not running on macOS.")
        return

    # 两步互不依赖，任一步失败都不影响另一步。
    try:
        _delete_temp_keychain(env.get(ENV_KEYCHAIN, ""))
    except Exception as e:
        actions.warning(f"Cleanup failed: {e}")

    if remove_profile:
        try:
            _delete_profile(env.get(ENV_PROFILE_UUID, ""))
        except Exception as e:
            actions.warning(f"Cleanup failed: {e}")


def _delete_temp_keychain(keychain_path: str) -> None:
    if not keychain_path:
        return
    # default / custom 钥匙串属于调用方，只删除临时钥匙串。
    if keychain_path == keychain.temp_keychain_path():
        actions.info(f"Deleting temporary keychain: {keychain_path}")
        keychain.delete(keychain_path)
    else:
        actions.debug(f"Keeping non-temporary keychain: {keychain_path}")


def _delete_profile(uuid: str) -> None:
    if uuid:
        provisioning.delete_provisioning_profile(uuid)
    else:
        actions.debug(f"{ENV_PROFILE_UUID} not set; no provisioning profile to delete.")
