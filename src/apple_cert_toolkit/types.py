"""
安装流程、钥匙串管理与描述文件处理共享的轻量类型定义。
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class CertificateProperties:
    """从 P12 证书中读取到的 X.509 关键信息。"""

    # 去掉冒号后的 SHA-1 指纹，例如 `BB2683C6...`。
    fingerprint: str
    common_name: str
    not_before: datetime | None = None
    not_after: datetime | None = None


class KeychainSetup(Enum):
    """`keychain.ensure` 的结果：新建或复用已有钥匙串。"""

    CREATED = "created"
    REUSED = "reused"


@dataclass(frozen=True)
class InstallOptions:
    """一次证书安装所需的全部输入。"""

    encoded_certificate: str
    certificate_password: str
    # `keychain` 取值：
    # - `temp`：固定路径的临时钥匙串，密码随机生成。
    # - `default`：当前用户的默认钥匙串。
    # - `custom`：调用方指定的路径与密码。
    keychain: str
    keychain_password: str = ""
    custom_keychain_path: str = ""
    signing_identity_override: str = ""


@dataclass(frozen=True)
class InstallResult:
    """安装完成后导出给后续步骤的值。"""

    fingerprint: str
    signing_identity: str
    keychain_path: str
    keychain_setup: KeychainSetup
    # 仅 temp 模式下有值，调用方提供的密码不会回传。
    keychain_password: str | None = None


@dataclass(frozen=True)
class ProfileInfo:
    """已安装的签名描述文件。"""

    uuid: str
    name: str
    installed_path: str
