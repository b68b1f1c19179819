"""
从 `openssl` / `security` / `PlistBuddy` 文本输出中提取字段的纯函数。

所有函数在字段缺失时返回 `None`（或空列表），是否致命由调用方决定。
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_CN_SLASH_RE = re.compile(r"/CN=([^/]+)")
# OpenSSL 3 默认输出 `subject=C = US, CN = Name, OU = X`。
_CN_COMMA_RE = re.compile(r"(?:^|,)\s*CN\s*=\s*([^,]+)")
_FRIENDLY_NAME_RE = re.compile(r"friendlyName: (.*)")
_QUOTED_RE = re.compile(r'"(.+?)"')
_KEYCHAIN_LIST_SPLIT_RE = re.compile(r"[\n\r\f\v]")

_MONTHS = {
    m: i
    for i, m in enumerate(
        ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        start=1,
    )
}
_OPENSSL_DATE_RE = re.compile(
    r"^([A-Za-z]{3})\s+(\d{1,2})\s+(\d{1,2}):(\d{2}):(\d{2})(?:\.\d+)?\s+(\d{4})(?:\s+(\S+))?$"
)
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def split_key_value(line: str) -> tuple[str, str] | None:
    """
    在第一个 `=` 处拆分 `key=value`。

    不能用 `split("=")`：证书主题形如 `/UID=X/CN=Name/OU=Y`，值里本身带 `=`。
    """
    index = line.find("=")
    if index < 0:
        return None
    return line[:index], line[index + 1:]


def normalize_fingerprint(value: str) -> str:
    """`BB:26:83:...` -> `BB2683...`。"""
    return value.replace(":", "").strip()


def extract_common_name(subject: str) -> str | None:
    m = _CN_SLASH_RE.search(subject)
    if m is None and "/" not in subject:
        m = _CN_COMMA_RE.search(subject)
    if m is None:
        return None
    name = m.group(1).strip()
    return name or None


def _tz_from_token(token: str | None) -> timezone | None:
    if token is None or token.upper() in ("GMT", "UTC", "Z"):
        return timezone.utc
    m = _OFFSET_RE.match(token)
    if not m:
        return None
    delta = timedelta(hours=int(m.group(2)), minutes=int(m.group(3)))
    return timezone(-delta if m.group(1) == "-" else delta)


def parse_openssl_date(text: str) -> datetime | None:
    """
    解析 `openssl x509 -dates` 的时间，例如 `Nov 13 03:37:42 2018 GMT`。

    也接受 ISO-8601（`-dateopt iso_8601`）。返回带时区的 `datetime`，无法解析返回 `None`。
    """
    s = text.strip()
    if not s:
        return None

    m = _OPENSSL_DATE_RE.match(s)
    if m:
        month = _MONTHS.get(m.group(1).capitalize())
        tz = _tz_from_token(m.group(7))
        if month is None or tz is None:
            return None
        try:
            return datetime(
                int(m.group(6)),
                month,
                int(m.group(2)),
                int(m.group(3)),
                int(m.group(4)),
                int(m.group(5)),
                tzinfo=tz,
            )
        except ValueError:
            return None

    iso = s[:-1] + "+00:00" if s.endswith("Z") else s
    try:
        dt = datetime.fromisoformat(iso)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def extract_friendly_name(text: str) -> str | None:
    m = _FRIENDLY_NAME_RE.search(text)
    if m is None:
        return None
    name = m.group(1).strip()
    return name or None


def plist_bool(text: str | None) -> bool:
    """PlistBuddy 打印的布尔值（`true` / `false`）。"""
    return bool(text) and text.strip().lower() == "true"


def parse_keychain_list(output: str) -> list[str]:
    """解析 `security list-keychain` 输出：每行一个带引号的路径。"""
    out: list[str] = []
    for entry in _KEYCHAIN_LIST_SPLIT_RE.split(output):
        path = entry.strip().replace('"', "")
        if path:
            out.append(path)
    return out


def extract_quoted_identity(output: str) -> str | None:
    """取 `security find-identity` 输出中第一个双引号内的身份名。"""
    m = _QUOTED_RE.search(output)
    if m is None:
        return None
    return m.group(1)
