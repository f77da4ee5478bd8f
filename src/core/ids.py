"""
入参ID校验

服务层在访问数据库之前统一校验，空值或格式错误抛 InvalidArgumentError
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from src.core.exceptions import InvalidArgumentError


def require_uuid(value: Any, name: str) -> UUID:
    if isinstance(value, UUID):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidArgumentError(name)
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise InvalidArgumentError(name, f"Malformed UUID for {name}: {value!r}")


def require_int(value: Any, name: str) -> int:
    """整数主键（行政区划、部门），接受 "5" 形式的字符串"""
    if isinstance(value, bool) or value is None:
        raise InvalidArgumentError(name)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidArgumentError(name, f"Malformed integer id for {name}: {value!r}")
