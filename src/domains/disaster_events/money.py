"""
金额工具

数据库 Numeric 读出为 Decimal，对外以字符串返回，内部累加全部使用 Decimal。
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """空值（None/空字符串）按0处理"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def decimal_sum(values: Iterable[Any]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def format_decimal(value: Decimal) -> str:
    """
    规范化输出: 300.00 -> "300", 12.50 -> "12.5", 0.0000001 -> "0.0000001"

    始终用定点写法，normalize() 之后直接 str() 会出现 3E+2、1E-7 这类科学计数法。
    """
    return format(value.normalize(), "f")
