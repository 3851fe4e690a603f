"""
数据模型包
提供所有核心数据结构的导入
"""
from .host import AuthType, HostDescriptor
from .results import (
    AggregateResult,
    CommandResult,
    DiagnosticOutcome,
    Failure,
    FailureKind,
    ProbeResult,
    Success,
)

__all__ = [
    # 枚举类型
    "AuthType",
    "FailureKind",
    # 主机相关
    "HostDescriptor",
    # 结果相关
    "CommandResult",
    "Success",
    "Failure",
    "DiagnosticOutcome",
    "AggregateResult",
    "ProbeResult",
]
