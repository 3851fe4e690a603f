"""
执行结果相关数据模型
定义命令执行结果、单主机诊断结果和批量聚合结果
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..utils.parsers.base import HopRecord


@dataclass
class CommandResult:
    """
    命令执行结果

    记录单个命令在特定主机上的执行结果
    """
    command: str                        # 执行的命令
    host: str                           # 执行命令的主机
    stdout: bytes                       # 标准输出（原始字节）
    stderr: bytes                       # 标准错误输出
    exit_code: int                      # 退出码，被信号终止时为-1
    execution_time: float               # 执行耗时（秒）
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def __str__(self) -> str:
        status = "OK" if self.success else "FAIL"
        return (f"{status} [{self.host}] {self.command} "
               f"(exit={self.exit_code}, time={self.execution_time:.2f}s)")


class FailureKind(str, Enum):
    """单主机失败类型枚举"""
    INVALID_HOST = "invalid_host"        # 主机描述不合法
    CONNECT = "connect"                  # 连接失败
    AUTH = "auth"                        # 认证失败
    EXEC = "exec"                        # 命令执行失败或输出无法解析
    NON_ZERO_EXIT = "non_zero_exit"      # 命令返回非0退出码
    TIMEOUT = "timeout"                  # 连接或执行超时
    SKIPPED = "skipped"                  # 主机未启用，未执行
    UNEXPECTED = "unexpected"            # 未预期的异常


@dataclass(frozen=True)
class Success:
    """单主机诊断成功"""
    hops: Tuple[HopRecord, ...]

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "completed",
            "hops": [hop.to_dict() for hop in self.hops],
        }


@dataclass(frozen=True)
class Failure:
    """单主机诊断失败"""
    kind: FailureKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "failed",
            "error_type": self.kind.value,
            "error_message": self.message,
        }


DiagnosticOutcome = Union[Success, Failure]


@dataclass
class AggregateResult:
    """
    批量诊断的聚合结果

    key为主机ID，每台主机恰好对应一个结果。
    各主机任务只写入自己的key，因此不需要加锁。
    """
    target: str                         # 探测目标
    probe_count: int                    # 每跳探测次数
    outcomes: Dict[int, DiagnosticOutcome] = field(default_factory=dict)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def record(self, host_id: int, outcome: DiagnosticOutcome) -> None:
        """写入单个主机的结果"""
        if host_id in self.outcomes:
            raise KeyError(f"outcome for host {host_id} already recorded")
        self.outcomes[host_id] = outcome

    def __getitem__(self, host_id: int) -> DiagnosticOutcome:
        return self.outcomes[host_id]

    def __contains__(self, host_id: object) -> bool:
        return host_id in self.outcomes

    def __len__(self) -> int:
        return len(self.outcomes)

    def succeeded(self) -> Dict[int, Success]:
        """成功的主机"""
        return {k: v for k, v in self.outcomes.items() if isinstance(v, Success)}

    def failed(self) -> Dict[int, Failure]:
        """失败的主机"""
        return {k: v for k, v in self.outcomes.items() if isinstance(v, Failure)}

    def summary(self) -> Dict[str, int]:
        """统计信息"""
        successful = len(self.succeeded())
        return {
            "total_traces": len(self.outcomes),
            "successful_traces": successful,
            "failed_traces": len(self.outcomes) - successful,
        }

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "target": self.target,
            "probe_count": self.probe_count,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "summary": self.summary(),
            "results": {str(k): v.to_dict() for k, v in sorted(self.outcomes.items())},
        }


@dataclass(frozen=True)
class ProbeResult:
    """连通性测试结果"""
    reachable: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"reachable": self.reachable, "message": self.message}


def hops_as_list(outcome: DiagnosticOutcome) -> List[HopRecord]:
    """取出成功结果中的跳点，失败时返回空列表"""
    if isinstance(outcome, Success):
        return list(outcome.hops)
    return []
