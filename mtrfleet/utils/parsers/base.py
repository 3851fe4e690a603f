"""
解析器基础数据结构

定义mtr输出解析共用的跳点记录和解析异常
"""
from dataclasses import dataclass
from typing import Any, Dict

# host字段缺失时使用的占位符（与mtr自身的显示保持一致）
UNKNOWN_HOST = "???"


@dataclass(frozen=True)
class HopRecord:
    """mtr报告中的单个跳点"""
    hop: int                           # 跳数，从1开始
    host: str                          # 主机名/IP，未知时为"???"
    loss: float                        # 丢包率 (0-100)
    sent: int                          # 发送的探测包数量
    last: float                        # 最近一次延迟(ms)
    avg: float                         # 平均延迟(ms)
    best: float                        # 最小延迟(ms)
    worst: float                       # 最大延迟(ms)
    stdev: float                       # 标准差

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "hop": self.hop,
            "host": self.host,
            "loss": self.loss,
            "sent": self.sent,
            "last": self.last,
            "avg": self.avg,
            "best": self.best,
            "worst": self.worst,
            "stdev": self.stdev,
        }


class ParseError(Exception):
    """解析错误异常"""
    def __init__(self, message: str, raw_output: str = ""):
        super().__init__(message)
        self.raw_output = raw_output
