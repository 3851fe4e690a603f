"""
命令输出解析器包

提供mtr输出解析器及其数据结构的导入
"""
from .base import UNKNOWN_HOST, HopRecord, ParseError
from .mtr_parser import (
    MTR_PARSE_STRATEGIES,
    parse_json_report,
    parse_mtr_output,
    parse_text_report,
)

__all__ = [
    # 数据结构
    "HopRecord",
    "ParseError",
    "UNKNOWN_HOST",
    # 解析器函数
    "MTR_PARSE_STRATEGIES",
    "parse_json_report",
    "parse_text_report",
    "parse_mtr_output",
]
