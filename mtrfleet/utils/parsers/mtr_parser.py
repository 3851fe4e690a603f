"""
MTR输出解析器

将mtr命令的原始输出解析为跳点列表，兼容两种输出格式:
    1. --json 结构化输出（较新的mtr版本）
    2. 旧版的文本报告输出（部分构建不支持JSON）

调用方无法提前知道某台主机会返回哪种格式，所以每次调用都会按顺序尝试全部解析策略，
第一个成功的结果即为最终结果。
"""
import json
import math
import re
from typing import Any, Callable, List, Sequence, Union

from .base import UNKNOWN_HOST, HopRecord, ParseError

RawOutput = Union[bytes, str]

# 数值字段的前缀匹配，例如 "12.5%" -> 12.5
_NUMBER_PREFIX = re.compile(r"^\s*(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")

# 文本报告的数据行格式:
#   1. router1.net  0.0%  10  1.2  1.5  1.1  2.0  0.3
_TEXT_HOP_PATTERN = re.compile(
    r"^\s*(\d+)\.\s+(\S+)\s+(\d+(?:\.\d+)?)%\s+(\d+)"
    r"\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)\s+(\d+(?:\.\d+)?)"
)


def _decode(raw_output: RawOutput) -> str:
    if isinstance(raw_output, bytes):
        return raw_output.decode("utf-8", errors="replace")
    return raw_output


def _to_float(value: Any) -> float:
    """
    宽松地转换数值字段

    缺失或无法解析的值按0处理，而不是让整条记录失败。
    NaN、无穷大和负数同样按0处理，跳点数值不会为负。
    注意: 这会把损坏的报告伪装成全0的跳点，这是为了兼容历史行为而保留的。
    """
    if isinstance(value, bool) or value is None:
        return 0.0

    result = 0.0
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            return 0.0
    elif isinstance(value, str):
        match = _NUMBER_PREFIX.match(value)
        if match:
            result = float(match.group(0))

    if not math.isfinite(result) or result < 0:
        return 0.0
    return result


def _to_int(value: Any) -> int:
    return int(_to_float(value))


def parse_json_report(output: str) -> List[HopRecord]:
    """
    解析mtr --json输出

    示例输入:
        {"report": {"mtr": {...}, "hubs": [
            {"count": 1, "host": "10.0.0.1", "Loss%": 0.0, "Snt": 10,
             "Last": 0.3, "Avg": 0.4, "Best": 0.3, "Wrst": 0.6, "StDev": 0.1}
        ]}}

    Raises:
        ParseError: 顶层report/hubs结构缺失或格式不正确
    """
    try:
        data = json.loads(output)
    except ValueError as e:
        raise ParseError(f"invalid JSON: {e}", output) from e

    report = data.get("report") if isinstance(data, dict) else None
    if not isinstance(report, dict):
        raise ParseError("missing report object", output)

    hubs = report.get("hubs")
    if not isinstance(hubs, list) or not hubs:
        raise ParseError("missing or empty hubs list", output)

    hops: List[HopRecord] = []
    for index, hub in enumerate(hubs):
        if not isinstance(hub, dict):
            raise ParseError(f"hub #{index + 1} is not an object", output)

        host = hub.get("host")
        # 新版mtr输出"Loss%"，兼容两种键名
        loss = hub["Loss"] if "Loss" in hub else hub.get("Loss%")

        hops.append(HopRecord(
            hop=index + 1,
            host=str(host) if host else UNKNOWN_HOST,
            loss=_to_float(loss),
            sent=_to_int(hub.get("Snt")),
            last=_to_float(hub.get("Last")),
            avg=_to_float(hub.get("Avg")),
            best=_to_float(hub.get("Best")),
            worst=_to_float(hub.get("Wrst")),
            stdev=_to_float(hub.get("StDev")),
        ))

    return hops


def parse_text_report(output: str) -> List[HopRecord]:
    """
    解析旧版mtr文本报告

    示例输入:
        Start: 2024-01-01T10:00:00+0000
        HOST: probe-01              Loss%   Snt   Last   Avg  Best  Wrst StDev
          1. router1.net             0.0%    10    1.2   1.5   1.1   2.0   0.3

    解析逻辑:
        1. 跳过表头之前的所有行（表头需同时包含"Host"和"Loss"，区分大小写）
        2. 表头之后逐行匹配固定格式，不匹配的行直接忽略
        3. 一行都没有匹配到则解析失败

    Raises:
        ParseError: 没有找到任何跳点数据
    """
    hops: List[HopRecord] = []
    data_started = False

    for line in output.splitlines():
        if not line.strip():
            continue

        if not data_started:
            if "Host" in line and "Loss" in line:
                data_started = True
            continue

        match = _TEXT_HOP_PATTERN.match(line)
        if not match:
            continue

        hops.append(HopRecord(
            hop=int(match.group(1)),
            host=match.group(2),
            loss=float(match.group(3)),
            sent=int(match.group(4)),
            last=float(match.group(5)),
            avg=float(match.group(6)),
            best=float(match.group(7)),
            worst=float(match.group(8)),
            stdev=float(match.group(9)),
        ))

    if not hops:
        raise ParseError("no hop data found", output)

    return hops


# 按优先级排列的解析策略，结构化输出优先
MTR_PARSE_STRATEGIES: Sequence[Callable[[str], List[HopRecord]]] = (
    parse_json_report,
    parse_text_report,
)


def parse_mtr_output(raw_output: RawOutput) -> List[HopRecord]:
    """
    解析mtr输出

    Args:
        raw_output: mtr命令的标准输出（bytes或str）

    Returns:
        List[HopRecord]: 按跳数排列的跳点列表，不会为空

    Raises:
        ParseError: 所有解析策略都失败
    """
    output = _decode(raw_output)

    last_error = ParseError("no hop data found", output)
    for strategy in MTR_PARSE_STRATEGIES:
        try:
            return strategy(output)
        except ParseError as e:
            last_error = e

    raise last_error
