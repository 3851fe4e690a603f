"""
诊断引擎模块

提供多主机mtr编排、连通性测试和报告导出功能
"""
import asyncio
from typing import Iterable, Optional

from ..integrations.config_loader import EngineSettings
from ..models.host import HostDescriptor
from ..models.results import AggregateResult, ProbeResult
from .orchestrator import (
    MAX_PROBE_COUNT,
    MIN_PROBE_COUNT,
    DiagnosticOrchestrator,
    InvalidInput,
    validate_target,
)
from .reporter import ReportGenerator, hops_to_csv


def execute_diagnostic(
    hosts: Iterable[HostDescriptor],
    target: str,
    probe_count: int = 10,
    settings: Optional[EngineSettings] = None
) -> AggregateResult:
    """同步调用入口: 在多台主机上执行mtr，所有主机结束后返回"""
    orchestrator = DiagnosticOrchestrator.from_settings(settings or EngineSettings.from_env())
    return asyncio.run(orchestrator.execute(hosts, target, probe_count))


def probe_connectivity(
    host: HostDescriptor,
    settings: Optional[EngineSettings] = None
) -> ProbeResult:
    """同步调用入口: 测试单台主机的SSH连通性"""
    orchestrator = DiagnosticOrchestrator.from_settings(settings or EngineSettings.from_env())
    return asyncio.run(orchestrator.runner.probe(host))


__all__ = [
    "DiagnosticOrchestrator",
    "InvalidInput",
    "validate_target",
    "MIN_PROBE_COUNT",
    "MAX_PROBE_COUNT",
    "ReportGenerator",
    "hops_to_csv",
    "execute_diagnostic",
    "probe_connectivity",
]
