"""
诊断编排器

把一次mtr诊断请求并发分发到多台主机，每台主机的失败互不影响，
所有主机都结束（成功、失败或超时）后返回聚合结果
"""
import asyncio
import contextlib
import ipaddress
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..integrations.config_loader import EngineSettings
from ..integrations.ssh_client import (
    AuthError,
    ConnectError,
    ExecError,
    NonZeroExit,
    SessionTimeout,
    SSHSessionRunner,
)
from ..models.host import HostDescriptor
from ..models.results import (
    AggregateResult,
    DiagnosticOutcome,
    Failure,
    FailureKind,
    ProbeResult,
    Success,
)

MIN_PROBE_COUNT = 1
MAX_PROBE_COUNT = 100

_HOSTNAME_PATTERN = re.compile(
    r"^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$"
)


class InvalidInput(ValueError):
    """调用参数不合法，整个请求不会执行"""
    pass


def validate_target(target: str) -> str:
    """
    校验探测目标（主机名、IPv4或IPv6）

    Returns:
        去除首尾空白后的目标

    Raises:
        InvalidInput: 目标为空或格式不正确
    """
    if not isinstance(target, str) or not target.strip():
        raise InvalidInput("target must not be empty")

    target = target.strip()
    try:
        ipaddress.ip_address(target)
        return target
    except ValueError:
        pass

    if len(target) <= 253 and _HOSTNAME_PATTERN.match(target):
        return target

    raise InvalidInput(f"invalid target: {target!r}")


def _descriptor_problem(host: HostDescriptor) -> Optional[str]:
    """检查主机描述的基本字段，认证相关的检查由会话执行器负责"""
    if not host.host or not host.host.strip():
        return "host address is empty"
    if not 1 <= host.port <= 65535:
        return f"invalid port number: {host.port}"
    return None


class DiagnosticOrchestrator:
    """
    诊断编排器

    每台主机一个独立的asyncio任务，结果按主机ID写入AggregateResult
    """

    def __init__(
        self,
        runner: Optional[SSHSessionRunner] = None,
        max_concurrency: Optional[int] = None
    ):
        """
        初始化编排器

        Args:
            runner: SSH会话执行器
            max_concurrency: 同时进行的SSH会话上限，None表示每台主机立即启动
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.runner = runner or SSHSessionRunner()
        self.max_concurrency = max_concurrency

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "DiagnosticOrchestrator":
        """根据EngineSettings创建编排器"""
        runner = SSHSessionRunner(
            connect_timeout=settings.connect_timeout,
            command_timeout=settings.command_timeout,
            probe_timeout=settings.probe_timeout,
            mtr_binary=settings.mtr_binary,
            known_hosts=settings.known_hosts
        )
        return cls(runner=runner, max_concurrency=settings.max_concurrency)

    def _validate(
        self,
        hosts: List[HostDescriptor],
        target: str,
        probe_count: int
    ) -> str:
        if not hosts:
            raise InvalidInput("at least one host is required")

        if (isinstance(probe_count, bool) or not isinstance(probe_count, int)
                or not MIN_PROBE_COUNT <= probe_count <= MAX_PROBE_COUNT):
            raise InvalidInput(
                f"probe_count must be an integer in [{MIN_PROBE_COUNT}, {MAX_PROBE_COUNT}]"
            )

        seen = set()
        for host in hosts:
            if host.id in seen:
                raise InvalidInput(f"duplicate host id: {host.id}")
            seen.add(host.id)

        return validate_target(target)

    def _limiter(self):
        if self.max_concurrency:
            return asyncio.Semaphore(self.max_concurrency)
        return contextlib.nullcontext()

    async def execute(
        self,
        hosts: Iterable[HostDescriptor],
        target: str,
        probe_count: int = 10
    ) -> AggregateResult:
        """
        在多台主机上并发执行mtr

        Args:
            hosts: 主机列表
            target: 探测目标
            probe_count: 每跳探测次数 (1-100)

        Returns:
            AggregateResult: 每台主机恰好一个结果

        Raises:
            InvalidInput: 参数不合法（此时不会启动任何任务）
        """
        hosts = list(hosts)
        target = self._validate(hosts, target, probe_count)

        aggregate = AggregateResult(target=target, probe_count=probe_count)
        limiter = self._limiter()

        print(f"[Orchestrator] 在 {len(hosts)} 台主机上执行mtr: "
              f"target={target}, count={probe_count}")

        await asyncio.gather(*(
            self._run_host(host, target, probe_count, aggregate, limiter)
            for host in hosts
        ))

        aggregate.completed_at = datetime.now()
        summary = aggregate.summary()
        print(f"[Orchestrator] 完成: 成功 {summary['successful_traces']}, "
              f"失败 {summary['failed_traces']}")
        return aggregate

    async def _run_host(
        self,
        host: HostDescriptor,
        target: str,
        probe_count: int,
        aggregate: AggregateResult,
        limiter
    ) -> None:
        outcome = await self._diagnose(host, target, probe_count, limiter)
        aggregate.record(host.id, outcome)

        if isinstance(outcome, Success):
            print(f"[Orchestrator] {host.label}: {len(outcome.hops)} 跳")
        else:
            print(f"[Orchestrator] {host.label} 执行失败: {outcome}")

    async def _diagnose(
        self,
        host: HostDescriptor,
        target: str,
        probe_count: int,
        limiter
    ) -> DiagnosticOutcome:
        """执行单台主机的诊断，所有异常都转换为Failure"""
        if not host.is_active:
            return Failure(FailureKind.SKIPPED, "host is inactive")

        problem = _descriptor_problem(host)
        if problem:
            return Failure(FailureKind.INVALID_HOST, problem)

        try:
            async with limiter:
                hops = await self.runner.execute_mtr(host, target, probe_count)
        except SessionTimeout as e:
            return Failure(FailureKind.TIMEOUT, str(e))
        except AuthError as e:
            return Failure(FailureKind.AUTH, str(e))
        except ConnectError as e:
            return Failure(FailureKind.CONNECT, str(e))
        except NonZeroExit as e:
            return Failure(FailureKind.NON_ZERO_EXIT, str(e))
        except ExecError as e:
            return Failure(FailureKind.EXEC, str(e))
        except Exception as e:
            return Failure(FailureKind.UNEXPECTED, f"{type(e).__name__}: {e}")

        return Success(tuple(hops))

    async def probe_all(
        self,
        hosts: Iterable[HostDescriptor],
        timeout: Optional[float] = None
    ) -> Dict[int, ProbeResult]:
        """
        并发测试多台主机的SSH连通性

        Returns:
            Dict[int, ProbeResult]: 主机ID到测试结果的映射
        """
        hosts = list(hosts)
        limiter = self._limiter()

        async def _probe(host: HostDescriptor) -> ProbeResult:
            async with limiter:
                return await self.runner.probe(host, timeout)

        results = await asyncio.gather(*(_probe(host) for host in hosts))
        return {host.id: result for host, result in zip(hosts, results)}
