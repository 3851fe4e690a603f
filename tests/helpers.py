"""
测试辅助工具

模拟asyncssh的连接工厂和连接对象，以及mtr输出样例
"""
import asyncio
import json
from typing import Dict, List, Optional


def make_mtr_json(hop_count: int) -> bytes:
    """生成指定跳数的mtr --json输出"""
    hubs = [
        {
            "count": i,
            "host": f"10.0.{i}.1",
            "Loss%": 0.0,
            "Snt": 10,
            "Last": 1.0 * i,
            "Avg": 1.5 * i,
            "Best": 0.5 * i,
            "Wrst": 2.0 * i,
            "StDev": 0.1,
        }
        for i in range(1, hop_count + 1)
    ]
    return json.dumps({"report": {"mtr": {"dst": "8.8.8.8", "tests": 10}, "hubs": hubs}}).encode()


class FakeCompletedProcess:
    """模拟asyncssh.SSHCompletedProcess"""
    def __init__(self, stdout: bytes, stderr: bytes, exit_status: Optional[int]):
        self.stdout = stdout
        self.stderr = stderr
        self.exit_status = exit_status


class FakeConnection:
    """模拟asyncssh.SSHClientConnection，记录执行的命令和关闭状态"""

    def __init__(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        exit_status: Optional[int] = 0,
        run_delay: float = 0,
        run_error: Optional[Exception] = None,
        hang_on_close: bool = False
    ):
        self.stdout = stdout
        self.stderr = stderr
        self.exit_status = exit_status
        self.run_delay = run_delay
        self.run_error = run_error
        self.hang_on_close = hang_on_close
        self.commands: List[str] = []
        self.closed = False

    async def run(self, command, check=False, encoding="utf-8"):
        self.commands.append(command)
        if self.run_delay:
            await asyncio.sleep(self.run_delay)
        if self.run_error:
            raise self.run_error
        return FakeCompletedProcess(self.stdout, self.stderr, self.exit_status)

    def close(self):
        self.closed = True

    async def wait_closed(self):
        if self.hang_on_close:
            await asyncio.sleep(3600)
        return None


class ConnectDelay:
    """连接前等待指定秒数，然后返回连接（connection为None时一直挂起）"""
    def __init__(self, seconds: float, connection: Optional[FakeConnection] = None):
        self.seconds = seconds
        self.connection = connection


class FakeConnector:
    """
    模拟asyncssh.connect

    behaviours: 主机地址 -> FakeConnection | ConnectDelay | 异常实例
    """

    def __init__(self, behaviours: Dict[str, object]):
        self.behaviours = behaviours
        self.calls: List[dict] = []

    async def __call__(self, **options):
        self.calls.append(options)
        behaviour = self.behaviours[options["host"]]

        if isinstance(behaviour, ConnectDelay):
            await asyncio.sleep(behaviour.seconds)
            if behaviour.connection is None:
                await asyncio.sleep(3600)
            return behaviour.connection
        if isinstance(behaviour, BaseException):
            raise behaviour
        return behaviour

    def call_count(self, host: str) -> int:
        return sum(1 for call in self.calls if call["host"] == host)

