"""
SSH会话执行器

通过SSH登录远程主机执行mtr命令，并提供轻量的连通性测试
每次调用独占一个SSH连接，调用结束（无论成功失败）都会关闭连接，不做连接复用
"""
import asyncio
import shlex
import time
from typing import Any, Callable, Dict, List, Optional, Union

import asyncssh

from ..models.host import AuthType, HostDescriptor
from ..models.results import CommandResult, ProbeResult
from ..utils.parsers import HopRecord, ParseError, parse_mtr_output


# 自定义异常类
class SessionError(Exception):
    """SSH会话错误基类，只影响单台主机"""
    pass


class ConnectError(SessionError):
    """连接建立失败异常"""
    pass


class AuthError(SessionError):
    """认证配置无效或认证被拒绝"""
    pass


class ExecError(SessionError):
    """命令执行失败或输出无法解析"""
    pass


class NonZeroExit(SessionError):
    """远程命令返回非0退出码"""
    def __init__(self, exit_code: int):
        super().__init__(f"MTR command exited with code {exit_code}")
        self.exit_code = exit_code


class SessionTimeout(SessionError):
    """连接或命令执行超时"""
    def __init__(self, message: str, phase: str):
        super().__init__(message)
        self.phase = phase              # "connect" | "command"


def _as_bytes(data: Union[bytes, str, None]) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


class SSHSessionRunner:
    """
    SSH会话执行器

    connector默认是asyncssh.connect，测试时可替换为假的连接工厂
    """

    DEFAULT_CONNECT_TIMEOUT = 30
    DEFAULT_PROBE_TIMEOUT = 10
    DEFAULT_COMMAND_TIMEOUT = 300
    DEFAULT_CLOSE_TIMEOUT = 5

    # 命令模板
    MTR_COMMAND_TEMPLATE = "{binary} --report --report-cycles {count} --json {target}"

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        mtr_binary: str = "mtr",
        known_hosts: Optional[str] = None,
        close_timeout: float = DEFAULT_CLOSE_TIMEOUT,
        connector: Optional[Callable[..., Any]] = None
    ):
        """
        初始化SSH会话执行器

        Args:
            connect_timeout: 执行诊断时的连接超时（秒）
            command_timeout: 远程命令的执行超时（秒）
            probe_timeout: 连通性测试的超时（秒）
            mtr_binary: 远程主机上的mtr命令名称或路径
            known_hosts: known_hosts文件路径，为None时不校验主机密钥
            close_timeout: 等待连接关闭的最长时间（秒），超时后放弃等待
            connector: SSH连接工厂，签名与asyncssh.connect一致
        """
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout
        self.probe_timeout = probe_timeout
        self.mtr_binary = mtr_binary
        self.known_hosts = known_hosts
        self.close_timeout = close_timeout
        self._connector = connector or asyncssh.connect

    def build_mtr_command(self, target: str, probe_count: int) -> str:
        """生成mtr命令，目标地址做shell转义"""
        return self.MTR_COMMAND_TEMPLATE.format(
            binary=self.mtr_binary,
            count=int(probe_count),
            target=shlex.quote(target)
        )

    def _build_connect_options(self, host: HostDescriptor) -> Dict[str, Any]:
        """
        根据认证方式生成连接参数

        Raises:
            AuthError: 凭据缺失或私钥无法加载（此时不会发起任何网络连接）
        """
        if not host.has_usable_credentials():
            raise AuthError("Invalid authentication configuration")

        options: Dict[str, Any] = {
            "host": host.host,
            "port": host.port,
            "username": host.username,
            "known_hosts": self.known_hosts,
            # 只使用描述中提供的凭据
            "agent_path": None,
        }

        if host.auth_type == AuthType.PASSWORD:
            options["password"] = host.password
            options["client_keys"] = None
        else:
            try:
                key = asyncssh.import_private_key(host.private_key)
            except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
                raise AuthError(f"Invalid private key: {e}") from e
            options["client_keys"] = [key]

        return options

    async def _connect(self, host: HostDescriptor, timeout: float):
        """
        建立SSH连接

        Raises:
            AuthError: 认证配置无效或被拒绝
            SessionTimeout: 在超时时间内未能建立连接
            ConnectError: 传输层错误
        """
        options = self._build_connect_options(host)

        try:
            return await asyncio.wait_for(self._connector(**options), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise SessionTimeout(f"connect timeout after {timeout}s", phase="connect") from e
        except asyncssh.PermissionDenied as e:
            raise AuthError(f"Authentication failed: {e}") from e
        except (asyncssh.Error, OSError) as e:
            raise ConnectError(f"SSH connection failed: {e}") from e

    async def _close(self, conn, host: HostDescriptor) -> None:
        try:
            conn.close()
            await asyncio.wait_for(conn.wait_closed(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            print(f"[SSHSession] 警告: 等待 {host.label} 的连接关闭超过 {self.close_timeout}s，放弃等待")
        except (asyncssh.Error, OSError) as e:
            print(f"[SSHSession] 警告: 关闭到 {host.label} 的连接时出错: {e}")

    async def _execute(self, host: HostDescriptor, command: str) -> CommandResult:
        """在已建立的连接上执行一条命令，连接在返回前关闭"""
        conn = await self._connect(host, self.connect_timeout)
        started = time.monotonic()

        try:
            completed = await asyncio.wait_for(
                conn.run(command, check=False, encoding=None),
                timeout=self.command_timeout
            )
        except asyncio.TimeoutError as e:
            raise SessionTimeout(
                f"command timeout after {self.command_timeout}s", phase="command"
            ) from e
        except (asyncssh.Error, OSError) as e:
            raise ExecError(f"Failed to execute command: {e}") from e
        finally:
            await self._close(conn, host)

        exit_status = completed.exit_status
        return CommandResult(
            command=command,
            host=host.label,
            stdout=_as_bytes(completed.stdout),
            stderr=_as_bytes(completed.stderr),
            exit_code=exit_status if exit_status is not None else -1,
            execution_time=time.monotonic() - started
        )

    async def run_command(self, host: HostDescriptor, command: str) -> bytes:
        """
        在远程主机上执行命令

        Args:
            host: 主机连接描述
            command: 要执行的命令

        Returns:
            bytes: 命令的标准输出

        Raises:
            AuthError / ConnectError / SessionTimeout: 连接阶段失败
            ExecError: 命令无法执行
            NonZeroExit: 命令返回非0退出码
        """
        result = await self._execute(host, command)

        # stderr只用于排查，不影响结果
        if result.stderr.strip():
            stderr_text = result.stderr.decode("utf-8", errors="replace").strip()
            print(f"[SSHSession] {host.label} stderr: {stderr_text}")

        print(f"[SSHSession] {result}")

        if not result.success:
            raise NonZeroExit(result.exit_code)

        return result.stdout

    async def execute_mtr(
        self,
        host: HostDescriptor,
        target: str,
        probe_count: int
    ) -> List[HopRecord]:
        """
        在远程主机上执行mtr并解析结果

        Returns:
            List[HopRecord]: 跳点列表

        Raises:
            ExecError: 输出无法解析（包装ParseError）
            以及run_command的所有异常
        """
        command = self.build_mtr_command(target, probe_count)
        output = await self.run_command(host, command)

        try:
            return parse_mtr_output(output)
        except ParseError as e:
            raise ExecError(f"Failed to parse MTR output: {e}") from e

    async def probe(self, host: HostDescriptor, timeout: Optional[float] = None) -> ProbeResult:
        """
        测试SSH连通性

        只建立连接不执行命令，建立成功后立即关闭。
        不会抛出异常，连接失败作为正常结果返回。

        Args:
            host: 主机连接描述
            timeout: 超时时间（秒），默认使用probe_timeout

        Returns:
            ProbeResult: 连通性测试结果
        """
        deadline = self.probe_timeout if timeout is None else timeout

        try:
            conn = await self._connect(host, deadline)
        except SessionError as e:
            return ProbeResult(reachable=False, message=str(e))
        except Exception as e:
            print(f"[SSHSession] 错误: 测试 {host.label} 连通性时发生未知错误: {e}")
            return ProbeResult(reachable=False, message=str(e))

        await self._close(conn, host)
        return ProbeResult(reachable=True, message="Connection successful")
