"""
外部服务集成包

提供SSH会话执行器和配置加载
"""
from .config_loader import EngineSettings, InventoryError, load_inventory
from .ssh_client import (
    AuthError,
    ConnectError,
    ExecError,
    NonZeroExit,
    SessionError,
    SessionTimeout,
    SSHSessionRunner,
)

__all__ = [
    "SSHSessionRunner",
    "SessionError",
    "ConnectError",
    "AuthError",
    "ExecError",
    "NonZeroExit",
    "SessionTimeout",
    "EngineSettings",
    "InventoryError",
    "load_inventory",
]
