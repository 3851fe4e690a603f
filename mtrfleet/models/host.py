"""
主机相关数据模型
定义远程探测主机的连接参数
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AuthType(str, Enum):
    """SSH认证方式枚举"""
    PASSWORD = "password"
    KEY = "key"


@dataclass(frozen=True)
class HostDescriptor:
    """
    主机连接描述

    由外部存储层提供，引擎只在单次调用期间读取，不做缓存。
    密码和私钥不参与repr，避免出现在日志中。
    """
    id: int                             # 主机唯一ID
    host: str                           # IP地址或主机名
    username: str                       # 登录用户名
    auth_type: AuthType                 # 认证方式
    port: int = 22                      # SSH端口
    password: Optional[str] = field(default=None, repr=False)     # 密码（password认证）
    private_key: Optional[str] = field(default=None, repr=False)  # 私钥内容（key认证）
    name: Optional[str] = None          # 显示名称
    location: Optional[str] = None      # 机房/地域标签
    is_active: bool = True              # 是否启用

    def __post_init__(self):
        """允许以字符串形式传入认证方式"""
        object.__setattr__(self, "auth_type", AuthType(self.auth_type))

    def __str__(self) -> str:
        return f"{self.label} ({self.username}@{self.host}:{self.port})"

    @property
    def label(self) -> str:
        """用于日志和终端输出的名称"""
        return self.name or f"host-{self.id}"

    def has_usable_credentials(self) -> bool:
        """检查认证方式与凭据是否匹配"""
        if self.auth_type == AuthType.PASSWORD:
            return bool(self.password)
        if self.auth_type == AuthType.KEY:
            return bool(self.private_key and self.private_key.strip())
        return False

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式（不包含凭据）"""
        return {
            "id": self.id,
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "username": self.username,
            "auth_type": self.auth_type.value,
            "location": self.location,
            "is_active": self.is_active,
        }
