"""
配置加载器

从环境变量加载引擎参数，从YAML清单文件加载主机列表
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models.host import HostDescriptor


class InventoryError(Exception):
    """主机清单格式错误"""
    pass


@dataclass
class EngineSettings:
    """引擎运行参数"""
    connect_timeout: float = 30.0       # 执行诊断时的连接超时（秒）
    probe_timeout: float = 10.0         # 连通性测试超时（秒）
    command_timeout: float = 300.0      # mtr命令执行超时（秒）
    max_concurrency: Optional[int] = None  # 并发上限，None表示不限制
    mtr_binary: str = "mtr"             # 远程mtr命令
    known_hosts: Optional[str] = None   # known_hosts路径，None表示不校验

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        从环境变量读取配置

        支持的环境变量:
            MTRFLEET_CONNECT_TIMEOUT, MTRFLEET_PROBE_TIMEOUT, MTRFLEET_COMMAND_TIMEOUT,
            MTRFLEET_MAX_CONCURRENCY, MTRFLEET_MTR_BINARY, MTRFLEET_KNOWN_HOSTS
        """
        max_concurrency = os.getenv("MTRFLEET_MAX_CONCURRENCY")
        known_hosts = os.getenv("MTRFLEET_KNOWN_HOSTS")
        return cls(
            connect_timeout=float(os.getenv("MTRFLEET_CONNECT_TIMEOUT", "30")),
            probe_timeout=float(os.getenv("MTRFLEET_PROBE_TIMEOUT", "10")),
            command_timeout=float(os.getenv("MTRFLEET_COMMAND_TIMEOUT", "300")),
            max_concurrency=int(max_concurrency) if max_concurrency else None,
            mtr_binary=os.getenv("MTRFLEET_MTR_BINARY", "mtr"),
            known_hosts=os.path.expanduser(known_hosts) if known_hosts else None
        )


def _expand_env(value: Optional[str]) -> Optional[str]:
    """替换 ${VAR} 形式的环境变量占位符"""
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


def _read_private_key(entry: Dict[str, Any], base_dir: Path) -> Optional[str]:
    """私钥可以直接写在清单里，也可以通过private_key_file引用"""
    key_file = entry.get("private_key_file")
    if key_file:
        path = Path(os.path.expanduser(str(key_file)))
        if not path.is_absolute():
            path = base_dir / path
        return path.read_text(encoding="utf-8")
    return _expand_env(entry.get("private_key"))


def _parse_host(entry: Any, index: int, base_dir: Path) -> HostDescriptor:
    if not isinstance(entry, dict):
        raise InventoryError(f"第{index}个主机配置不是字典")

    missing = [k for k in ("id", "host", "username", "auth_type") if k not in entry]
    if missing:
        raise InventoryError(f"第{index}个主机配置缺少字段: {', '.join(missing)}")

    try:
        return HostDescriptor(
            id=int(entry["id"]),
            host=str(entry["host"]),
            port=int(entry.get("port", 22)),
            username=str(entry["username"]),
            auth_type=entry["auth_type"],
            password=_expand_env(entry.get("password")),
            private_key=_read_private_key(entry, base_dir),
            name=entry.get("name"),
            location=entry.get("location"),
            is_active=bool(entry.get("is_active", True))
        )
    except (TypeError, ValueError, OSError) as e:
        raise InventoryError(f"第{index}个主机配置无效: {e}") from e


def load_inventory(config_path: Optional[str] = None) -> List[HostDescriptor]:
    """
    加载主机清单

    Args:
        config_path: 清单文件路径，如果为None则使用默认路径 config/hosts.yaml

    Returns:
        主机描述列表

    Raises:
        FileNotFoundError: 清单文件不存在
        yaml.YAMLError: 清单文件格式错误
        InventoryError: 主机配置缺少字段或字段无效
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = project_root / "config" / "hosts.yaml"

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"主机清单文件不存在: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        raise InventoryError("主机清单顶层必须是字典")

    entries = config_data.get('hosts', [])
    if not isinstance(entries, list):
        raise InventoryError("hosts 必须是列表")

    hosts = [_parse_host(entry, i, path.parent) for i, entry in enumerate(entries, 1)]
    print(f"[ConfigLoader] 成功加载 {len(hosts)} 台主机: {path}")
    return hosts
