"""
Pytest配置和全局fixtures
"""
import sys
from pathlib import Path

import pytest

# 添加项目根目录到Python路径，以便导入模块
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mtrfleet.models.host import AuthType, HostDescriptor  # noqa: E402


@pytest.fixture
def make_host():
    """主机描述工厂，默认使用密码认证"""
    def _make(host_id: int = 1, host: str = "10.0.0.1", **overrides) -> HostDescriptor:
        fields = {
            "id": host_id,
            "host": host,
            "username": "netops",
            "auth_type": AuthType.PASSWORD,
            "password": "s3cret-pass",
            "name": f"probe-{host_id}",
        }
        fields.update(overrides)
        return HostDescriptor(**fields)
    return _make
