"""全局 pytest 配置 -- 测试用身份请求头

核心层数据库 fixture 见 packages/core/tests/conftest.py，
gateway 的 app fixture 见 apps/gateway/tests/conftest.py。
"""

import pytest

# 测试用身份请求头
ADMIN_HEADERS = {
    "X-Actor-Id": "admin-1",
    "X-Actor-Name": "Alice Admin",
    "X-Actor-Role": "admin",
    "X-Actor-Department": "Operations",
}
FIELD_TECH_HEADERS = {
    "X-Actor-Id": "tech-1",
    "X-Actor-Name": "Tom Tech",
    "X-Actor-Role": "employee",
    "X-Actor-Department": "Service",
}
OFFICE_TECH_HEADERS = {
    "X-Actor-Id": "tech-2",
    "X-Actor-Name": "Olivia Office",
    "X-Actor-Role": "employee",
    "X-Actor-Department": "Accounts",
}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def field_headers() -> dict[str, str]:
    return dict(FIELD_TECH_HEADERS)


@pytest.fixture
def office_headers() -> dict[str, str]:
    return dict(OFFICE_TECH_HEADERS)
