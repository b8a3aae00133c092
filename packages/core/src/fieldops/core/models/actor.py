"""Actor 模型 -- 当前调用者身份（由外部身份提供方给出）"""

from pydantic import BaseModel, Field

from ..config import get_field_departments
from .enums import WorkMode


def work_mode_for_department(department: str) -> WorkMode:
    """根据部门判断工作模式：Service/Sales 为外勤，其余为内勤"""
    if department.strip().casefold() in get_field_departments():
        return WorkMode.FIELD
    return WorkMode.OFFICE


class Actor(BaseModel):
    """调用者身份"""

    actor_id: str = Field(description="员工 ID")
    display_name: str = Field(default="", description="显示名称")
    is_admin: bool = Field(default=False, description="是否为管理员")
    department: str = Field(default="", description="所属部门")

    @property
    def work_mode(self) -> WorkMode:
        return work_mode_for_department(self.department)
