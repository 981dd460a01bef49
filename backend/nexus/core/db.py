"""
数据库连接模块

管理数据库引擎的创建，以及首次部署时的种子数据（首个管理员账号）。

重要提示：
- 数据库表结构通过 Alembic 迁移管理，不要在这里创建表
- 确保在使用前导入所有模型（nexus.models），否则关系可能无法正确初始化
"""
import logging

from sqlmodel import Session, create_engine

from nexus.core.config import settings
from nexus.enums import UserRole

logger = logging.getLogger(__name__)

engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI), pool_pre_ping=True)


def init_db(session: Session) -> None:
    """
    初始化种子数据

    如果配置了 FIRST_ADMIN_USERNAME / FIRST_ADMIN_PASSWORD 且该用户不存在，
    创建该用户并授予 admin 角色。重复执行是安全的。

    Args:
        session: 数据库会话
    """
    from nexus import crud

    if not (settings.FIRST_ADMIN_USERNAME and settings.FIRST_ADMIN_PASSWORD):
        logger.info("FIRST_ADMIN_USERNAME not configured, skip admin seeding")
        return

    user = crud.get_user_by_username(session=session, username=settings.FIRST_ADMIN_USERNAME)
    if not user:
        user = crud.create_user(
            session=session,
            username=settings.FIRST_ADMIN_USERNAME,
            password=settings.FIRST_ADMIN_PASSWORD,
            display_name="Admin",
        )
        logger.info("Created first admin user %s", user.id)
    crud.grant_role(session=session, user_id=user.id, role=UserRole.admin)
