"""
种子数据脚本

迁移完成后执行，创建首个管理员账号（配置了 FIRST_ADMIN_USERNAME 时）。
"""
import logging

from sqlmodel import Session

from nexus.core.db import engine, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    logger.info("Seeding initial data")
    with Session(engine) as session:
        init_db(session)
    logger.info("Initial data seeded")


if __name__ == "__main__":  # pragma: no cover
    main()
