"""
启动前等待数据库就绪

容器编排时数据库可能晚于应用启动，这里每秒重试一次 SELECT 1，
最长等待 5 分钟，之后才执行 alembic 迁移和 initial_data。
"""
import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from nexus.core.db import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def wait_for_db(db_engine: Engine) -> None:
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


def main() -> None:
    logger.info("Waiting for database")
    wait_for_db(engine)
    logger.info("Database is ready")


if __name__ == "__main__":  # pragma: no cover
    main()
