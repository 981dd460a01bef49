"""
定时任务调度器

独立进程运行：python -m nexus.worker.scheduler
"""

import logging
from datetime import timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from nexus.worker.tasks import expire_subscriptions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_scheduler() -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=timezone.utc)
    scheduler.add_job(
        expire_subscriptions,
        CronTrigger(minute=0),
        id="expire_subscriptions",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


def main() -> None:
    scheduler = build_scheduler()
    logger.info("Scheduler started. Subscription expiry runs at minute 0 of every hour.")
    scheduler.start()


if __name__ == "__main__":
    main()
