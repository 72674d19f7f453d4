"""计步服务启动入口。"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

# 确保 src 加入路径
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from scripts.dev_server import main as run_dev_server
from steptrack.adapters import SensorUnavailable
from steptrack.config import AppConfig
from steptrack.core.models import DailySnapshot
from steptrack.service import StepTrackingService


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(asctime)s][%(levelname)s] %(name)s: %(message)s")
    logger = logging.getLogger(__name__)

    config = AppConfig.load()
    service = StepTrackingService(config=config)

    try:
        service.start_tracking()
    except SensorUnavailable as exc:
        logger.warning("加速度计不可用，改用模拟计步: %s", exc)
        service.start_simulation()

    def log_update(snapshot: DailySnapshot) -> None:
        logger.info(
            "步数 %s / %s (%s%%)",
            snapshot.count,
            snapshot.goal,
            snapshot.percent_complete,
        )

    subscription = service.subscribe(log_update)
    try:
        asyncio.run(run_dev_server(service=service))
    finally:
        subscription.unsubscribe()
        service.close()


if __name__ == "__main__":
    main()
