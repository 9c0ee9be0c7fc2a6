"""
Worker Cleaner.

Алгоритм:
- раз в CLEANUP_INTERVAL_SEC запускает cleanup_job.run()
- ошибки конфигурации/списка кластеров логируются, прогон пропускается
- следующий прогон стартует только после завершения предыдущего
"""

from __future__ import annotations

import time

from aggregator_cleaner.common.config import get_settings
from aggregator_cleaner.common.errors import AppError
from aggregator_cleaner.common.logging import get_project_logger, setup_logging
from aggregator_cleaner.jobs import cleanup_job

log = get_project_logger()


def run_once() -> bool:
    try:
        cleanup_job.run(get_settings())
        return True
    except AppError as e:
        log.error(
            "worker_cleaner_run_failed",
            extra={"payload": {"code": e.code, "err": str(e)[:200], "details": e.details}},
        )
        return False


def run_loop() -> None:
    interval = max(1, int(get_settings().cleanup_interval_sec))
    log.info("worker_cleaner_started", extra={"payload": {"interval_sec": interval}})

    while True:
        run_once()
        time.sleep(interval)


def main() -> None:
    setup_logging()
    while True:
        try:
            run_loop()
        except Exception as e:
            log.error("worker_cleaner_fatal", extra={"payload": {"err": str(e)[:200]}})
            time.sleep(2)


if __name__ == "__main__":
    main()
