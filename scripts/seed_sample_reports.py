"""
Сидинг тестовых отчётов в БД.
Используется для ручных проверок cleaner'а и dev-отладки.

Создаёт схему (если её нет) и по одному отчёту на кластер:
половина — "свежие", половина — старше --age-days.
"""

from __future__ import annotations

import argparse
import uuid
from datetime import timedelta

from aggregator_cleaner.common.config import get_settings
from aggregator_cleaner.common.time import utc_now
from aggregator_cleaner.storage.db import create_db_engine, db_session
from aggregator_cleaner.storage.models import Base, Recommendation, Report, ReportInfo, RuleHit


def _args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Seed sample cluster reports")
    p.add_argument("--clusters", type=int, default=10, help="Number of clusters to create")
    p.add_argument("--age-days", type=int, default=100, help="Age of outdated reports")
    p.add_argument("--org-id", type=int, default=1, help="Organization ID")
    return p.parse_args()


def main() -> int:
    args = _args()
    engine = create_db_engine(get_settings())
    Base.metadata.create_all(engine)
    now = utc_now()

    with db_session(engine) as s:
        for i in range(args.clusters):
            cluster = str(uuid.uuid4())
            reported_at = now - timedelta(days=args.age_days) if i % 2 else now
            s.add(
                Report(
                    cluster=cluster,
                    org_id=args.org_id,
                    report="{}",
                    reported_at=reported_at,
                    last_checked_at=reported_at,
                )
            )
            s.flush()
            s.add(
                RuleHit(
                    cluster_id=cluster,
                    org_id=args.org_id,
                    rule_fqdn="rules.sample",
                    error_key="SAMPLE_ERROR",
                    template_data="{}",
                )
            )
            s.add(
                Recommendation(
                    cluster_id=cluster,
                    org_id=args.org_id,
                    rule_fqdn="rules.sample",
                    error_key="SAMPLE_ERROR",
                    rule_id="rules.sample|SAMPLE_ERROR",
                    created_at=reported_at,
                )
            )
            s.add(ReportInfo(cluster_id=cluster, org_id=args.org_id, version_info="4.14"))
            print("Seeded cluster:", cluster, reported_at.isoformat())

    engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
