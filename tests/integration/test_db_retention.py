from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import Engine, select

from aggregator_cleaner.common.config import Settings
from aggregator_cleaner.common.errors import StorageError
from aggregator_cleaner.domain.cluster_ids import ClusterName
from aggregator_cleaner.domain.retention import build_predicate
from aggregator_cleaner.jobs import cleanup_job
from aggregator_cleaner.storage import repositories
from aggregator_cleaner.storage.db import create_db_engine, db_session
from aggregator_cleaner.storage.models import (
    TABLES_AND_KEYS,
    Base,
    ClusterRuleToggle,
    ClusterRuleUserFeedback,
    ClusterUserRuleDisableFeedback,
    Recommendation,
    Report,
    ReportInfo,
    RuleHit,
)
from aggregator_cleaner.storage.repositories import ClusterReportRepository
from aggregator_cleaner.storage.retention import apply_retention, vacuum_database

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
OLD_CLUSTER_1 = "5d5892d4-1f74-4ccf-91af-548dfc9767aa"
OLD_CLUSTER_2 = "00000000-0000-0000-0000-000000000000"
FRESH_CLUSTER = "11111111-1111-1111-1111-111111111111"


def _seed_cluster(session, cluster: str, reported_at: datetime) -> None:
    session.add(
        Report(
            cluster=cluster,
            org_id=1,
            report="{}",
            reported_at=reported_at,
            last_checked_at=reported_at,
        )
    )
    session.flush()
    session.add_all(
        [
            RuleHit(
                cluster_id=cluster,
                org_id=1,
                rule_fqdn="rules.sample",
                error_key="ERR_1",
                template_data="{}",
            ),
            RuleHit(
                cluster_id=cluster,
                org_id=1,
                rule_fqdn="rules.sample",
                error_key="ERR_2",
                template_data="{}",
            ),
            Recommendation(
                cluster_id=cluster,
                org_id=1,
                rule_fqdn="rules.sample",
                error_key="ERR_1",
                rule_id="rules.sample|ERR_1",
                created_at=reported_at,
            ),
            ReportInfo(cluster_id=cluster, org_id=1, version_info="4.14"),
            ClusterRuleToggle(
                cluster_id=cluster,
                rule_id="rules.sample",
                error_key="ERR_1",
                user_id="1",
                disabled=True,
                disabled_at=reported_at,
            ),
            ClusterRuleUserFeedback(
                cluster_id=cluster,
                rule_id="rules.sample",
                error_key="ERR_1",
                user_id="1",
                message="ok",
                user_vote=1,
            ),
            ClusterUserRuleDisableFeedback(
                cluster_id=cluster,
                rule_id="rules.sample",
                error_key="ERR_1",
                user_id="1",
                message="noisy",
            ),
        ]
    )


@pytest.fixture()
def sqlite_settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        storage_driver="sqlite3",
        sqlite_datasource=str(tmp_path / "aggregator.db"),
        max_age="3 days",
    )


@pytest.fixture()
def seeded_engine(sqlite_settings: Settings) -> Iterator[Engine]:
    engine = create_db_engine(sqlite_settings)
    Base.metadata.create_all(engine)
    with db_session(engine) as s:
        _seed_cluster(s, OLD_CLUSTER_1, NOW - timedelta(days=10))
        _seed_cluster(s, OLD_CLUSTER_2, NOW - timedelta(days=5))
        _seed_cluster(s, FRESH_CLUSTER, NOW - timedelta(days=1))
    try:
        yield engine
    finally:
        engine.dispose()


def _remaining_clusters(engine) -> set[str]:
    with db_session(engine) as s:
        return set(s.scalars(select(Report.cluster)))


def _rows_for(engine, cluster: str) -> dict[str, int]:
    with db_session(engine) as s:
        return ClusterReportRepository(s).count_cluster_rows([cluster])


def test_list_old_reports_global(seeded_engine) -> None:
    predicate = build_predicate(NOW, timedelta(days=3))
    with db_session(seeded_engine) as s:
        clusters = ClusterReportRepository(s).eligible_clusters(predicate)
    # от самого старого к более свежему
    assert clusters == [OLD_CLUSTER_1, OLD_CLUSTER_2]


def test_list_old_reports_with_allow_list(seeded_engine) -> None:
    predicate = build_predicate(
        NOW, timedelta(days=3), {ClusterName(OLD_CLUSTER_2), ClusterName(FRESH_CLUSTER)}
    )
    with db_session(seeded_engine) as s:
        clusters = ClusterReportRepository(s).eligible_clusters(predicate)
    assert clusters == [OLD_CLUSTER_2]


def test_apply_retention_deletes_all_dependent_rows(seeded_engine) -> None:
    predicate = build_predicate(NOW, timedelta(days=3))
    with db_session(seeded_engine) as s:
        result = apply_retention(s, predicate)

    assert sorted(result.clusters) == sorted([OLD_CLUSTER_1, OLD_CLUSTER_2])
    assert result.dry_run is False
    assert result.rows_by_table["rule_hit"] == 4
    assert result.rows_by_table["report"] == 2
    assert set(result.rows_by_table) == {m.__tablename__ for m, _ in TABLES_AND_KEYS}
    assert result.total_rows == 2 * 8

    assert _remaining_clusters(seeded_engine) == {FRESH_CLUSTER}
    assert sum(_rows_for(seeded_engine, OLD_CLUSTER_1).values()) == 0
    assert sum(_rows_for(seeded_engine, FRESH_CLUSTER).values()) == 8


def test_apply_retention_dry_run_keeps_rows(seeded_engine) -> None:
    predicate = build_predicate(NOW, timedelta(days=3))
    with db_session(seeded_engine) as s:
        result = apply_retention(s, predicate, dry_run=True)

    assert result.dry_run is True
    assert result.total_rows == 16
    assert _remaining_clusters(seeded_engine) == {OLD_CLUSTER_1, OLD_CLUSTER_2, FRESH_CLUSTER}


def test_apply_retention_nothing_to_delete(seeded_engine) -> None:
    predicate = build_predicate(NOW, timedelta(days=30))
    with db_session(seeded_engine) as s:
        result = apply_retention(s, predicate)
    assert result.clusters == []
    assert result.total_rows == 0


def test_apply_retention_without_schema_raises_storage_error(sqlite_settings) -> None:
    engine = create_db_engine(sqlite_settings)
    try:
        with pytest.raises(StorageError):
            with db_session(engine) as s:
                apply_retention(s, build_predicate(NOW, timedelta(days=3)))
    finally:
        engine.dispose()


def test_cleanup_job_run_with_cli_clusters(sqlite_settings, seeded_engine) -> None:
    result = cleanup_job.run(
        sqlite_settings, cli_clusters=[OLD_CLUSTER_1, FRESH_CLUSTER, "foo"], now=NOW
    )
    assert result.clusters == [OLD_CLUSTER_1]
    assert _remaining_clusters(seeded_engine) == {OLD_CLUSTER_2, FRESH_CLUSTER}


def test_cleanup_job_run_with_cluster_list_file(
    sqlite_settings, seeded_engine, tmp_path: Path
) -> None:
    path = tmp_path / "clusters.txt"
    path.write_text(f"{OLD_CLUSTER_2}\n\nnot-a-cluster\n", encoding="utf-8")
    s = sqlite_settings.model_copy(update={"cluster_list_file": str(path)})

    result = cleanup_job.run(s, now=NOW, engine=seeded_engine)

    assert result.clusters == [OLD_CLUSTER_2]
    assert _remaining_clusters(seeded_engine) == {OLD_CLUSTER_1, FRESH_CLUSTER}


def test_cleanup_job_writes_metrics_textfile(
    sqlite_settings, seeded_engine, tmp_path: Path
) -> None:
    metrics_path = tmp_path / "cleaner.prom"
    s = sqlite_settings.model_copy(update={"metrics_textfile": str(metrics_path)})

    cleanup_job.run(s, now=NOW, engine=seeded_engine)

    text = metrics_path.read_text(encoding="utf-8")
    assert "cleaner_runs_total" in text
    assert 'cleaner_deleted_rows_total{table="report"}' in text


def test_list_old_reports_writes_output(sqlite_settings, seeded_engine, tmp_path: Path) -> None:
    output = tmp_path / "old_clusters.txt"
    reports = cleanup_job.list_old_reports(
        sqlite_settings, now=NOW, engine=seeded_engine, output=str(output)
    )

    assert [r.cluster for r in reports] == [OLD_CLUSTER_1, OLD_CLUSTER_2]
    assert output.read_text(encoding="utf-8").splitlines() == [OLD_CLUSTER_1, OLD_CLUSTER_2]
    # ничего не удалено
    assert _remaining_clusters(seeded_engine) == {OLD_CLUSTER_1, OLD_CLUSTER_2, FRESH_CLUSTER}


def test_vacuum_database(seeded_engine) -> None:
    vacuum_database(seeded_engine)
    cleanup_job.vacuum(engine=seeded_engine)


def test_cleanup_job_with_non_utc_now_keeps_newer_reports(sqlite_settings) -> None:
    engine = create_db_engine(sqlite_settings)
    Base.metadata.create_all(engine)
    try:
        with db_session(engine) as s:
            _seed_cluster(s, OLD_CLUSTER_1, datetime(2024, 3, 7, 10, 0, tzinfo=UTC))
        # 12:00+05:00 == 07:00Z -> cutoff 2024-03-07 07:00Z, отчёт на 3 часа новее
        now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone(timedelta(hours=5)))

        result = cleanup_job.run(sqlite_settings, now=now, engine=engine)

        assert result.clusters == []
        assert _remaining_clusters(engine) == {OLD_CLUSTER_1}
    finally:
        engine.dispose()


def test_list_old_reports_chunks_allow_list(monkeypatch, seeded_engine) -> None:
    monkeypatch.setattr(repositories, "IN_CHUNK_SIZE", 1)
    predicate = build_predicate(
        NOW,
        timedelta(days=3),
        {ClusterName(OLD_CLUSTER_1), ClusterName(OLD_CLUSTER_2), ClusterName(FRESH_CLUSTER)},
    )
    with db_session(seeded_engine) as s:
        clusters = ClusterReportRepository(s).eligible_clusters(predicate)
    assert clusters == [OLD_CLUSTER_1, OLD_CLUSTER_2]


def test_cleanup_job_counts_improper_clusters_in_metrics(
    sqlite_settings, seeded_engine, tmp_path: Path
) -> None:
    metrics_path = tmp_path / "cleaner.prom"
    s = sqlite_settings.model_copy(update={"metrics_textfile": str(metrics_path)})

    cleanup_job.run(
        s, cli_clusters=[OLD_CLUSTER_1, "foo-bar-baz", ""], now=NOW, engine=seeded_engine
    )

    lines = metrics_path.read_text(encoding="utf-8").splitlines()
    improper = next(
        line for line in lines if line.startswith('cleaner_improper_clusters_total{source="cli"}')
    )
    assert float(improper.split()[-1]) >= 2.0
