"""
ORM-модели базы данных агрегатора.

Назначение:
- отчёты по кластерам (report) — основа для решения "запись устарела"
- зависимые таблицы с данными по кластерам (rule_hit, recommendation, ...)
- TABLES_AND_KEYS: порядок удаления с учётом внешних ключей

Схемой владеет агрегатор; cleaner её только читает и чистит.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# =============================================================================
# BASE
# =============================================================================
class Base(DeclarativeBase):
    pass


# =============================================================================
# REPORT
# =============================================================================
class Report(Base):
    """
    Последний отчёт по кластеру.
    """

    __tablename__ = "report"

    cluster: Mapped[str] = mapped_column(String(36), primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)

    report: Mapped[str] = mapped_column(Text, default="", nullable=False)
    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_checked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


# =============================================================================
# ДАННЫЕ, ЗАВИСЯЩИЕ ОТ ОТЧЁТА (FK -> report.cluster)
# =============================================================================
class RuleHit(Base):
    __tablename__ = "rule_hit"

    cluster_id: Mapped[str] = mapped_column(ForeignKey("report.cluster"), primary_key=True)
    rule_fqdn: Mapped[str] = mapped_column(String(256), primary_key=True)
    error_key: Mapped[str] = mapped_column(String(256), primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    template_data: Mapped[str] = mapped_column(Text, default="", nullable=False)


class Recommendation(Base):
    __tablename__ = "recommendation"

    cluster_id: Mapped[str] = mapped_column(ForeignKey("report.cluster"), primary_key=True)
    rule_fqdn: Mapped[str] = mapped_column(String(256), primary_key=True)
    error_key: Mapped[str] = mapped_column(String(256), primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    rule_id: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ReportInfo(Base):
    __tablename__ = "report_info"

    cluster_id: Mapped[str] = mapped_column(ForeignKey("report.cluster"), primary_key=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    version_info: Mapped[str] = mapped_column(String(64), default="", nullable=False)


# =============================================================================
# ПОЛЬЗОВАТЕЛЬСКИЕ ДАННЫЕ ПО КЛАСТЕРУ (без FK, живут дольше отчёта)
# =============================================================================
class ClusterRuleToggle(Base):
    __tablename__ = "cluster_rule_toggle"

    cluster_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    rule_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    error_key: Mapped[str] = mapped_column(String(256), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    disabled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    enabled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ClusterRuleUserFeedback(Base):
    __tablename__ = "cluster_rule_user_feedback"

    cluster_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    rule_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    error_key: Mapped[str] = mapped_column(String(256), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    user_vote: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    added_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ClusterUserRuleDisableFeedback(Base):
    __tablename__ = "cluster_user_rule_disable_feedback"

    cluster_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    rule_id: Mapped[str] = mapped_column(String(512), primary_key=True)
    error_key: Mapped[str] = mapped_column(String(256), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    added_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# =============================================================================
# ПОРЯДОК УДАЛЕНИЯ
# =============================================================================
# (модель, колонка с идентификатором кластера); дочерние таблицы раньше report
TABLES_AND_KEYS: tuple[tuple[type[Base], str], ...] = (
    (ClusterRuleToggle, "cluster_id"),
    (ClusterRuleUserFeedback, "cluster_id"),
    (ClusterUserRuleDisableFeedback, "cluster_id"),
    (RuleHit, "cluster_id"),
    (Recommendation, "cluster_id"),
    (ReportInfo, "cluster_id"),
    (Report, "cluster"),
)
