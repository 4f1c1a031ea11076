"""Report data access and entry points.

Reads members and activity rows with SQLAlchemy and hands them to the pure
calculators in ``workload.workload_calculator``. Database errors propagate
to the caller.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from workload.db_models import ActivityRecord, ActivityType, Category, Role, User, db
from workload.workload_calculator import (
    ActivityHoursRow,
    ActivityTotal,
    MemberRow,
    OvercomplianceRow,
    OverloadRow,
    PayAllocationResult,
    WorkloadPolicy,
    aggregate_activity_hours,
    allocate_overload_pay,
    compute_overcompliance,
    compute_teaching_overload,
    parse_date_range,
)

logger = logging.getLogger(__name__)


def _policy(policy: Optional[WorkloadPolicy]) -> WorkloadPolicy:
    if policy is not None:
        return policy
    from workload import get_policy

    return get_policy()


# =============================================================================
# DATA ACCESS
# =============================================================================


def fetch_members_with_category(
    role_id: Optional[int] = None,
    category_id: Optional[int] = None,
    department_id: Optional[int] = None,
) -> List[MemberRow]:
    """
    Profesores aprobados con categoria asignada.

    Los filtros son opcionales y se combinan con AND; None = sin filtro.
    """
    query = (
        db.session.query(User, Role.name, Category.name, Category.weekly_hour_norm)
        .join(Role, User.role_id == Role.id)
        .join(Category, User.category_id == Category.id)
        .filter(User.is_approved.is_(True))
    )
    if role_id is not None:
        query = query.filter(User.role_id == role_id)
    if category_id is not None:
        query = query.filter(User.category_id == category_id)
    if department_id is not None:
        query = query.filter(User.department_id == department_id)

    rows = query.order_by(User.last_name, User.first_name, User.id).all()
    return [
        MemberRow(
            id=user.id,
            username=user.username,
            name=user.first_name,
            surname=user.last_name,
            role=role_name,
            category=category_name,
            weekly_norm=weekly_norm,
        )
        for user, role_name, category_name, weekly_norm in rows
    ]


def fetch_activity_hours(
    member_ids: Iterable[int], start: date, end: date
) -> List[ActivityHoursRow]:
    """Actividades de los profesores dados con fecha en [start, end]."""
    ids = list(member_ids)
    if not ids:
        return []

    rows = (
        db.session.query(ActivityRecord, ActivityType)
        .join(ActivityType, ActivityRecord.activity_type_id == ActivityType.id)
        .filter(
            ActivityRecord.user_id.in_(ids),
            ActivityRecord.date >= start,
            ActivityRecord.date <= end,
        )
        .order_by(ActivityRecord.user_id, ActivityRecord.date, ActivityRecord.id)
        .all()
    )
    return [_to_hours_row(record, activity_type) for record, activity_type in rows]


def _to_hours_row(record: ActivityRecord, activity_type: ActivityType) -> ActivityHoursRow:
    return ActivityHoursRow(
        member_id=record.user_id,
        activity_type_id=activity_type.id,
        activity_type_name=activity_type.name,
        date=record.date,
        hours=record.hours,
        group=record.group_name,
        student_count=record.student_count,
        is_direct_teaching=bool(activity_type.is_direct_teaching),
        counts_as_pregrad=bool(activity_type.counts_as_pregrad),
        counts_as_preparation=bool(activity_type.counts_as_preparation),
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================


def compute_overcompliance_report(
    start,
    end,
    role_id: Optional[int] = None,
    category_id: Optional[int] = None,
) -> List[OvercomplianceRow]:
    start, end = parse_date_range(start, end)
    members = fetch_members_with_category(role_id=role_id, category_id=category_id)
    activity_rows = fetch_activity_hours([m.id for m in members], start, end)
    rows = compute_overcompliance(members, activity_rows, start, end)
    logger.info(
        "Overcompliance report %s..%s: %d members", start, end, len(rows)
    )
    return rows


def compute_teaching_overload_report(
    start,
    end,
    role_id: Optional[int] = None,
    category_id: Optional[int] = None,
    department_id: Optional[int] = None,
    policy: Optional[WorkloadPolicy] = None,
) -> List[OverloadRow]:
    start, end = parse_date_range(start, end)
    members = fetch_members_with_category(
        role_id=role_id, category_id=category_id, department_id=department_id
    )
    activity_rows = fetch_activity_hours([m.id for m in members], start, end)
    rows = compute_teaching_overload(members, activity_rows, start, end, _policy(policy))
    logger.info(
        "Teaching overload report %s..%s: %d members", start, end, len(rows)
    )
    return rows


def compute_overload_pay_allocation(
    start,
    end,
    fund_available,
    policy: Optional[WorkloadPolicy] = None,
) -> PayAllocationResult:
    policy = _policy(policy)
    overload_rows = compute_teaching_overload_report(start, end, policy=policy)
    result = allocate_overload_pay(overload_rows, fund_available, policy)
    logger.info(
        "Overload payment %s..%s: fund=%s needed=%s members=%d",
        start,
        end,
        result.summary.fund_available,
        result.summary.fund_needed,
        result.summary.total_members,
    )
    return result


def compute_plan_summary(user_id: int, start, end) -> List[ActivityTotal]:
    """Horas por tipo de actividad del plan de un profesor."""
    start, end = parse_date_range(start, end)
    rows = fetch_activity_hours([user_id], start, end)
    return aggregate_activity_hours(rows, start, end, member_ids=[user_id])
