"""
Aggregation engine for the production dashboards.

Every function takes the full snapshot set (``ProductWithStage`` list,
rebuilt per request) and returns plain dicts/lists ready for a table or a
chart. Nothing is maintained incrementally: dashboards call these again on
each load, so results are "eventually refreshed", not live.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from atelie.config import (
    DEFAULTS,
    PLACEHOLDER_STYLIST,
    STAGE_APPROVED,
    STAGE_ORDER,
    STAGE_PROTOTYPING,
    STAGE_SUBMISSION,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_LATE,
    STATUS_PENDING,
)
from atelie.domain.alerts import (
    SEVERITY_CRITICAL,
    evaluate_alert,
    is_overdue,
)
from atelie.domain.models import ProductWithStage

_FUNNEL_BUCKETS = {
    STATUS_PENDING: "pending",
    STATUS_IN_PROGRESS: "in_progress",
    STATUS_DONE: "completed",
    STATUS_LATE: "delayed",
}


def production_funnel(products: Iterable[ProductWithStage]) -> List[Dict[str, Any]]:
    """Funnel counts per stage name, in pipeline order.

    Counts are taken at the stage-record level across every product's full
    stage history (not only the current stage), so the chart reflects
    historical throughput per stage. Each product is counted at most once
    per (stage, bucket).
    """
    seen: Dict[str, Dict[str, Set[int]]] = defaultdict(lambda: defaultdict(set))
    for p in products:
        for st in p.stages:
            bucket = _FUNNEL_BUCKETS.get(st.status)
            if bucket is None:
                continue
            seen[st.stage_name][bucket].add(p.id)

    names = list(STAGE_ORDER) + sorted(n for n in seen if n not in STAGE_ORDER)
    out: List[Dict[str, Any]] = []
    for name in names:
        buckets = seen.get(name, {})
        row = {"stage_name": name}
        all_ids: Set[int] = set()
        for bucket in _FUNNEL_BUCKETS.values():
            ids = buckets.get(bucket, set())
            row[bucket] = len(ids)
            all_ids |= ids
        row["product_count"] = len(all_ids)
        out.append(row)
    return out


def delivery_performance(products: Iterable[ProductWithStage], today: date) -> Dict[str, int]:
    """On-time vs delayed deliveries.

    - Finished products (every stage ``concluida``) compare the final
      stage's ``actual_date`` with its ``expected_date``; a missing date on
      either side counts as on time.
    - Active products are bucketed by the alert evaluator: critical is
      delayed, urgent/warning is urgent, anything else is on time.
    - Products without stage data are left out.
    """
    stats = {"onTime": 0, "delayed": 0, "urgent": 0, "total": 0}
    for p in products:
        if not p.stages:
            continue
        if p.is_complete:
            final = p.stages[-1]
            late = (
                final.actual_date is not None
                and final.expected_date is not None
                and final.actual_date > final.expected_date
            )
            stats["delayed" if late else "onTime"] += 1
        else:
            alert = evaluate_alert(p, today)
            if alert is None:
                stats["onTime"] += 1
            elif alert.severity == SEVERITY_CRITICAL:
                stats["delayed"] += 1
            else:
                stats["urgent"] += 1
        stats["total"] += 1
    return stats


def approval_rates(products: Iterable[ProductWithStage]) -> Dict[str, Any]:
    """Approved vs pending approval.

    There is no rejection state in the pipeline, so ``rejected`` is always
    zero.
    """
    approved = pending = 0
    for p in products:
        ap = p.stage(STAGE_APPROVED)
        if ap is not None and ap.status == STATUS_DONE:
            approved += 1
        sub = p.stage(STAGE_SUBMISSION)
        if sub is not None and sub.status in (STATUS_PENDING, STATUS_IN_PROGRESS):
            pending += 1
    rejected = 0
    decided = approved + rejected
    rate = round(100.0 * approved / decided, 1) if decided else 0.0
    return {
        "approved": approved,
        "pending": pending,
        "rejected": rejected,
        "total": approved + pending + rejected,
        "approval_rate": rate,
    }


def stylist_performance(
    products: Iterable[ProductWithStage],
    today: date,
    stylists: Optional[Mapping[int, str]] = None,
) -> List[Dict[str, Any]]:
    """Per-stylist workload and punctuality.

    A stage is attributed to its own ``stylist_id`` or, when that is empty,
    to the product's stylist. ``on_time_rate`` is the share of stages with
    both dates set where ``actual_date <= expected_date`` (``None`` when no
    stage has both dates). Stylists passed in ``stylists`` appear even with
    no activity.
    """
    names = dict(stylists or {})
    def _empty() -> Dict[str, int]:
        return {"in_progress": 0, "completed_this_month": 0, "dated": 0, "on_time": 0}

    acc: Dict[int, Dict[str, int]] = defaultdict(_empty)
    for sid in names:
        acc[sid] = _empty()
    for p in products:
        for st in p.stages:
            sid = st.stylist_id if st.stylist_id is not None else p.stylist_id
            if sid is None:
                continue
            a = acc[sid]
            if sid not in names and p.stylist_id == sid:
                names[sid] = p.stylist_name
            if st.status == STATUS_IN_PROGRESS:
                a["in_progress"] += 1
            if (
                st.status == STATUS_DONE
                and st.actual_date is not None
                and (st.actual_date.year, st.actual_date.month) == (today.year, today.month)
            ):
                a["completed_this_month"] += 1
            if st.actual_date is not None and st.expected_date is not None:
                a["dated"] += 1
                if st.actual_date <= st.expected_date:
                    a["on_time"] += 1

    out = []
    for sid, a in acc.items():
        out.append({
            "stylist_id": sid,
            "stylist_name": names.get(sid) or PLACEHOLDER_STYLIST,
            "in_progress": a["in_progress"],
            "completed_this_month": a["completed_this_month"],
            "stages_with_dates": a["dated"],
            "on_time_rate": (a["on_time"] / a["dated"]) if a["dated"] else None,
        })
    out.sort(key=lambda r: (r["stylist_name"], r["stylist_id"]))
    return out


def top_clients(
    clients: Iterable[Mapping[str, Any]],
    collections: Iterable[Mapping[str, Any]],
    limit: int = DEFAULTS.top_clients,
) -> List[Dict[str, Any]]:
    """Clients ranked by number of collections (desc), ties by name (asc)."""
    counts: Dict[Any, int] = defaultdict(int)
    for col in collections:
        if col.get("client_id") is not None:
            counts[col["client_id"]] += 1
    ranked = [
        {"client_id": c["id"], "client_name": c["name"], "collections": counts.get(c["id"], 0)}
        for c in clients
    ]
    ranked.sort(key=lambda r: (-r["collections"], str(r["client_name"] or "")))
    return ranked[:limit]


def kpi_summary(products: Iterable[ProductWithStage], today: date) -> Dict[str, int]:
    products = list(products)
    return {
        "total": len(products),
        "in_progress": sum(
            1 for p in products
            if p.current_stage is not None and p.current_stage.status == STATUS_IN_PROGRESS
        ),
        "overdue": sum(1 for p in products if is_overdue(p, today)),
        "completed": sum(1 for p in products if p.is_complete),
    }


def prototyping_status(products: Iterable[ProductWithStage], today: date) -> Dict[str, int]:
    """Products currently in the prototyping stage, split by punctuality."""
    in_stage = [
        p for p in products
        if p.current_stage is not None and p.current_stage.stage_name == STAGE_PROTOTYPING
    ]
    overdue = sum(1 for p in in_stage if is_overdue(p, today))
    return {"total": len(in_stage), "overdue": overdue, "on_time": len(in_stage) - overdue}


def schedule_timeline(
    products: Iterable[ProductWithStage],
    today: date,
    limit: int = DEFAULTS.timeline_size,
) -> List[Dict[str, Any]]:
    """Next upcoming expected dates of active current stages."""
    rows = []
    for p in products:
        st = p.current_stage
        if st is None or st.expected_date is None or st.status == STATUS_DONE:
            continue
        if st.expected_date < today:
            continue
        rows.append({
            "product_id": p.id,
            "code": p.code,
            "name": p.name,
            "stage_name": st.stage_name,
            "expected_date": st.expected_date,
            "days_remaining": (st.expected_date - today).days,
        })
    rows.sort(key=lambda r: (r["expected_date"], r["code"]))
    return rows[:limit]
