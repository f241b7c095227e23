"""
Aggregate statistics for ratings and support tickets.
"""

from typing import Dict, List

import pandas as pd

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed", "reopened")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")
TICKET_CATEGORIES = ("general", "technical", "billing", "feature_request", "complaint")


# ── Ratings ──────────────────────────────────────────────────────────

def rating_stats(rows: List[Dict]) -> Dict:
    """
    Average, total, and 1–5 star distribution over *rows*.
    Callers pass only approved, active ratings.
    """
    distribution = {str(star): 0 for star in range(1, 6)}
    if not rows:
        return {"average_rating": 0, "total_ratings": 0, "rating_distribution": distribution}

    stars = pd.DataFrame(rows)["star_count"].astype(int)
    for star, count in stars.value_counts().items():
        distribution[str(star)] = int(count)

    return {
        "average_rating": round(float(stars.mean()), 2),
        "total_ratings": int(stars.size),
        "rating_distribution": distribution,
    }


def ratings_summary(rows: List[Dict]) -> Dict:
    """The {count, summary} blob stored on stores and store items."""
    stats = rating_stats(rows)
    return {"count": stats["total_ratings"], "summary": stats["average_rating"]}


# ── Support tickets ──────────────────────────────────────────────────

def ticket_stats(rows: List[Dict]) -> Dict:
    """Status totals, mean resolution time, and priority/category spread."""
    priority = {p: 0 for p in TICKET_PRIORITIES}
    category = {c: 0 for c in TICKET_CATEGORIES}
    out = {"total_tickets": len(rows)}
    for status in TICKET_STATUSES:
        out[f"{status}_tickets"] = 0
    out["average_resolution_time_hours"] = 0
    out["priority_distribution"] = priority
    out["category_distribution"] = category

    if not rows:
        return out

    df = pd.DataFrame(rows)
    for status, count in df["status"].value_counts().items():
        if status in TICKET_STATUSES:
            out[f"{status}_tickets"] = int(count)
    for level, count in df["priority"].value_counts().items():
        priority[level] = int(count)
    for name, count in df["category"].value_counts().items():
        category[name] = int(count)

    if "resolved_at" in df.columns:
        resolved = df.dropna(subset=["resolved_at"])
        if not resolved.empty:
            hours = (
                pd.to_datetime(resolved["resolved_at"]) - pd.to_datetime(resolved["created_at"])
            ).dt.total_seconds() / 3600
            out["average_resolution_time_hours"] = round(float(hours.mean()), 2)

    return out
