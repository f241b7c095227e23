"""
Query shaping – declarative filters, allow-listed sorting, and pagination
combined with the caller's access scope into one bounded read.
"""

import math
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from zook_admin.config import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_PAGE_LIMIT
from zook_admin.errors import InternalError, ValidationError
from zook_admin.models import AccessScope, PageSpec
from zook_admin.rbac import scope_predicates

SORT_ORDERS = {"asc", "desc"}


# ── Value parsing ────────────────────────────────────────────────────

def parse_bool(name: str, raw: Any) -> bool:
    """Accept only the literals true/false; anything else is malformed."""
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ValidationError(f"{name} must be 'true' or 'false'")


def parse_number(name: str, raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number")


def parse_datetime(name: str, raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return raw
    try:
        value = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# ── Filter declarations ──────────────────────────────────────────────

@dataclass
class Filter:
    """A named optional predicate built from one query parameter."""
    name: str
    build: Callable[[Any], Any]


def search(name: str, *cols) -> Filter:
    """Case-insensitive substring match, OR-combined across *cols*."""
    def build(raw):
        text = str(raw).strip()
        if not text:
            return None
        pattern = like_pattern(text)
        return or_(*[c.ilike(pattern, escape="\\") for c in cols])
    return Filter(name, build)


def equals(name: str, col, choices: Optional[Iterable[str]] = None) -> Filter:
    allowed = set(choices) if choices is not None else None

    def build(raw):
        if allowed is not None and raw not in allowed:
            raise ValidationError(
                f"{name} must be one of: {', '.join(sorted(allowed))}"
            )
        return col == raw
    return Filter(name, build)


def boolean(name: str, col) -> Filter:
    return Filter(name, lambda raw: col == parse_bool(name, raw))


def gte(name: str, col, parse: Callable[[str, Any], Any] = parse_number) -> Filter:
    return Filter(name, lambda raw: col >= parse(name, raw))


def lte(name: str, col, parse: Callable[[str, Any], Any] = parse_number) -> Filter:
    return Filter(name, lambda raw: col <= parse(name, raw))


def custom(name: str, build: Callable[[Any], Any]) -> Filter:
    return Filter(name, build)


# ── Entity declaration ───────────────────────────────────────────────

@dataclass
class EntityQuery:
    """Everything the shaper needs to know about one listable entity."""
    key: str                                  # plural response key, e.g. "stores"
    source: Any                               # table or join
    columns: Sequence[Any]
    id_col: Any
    sort_fields: Dict[str, Any]
    default_sort: str = "created_at"
    default_order: str = "desc"
    country_col: Any = None
    city_col: Any = None
    country_wide: bool = False
    filters: List[Filter] = field(default_factory=list)


def parse_page_spec(args, entity: EntityQuery) -> PageSpec:
    """Validate page/limit/sort_by/sort_order from request query parameters."""
    def _int(name, default):
        raw = args.get(name)
        if raw is None or raw == "":
            return default
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a positive integer")
        if value < 1:
            raise ValidationError(f"{name} must be a positive integer")
        return value

    page = _int("page", DEFAULT_PAGE)
    limit = min(_int("limit", DEFAULT_LIMIT), MAX_PAGE_LIMIT)

    sort_by = args.get("sort_by") or entity.default_sort
    if sort_by not in entity.sort_fields:
        raise ValidationError(
            f"sort_by must be one of: {', '.join(sorted(entity.sort_fields))}"
        )

    sort_order = str(args.get("sort_order") or entity.default_order).lower()
    if sort_order not in SORT_ORDERS:
        raise ValidationError("sort_order must be 'asc' or 'desc'")

    return PageSpec(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def build_predicates(entity: EntityQuery, args, scope: Optional[AccessScope],
                     extra: Sequence[Any] = ()) -> List:
    preds = []
    if scope is not None and entity.country_col is not None:
        preds.extend(scope_predicates(scope, entity.country_col, entity.city_col,
                                      country_wide=entity.country_wide))
    for flt in entity.filters:
        raw = args.get(flt.name)
        if raw is None or raw == "":
            continue
        pred = flt.build(raw)
        if pred is not None:
            preds.append(pred)
    preds.extend(extra)
    return preds


def shape_query(conn, entity: EntityQuery, args, scope: Optional[AccessScope],
                page_spec: PageSpec, extra: Sequence[Any] = ()) -> Tuple[List[Dict], int]:
    """
    Run one COUNT query and one windowed data query.
    Returns (rows, total) where total is the pre-pagination match count.
    """
    preds = build_predicates(entity, args, scope, extra)

    sort_col = entity.sort_fields[page_spec.sort_by]
    if page_spec.sort_order == "asc":
        ordering = (sort_col.asc(), entity.id_col.asc())
    else:
        ordering = (sort_col.desc(), entity.id_col.desc())

    count_stmt = select(func.count()).select_from(entity.source).where(*preds)

    try:
        total = conn.execute(count_stmt).scalar_one()
        # past the end: no window to read, and huge offsets overflow the driver
        if page_spec.offset >= total:
            return [], total
        data_stmt = (
            select(*entity.columns)
            .select_from(entity.source)
            .where(*preds)
            .order_by(*ordering)
            .limit(page_spec.limit)
            .offset(page_spec.offset)
        )
        rows = [dict(r) for r in conn.execute(data_stmt).mappings()]
    except SQLAlchemyError as e:
        print(f"[ERROR] {entity.key} query failed: {e}", file=sys.stderr)
        raise InternalError(f"Failed to retrieve {entity.key}") from e
    return rows, total


def paginated(key: str, rows: List[Dict], total: int, page_spec: PageSpec) -> Dict[str, Any]:
    return {
        key: rows,
        "total": total,
        "page": page_spec.page,
        "limit": page_spec.limit,
        "totalPages": math.ceil(total / page_spec.limit) if total else 0,
    }
