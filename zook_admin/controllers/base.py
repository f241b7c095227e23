"""
Shared controller plumbing – scoped reads, guarded writes, cross-reference checks.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, insert, select, update

from zook_admin.errors import ConflictError, NotFoundError, ValidationError
from zook_admin.models import Principal
from zook_admin.query_shaper import EntityQuery, paginated, parse_page_spec, shape_query
from zook_admin.rbac import authorize_mutation, resolve_scope, scope_predicates
from zook_admin.schema import cities, countries, media, new_id


class BaseController:
    """
    One controller per entity. Subclasses declare the table, the list
    query, and the messages; they override the hooks they need.
    """

    table = None
    entity: EntityQuery = None
    label = "Resource"
    country_wide = False
    city_scoped = True

    def __init__(self, engine):
        self.engine = engine

    # ── Hooks ────────────────────────────────────────────────────────

    def present(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Shape a row for the response."""
        return row

    def list_extra(self, conn, principal: Principal, args) -> Sequence[Any]:
        """Additional predicates for list queries."""
        return ()

    def locate(self, conn, row: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """(country_id, city_id) that governs write access to *row*."""
        return row.get("country_id"), row.get("city_id")

    def detail(self, conn, row_id: str) -> Dict[str, Any]:
        """Re-fetch with joins after a write."""
        row = self._select_one(conn, row_id)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        return self.attach(conn, [self.present(row)])[0]

    def attach(self, conn, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Decorate presented rows with child collections (one query per batch)."""
        return rows

    # ── Reads ────────────────────────────────────────────────────────

    def list(self, principal: Principal, args) -> Dict[str, Any]:
        scope = resolve_scope(principal, args.get("country_id"), args.get("city_id"))
        page_spec = parse_page_spec(args, self.entity)
        with self.engine.connect() as conn:
            rows, total = shape_query(conn, self.entity, args, scope, page_spec,
                                      self.list_extra(conn, principal, args))
            rows = self.attach(conn, [self.present(r) for r in rows])
        return paginated(self.entity.key, rows, total, page_spec)

    def get(self, principal: Principal, row_id: str) -> Dict[str, Any]:
        with self.engine.connect() as conn:
            row = self.present(self.fetch_visible(conn, principal, row_id))
            return self.attach(conn, [row])[0]

    def fetch_visible(self, conn, principal: Principal, row_id: str) -> Dict[str, Any]:
        """Load *row_id* through the caller's read scope; out of scope is not found."""
        scope = resolve_scope(principal)
        preds = []
        if self.entity.country_col is not None:
            preds = scope_predicates(scope, self.entity.country_col, self.entity.city_col,
                                     country_wide=self.entity.country_wide)
        row = self._select_one(conn, row_id, preds)
        if row is None:
            raise NotFoundError(f"{self.label} not found")
        return row

    def _select_one(self, conn, row_id: str, preds: Sequence[Any] = ()) -> Optional[Dict]:
        stmt = (
            select(*self.entity.columns)
            .select_from(self.entity.source)
            .where(self.entity.id_col == row_id, *preds)
        )
        row = conn.execute(stmt).mappings().first()
        return dict(row) if row else None

    # ── Writes ───────────────────────────────────────────────────────

    def fetch_or_404(self, conn, row_id: str, table=None, label: Optional[str] = None) -> Dict:
        table = table if table is not None else self.table
        row = conn.execute(select(table).where(table.c.id == row_id)).mappings().first()
        if row is None:
            raise NotFoundError(f"{label or self.label} not found")
        return dict(row)

    def authorize(self, conn, principal: Principal, row: Dict[str, Any]) -> None:
        country_id, city_id = self.locate(conn, row)
        authorize_mutation(principal, country_id, city_id,
                           country_wide=self.country_wide, city_scoped=self.city_scoped)

    def insert_row(self, conn, values: Dict[str, Any], table=None) -> str:
        table = table if table is not None else self.table
        values = dict(values)
        values.setdefault("id", new_id())
        conn.execute(insert(table).values(**values))
        return values["id"]

    def update_row(self, conn, row_id: str, values: Dict[str, Any], table=None) -> None:
        table = table if table is not None else self.table
        if values:
            conn.execute(update(table).where(table.c.id == row_id).values(**values))

    def delete_row(self, conn, row_id: str, table=None) -> None:
        table = table if table is not None else self.table
        conn.execute(delete(table).where(table.c.id == row_id))

    def remove(self, principal: Principal, row_id: str) -> None:
        """Default delete: fetch, authorize, run guards, delete."""
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            self.before_delete(conn, principal, row)
            self.delete_row(conn, row_id)

    def before_delete(self, conn, principal: Principal, row: Dict[str, Any]) -> None:
        """Raise ConflictError when dependants still reference *row*."""

    # ── Cross-reference checks ───────────────────────────────────────

    @staticmethod
    def exists(conn, table, *preds) -> bool:
        return conn.execute(select(table.c.id).where(*preds).limit(1)).first() is not None

    def ensure_unique(self, conn, message: str, *preds, exclude_id: Optional[str] = None,
                      table=None) -> None:
        table = table if table is not None else self.table
        if exclude_id is not None:
            preds = preds + (table.c.id != exclude_id,)
        if self.exists(conn, table, *preds):
            raise ConflictError(message)

    def ensure_no_dependants(self, conn, message: str, table, *preds) -> None:
        if self.exists(conn, table, *preds):
            raise ConflictError(message)

    def check_media(self, conn, media_id: Optional[str], purpose: str, country_id: Optional[str],
                    city_id: Optional[str] = None, field: str = "media_id") -> None:
        """
        A referenced media row must exist, carry *purpose*, and share the location.
        Country-wide rows (no city) accept any media from their country.
        """
        if not media_id:
            return
        row = conn.execute(
            select(media.c.purpose, media.c.country_id, media.c.city_id, media.c.is_active)
            .where(media.c.id == media_id)
        ).mappings().first()
        if row is None or not row["is_active"]:
            raise ValidationError(f"Invalid {field}: media not found")
        if row["purpose"] != purpose:
            raise ValidationError(f"Invalid {field}: media purpose must be '{purpose}'")
        if country_id is not None and row["country_id"] != country_id:
            raise ValidationError(f"Invalid {field}: media belongs to a different country")
        if self.country_wide and city_id is None:
            return
        if row["city_id"] is not None and row["city_id"] != city_id:
            raise ValidationError(f"Invalid {field}: media belongs to a different city")

    def check_city(self, conn, country_id: str, city_id: Optional[str]) -> None:
        """A city reference must belong to the given country."""
        if city_id is None:
            return
        if not self.exists(conn, cities, cities.c.id == city_id, cities.c.country_id == country_id):
            raise ValidationError("Invalid city_id for this country")

    def check_country(self, conn, country_id: Optional[str]) -> None:
        if not country_id or not self.exists(conn, countries, countries.c.id == country_id):
            raise ValidationError("Invalid country_id")


def placement(principal: Principal, country_id: Optional[str],
              city_id: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Location for a new row: non-super admins default to their own
    country/city; explicit values are kept for authorize_mutation to judge.
    """
    if principal.is_super_admin:
        return country_id, city_id
    country_id = country_id or principal.country_id
    if city_id is None and principal.city_id and country_id == principal.country_id:
        city_id = principal.city_id
    return country_id, city_id


def strip_keys(row: Dict[str, Any], keys: List[str]) -> Dict[str, Any]:
    return {k: v for k, v in row.items() if k not in keys}


def same_or_null(col, value):
    """Equality that treats NULL as a value, for composite uniqueness checks."""
    return col.is_(None) if value is None else col == value
