"""
Admin accounts – authentication, profile, and scoped account management.
"""

from typing import Any, Dict

from sqlalchemy import select, update
from werkzeug.security import check_password_hash, generate_password_hash

from zook_admin.config import ROLE_SUPER_ADMIN
from zook_admin.controllers.base import BaseController, placement
from zook_admin.errors import ForbiddenError, UnauthorizedError, ValidationError
from zook_admin.models import Principal
from zook_admin.query_shaper import EntityQuery, boolean, equals, search
from zook_admin.rbac import (
    authorize_admin_management,
    authorize_mutation,
    forbid_self_delete,
    guard_role_assignment,
)
from zook_admin.schema import admins, cities, countries, media, utcnow
from zook_admin.schemas.admins import AdminCreate, AdminUpdate

ADMIN_COLUMNS = [c for c in admins.c if c.name != "password"]


class AdminController(BaseController):
    table = admins
    label = "Admin"
    entity = EntityQuery(
        key="admins",
        source=admins
        .outerjoin(countries, admins.c.country_id == countries.c.id)
        .outerjoin(cities, admins.c.city_id == cities.c.id)
        .outerjoin(media, admins.c.photo_media_id == media.c.id),
        columns=ADMIN_COLUMNS + [
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            media.c.url.label("photo_url"),
        ],
        id_col=admins.c.id,
        country_col=admins.c.country_id,
        city_col=admins.c.city_id,
        sort_fields={
            "username": admins.c.username,
            "role": admins.c.role,
            "created_at": admins.c.created_at,
        },
        filters=[
            search("search", admins.c.username, admins.c.email, admins.c.full_name),
            equals("role", admins.c.role,
                   choices=("super_admin", "admin", "finance", "support", "operator")),
            boolean("is_active", admins.c.is_active),
        ],
    )

    # ── Authentication ───────────────────────────────────────────────

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Verify credentials of an active admin and stamp last_login_at."""
        with self.engine.begin() as conn:
            row = conn.execute(
                select(admins.c.id, admins.c.password)
                .where(admins.c.username == username, admins.c.is_active.is_(True))
            ).mappings().first()
            if row is None or not check_password_hash(row["password"], password):
                raise UnauthorizedError("Invalid credentials")
            conn.execute(
                update(admins).where(admins.c.id == row["id"]).values(last_login_at=utcnow())
            )
            return self.detail(conn, row["id"])

    def profile(self, principal: Principal) -> Dict[str, Any]:
        with self.engine.connect() as conn:
            row = self._select_one(conn, principal.id)
        if row is None or not row["is_active"]:
            raise UnauthorizedError("Admin account no longer active")
        return row

    # ── Management ───────────────────────────────────────────────────

    def create(self, principal: Principal, body: AdminCreate) -> Dict[str, Any]:
        values = body.model_dump()
        guard_role_assignment(principal, body.role)

        if body.role == ROLE_SUPER_ADMIN:
            if body.country_id or body.city_id:
                raise ValidationError("Super admins cannot be assigned a country or city")
        else:
            values["country_id"], values["city_id"] = placement(
                principal, body.country_id, body.city_id)
            if not values["country_id"]:
                raise ValidationError(f"country_id is required for role '{body.role}'")
            authorize_mutation(principal, values["country_id"], values["city_id"])

        values["password"] = generate_password_hash(body.password)

        with self.engine.begin() as conn:
            if values["country_id"]:
                self.check_country(conn, values["country_id"])
                self.check_city(conn, values["country_id"], values["city_id"])
            self._check_identity(conn, values.get("username"), values.get("email"))
            self.check_media(conn, values.get("photo_media_id"), "profile_photo",
                             values["country_id"], values["city_id"], field="photo_media_id")
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: AdminUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            target = self.fetch_or_404(conn, row_id)
            authorize_admin_management(principal, target["role"], changes.get("role"))
            self.authorize(conn, principal, target)

            if (not principal.is_super_admin and "country_id" in changes
                    and changes["country_id"] != target["country_id"]):
                raise ForbiddenError("Cannot move an admin to another country",
                                     kind=ForbiddenError.WRONG_COUNTRY)

            role = changes.get("role", target["role"])
            country_id = changes.get("country_id", target["country_id"])
            city_id = changes.get("city_id", target["city_id"])
            if role == ROLE_SUPER_ADMIN:
                changes["country_id"] = changes["city_id"] = None
                country_id = city_id = None
            else:
                if not country_id:
                    raise ValidationError(f"country_id is required for role '{role}'")
                authorize_mutation(principal, country_id, city_id)
                self.check_country(conn, country_id)
                self.check_city(conn, country_id, city_id)

            if "email" in changes and changes["email"]:
                self._check_identity(conn, None, changes["email"], exclude_id=row_id)
            if "photo_media_id" in changes:
                self.check_media(conn, changes["photo_media_id"], "profile_photo",
                                 country_id, city_id, field="photo_media_id")
            if "password" in changes:
                changes["password"] = generate_password_hash(changes["password"])

            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        forbid_self_delete(principal, row_id)
        with self.engine.begin() as conn:
            target = self.fetch_or_404(conn, row_id)
            authorize_admin_management(principal, target["role"])
            self.authorize(conn, principal, target)
            self.delete_row(conn, row_id)

    def _check_identity(self, conn, username, email, exclude_id=None) -> None:
        if username:
            self.ensure_unique(conn, "Username already exists",
                               admins.c.username == username, exclude_id=exclude_id)
        if email:
            self.ensure_unique(conn, "Email already exists",
                               admins.c.email == email, exclude_id=exclude_id)
