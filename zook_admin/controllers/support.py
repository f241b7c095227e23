"""
Support desk – tickets, ticket statistics, and the message thread.
"""

from typing import Any, Dict

from sqlalchemy import func, select, update

from zook_admin.controllers.base import BaseController
from zook_admin.errors import ValidationError
from zook_admin.models import Principal
from zook_admin.query_shaper import (
    EntityQuery,
    boolean,
    build_predicates,
    equals,
    gte,
    lte,
    parse_datetime,
    search,
)
from zook_admin.rbac import authorize_mutation, resolve_scope
from zook_admin.schema import (
    admins,
    cities,
    countries,
    support_messages,
    support_tickets,
    users,
    utcnow,
)
from zook_admin.schemas.support import MessageCreate, MessageUpdate, TicketCreate, TicketUpdate
from zook_admin.stats import TICKET_CATEGORIES, TICKET_PRIORITIES, TICKET_STATUSES, ticket_stats


def _message_count(*preds):
    return (
        select(func.count())
        .select_from(support_messages)
        .where(support_messages.c.ticket_id == support_tickets.c.id, *preds)
        .scalar_subquery()
    )


def next_ticket_number(conn, now=None) -> str:
    """YYYY-NNNNN, numbered per calendar year."""
    prefix = f"{(now or utcnow()).year}-"
    numbers = conn.execute(
        select(support_tickets.c.ticket_number)
        .where(support_tickets.c.ticket_number.like(f"{prefix}%"))
    ).scalars()
    highest = max((int(n[len(prefix):]) for n in numbers if n[len(prefix):].isdigit()),
                  default=0)
    return f"{prefix}{highest + 1:05d}"


# ── Tickets ──────────────────────────────────────────────────────────

assignee = admins.alias("assignee")


class TicketController(BaseController):
    table = support_tickets
    label = "Ticket"
    entity = EntityQuery(
        key="tickets",
        source=support_tickets
        .join(users, support_tickets.c.user_id == users.c.id)
        .join(countries, support_tickets.c.country_id == countries.c.id)
        .outerjoin(cities, support_tickets.c.city_id == cities.c.id)
        .outerjoin(assignee, support_tickets.c.assigned_to == assignee.c.id),
        columns=[
            support_tickets,
            users.c.username.label("user_name"),
            countries.c.name.label("country_name"),
            cities.c.name.label("city_name"),
            assignee.c.username.label("assigned_to_name"),
            _message_count().label("total_messages_count"),
            _message_count(support_messages.c.is_read.is_(False)).label("unread_messages_count"),
        ],
        id_col=support_tickets.c.id,
        country_col=support_tickets.c.country_id,
        city_col=support_tickets.c.city_id,
        sort_fields={
            "created_at": support_tickets.c.created_at,
            "updated_at": support_tickets.c.updated_at,
            "priority": support_tickets.c.priority,
            "status": support_tickets.c.status,
        },
        filters=[
            search("search", support_tickets.c.subject, support_tickets.c.description),
            equals("ticket_number", support_tickets.c.ticket_number),
            equals("category", support_tickets.c.category, choices=TICKET_CATEGORIES),
            equals("priority", support_tickets.c.priority, choices=TICKET_PRIORITIES),
            equals("status", support_tickets.c.status, choices=TICKET_STATUSES),
            boolean("is_active", support_tickets.c.is_active),
            gte("from_date", support_tickets.c.created_at, parse=parse_datetime),
            lte("to_date", support_tickets.c.created_at, parse=parse_datetime),
            equals("user_id", support_tickets.c.user_id),
            equals("assigned_to", support_tickets.c.assigned_to),
        ],
    )

    def list(self, principal: Principal, args) -> Dict[str, Any]:
        result = super().list(principal, args)
        if not args.get("ticket_number") and not args.get("user_id"):
            result["stats"] = self.stats(principal, args)
        return result

    def stats(self, principal: Principal, args) -> Dict[str, Any]:
        """Aggregate statistics over every ticket the list filters match."""
        scope = resolve_scope(principal, args.get("country_id"), args.get("city_id"))
        preds = build_predicates(self.entity, args, scope)
        stmt = (
            select(support_tickets.c.status, support_tickets.c.priority,
                   support_tickets.c.category, support_tickets.c.created_at,
                   support_tickets.c.resolved_at)
            .select_from(self.entity.source)
            .where(*preds)
        )
        with self.engine.connect() as conn:
            rows = [dict(r) for r in conn.execute(stmt).mappings()]
        return ticket_stats(rows)

    def message_stats(self, principal: Principal, row_id: str) -> Dict[str, Any]:
        """Message counters for one ticket."""
        with self.engine.connect() as conn:
            ticket = self.fetch_visible(conn, principal, row_id)
            counts = conn.execute(
                select(
                    support_messages.c.sender_type,
                    support_messages.c.is_internal,
                    support_messages.c.is_read,
                    func.count().label("n"),
                    func.max(support_messages.c.created_at).label("last_at"),
                )
                .where(support_messages.c.ticket_id == row_id)
                .group_by(support_messages.c.sender_type, support_messages.c.is_internal,
                          support_messages.c.is_read)
            ).mappings().all()
        out = {
            "ticket_id": row_id,
            "ticket_number": ticket["ticket_number"],
            "total_messages": 0,
            "unread_messages": 0,
            "internal_messages": 0,
            "user_messages": 0,
            "admin_messages": 0,
            "last_message_at": None,
        }
        for c in counts:
            out["total_messages"] += c["n"]
            out[f"{c['sender_type']}_messages"] += c["n"]
            if not c["is_read"]:
                out["unread_messages"] += c["n"]
            if c["is_internal"]:
                out["internal_messages"] += c["n"]
            if c["last_at"] and (out["last_message_at"] is None or c["last_at"] > out["last_message_at"]):
                out["last_message_at"] = c["last_at"]
        return out

    def _check_assignee(self, conn, admin_id, country_id):
        if not admin_id:
            return
        row = conn.execute(
            select(admins.c.country_id, admins.c.role, admins.c.is_active)
            .where(admins.c.id == admin_id)
        ).mappings().first()
        if row is None or not row["is_active"]:
            raise ValidationError("Invalid assigned_to: admin not found")
        if row["role"] != "super_admin" and row["country_id"] != country_id:
            raise ValidationError("Invalid assigned_to: admin belongs to a different country")

    def create(self, principal: Principal, body: TicketCreate) -> Dict[str, Any]:
        values = body.model_dump()
        with self.engine.begin() as conn:
            user = conn.execute(
                select(users.c.country_id, users.c.city_id).where(users.c.id == body.user_id)
            ).mappings().first()
            if user is None:
                raise ValidationError("Invalid user_id")
            authorize_mutation(principal, user["country_id"], user["city_id"])
            self._check_assignee(conn, body.assigned_to, user["country_id"])
            values.update(
                country_id=user["country_id"],
                city_id=user["city_id"],
                ticket_number=next_ticket_number(conn),
                status="open",
                is_active=True,
            )
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: TicketUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "assigned_to" in changes:
                self._check_assignee(conn, changes["assigned_to"], row["country_id"])
            status = changes.get("status")
            if status == "resolved":
                changes["resolved_at"] = utcnow()
            elif status == "closed":
                changes["closed_at"] = utcnow()
            elif status in ("open", "in_progress", "reopened"):
                changes.update(resolved_at=None, closed_at=None)
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        conn.execute(support_messages.delete().where(support_messages.c.ticket_id == row["id"]))


# ── Messages ─────────────────────────────────────────────────────────

class MessageController(BaseController):
    table = support_messages
    label = "Message"
    entity = EntityQuery(
        key="messages",
        source=support_messages.join(
            support_tickets, support_messages.c.ticket_id == support_tickets.c.id),
        columns=[support_messages, support_tickets.c.ticket_number],
        id_col=support_messages.c.id,
        country_col=support_tickets.c.country_id,
        city_col=support_tickets.c.city_id,
        sort_fields={"created_at": support_messages.c.created_at},
        default_order="asc",
        filters=[
            equals("ticket_id", support_messages.c.ticket_id),
            equals("sender_type", support_messages.c.sender_type, choices=("user", "admin")),
            boolean("is_read", support_messages.c.is_read),
            boolean("is_internal", support_messages.c.is_internal),
        ],
    )

    def _ticket(self, conn, ticket_id, missing_is_invalid=False):
        row = conn.execute(
            select(support_tickets.c.id, support_tickets.c.user_id,
                   support_tickets.c.country_id, support_tickets.c.city_id)
            .where(support_tickets.c.id == ticket_id)
        ).mappings().first()
        if row is None:
            if missing_is_invalid:
                raise ValidationError("Invalid ticket_id")
            self.fetch_or_404(conn, ticket_id, table=support_tickets, label="Ticket")
        return row

    def locate(self, conn, row):
        ticket = self._ticket(conn, row["ticket_id"])
        return ticket["country_id"], ticket["city_id"]

    def create(self, principal: Principal, body: MessageCreate) -> Dict[str, Any]:
        values = body.model_dump()
        with self.engine.begin() as conn:
            ticket = self._ticket(conn, body.ticket_id, missing_is_invalid=True)
            authorize_mutation(principal, ticket["country_id"], ticket["city_id"])
            values.update(
                sender_id=principal.id if body.sender_type == "admin" else ticket["user_id"],
                is_read=False,
            )
            row_id = self.insert_row(conn, values)
            return self.detail(conn, row_id)

    def update(self, principal: Principal, row_id: str, body: MessageUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if changes.get("is_internal") and row["sender_type"] != "admin":
                raise ValidationError("only admins can post internal messages")
            if changes.get("is_read") and not row["is_read"]:
                changes["read_at"] = utcnow()
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def mark_read(self, principal: Principal, ticket_id: str) -> int:
        """Mark every unread message of a ticket as read; returns how many changed."""
        with self.engine.begin() as conn:
            ticket = self._ticket(conn, ticket_id)
            authorize_mutation(principal, ticket["country_id"], ticket["city_id"])
            result = conn.execute(
                update(support_messages)
                .where(support_messages.c.ticket_id == ticket_id,
                       support_messages.c.is_read.is_(False))
                .values(is_read=True, read_at=utcnow())
            )
            return result.rowcount

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)
