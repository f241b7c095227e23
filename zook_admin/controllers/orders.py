"""
Orders – priced creation with promo and payment checks, the status graph,
driver assignment, and payment status.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update

from zook_admin.config import ORDER_TRANSITIONS
from zook_admin.controllers.base import BaseController
from zook_admin.errors import ConflictError, ValidationError
from zook_admin.models import PaymentResult, Principal
from zook_admin.payments import PaymentGateway
from zook_admin.query_shaper import EntityQuery, equals, gte, lte, parse_datetime, search
from zook_admin.rbac import authorize_mutation
from zook_admin.schema import (
    drivers,
    new_id,
    orders,
    payment_options,
    promo_codes,
    store_items,
    stores,
    users,
    utcnow,
)
from zook_admin.schemas.orders import (
    DriverAssignment,
    OrderCreate,
    OrderUpdate,
    PaymentStatusChange,
    StatusChange,
)

ORDER_STATUSES = tuple(ORDER_TRANSITIONS)
CLOSED_STATUSES = {"delivered", "cancelled"}


# ── Pricing ──────────────────────────────────────────────────────────

def price_lines(lines: List[Dict], catalog: Dict[str, Dict]) -> Tuple[List[Dict], int, float]:
    """
    Re-validate each line against the store's current catalog and total it.
    Returns (snapshot items, total quantity, total item price).
    """
    items, quantity, total = [], 0, 0.0
    for line in lines:
        item = catalog.get(line["id"])
        if item is None:
            raise ValidationError(f"Invalid item id {line['id']}")

        offered = {choice["name"] for group in item["options"] or []
                   for choice in group.get("items", [])}
        for option in line.get("options") or []:
            if option["name"] not in offered:
                raise ValidationError(f"Invalid options for item {item['name']}")

        extras_price = {e["name"]: float(e["price"]) for e in item["extras"] or []}
        extras_cost = 0.0
        for extra in line.get("extras") or []:
            if extras_price.get(extra["name"]) != float(extra["price"]):
                raise ValidationError(f"Invalid extras for item {item['name']}")
            extras_cost += float(extra["price"])

        quantity += line["quantity"]
        total += (float(item["price"]) + extras_cost) * line["quantity"]
        items.append({
            "id": item["id"],
            "name": item["name"],
            "price": float(item["price"]),
            "quantity": line["quantity"],
            "options": line.get("options") or [],
            "extras": line.get("extras") or [],
        })
    return items, quantity, round(total, 2)


def promo_discount(promo: Optional[Dict], total: float) -> float:
    """Percentage or fixed discount, capped by maximum_discount and by the total."""
    if not promo:
        return 0.0
    amount = float(promo["discount_amount"])
    if promo["type"] == "percentage":
        discount = total * amount / 100
    else:
        discount = amount
    if promo.get("maximum_discount") is not None:
        discount = min(discount, float(promo["maximum_discount"]))
    return round(min(discount, total), 2)


# ── Controller ───────────────────────────────────────────────────────

class OrderController(BaseController):
    table = orders
    label = "Order"
    entity = EntityQuery(
        key="orders",
        source=orders
        .join(stores, orders.c.store_id == stores.c.id)
        .outerjoin(drivers, orders.c.driver_id == drivers.c.id)
        .outerjoin(payment_options, orders.c.payment_option_id == payment_options.c.id)
        .outerjoin(promo_codes, orders.c.promo_code_id == promo_codes.c.id),
        columns=[
            orders,
            stores.c.name.label("store_name"),
            drivers.c.full_name.label("driver_name"),
            payment_options.c.name.label("payment_option_name"),
            promo_codes.c.code.label("promo_code"),
        ],
        id_col=orders.c.id,
        country_col=orders.c.country_id,
        city_col=orders.c.city_id,
        sort_fields={
            "created_at": orders.c.created_at,
            "final_price": orders.c.final_price,
            "order_status": orders.c.order_status,
        },
        filters=[
            search("search", orders.c.id, orders.c.extra_note, orders.c.customer_name),
            equals("user_id", orders.c.user_id),
            equals("store_id", orders.c.store_id),
            equals("driver_id", orders.c.driver_id),
            equals("payment_status", orders.c.payment_status, choices=("paid", "not_paid")),
            equals("order_status", orders.c.order_status, choices=ORDER_STATUSES),
            gte("start_date", orders.c.created_at, parse=parse_datetime),
            lte("end_date", orders.c.created_at, parse=parse_datetime),
        ],
    )

    def __init__(self, engine, payment_gateway=None):
        super().__init__(engine)
        self.payment_gateway = payment_gateway or PaymentGateway()

    # ── Cross-reference checks ───────────────────────────────────────

    def _check_payment_option(self, conn, option_id, country_id, amount):
        if not option_id:
            return
        option = conn.execute(
            select(payment_options).where(payment_options.c.id == option_id)
        ).mappings().first()
        if option is None or option["status"] != "active" or option["country_id"] != country_id:
            raise ValidationError("Invalid payment option ID")
        if option["minimum_amount"] is not None and amount < option["minimum_amount"]:
            raise ValidationError(
                f"Order total is below the payment option minimum of {option['minimum_amount']}")
        if option["maximum_amount"] is not None and amount > option["maximum_amount"]:
            raise ValidationError(
                f"Order total exceeds the payment option maximum of {option['maximum_amount']}")

    def _load_promo(self, conn, promo_id, store, total) -> Optional[Dict]:
        if not promo_id:
            return None
        promo = conn.execute(
            select(promo_codes).where(promo_codes.c.id == promo_id)
        ).mappings().first()
        if promo is None or not promo["is_active"]:
            raise ValidationError("Invalid promo code ID")
        now = utcnow()
        if promo["start_date"] and promo["start_date"] > now:
            raise ValidationError("Promo code is not yet active")
        if promo["end_date"] and promo["end_date"] < now:
            raise ValidationError("Promo code has expired")
        if promo["usage_limit"] and promo["used_count"] >= promo["usage_limit"]:
            raise ValidationError("Promo code usage limit reached")
        if promo["country_id"] != store["country_id"] or (
                promo["city_id"] is not None and promo["city_id"] != store["city_id"]):
            raise ValidationError("Promo code is not valid for this store's location")
        if promo["minimum_order_amount"] is not None and total < promo["minimum_order_amount"]:
            raise ValidationError(
                f"Order total must be at least {promo['minimum_order_amount']} for this promo code")
        return dict(promo)

    @staticmethod
    def _count_promo_use(conn, promo_id, step=1):
        """used_count tracks the paid orders carrying the promo; it never drops below 0."""
        if not promo_id:
            return
        stmt = update(promo_codes).where(promo_codes.c.id == promo_id)
        if step < 0:
            stmt = stmt.where(promo_codes.c.used_count > 0)
        conn.execute(stmt.values(used_count=promo_codes.c.used_count + step))

    # ── Operations ───────────────────────────────────────────────────

    def create(self, principal: Principal, body: OrderCreate) -> Tuple[Dict[str, Any], PaymentResult]:
        data = body.model_dump()
        with self.engine.begin() as conn:
            store = conn.execute(
                select(stores.c.id, stores.c.country_id, stores.c.city_id,
                       stores.c.is_active, stores.c.is_busy)
                .where(stores.c.id == body.store_id)
            ).mappings().first()
            if store is None:
                raise ValidationError("Invalid store ID")
            authorize_mutation(principal, store["country_id"], store["city_id"])
            if not store["is_active"]:
                raise ValidationError("Store is not active")
            if store["is_busy"]:
                raise ValidationError("Store is currently busy")

            user = conn.execute(
                select(users).where(users.c.id == body.user_id)
            ).mappings().first()
            if user is None or not user["is_active"]:
                raise ValidationError("Invalid user ID")

            item_ids = {line["id"] for line in data["items"]}
            catalog = {
                row["id"]: dict(row) for row in conn.execute(
                    select(store_items.c.id, store_items.c.name, store_items.c.price,
                           store_items.c.options, store_items.c.extras)
                    .where(store_items.c.id.in_(item_ids),
                           store_items.c.store_id == body.store_id,
                           store_items.c.is_active.is_(True))
                ).mappings()
            }
            if len(catalog) != len(item_ids):
                raise ValidationError("Invalid item IDs")

            items, quantity, total = price_lines(data["items"], catalog)
            promo = self._load_promo(conn, body.promo_code_id, store, total)
            discount = promo_discount(promo, total)
            final_price = round(total - discount, 2)
            self._check_payment_option(conn, body.payment_option_id, store["country_id"],
                                       final_price)

            order_id = new_id()
            result = self.payment_gateway.validate_payment(
                final_price, body.payment_option_id, body.user_id, order_id)

            self.insert_row(conn, {
                "id": order_id,
                "country_id": store["country_id"],
                "city_id": store["city_id"],
                "store_id": body.store_id,
                "user_id": body.user_id,
                "payment_option_id": body.payment_option_id,
                "promo_code_id": body.promo_code_id,
                "customer_name": body.customer_name or user["username"] or user["phone_number"],
                "customer_phone": body.customer_phone or user["phone_number"],
                "customer_email": body.customer_email or user["email"],
                "items": items,
                "total_item_quantity": quantity,
                "total_item_price": total,
                "discount_amount": discount,
                "final_price": final_price,
                "extra_note": body.extra_note,
                "delivery_address": data["delivery_address"],
                "payment_status": result.status,
                "order_status": "pending" if result.success else "cancelled",
                "transaction_id": result.transaction_id,
            })
            if result.status == "paid":
                self._count_promo_use(conn, body.promo_code_id)

            order = self.detail(conn, order_id)
        order["payment_validation"] = {"success": result.success, "message": result.message}
        return order, result

    def update(self, principal: Principal, row_id: str, body: OrderUpdate) -> Dict[str, Any]:
        changes = body.changes()
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if "payment_option_id" in changes:
                self._check_payment_option(conn, changes["payment_option_id"],
                                           row["country_id"], row["final_price"])
            self.update_row(conn, row_id, changes)
            return self.detail(conn, row_id)

    def change_status(self, principal: Principal, row_id: str, body: StatusChange) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            current = row["order_status"]
            if body.status not in ORDER_TRANSITIONS.get(current, set()):
                raise ValidationError(f"Invalid status transition from {current} to {body.status}")
            self.update_row(conn, row_id, {"order_status": body.status})
            return self.detail(conn, row_id)

    def assign_driver(self, principal: Principal, row_id: str,
                      body: DriverAssignment) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            if row["order_status"] in CLOSED_STATUSES:
                raise ValidationError(
                    f"Cannot assign a driver to a {row['order_status']} order")
            driver = conn.execute(
                select(drivers.c.country_id, drivers.c.city_id, drivers.c.is_active)
                .where(drivers.c.id == body.driver_id)
            ).mappings().first()
            if driver is None or not driver["is_active"]:
                raise ValidationError("Invalid driver ID")
            if driver["country_id"] != row["country_id"]:
                raise ValidationError("Driver belongs to a different country")
            if driver["city_id"] and row["city_id"] and driver["city_id"] != row["city_id"]:
                raise ValidationError("Driver belongs to a different city")
            self.update_row(conn, row_id, {"driver_id": body.driver_id})
            return self.detail(conn, row_id)

    def change_payment_status(self, principal: Principal, row_id: str,
                              body: PaymentStatusChange) -> Dict[str, Any]:
        with self.engine.begin() as conn:
            row = self.fetch_or_404(conn, row_id)
            self.authorize(conn, principal, row)
            values = {"payment_status": body.status}
            if body.transaction_id:
                values["transaction_id"] = body.transaction_id
            if body.status == "paid" and row["payment_status"] != "paid":
                self._count_promo_use(conn, row["promo_code_id"])
            elif body.status != "paid" and row["payment_status"] == "paid":
                self._count_promo_use(conn, row["promo_code_id"], step=-1)
            self.update_row(conn, row_id, values)
            return self.detail(conn, row_id)

    def delete(self, principal: Principal, row_id: str) -> None:
        self.remove(principal, row_id)

    def before_delete(self, conn, principal, row):
        if row["order_status"] != "pending":
            raise ConflictError("Can only delete pending orders")
