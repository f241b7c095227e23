"""
Flask route handlers for the REST API.
"""

from flask import request

from zook_admin.api.auth import generate_token, roles_required, token_required
from zook_admin.config import (
    FINANCE_READ_ROLES,
    OPERATOR_WRITE_ROLES,
    READ_ROLES,
    ROLE_SUPER_ADMIN,
    SERVICE_NAME,
    SERVICE_VERSION,
    SUPPORT_ROLES,
    WRITE_ROLES,
)
from zook_admin.controllers.admins import AdminController
from zook_admin.controllers.catalog import (
    CategoryController,
    StoreController,
    StoreItemCategoryController,
    StoreItemController,
)
from zook_admin.controllers.feedback import RatingController
from zook_admin.controllers.locations import CityController, CountryController
from zook_admin.controllers.marketing import (
    BannerController,
    PaymentOptionController,
    PromoCodeController,
)
from zook_admin.controllers.media import MediaController
from zook_admin.controllers.orders import OrderController
from zook_admin.controllers.support import MessageController, TicketController
from zook_admin.database import ping
from zook_admin.envelope import success_response
from zook_admin.schemas.admins import AdminCreate, AdminUpdate, LoginRequest
from zook_admin.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    PhotosAdd,
    StoreCreate,
    StoreItemCategoryCreate,
    StoreItemCategoryUpdate,
    StoreItemCreate,
    StoreItemUpdate,
    StoreUpdate,
)
from zook_admin.schemas.common import PositionBody, parse_body
from zook_admin.schemas.locations import (
    CityCreate,
    CityUpdate,
    CountryCreate,
    CountryUpdate,
    ZoneCreate,
    ZoneUpdate,
)
from zook_admin.schemas.marketing import (
    BannerCreate,
    BannerUpdate,
    PaymentOptionCreate,
    PaymentOptionUpdate,
    PromoCodeCreate,
    PromoCodeUpdate,
)
from zook_admin.schemas.media import MediaCreate, MediaUpdate
from zook_admin.schemas.orders import (
    DriverAssignment,
    OrderCreate,
    OrderUpdate,
    PaymentStatusChange,
    StatusChange,
)
from zook_admin.schemas.support import (
    MessageCreate,
    MessageUpdate,
    RatingCreate,
    RatingModeration,
    RatingUpdate,
    TicketCreate,
    TicketUpdate,
)


def body(model):
    """Validate the JSON request body against *model*."""
    return parse_body(model, request.get_json(silent=True))


def register_crud(app, path, name, controller, create_model, update_model,
                  read_roles=READ_ROLES, write_roles=WRITE_ROLES, delete_roles=None,
                  with_create=True):
    """Register list/get/create/update/delete for one controller under *path*."""
    label = controller.label
    plural = controller.entity.key.replace("_", " ")
    delete_roles = delete_roles or write_roles

    @token_required
    @roles_required(*read_roles)
    def list_rows():
        data = controller.list(request.principal, request.args)
        return success_response(data, f"{plural.capitalize()} retrieved successfully")

    @token_required
    @roles_required(*read_roles)
    def get_row(row_id):
        return success_response(controller.get(request.principal, row_id),
                                f"{label} retrieved successfully")

    @token_required
    @roles_required(*write_roles)
    def create_row():
        row = controller.create(request.principal, body(create_model))
        return success_response(row, f"{label} created successfully", 201)

    @token_required
    @roles_required(*write_roles)
    def update_row(row_id):
        row = controller.update(request.principal, row_id, body(update_model))
        return success_response(row, f"{label} updated successfully")

    @token_required
    @roles_required(*delete_roles)
    def delete_row(row_id):
        controller.delete(request.principal, row_id)
        return success_response(None, f"{label} deleted successfully")

    app.add_url_rule(path, f"list_{name}", list_rows, methods=["GET"])
    app.add_url_rule(f"{path}/<row_id>", f"get_{name}", get_row, methods=["GET"])
    if with_create:
        app.add_url_rule(path, f"create_{name}", create_row, methods=["POST"])
    app.add_url_rule(f"{path}/<row_id>", f"update_{name}", update_row, methods=["PUT"])
    app.add_url_rule(f"{path}/<row_id>", f"delete_{name}", delete_row, methods=["DELETE"])


def register_routes(app, engine, payment_gateway=None):
    """Register all API routes on the Flask *app*."""

    countries = CountryController(engine)
    cities = CityController(engine)
    admins = AdminController(engine)
    media = MediaController(engine)
    categories = CategoryController(engine)
    stores = StoreController(engine)
    sections = StoreItemCategoryController(engine)
    items = StoreItemController(engine)
    banners = BannerController(engine)
    payment_options = PaymentOptionController(engine)
    promo_codes = PromoCodeController(engine)
    ratings = RatingController(engine)
    tickets = TicketController(engine)
    messages = MessageController(engine)
    orders = OrderController(engine, payment_gateway)

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return success_response({
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "status": "running",
            "endpoints": {
                "auth": "/api/auth/login",
                "profile": "/api/auth/profile",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        healthy = ping(engine)
        data = {"status": "healthy" if healthy else "unhealthy", "checks": {"database": healthy}}
        if healthy:
            return success_response(data, "Service is healthy")
        return success_response(data, "Service is unhealthy", 503)

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        creds = body(LoginRequest)
        admin = admins.authenticate(creds.username, creds.password)
        token = generate_token(admin)
        print(f"[auth] {admin['username']} logged in ({admin['role']})")
        return success_response({"admin": admin, "token": token}, "Login successful")

    @app.route("/api/auth/profile", methods=["GET"])
    @token_required
    def profile():
        return success_response(admins.profile(request.principal),
                                "Profile retrieved successfully")

    # ── Locations ────────────────────────────────────────────────────

    register_crud(app, "/api/countries", "country", countries, CountryCreate, CountryUpdate,
                  write_roles=(ROLE_SUPER_ADMIN,))
    register_crud(app, "/api/cities", "city", cities, CityCreate, CityUpdate)

    @app.route("/api/cities/<city_id>/zones", methods=["GET"])
    @token_required
    @roles_required(*READ_ROLES)
    def list_zones(city_id):
        return success_response(cities.list_zones(request.principal, city_id),
                                "Zones retrieved successfully")

    @app.route("/api/cities/<city_id>/zones", methods=["POST"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def add_zone(city_id):
        zone = cities.add_zone(request.principal, city_id, body(ZoneCreate))
        return success_response(zone, "Zone added successfully", 201)

    @app.route("/api/cities/<city_id>/zones/<zone_id>", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def update_zone(city_id, zone_id):
        zone = cities.update_zone(request.principal, city_id, zone_id, body(ZoneUpdate))
        return success_response(zone, "Zone updated successfully")

    @app.route("/api/cities/<city_id>/zones/<zone_id>", methods=["DELETE"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def delete_zone(city_id, zone_id):
        cities.delete_zone(request.principal, city_id, zone_id)
        return success_response(None, "Zone deleted successfully")

    # ── Admins / media ───────────────────────────────────────────────

    register_crud(app, "/api/admins", "admin", admins, AdminCreate, AdminUpdate,
                  read_roles=WRITE_ROLES)
    register_crud(app, "/api/media", "media", media, MediaCreate, MediaUpdate)

    # ── Catalog ──────────────────────────────────────────────────────

    register_crud(app, "/api/categories", "category", categories, CategoryCreate,
                  CategoryUpdate)

    @app.route("/api/categories/<row_id>/position", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def move_category(row_id):
        row = categories.move(request.principal, row_id, body(PositionBody).position)
        return success_response(row, "Category position updated successfully")

    register_crud(app, "/api/stores", "store", stores, StoreCreate, StoreUpdate)

    @app.route("/api/stores/<row_id>/toggle-busy", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def toggle_store_busy(row_id):
        row = stores.toggle(request.principal, row_id, "is_busy")
        state = "busy" if row["is_busy"] else "available"
        return success_response(row, f"Store is now {state}")

    @app.route("/api/stores/<row_id>/toggle-active", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def toggle_store_active(row_id):
        row = stores.toggle(request.principal, row_id, "is_active")
        state = "active" if row["is_active"] else "inactive"
        return success_response(row, f"Store is now {state}")

    register_crud(app, "/api/store-item-categories", "store_item_category", sections,
                  StoreItemCategoryCreate, StoreItemCategoryUpdate)
    register_crud(app, "/api/store-items", "store_item", items, StoreItemCreate,
                  StoreItemUpdate, write_roles=OPERATOR_WRITE_ROLES, delete_roles=WRITE_ROLES)

    @app.route("/api/store-items/<row_id>/toggle-active", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def toggle_item_active(row_id):
        row = items.toggle_active(request.principal, row_id)
        state = "active" if row["is_active"] else "inactive"
        return success_response(row, f"Store item is now {state}")

    @app.route("/api/store-items/<row_id>/photos", methods=["POST"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def add_item_photos(row_id):
        photos = items.add_photos(request.principal, row_id, body(PhotosAdd))
        return success_response(photos, "Photos added successfully")

    @app.route("/api/store-items/<row_id>/photos/<photo_id>/position", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def move_item_photo(row_id, photo_id):
        photos = items.move_photo(request.principal, row_id, photo_id,
                                  body(PositionBody).position)
        return success_response(photos, "Photo position updated successfully")

    @app.route("/api/store-items/<row_id>/photos/<photo_id>", methods=["DELETE"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def delete_item_photo(row_id, photo_id):
        items.delete_photo(request.principal, row_id, photo_id)
        return success_response(None, "Photo deleted successfully")

    # ── Marketing ────────────────────────────────────────────────────

    register_crud(app, "/api/banners", "banner", banners, BannerCreate, BannerUpdate)

    @app.route("/api/banners/<row_id>/position", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def move_banner(row_id):
        row = banners.move(request.principal, row_id, body(PositionBody).position)
        return success_response(row, "Banner position updated successfully")

    register_crud(app, "/api/payment-options", "payment_option", payment_options,
                  PaymentOptionCreate, PaymentOptionUpdate, read_roles=FINANCE_READ_ROLES)

    @app.route("/api/payment-options/<row_id>/position", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def move_payment_option(row_id):
        row = payment_options.move(request.principal, row_id, body(PositionBody).position)
        return success_response(row, "Payment option position updated successfully")

    register_crud(app, "/api/promo-codes", "promo_code", promo_codes, PromoCodeCreate,
                  PromoCodeUpdate, read_roles=FINANCE_READ_ROLES)

    # ── Ratings ──────────────────────────────────────────────────────

    register_crud(app, "/api/ratings", "rating", ratings, RatingCreate, RatingUpdate,
                  read_roles=SUPPORT_ROLES)

    @app.route("/api/ratings/<row_id>/moderate", methods=["PUT"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def moderate_rating(row_id):
        row = ratings.moderate(request.principal, row_id, body(RatingModeration))
        return success_response(row, "Rating moderated successfully")

    # ── Support ──────────────────────────────────────────────────────

    @app.route("/api/support/tickets/stats", methods=["GET"])
    @token_required
    @roles_required(*SUPPORT_ROLES)
    def ticket_stats():
        return success_response(tickets.stats(request.principal, request.args),
                                "Ticket statistics retrieved successfully")

    @app.route("/api/support/tickets/<row_id>/stats", methods=["GET"])
    @token_required
    @roles_required(*SUPPORT_ROLES)
    def ticket_message_stats(row_id):
        return success_response(tickets.message_stats(request.principal, row_id),
                                "Ticket statistics retrieved successfully")

    register_crud(app, "/api/support/tickets", "ticket", tickets, TicketCreate, TicketUpdate,
                  read_roles=SUPPORT_ROLES, write_roles=SUPPORT_ROLES, delete_roles=WRITE_ROLES)

    @app.route("/api/support/messages/mark-read/<ticket_id>", methods=["PUT"])
    @token_required
    @roles_required(*SUPPORT_ROLES)
    def mark_messages_read(ticket_id):
        count = messages.mark_read(request.principal, ticket_id)
        return success_response({"updated": count}, "Messages marked as read successfully")

    register_crud(app, "/api/support/messages", "message", messages, MessageCreate,
                  MessageUpdate, read_roles=SUPPORT_ROLES, write_roles=SUPPORT_ROLES,
                  delete_roles=WRITE_ROLES)

    # ── Orders ───────────────────────────────────────────────────────

    @app.route("/api/orders", methods=["POST"])
    @token_required
    @roles_required(*WRITE_ROLES)
    def create_order():
        order, payment = orders.create(request.principal, body(OrderCreate))
        message = ("Order created successfully" if payment.success
                   else "Order created but payment failed")
        return success_response(order, message, 201)

    register_crud(app, "/api/orders", "order", orders, OrderCreate, OrderUpdate,
                  read_roles=FINANCE_READ_ROLES, with_create=False)

    @app.route("/api/orders/<row_id>/status", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def change_order_status(row_id):
        row = orders.change_status(request.principal, row_id, body(StatusChange))
        return success_response(row, "Order status updated successfully")

    @app.route("/api/orders/<row_id>/assign-driver", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def assign_order_driver(row_id):
        row = orders.assign_driver(request.principal, row_id, body(DriverAssignment))
        return success_response(row, "Driver assigned successfully")

    @app.route("/api/orders/<row_id>/payment-status", methods=["PUT"])
    @token_required
    @roles_required(*OPERATOR_WRITE_ROLES)
    def change_order_payment_status(row_id):
        row = orders.change_payment_status(request.principal, row_id, body(PaymentStatusChange))
        return success_response(row, "Payment status updated successfully")
