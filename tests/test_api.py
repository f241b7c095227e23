"""
Integration tests for the Flask API – auth gates, envelopes, and routes.
"""

from zook_admin.models import Principal

from conftest import PASSWORD


def login(client, username, password=PASSWORD):
    return client.post("/api/auth/login", json={"username": username, "password": password})


# ── Tests: health / info ─────────────────────────────────────────────

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "success"
    assert body["data"]["checks"]["database"] is True


def test_index(client):
    body = client.get("/").get_json()
    assert body["data"]["service"] == "Zook Admin API"
    assert body["data"]["status"] == "running"


# ── Tests: authentication ────────────────────────────────────────────

def test_login_and_profile(client, world):
    resp = login(client, "alpha_admin")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["admin"]["id"] == world.admin_a_id
    assert "password" not in data["admin"]

    profile = client.get("/api/auth/profile",
                         headers={"Authorization": f"Bearer {data['token']}"})
    assert profile.status_code == 200
    assert profile.get_json()["data"]["username"] == "alpha_admin"


def test_login_bad_password(client, world):
    resp = login(client, "alpha_admin", "wrong")
    assert resp.status_code == 401
    assert resp.get_json() == {"status": "error", "message": "Invalid credentials", "data": None}


def test_login_missing_fields(client):
    resp = client.post("/api/auth/login", json={"username": "alpha_admin"})
    assert resp.status_code == 400
    assert resp.get_json()["data"][0]["field"] == "password"


def test_missing_token(client):
    resp = client.get("/api/countries")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Authentication token is missing"


def test_malformed_header(client):
    resp = client.get("/api/countries", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid authorization header format"


def test_garbage_token(client):
    resp = client.get("/api/countries", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token"


def test_role_gate(client, world, auth_header):
    finance = Principal(id="f", role="finance", country_id=world.country_a, city_id=None)
    resp = client.get("/api/stores", headers=auth_header(finance))
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Insufficient permissions for this action"
    assert client.get("/api/orders", headers=auth_header(finance)).status_code == 200


def test_countries_write_super_only(client, world, auth_header):
    body = {"name": "Gamma", "code": "GG", "phone_code": "+3", "currency_code": "EUR",
            "currency_symbol": "€", "timezone": "UTC", "default_language": "en"}
    assert client.post("/api/countries", json=body,
                       headers=auth_header(world.admin_a)).status_code == 403
    resp = client.post("/api/countries", json=body, headers=auth_header(world.super))
    assert resp.status_code == 201
    assert resp.get_json()["message"] == "Country created successfully"


# ── Tests: list shaping ──────────────────────────────────────────────

def test_list_envelope(client, world, auth_header):
    resp = client.get("/api/countries?sort_by=name&sort_order=asc",
                      headers=auth_header(world.super))
    body = resp.get_json()
    assert body["message"] == "Countries retrieved successfully"
    data = body["data"]
    assert [c["name"] for c in data["countries"]] == ["Alpha", "Beta"]
    assert (data["total"], data["page"], data["limit"], data["totalPages"]) == (2, 1, 10, 1)
    assert data["countries"][0]["total_cities"] == 2


def test_list_page_past_end(client, world, auth_header):
    resp = client.get("/api/countries?page=7", headers=auth_header(world.super))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["countries"] == []
    assert data["total"] == 2


def test_list_huge_page_is_empty(client, world, auth_header):
    resp = client.get("/api/countries?page=99999999999999999999",
                      headers=auth_header(world.super))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["countries"] == []
    assert data["total"] == 2
    assert data["totalPages"] == 1


def test_list_bad_sort(client, world, auth_header):
    resp = client.get("/api/stores?sort_by=auth_details", headers=auth_header(world.super))
    assert resp.status_code == 400
    assert resp.get_json()["status"] == "error"


def test_list_scoped_for_regular_admin(client, world, auth_header):
    resp = client.get(f"/api/countries?country_id={world.country_b}",
                      headers=auth_header(world.admin_a))
    data = resp.get_json()["data"]
    assert [c["id"] for c in data["countries"]] == [world.country_a]


# ── Tests: entity routes ─────────────────────────────────────────────

def test_get_out_of_scope_is_404(client, world, auth_header):
    resp = client.get(f"/api/stores/{world.store_a2}", headers=auth_header(world.admin_a1))
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Store not found"


def test_delete_category_conflict(client, world, auth_header):
    resp = client.delete(f"/api/categories/{world.category_a}", headers=auth_header(world.super))
    assert resp.status_code == 409


def test_zones_round_trip(client, world, auth_header):
    headers = auth_header(world.admin_a1)
    resp = client.post(f"/api/cities/{world.city_a1}/zones", headers=headers,
                       json={"name": "Downtown", "latitude": 1, "longitude": 2,
                             "delivery_price": 3.5})
    assert resp.status_code == 201
    zone_id = resp.get_json()["data"]["id"]

    dup = client.post(f"/api/cities/{world.city_a1}/zones", headers=headers,
                      json={"name": "downtown", "latitude": 1, "longitude": 2,
                            "delivery_price": 1})
    assert dup.status_code == 409

    zones = client.get(f"/api/cities/{world.city_a1}/zones", headers=headers).get_json()["data"]
    assert [z["id"] for z in zones] == [zone_id]

    other = client.post(f"/api/cities/{world.city_a2}/zones", headers=headers,
                        json={"name": "Uptown", "latitude": 1, "longitude": 2,
                              "delivery_price": 1})
    assert other.status_code == 403

    assert client.delete(f"/api/cities/{world.city_a1}/zones/{zone_id}",
                         headers=headers).status_code == 200
    assert client.delete(f"/api/cities/{world.city_a1}/zones/{zone_id}",
                         headers=headers).status_code == 404


def test_create_order_route(client, world, auth_header, gateway):
    resp = client.post("/api/orders", headers=auth_header(world.admin_a), json={
        "user_id": world.user_a1,
        "store_id": world.store_a1,
        "items": [{"id": world.item_a1, "quantity": 1,
                   "extras": [{"name": "Cheese", "price": 5}]}],
        "delivery_address": {"name": "Home", "street": "1 Main", "city": "A One",
                             "latitude": 1, "longitude": 2},
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["message"] == "Order created successfully"
    assert body["data"]["final_price"] == 55.0
    assert len(gateway.calls) == 1

    gateway.success = False
    failed = client.post("/api/orders", headers=auth_header(world.admin_a), json={
        "user_id": world.user_a1,
        "store_id": world.store_a1,
        "items": [{"id": world.item_a1, "quantity": 1}],
        "delivery_address": {"name": "Home", "street": "1 Main", "city": "A One",
                             "latitude": 1, "longitude": 2},
    })
    assert failed.status_code == 201
    assert failed.get_json()["message"] == "Order created but payment failed"
    assert failed.get_json()["data"]["order_status"] == "cancelled"


def test_order_status_route(client, world, auth_header):
    headers = auth_header(world.admin_a)
    order = client.post("/api/orders", headers=headers, json={
        "user_id": world.user_a1,
        "store_id": world.store_a1,
        "items": [{"id": world.item_a1, "quantity": 1}],
        "delivery_address": {"name": "Home", "street": "1 Main", "city": "A One",
                             "latitude": 1, "longitude": 2},
    }).get_json()["data"]
    bad = client.put(f"/api/orders/{order['id']}/status", headers=headers,
                     json={"status": "delivered"})
    assert bad.status_code == 400
    ok = client.put(f"/api/orders/{order['id']}/status", headers=headers,
                    json={"status": "preparing"})
    assert ok.status_code == 200
    assert ok.get_json()["data"]["order_status"] == "preparing"


def test_ticket_stats_route(client, world, auth_header):
    support = Principal(id="s", role="support", country_id=world.country_a, city_id=None)
    resp = client.get("/api/support/tickets/stats", headers=auth_header(support))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["total_tickets"] == 0


def test_unknown_endpoint(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Endpoint not found"


def test_delete_city_names_blocking_rows(client, world, auth_header):
    headers = auth_header(world.super)
    resp = client.delete(f"/api/cities/{world.city_a2}", headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Cannot delete city with associated stores"

    resp = client.delete(f"/api/cities/{world.city_b1}", headers=headers)
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Cannot delete city with associated drivers"

    empty = client.post("/api/cities", headers=headers, json={
        "country_id": world.country_b, "name": "B Two"}).get_json()["data"]
    assert client.delete(f"/api/cities/{empty['id']}", headers=headers).status_code == 200


# ── Tests: repeated updates ──────────────────────────────────────────

def without_updated_at(row):
    return {k: v for k, v in row.items() if k != "updated_at"}


def put_twice(client, url, headers, body):
    first = client.put(url, headers=headers, json=body)
    second = client.put(url, headers=headers, json=body)
    assert first.status_code == second.status_code == 200
    stored = client.get(url, headers=headers).get_json()["data"]
    return first.get_json()["data"], second.get_json()["data"], stored


def test_store_update_twice_same_row(client, world, auth_header):
    first, second, stored = put_twice(
        client, f"/api/stores/{world.store_a1}", auth_header(world.admin_a),
        {"name": "Burger Barn Deluxe", "is_sponsored": True, "tags": ["grill"]})
    assert first["slug"] == "burger-barn-deluxe"
    assert without_updated_at(first) == without_updated_at(second)
    assert without_updated_at(stored) == without_updated_at(second)


def test_promo_update_twice_same_row(client, world, auth_header):
    first, second, stored = put_twice(
        client, f"/api/promo-codes/{world.promo_a}", auth_header(world.admin_a),
        {"code": "save25", "discount_amount": 25, "description": "Quarter off"})
    assert first["code"] == "SAVE25"
    assert without_updated_at(first) == without_updated_at(second)
    assert without_updated_at(stored) == without_updated_at(second)
