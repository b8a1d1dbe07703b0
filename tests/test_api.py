from conftest import PASSWORD, _make_user, auth_headers
from models.notification import Notification
from models.users import UserRole
from services.notification_service import OrderStatusChanged


# --- auth ---

def test_login_and_me(client, admin):
    response = client.post("/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["role"] == "ADMIN"


def test_login_rejects_bad_password(client, admin):
    response = client.post("/login", json={"email": "admin@example.com", "password": "wrong-password"})
    assert response.status_code == 401


def test_inactive_user_is_locked_out(client, db, staff):
    headers = auth_headers(staff)
    staff.is_active = False
    db.commit()

    assert client.get("/me", headers=headers).status_code == 403
    response = client.post("/login", json={"email": "staff@example.com", "password": PASSWORD})
    assert response.status_code == 403


def test_admin_manages_users(client, admin, staff):
    headers = auth_headers(admin)

    listing = client.get("/users", headers=headers, params={"role": "STAFF"})
    assert listing.status_code == 200
    assert [u["email"] for u in listing.json()["items"]] == ["staff@example.com"]

    promoted = client.put(f"/users/{staff.id}/role", headers=headers, json={"role": "MANAGER"})
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "MANAGER"

    self_lock = client.patch(f"/users/{admin.id}/status", headers=headers, json={"is_active": False})
    assert self_lock.status_code == 400

    created = client.post("/users", headers=headers,
                          json={"email": "new@example.com", "password": "longenough1", "role": "STAFF"})
    assert created.status_code == 201
    duplicate = client.post("/users", headers=headers,
                            json={"email": "new@example.com", "password": "longenough1"})
    assert duplicate.status_code == 409


def test_user_admin_requires_admin_role(client, manager):
    assert client.get("/users", headers=auth_headers(manager)).status_code == 403


def test_profile_update_changes_own_name_and_password(client, staff):
    headers = auth_headers(staff)

    updated = client.put("/users/me", headers=headers,
                         json={"first_name": "Sasha", "password": "a-new-password"})
    assert updated.status_code == 200
    assert updated.json()["first_name"] == "Sasha"
    assert updated.json()["role"] == "STAFF"

    relogin = client.post("/login", json={"email": "staff@example.com", "password": "a-new-password"})
    assert relogin.status_code == 200

    assert client.put("/users/me", headers=headers, json={}).status_code == 422
    assert client.put("/users/me", headers=headers, json={"role": "ADMIN"}).status_code == 422


def test_admin_reads_and_deletes_users(client, db, admin, manager, product, locations):
    headers = auth_headers(admin)
    main, _ = locations
    idle = _make_user(db, "idle@example.com", UserRole.STAFF)
    idle_id = idle.id
    client.post("/transactions/adjustments", headers=auth_headers(manager),
                json={"product_id": product.id, "location_id": main.id, "quantity": 1, "type": "ADJUSTMENT_IN"})

    assert client.get(f"/users/{idle_id}", headers=headers).json()["email"] == "idle@example.com"
    assert client.get(f"/users/{idle_id}", headers=auth_headers(manager)).status_code == 403

    with_history = client.delete(f"/users/{manager.id}", headers=headers)
    assert with_history.status_code == 409

    assert client.delete(f"/users/{admin.id}", headers=headers).status_code == 400

    assert client.delete(f"/users/{idle_id}", headers=headers).status_code == 204
    assert client.get(f"/users/{idle_id}", headers=headers).status_code == 404


# --- reference data ---

def test_product_crud_and_conflicts(client, manager, locations):
    headers = auth_headers(manager)
    main, _ = locations

    created = client.post("/products", headers=headers,
                          json={"sku": "SKU-9", "name": "Bracket", "reorder_level": 3, "selling_price": 4.5})
    assert created.status_code == 201
    product_id = created.json()["id"]

    duplicate = client.post("/products", headers=headers, json={"sku": "SKU-9", "name": "Other"})
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "CONFLICT"

    patched = client.patch(f"/products/{product_id}", headers=headers, json={"reorder_level": 5})
    assert patched.json()["reorder_level"] == 5

    client.post("/transactions/adjustments", headers=headers,
                json={"product_id": product_id, "location_id": main.id, "quantity": 2, "type": "ADJUSTMENT_IN"})

    blocked = client.delete(f"/products/{product_id}", headers=headers)
    assert blocked.status_code == 409
    blocked_location = client.delete(f"/locations/{main.id}", headers=headers)
    assert blocked_location.status_code == 409


def test_staff_cannot_edit_reference_data(client, staff):
    response = client.post("/locations", headers=auth_headers(staff), json={"name": "Annex"})
    assert response.status_code == 403


def test_reference_lookups(client, staff, supplier, customer):
    headers = auth_headers(staff)
    assert client.get("/suppliers", headers=headers).json()["total"] == 1
    assert client.get(f"/customers/{customer.id}", headers=headers).json()["name"] == "Builders Ltd"
    assert client.get("/suppliers/9999", headers=headers).status_code == 404


# --- stock movements ---

def test_adjustment_and_stock_queries(client, manager, product, locations):
    headers = auth_headers(manager)
    main, _ = locations

    created = client.post("/transactions/adjustments", headers=headers,
                          json={"product_id": product.id, "location_id": main.id, "quantity": 10,
                                "type": "ADJUSTMENT_IN", "notes": "initial count"})
    assert created.status_code == 201
    body = created.json()
    assert body["quantity_change"] == 10
    assert body["destination_location_id"] == main.id

    level = client.get("/stock/specific", headers=headers,
                       params={"product_id": product.id, "location_id": main.id})
    assert level.status_code == 200
    assert level.json()["quantity"] == 10
    assert level.json()["product"]["sku"] == "SKU-001"
    assert level.json()["location"]["name"] == "Main Warehouse"

    listing = client.get("/stock", headers=headers, params={"search": "widget"})
    assert listing.json()["total"] == 1


def test_insufficient_stock_maps_to_409(client, manager, product, locations):
    headers = auth_headers(manager)
    main, _ = locations

    response = client.post("/transactions/adjustments", headers=headers,
                           json={"product_id": product.id, "location_id": main.id, "quantity": 1,
                                 "type": "ADJUSTMENT_OUT"})

    assert response.status_code == 409
    assert response.json()["code"] == "INSUFFICIENT_STOCK"
    assert "Available: 0" in response.json()["detail"]


def test_transfer_endpoint(client, manager, product, locations):
    headers = auth_headers(manager)
    main, store = locations
    client.post("/transactions/adjustments", headers=headers,
                json={"product_id": product.id, "location_id": main.id, "quantity": 20, "type": "ADJUSTMENT_IN"})

    response = client.post("/transactions/transfers", headers=headers,
                           json={"product_id": product.id, "source_location_id": main.id,
                                 "destination_location_id": store.id, "quantity": 12})
    assert response.status_code == 201
    body = response.json()
    assert body["out_transaction"]["quantity_change"] == -12
    assert body["in_transaction"]["quantity_change"] == 12
    assert body["out_transaction"]["transfer_group"] == body["transfer_group"]

    same = client.post("/transactions/transfers", headers=headers,
                       json={"product_id": product.id, "source_location_id": main.id,
                             "destination_location_id": main.id, "quantity": 1})
    assert same.status_code == 400
    assert same.json()["code"] == "INVALID_ARGUMENT"

    history = client.get("/transactions", headers=headers, params={"location_id": store.id})
    assert history.json()["total"] == 2


def test_staff_cannot_adjust_stock(client, staff, product, locations):
    main, _ = locations
    response = client.post("/transactions/adjustments", headers=auth_headers(staff),
                           json={"product_id": product.id, "location_id": main.id, "quantity": 1,
                                 "type": "ADJUSTMENT_IN"})
    assert response.status_code == 403


def test_low_stock_listing_is_for_managers(client, staff):
    assert client.get("/stock/low", headers=auth_headers(staff)).status_code == 403


# --- orders ---

def test_purchase_order_flow(client, notifier, manager, staff, supplier, product, locations):
    headers = auth_headers(manager)
    main, _ = locations

    created = client.post("/purchase-orders", headers=headers, json={
        "supplier_id": supplier.id,
        "items": [{"product_id": product.id, "quantity_ordered": 10, "unit_cost": 1.25}],
    })
    assert created.status_code == 201
    order = created.json()
    assert order["status"] == "PENDING"
    item_id = order["items"][0]["id"]

    early = client.post(f"/purchase-orders/{order['id']}/items/{item_id}/receive", headers=auth_headers(staff),
                        json={"quantity": 1, "location_id": main.id})
    assert early.status_code == 409

    approved = client.patch(f"/purchase-orders/{order['id']}/status", headers=headers, json={"status": "APPROVED"})
    assert approved.json()["status"] == "APPROVED"

    received = client.post(f"/purchase-orders/{order['id']}/items/{item_id}/receive",
                           headers=auth_headers(staff), json={"quantity": 7, "location_id": main.id})
    assert received.status_code == 200
    assert received.json()["quantity_received"] == 7

    over = client.post(f"/purchase-orders/{order['id']}/items/{item_id}/receive",
                       headers=auth_headers(staff), json={"quantity": 5, "location_id": main.id})
    assert over.status_code == 400
    assert over.json()["code"] == "BAD_REQUEST"

    fetched = client.get(f"/purchase-orders/{order['id']}", headers=headers).json()
    assert fetched["status"] == "PARTIAL"

    statuses = [e.new_status for e in notifier.of_type(OrderStatusChanged)]
    assert statuses == ["APPROVED", "PARTIAL"]

    listing = client.get("/purchase-orders", headers=headers, params={"status": "PARTIAL"})
    assert listing.json()["total"] == 1


def test_sales_order_flow(client, manager, customer, product, locations):
    headers = auth_headers(manager)
    main, _ = locations
    client.post("/transactions/adjustments", headers=headers,
                json={"product_id": product.id, "location_id": main.id, "quantity": 5, "type": "ADJUSTMENT_IN"})

    order = client.post("/sales-orders", headers=headers, json={
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "quantity_ordered": 5, "unit_price": 3.0}],
    }).json()
    client.patch(f"/sales-orders/{order['id']}/status", headers=headers, json={"status": "APPROVED"})

    shipped = client.post(f"/sales-orders/{order['id']}/items/{order['items'][0]['id']}/ship",
                          headers=headers, json={"quantity": 5, "location_id": main.id})
    assert shipped.status_code == 200
    assert shipped.json()["quantity_shipped"] == 5

    fetched = client.get(f"/sales-orders/{order['id']}", headers=headers).json()
    assert fetched["status"] == "SHIPPED"

    invalid = client.patch(f"/sales-orders/{order['id']}/status", headers=headers, json={"status": "PENDING"})
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_TRANSITION"


# --- notifications & logs ---

def test_notification_endpoints(client, db, admin, manager):
    db.add_all([
        Notification(user_id=admin.id, message="one", type="GENERAL", is_read=False),
        Notification(user_id=admin.id, message="two", type="GENERAL", is_read=False),
        Notification(user_id=manager.id, message="other", type="GENERAL", is_read=False),
    ])
    db.commit()
    headers = auth_headers(admin)

    page = client.get("/notifications", headers=headers).json()
    assert page["total"] == 2
    assert page["unread_count"] == 2

    target = page["items"][0]["id"]
    read = client.patch(f"/notifications/{target}/read", headers=headers)
    assert read.status_code == 200
    assert read.json()["is_read"] is True

    others = db.query(Notification).filter(Notification.user_id == manager.id).one()
    assert client.patch(f"/notifications/{others.id}/read", headers=headers).status_code == 404

    marked = client.patch("/notifications/read-all", headers=headers)
    assert marked.json() == {"updated": 1}


def test_audit_log_is_admin_only(client, admin, manager, product, locations):
    main, _ = locations
    client.post("/transactions/adjustments", headers=auth_headers(manager),
                json={"product_id": product.id, "location_id": main.id, "quantity": 4, "type": "ADJUSTMENT_IN"})

    assert client.get("/logs", headers=auth_headers(manager)).status_code == 403

    logs = client.get("/logs", headers=auth_headers(admin), params={"action": "STOCK_ADJUSTMENT"})
    assert logs.status_code == 200
    assert logs.json()["total"] == 1
    assert logs.json()["items"][0]["user_id"] == manager.id
