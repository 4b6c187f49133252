# test_orders_api.py
import uuid

import pytest

from pos.models.core import AuditLog, Order


def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type", "").startswith("application/json") else r.text


def _new_order(client, headers, product_id, qty=2, **extra):
    body = {"customer_name": "Budi", "table_number": "5", "type_order": "dine_in",
            "items": [{"product_id": product_id, "qty": qty}], **extra}
    r = client.post("/orders/", headers=headers, json=body)
    assert r.status_code == 201, f"POST /orders/ -> {r.status_code}: {r.text}"
    return r.json()


def test_create_and_pay_cash(client, base_url, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)

    o = _new_order(client, cashier_headers, soto["id"], qty=2)
    assert o["status"] == "DRAFT"
    assert o["subtotal"] == 30000
    assert o["total"] == 30000
    assert o["order_number"].startswith("ORD-")
    assert [(i["product_name"], i["qty"], i["subtotal"]) for i in o["items"]] == [(soto["name"], 2, 30000)]

    r = client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers, json={
        "payment_method": "CASH", "cash_received": 50000,
    })
    paid = jprint("POST /orders/{id}/pay", r)
    assert paid["status"] == "PAID"
    assert paid["payment_method"] == "cash"
    assert paid["total"] == 30000
    assert paid["change_amount"] == 20000
    assert paid["paid_at"]


def test_duplicate_lines_are_merged(client, cashier_headers, make_product):
    p = make_product("Es Teh", 5000, "Minuman")
    r = client.post("/orders/", headers=cashier_headers, json={
        "type_order": "takeaway",
        "items": [{"product_id": p["id"], "qty": 1}, {"product_id": p["id"], "qty": 2}],
    })
    o = jprint("POST /orders/", r)
    assert len(o["items"]) == 1
    assert o["items"][0]["qty"] == 3
    assert o["subtotal"] == 15000
    assert o["customer_name"] == "-"


@pytest.mark.parametrize("table", [None, "", "  ", "-"])
def test_dine_in_requires_table_and_persists_nothing(client, db, cashier_headers, make_product, table):
    p = make_product()
    r = client.post("/orders/", headers=cashier_headers, json={
        "type_order": "dine_in", "table_number": table,
        "items": [{"product_id": p["id"], "qty": 1}],
    })
    assert r.status_code == 400, r.text
    assert r.json()["error"] == "ValidationError"
    assert db.query(Order).count() == 0


@pytest.mark.parametrize("items", [
    [],
    [{"product_id": "", "qty": 1}],
    [{"product_id": "PID", "qty": 0}],
])
def test_bad_items_rejected(client, db, cashier_headers, make_product, items):
    p = make_product()
    for it in items:
        if it["product_id"] == "PID":
            it["product_id"] = p["id"]
    r = client.post("/orders/", headers=cashier_headers, json={"type_order": "takeaway", "items": items})
    assert r.status_code == 400, r.text
    assert db.query(Order).count() == 0


def test_unknown_or_inactive_product(client, base_url, auth_headers, cashier_headers, make_product):
    r = client.post("/orders/", headers=cashier_headers, json={
        "type_order": "takeaway", "items": [{"product_id": str(uuid.uuid4()), "qty": 1}],
    })
    assert r.status_code == 400
    assert r.json()["error"] == "ProductNotFoundError"

    p = make_product("Kerupuk", 2000, "Tambahan")
    jprint("deactivate", client.post(f"{base_url}/admin/products/{p['id']}/deactivate", headers=auth_headers))
    r = client.post("/orders/", headers=cashier_headers, json={
        "type_order": "takeaway", "items": [{"product_id": p["id"], "qty": 1}],
    })
    assert r.status_code == 400
    assert r.json()["error"] == "ProductNotFoundError"


def test_edit_draft_replaces_items(client, base_url, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    teh = make_product("Es Teh", 5000, "Minuman")
    o = _new_order(client, cashier_headers, soto["id"], qty=2)

    r = client.put(f"{base_url}/orders/{o['id']}", headers=cashier_headers, json={
        "customer_name": "Sari", "table_number": "7", "type_order": "dine_in",
        "items": [{"product_id": teh["id"], "qty": 3}],
    })
    edited = jprint("PUT /orders/{id}", r)
    assert edited["customer_name"] == "Sari"
    assert edited["table_number"] == "7"
    assert edited["subtotal"] == 15000
    assert [(i["product_id"], i["qty"]) for i in edited["items"]] == [(teh["id"], 3)]
    assert edited["order_number"] == o["order_number"]


def test_price_change_does_not_touch_existing_orders(client, base_url, auth_headers, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, cashier_headers, soto["id"], qty=1)
    jprint("PUT /admin/products/{id}", client.put(f"{base_url}/admin/products/{soto['id']}", headers=auth_headers, json={
        "name": soto["name"], "price": 20000, "category": "Makanan",
    }))
    got = jprint("GET /orders/{id}", client.get(f"{base_url}/orders/{o['id']}", headers=cashier_headers))
    assert got["items"][0]["price"] == 15000
    assert got["total"] == 15000


@pytest.mark.parametrize("finish", ["pay", "cancel"])
def test_terminal_orders_are_frozen(client, base_url, cashier_headers, make_product, finish):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, cashier_headers, soto["id"], qty=2)
    if finish == "pay":
        jprint("pay", client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                                  json={"payment_method": "qris"}))
    else:
        jprint("cancel", client.post(f"{base_url}/orders/{o['id']}/cancel", headers=cashier_headers))
    before = jprint("GET", client.get(f"{base_url}/orders/{o['id']}", headers=cashier_headers))

    r = client.put(f"{base_url}/orders/{o['id']}", headers=cashier_headers, json={
        "type_order": "takeaway", "items": [{"product_id": soto["id"], "qty": 9}],
    })
    assert r.status_code == 409
    assert r.json()["error"] == "InvalidStateError"

    r = client.post(f"{base_url}/orders/{o['id']}/cancel", headers=cashier_headers)
    assert r.status_code == 409

    r = client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                    json={"payment_method": "cash", "cash_received": 100000})
    assert r.status_code == 409

    after = jprint("GET", client.get(f"{base_url}/orders/{o['id']}", headers=cashier_headers))
    assert after == before


def test_pay_validation_errors(client, base_url, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, cashier_headers, soto["id"], qty=2)

    r = client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                    json={"payment_method": "cash", "cash_received": 10000})
    assert r.status_code == 400
    assert r.json()["error"] == "InsufficientPaymentError"

    r = client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                    json={"payment_method": "gopay"})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"

    r = client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                    json={"payment_method": "qris", "discount": -1})
    assert r.status_code == 400

    got = jprint("GET", client.get(f"{base_url}/orders/{o['id']}", headers=cashier_headers))
    assert got["status"] == "DRAFT"


def test_missing_order_is_404(client, base_url, cashier_headers):
    missing = uuid.uuid4()
    assert client.get(f"{base_url}/orders/{missing}", headers=cashier_headers).status_code == 404
    r = client.post(f"{base_url}/orders/{missing}/pay", headers=cashier_headers, json={"payment_method": "qris"})
    assert r.status_code == 404
    assert r.json()["error"] == "NotFoundError"


def test_status_patch_paid_reopen_and_cancel(client, base_url, db, auth_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, auth_headers, soto["id"], qty=2)

    r = client.patch(f"{base_url}/orders/{o['id']}/status", headers=auth_headers, json={"status": "PAID"})
    paid = jprint("PATCH PAID", r)
    assert paid["status"] == "PAID"
    assert paid["tax"] == 3000
    assert paid["total"] == 33000

    r = client.patch(f"{base_url}/orders/{o['id']}/status", headers=auth_headers, json={"status": "DRAFT"})
    reopened = jprint("PATCH DRAFT", r)
    assert reopened["status"] == "DRAFT"
    assert reopened["tax"] == 0
    assert reopened["total"] == 30000
    assert reopened["payment_method"] is None
    assert reopened["paid_at"] is None

    r = client.patch(f"{base_url}/orders/{o['id']}/status", headers=auth_headers, json={"status": "CANCELED"})
    assert jprint("PATCH CANCELED", r)["status"] == "CANCELED"

    actions = [a.action for a in db.query(AuditLog).filter(AuditLog.entity_id == o["id"]).all()]
    assert actions.count("STATUS") == 3


def test_status_patch_paid_from_canceled_rejected(client, base_url, auth_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, auth_headers, soto["id"])
    jprint("cancel", client.post(f"{base_url}/orders/{o['id']}/cancel", headers=auth_headers))
    r = client.patch(f"{base_url}/orders/{o['id']}/status", headers=auth_headers, json={"status": "PAID"})
    assert r.status_code == 409


def test_list_filters_and_paging(client, base_url, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    ids = []
    for i in range(3):
        ids.append(_new_order(client, cashier_headers, soto["id"], customer_name=f"Tamu{i}", table_number=f"T{i}")["id"])
    jprint("pay", client.post(f"{base_url}/orders/{ids[0]}/pay", headers=cashier_headers,
                              json={"payment_method": "debit"}))

    page = jprint("list", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"size": 2}))
    assert page["total"] == 3
    assert page["page"] == 1
    assert page["size"] == 2
    assert len(page["items"]) == 2
    # most recently updated first
    assert page["items"][0]["id"] == ids[0]

    page2 = jprint("list p2", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"size": 2, "page": 2}))
    assert len(page2["items"]) == 1

    paid = jprint("status", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"status": "PAID"}))
    assert [o["id"] for o in paid["items"]] == [ids[0]]

    found = jprint("search", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"search": "tamu2"}))
    assert [o["id"] for o in found["items"]] == [ids[2]]

    by_table = jprint("table", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"table": "T1"}))
    assert [o["id"] for o in by_table["items"]] == [ids[1]]

    today = jprint("today", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"date_range": "today"}))
    assert today["total"] == 3

    clamped = jprint("clamp", client.get(f"{base_url}/orders/", headers=cashier_headers, params={"size": 1000, "page": 0}))
    assert clamped["size"] == 100
    assert clamped["page"] == 1

    r = client.get(f"{base_url}/orders/", headers=cashier_headers, params={"status": "LOST"})
    assert r.status_code == 400
    r = client.get(f"{base_url}/orders/", headers=cashier_headers, params={"date_range": "decade"})
    assert r.status_code == 400


def test_public_receipt_only_for_paid(client, base_url, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, cashier_headers, soto["id"], qty=2)

    assert client.get(f"{base_url}/orders/{o['id']}/public").status_code == 404

    jprint("pay", client.post(f"{base_url}/orders/{o['id']}/pay", headers=cashier_headers,
                              json={"payment_method": "cash", "cash_received": 50000}))
    pub = jprint("public", client.get(f"{base_url}/orders/{o['id']}/public"))
    assert pub["status"] == "PAID"
    assert pub["total"] == 30000
    assert pub["items"] == [{"product_name": soto["name"], "qty": 2, "subtotal": 30000}]
    assert "cashier_id" not in pub


def test_delete_is_admin_only(client, base_url, db, auth_headers, cashier_headers, make_product):
    soto = make_product("Soto Ayam", 15000)
    o = _new_order(client, cashier_headers, soto["id"])

    assert client.delete(f"{base_url}/orders/{o['id']}", headers=cashier_headers).status_code == 403

    body = jprint("DELETE", client.delete(f"{base_url}/orders/{o['id']}", headers=auth_headers))
    assert body == {"success": True, "id": o["id"]}
    assert client.get(f"{base_url}/orders/{o['id']}", headers=auth_headers).status_code == 404
    assert db.query(AuditLog).filter(AuditLog.entity_id == o["id"], AuditLog.action == "DELETE").count() == 1


def test_orders_require_login(client, base_url):
    assert client.get(f"{base_url}/orders/").status_code == 401
    r = client.get(f"{base_url}/orders/", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401
