import json
from datetime import timedelta

from conftest import ADMIN, ALMATY, CUSTOMER, NOW, OTHER_CUSTOMER, OWNER, headers


def order_body(restaurant_id, **overrides):
    body = {
        "restaurant_id": restaurant_id,
        "items": [
            {
                "menu_item_id": "m-1",
                "quantity": 2,
                "unit_price": 1000,
                "selected_options": [],
            }
        ],
        "payment_method": "card",
        "pickup_type": "dine-in",
        "pickup_time": (NOW + timedelta(hours=2)).isoformat(),
    }
    body.update(overrides)
    return body


def create(client, restaurant_id, identity=CUSTOMER, **overrides):
    return client.post("/orders", json=order_body(restaurant_id, **overrides), headers=headers(identity))


def test_health(client):
    assert client.get("/").json()["status"] == "active"


def test_create_and_get(client, restaurant):
    response = create(client, restaurant.id)
    assert response.status_code == 201
    order = response.json()
    assert order["total_amount"] == 2800
    assert order["price_breakdown"]["tax"] == 300
    assert order["status"] == "pending"
    assert order["pickup_type"] == "dine-in"

    fetched = client.get(f"/orders/{order['id']}", headers=headers(CUSTOMER))
    assert fetched.status_code == 200
    assert fetched.json()["order_number"] == order["order_number"]


def test_missing_identity_is_unauthorized(client, restaurant):
    assert client.post("/orders", json=order_body(restaurant.id)).status_code == 401
    bad_role = {"X-User-Id": "u", "X-User-Role": "chef"}
    assert client.get("/orders", headers=bad_role).status_code == 401


def test_error_codes(client, restaurant):
    empty = create(client, restaurant.id, items=[])
    assert empty.status_code == 400
    assert empty.json()["error"] == "EmptyOrder"

    bad_discount = create(client, restaurant.id, discount_percentage=150)
    assert bad_discount.status_code == 400
    assert bad_discount.json()["error"] == "InvalidDiscount"

    bad_coords = create(client, restaurant.id, customer_location={"latitude": 120, "longitude": 0})
    assert bad_coords.json()["error"] == "InvalidCoordinates"

    assert create(client, 999).status_code == 404
    assert create(client, restaurant.id, identity=OWNER).status_code == 403

    order_id = create(client, restaurant.id).json()["id"]
    assert client.get(f"/orders/{order_id}", headers=headers(OTHER_CUSTOMER)).status_code == 403

    client.post(f"/orders/{order_id}/cancel", headers=headers(CUSTOMER))
    again = client.post(f"/orders/{order_id}/cancel", headers=headers(CUSTOMER))
    assert again.status_code == 422
    assert again.json()["error"] == "InvalidTransition"


def test_status_flow_and_events(client, restaurant):
    order_id = create(client, restaurant.id).json()["id"]

    assert client.post(f"/orders/{order_id}/confirm", headers=headers(OWNER)).json()["status"] == "confirmed"
    assert client.post(f"/orders/{order_id}/advance", headers=headers(OWNER)).json()["status"] == "preparing"
    paid = client.post(f"/orders/{order_id}/payment", json={"payment_status": "paid"}, headers=headers(ADMIN))
    assert paid.json()["payment_status"] == "paid"

    events = client.get(f"/orders/{order_id}/events", headers=headers(CUSTOMER)).json()
    assert [(e["kind"], e["new_status"]) for e in events] == [
        ("order_confirmation", "pending"),
        ("order_status", "confirmed"),
        ("order_status", "preparing"),
        ("payment_status", "paid"),
    ]
    assert client.get(f"/orders/{order_id}/events", headers=headers(OTHER_CUSTOMER)).status_code == 403


def test_payment_body_is_validated(client, restaurant):
    order_id = create(client, restaurant.id).json()["id"]
    response = client.post(f"/orders/{order_id}/payment", json={"payment_status": "refunded"}, headers=headers(ADMIN))
    assert response.status_code == 422


def test_list_orders(client, restaurant):
    for _ in range(3):
        create(client, restaurant.id)
    create(client, restaurant.id, identity=OTHER_CUSTOMER)

    mine = client.get("/orders", headers=headers(CUSTOMER)).json()
    assert len(mine) == 3
    assert {o["user_id"] for o in mine} == {CUSTOMER.user_id}

    everything = client.get("/orders?sort=-created_at&limit=2&page=2", headers=headers(ADMIN)).json()
    assert len(everything) == 2

    assert client.get("/orders?sort=secret", headers=headers(ADMIN)).status_code == 400


def test_quote(client, restaurant):
    body = {
        "restaurant_id": restaurant.id,
        "items": [{"menu_item_id": "m", "quantity": 2, "unit_price": 1000}],
        "customer_location": {"latitude": ALMATY[0], "longitude": ALMATY[1]},
    }
    response = client.post("/orders/quote", json=body, headers=headers(CUSTOMER))
    assert response.status_code == 200
    assert response.json() == {
        "subtotal": 2000,
        "discount": 0,
        "delivery_fee": 500,
        "tax": 300,
        "tip": 0,
        "total": 2800,
        "loyalty_points": 2800,
        "distance_meters": 0,
        "estimated_travel_minutes": 0,
    }


def test_restaurants_and_reviews(client, restaurant):
    created = client.post(
        "/restaurants",
        json={"name": "Navat", "location": {"latitude": ALMATY[0] + 0.02, "longitude": ALMATY[1]}},
        headers=headers(OWNER),
    )
    assert created.status_code == 201
    assert created.json()["rating"] == 0

    forbidden = client.post(
        "/restaurants",
        json={"name": "Nope", "location": {"latitude": 0, "longitude": 0}},
        headers=headers(CUSTOMER),
    )
    assert forbidden.status_code == 403

    for rating in (5, 4, 4):
        response = client.post(f"/restaurants/{restaurant.id}/reviews", json={"rating": rating}, headers=headers(CUSTOMER))
        assert response.status_code == 201
    assert response.json() == {"restaurant_id": restaurant.id, "rating": 4.33, "review_count": 3}

    out_of_scale = client.post(f"/restaurants/{restaurant.id}/reviews", json={"rating": 6}, headers=headers(CUSTOMER))
    assert out_of_scale.status_code == 422

    fetched = client.get(f"/restaurants/{restaurant.id}").json()
    assert fetched["rating"] == 4.33
    assert fetched["review_count"] == 3

    near = client.get(f"/restaurants/nearby?latitude={ALMATY[0]}&longitude={ALMATY[1]}&max_distance=5000").json()
    assert [r["name"] for r in near] == ["Dastarkhan", "Navat"]
    assert near[0]["distance_meters"] == 0

    assert client.get("/restaurants/nearby?latitude=95&longitude=0").status_code == 400
    assert client.get("/restaurants/999").status_code == 404


def test_nearby_keeps_edge_of_radius_and_drops_far_restaurants(client, restaurant):
    for name, lat, lon in [
        ("Edge", ALMATY[0], ALMATY[1] + 0.0615),  # ~4.98 km east
        ("Faraway", ALMATY[0] + 0.1, ALMATY[1]),  # ~11 km north
    ]:
        response = client.post(
            "/restaurants",
            json={"name": name, "location": {"latitude": lat, "longitude": lon}},
            headers=headers(OWNER),
        )
        assert response.status_code == 201

    near = client.get(f"/restaurants/nearby?latitude={ALMATY[0]}&longitude={ALMATY[1]}&max_distance=5000").json()
    assert [r["name"] for r in near] == ["Dastarkhan", "Edge"]
    assert 4900 < near[1]["distance_meters"] <= 5000


def test_non_finite_percentages_are_rejected(client, restaurant):
    for value in (float("nan"), float("inf"), -1):
        raw = json.dumps(order_body(restaurant.id, tip_percentage=value))
        created = client.post("/orders", content=raw, headers={**headers(CUSTOMER), "Content-Type": "application/json"})
        assert created.status_code == 422

    quote_body = {
        "restaurant_id": restaurant.id,
        "items": [{"menu_item_id": "m", "quantity": 1, "unit_price": 1000}],
        "discount_percentage": float("nan"),
    }
    quoted = client.post(
        "/orders/quote",
        content=json.dumps(quote_body),
        headers={**headers(CUSTOMER), "Content-Type": "application/json"},
    )
    assert quoted.status_code == 422
