import re

import pytest


@pytest.fixture
def new_item(client, kitchen_headers):
    def _create(name, in_stock=0, reorder_point=5, location="Thessaloniki", **extra):
        payload = {
            "name": name,
            "category": "produce",
            "unit": "kg",
            "inStock": in_stock,
            "reorderPoint": reorder_point,
            "idealStock": 20,
            "location": location,
            **extra,
        }
        response = client.post("/api/inventory/inventory-items", json=payload, headers=kitchen_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def menu_item(client, admin_headers):
    def _create(name, price=2000):
        response = client.post(
            "/api/menu-items",
            json={
                "name": name,
                "category": "mains",
                "priceThessaloniki": price,
                "priceMykonos": price + 500,
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


def add_ingredient(client, headers, menu_item_id, inventory_item_id, quantity):
    response = client.post(
        "/api/inventory/menu-ingredients",
        json={"menuItemId": menu_item_id, "inventoryItemId": inventory_item_id, "quantity": quantity},
        headers=headers,
    )
    assert response.status_code == 201, response.text


def stock_of(client, headers, item_id):
    return client.get(f"/api/inventory/inventory-items/{item_id}", headers=headers).json()["inStock"]


def test_inventory_routes_require_staff(client, client_headers):
    assert client.get("/api/inventory/inventory-items").status_code == 401
    assert client.get("/api/inventory/inventory-items", headers=client_headers).status_code == 403


def test_opening_stock_is_recorded_in_the_ledger(client, kitchen_headers, new_item):
    item = new_item("Salmon", in_stock=12)
    assert item["inStock"] == 12

    ledger = client.get(
        "/api/inventory/inventory-transactions",
        params={"inventory_item_id": item["id"]},
        headers=kitchen_headers,
    ).json()
    assert [(tx["transactionType"], tx["quantity"]) for tx in ledger] == [("adjust", 12)]


def test_stock_cannot_be_patched_directly(client, kitchen_headers, new_item):
    item = new_item("Lemons", in_stock=4)
    response = client.patch(
        f"/api/inventory/inventory-items/{item['id']}",
        json={"inStock": 999, "reorderPoint": 2},
        headers=kitchen_headers,
    )
    assert response.status_code == 200
    assert response.json()["inStock"] == 4
    assert response.json()["reorderPoint"] == 2


def test_restock_stamps_restock_date(client, kitchen_headers, new_item):
    item = new_item("Caviar", in_stock=1)
    assert item["lastRestockDate"] is None

    response = client.post(
        "/api/inventory/inventory-transactions",
        json={"inventoryItemId": item["id"], "transactionType": "restock", "quantity": 5},
        headers=kitchen_headers,
    )
    assert response.status_code == 201

    updated = client.get(f"/api/inventory/inventory-items/{item['id']}", headers=kitchen_headers).json()
    assert updated["inStock"] == 6
    assert updated["lastRestockDate"] is not None
    assert updated["lastCheckedDate"] is not None


def test_waste_can_drive_stock_negative(client, kitchen_headers, new_item):
    item = new_item("Oysters", in_stock=2)
    client.post(
        "/api/inventory/inventory-transactions",
        json={"inventoryItemId": item["id"], "transactionType": "waste", "quantity": -3},
        headers=kitchen_headers,
    )
    updated = client.get(f"/api/inventory/inventory-items/{item['id']}", headers=kitchen_headers).json()
    assert updated["inStock"] == -1
    assert updated["lastRestockDate"] is None


def test_order_consumption_deducts_recipe_quantities(
        client, kitchen_headers, new_item, menu_item, create_order):
    salmon = new_item("Salmon", in_stock=10)
    rice = new_item("Rice", in_stock=20)
    with_recipe = menu_item("Salmon bowl")
    without_recipe = menu_item("Fruit platter")
    add_ingredient(client, kitchen_headers, with_recipe["id"], salmon["id"], 0.5)
    add_ingredient(client, kitchen_headers, with_recipe["id"], rice["id"], 2)

    order = create_order(items=[
        {"menuItemId": with_recipe["id"], "quantity": 3, "unitPrice": 2000},
        {"menuItemId": without_recipe["id"], "quantity": 1, "unitPrice": 1000},
        {"menuItemId": 9999, "quantity": 4, "unitPrice": 100},
    ])

    response = client.post(
        "/api/inventory/order-consumption",
        json={"orderId": order["id"], "location": "Thessaloniki"},
        headers=kitchen_headers,
    )
    assert response.status_code == 201
    transactions = response.json()["transactions"]
    assert sorted(tx["quantity"] for tx in transactions) == [-6, -1.5]
    assert all(tx["transactionType"] == "order_consumption" for tx in transactions)
    assert all(tx["orderId"] == order["id"] for tx in transactions)
    assert all(tx["location"] == "Thessaloniki" for tx in transactions)

    assert stock_of(client, kitchen_headers, salmon["id"]) == 8.5
    assert stock_of(client, kitchen_headers, rice["id"]) == 14

    by_order = client.get(f"/api/inventory/inventory-transactions/order/{order['id']}", headers=kitchen_headers)
    assert len(by_order.json()) == 2


def test_order_consumption_is_not_idempotent(client, kitchen_headers, new_item, menu_item, create_order):
    cheese = new_item("Cheese", in_stock=10)
    board = menu_item("Cheese board")
    add_ingredient(client, kitchen_headers, board["id"], cheese["id"], 1)
    order = create_order(items=[{"menuItemId": board["id"], "quantity": 2, "unitPrice": 3000}])

    for _ in range(2):
        client.post(
            "/api/inventory/order-consumption",
            json={"orderId": order["id"], "location": "Thessaloniki"},
            headers=kitchen_headers,
        )

    assert stock_of(client, kitchen_headers, cheese["id"]) == 6


def test_order_consumption_validation(client, kitchen_headers, create_order):
    order = create_order()
    missing_location = client.post(
        "/api/inventory/order-consumption", json={"orderId": order["id"]}, headers=kitchen_headers
    )
    assert missing_location.status_code == 400

    missing_order = client.post(
        "/api/inventory/order-consumption", json={"orderId": 4242, "location": "Mykonos"}, headers=kitchen_headers
    )
    assert missing_order.status_code == 404


def test_low_stock_query_is_exact(client, kitchen_headers, new_item):
    below = new_item("Below", in_stock=2, reorder_point=5)
    equal = new_item("Equal", in_stock=5, reorder_point=5)
    new_item("Above", in_stock=6, reorder_point=5)
    elsewhere = new_item("Elsewhere", in_stock=0, reorder_point=1, location="Mykonos")

    everything = client.get("/api/inventory/inventory-items/low-stock", headers=kitchen_headers).json()
    assert {item["id"] for item in everything} == {below["id"], equal["id"], elsewhere["id"]}

    thessaloniki = client.get(
        "/api/inventory/inventory-items/low-stock", params={"location": "Thessaloniki"}, headers=kitchen_headers
    ).json()
    assert {item["id"] for item in thessaloniki} == {below["id"], equal["id"]}


def test_purchase_order_total_tracks_items(client, admin_headers, new_item):
    vendor = client.post("/api/inventory/vendors", json={"name": "Aegean Fresh"}, headers=admin_headers).json()
    flour = new_item("Flour")
    eggs = new_item("Eggs")

    po = client.post(
        "/api/inventory/purchase-orders",
        json={"vendorId": vendor["id"], "location": "Thessaloniki"},
        headers=admin_headers,
    ).json()
    assert re.match(rf"^PO-\d{{8}}-{po['id']}$", po["orderNumber"])
    assert po["totalCost"] == 0
    assert po["status"] == "draft"

    def total():
        return client.get(f"/api/inventory/purchase-orders/{po['id']}", headers=admin_headers).json()["totalCost"]

    first = client.post(
        "/api/inventory/purchase-order-items",
        json={"purchaseOrderId": po["id"], "inventoryItemId": flour["id"], "quantity": 2, "unitCost": 350},
        headers=admin_headers,
    ).json()
    assert total() == 700

    second = client.post(
        "/api/inventory/purchase-order-items",
        json={"purchaseOrderId": po["id"], "inventoryItemId": eggs["id"], "quantity": 1.5, "unitCost": 1000},
        headers=admin_headers,
    ).json()
    assert total() == 2200

    client.patch(f"/api/inventory/purchase-order-items/{first['id']}", json={"quantity": 4}, headers=admin_headers)
    assert total() == 2900

    client.delete(f"/api/inventory/purchase-order-items/{second['id']}", headers=admin_headers)
    assert total() == 1400

    items = client.get(f"/api/inventory/purchase-orders/{po['id']}/items", headers=admin_headers).json()
    assert [item["id"] for item in items] == [first["id"]]


def test_purchase_order_requires_known_vendor(client, admin_headers):
    response = client.post(
        "/api/inventory/purchase-orders",
        json={"vendorId": 77, "location": "Mykonos"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_vendor_crud(client, admin_headers):
    vendor = client.post(
        "/api/inventory/vendors",
        json={"name": "Island Dairy", "contactName": "Maria", "email": "maria@dairy.gr"},
        headers=admin_headers,
    ).json()
    updated = client.patch(f"/api/inventory/vendors/{vendor['id']}", json={"isActive": False}, headers=admin_headers)
    assert updated.json()["isActive"] is False

    active = client.get("/api/inventory/vendors", params={"active_only": True}, headers=admin_headers).json()
    assert active == []

    assert client.delete(f"/api/inventory/vendors/{vendor['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/inventory/vendors/{vendor['id']}", headers=admin_headers).status_code == 404


def test_menu_dietary_options_are_deduplicated(client, admin_headers, client_headers):
    payload = {
        "name": "Greek salad",
        "category": "salads",
        "dietaryOptions": ["vegetarian", "gluten-free", "vegetarian"],
        "priceThessaloniki": 1800,
        "priceMykonos": 2200,
    }
    assert client.post("/api/menu-items", json=payload, headers=client_headers).status_code == 403

    created = client.post("/api/menu-items", json=payload, headers=admin_headers).json()
    assert created["dietaryOptions"] == ["vegetarian", "gluten-free"]

    listed = client.get("/api/menu-items", params={"category": "salads"}).json()
    assert [item["name"] for item in listed] == ["Greek salad"]


def test_deleted_ingredient_is_dropped_from_recipes(client, kitchen_headers, new_item, menu_item, create_order):
    bread = new_item("Bread", in_stock=10)
    ham = new_item("Ham", in_stock=10)
    sandwich = menu_item("Ham sandwich")
    add_ingredient(client, kitchen_headers, sandwich["id"], bread["id"], 1)
    add_ingredient(client, kitchen_headers, sandwich["id"], ham["id"], 5)

    assert client.delete(f"/api/inventory/inventory-items/{ham['id']}", headers=kitchen_headers).status_code == 200
    recipe = client.get(f"/api/inventory/menu-ingredients/{sandwich['id']}", headers=kitchen_headers).json()
    assert [row["inventoryItemId"] for row in recipe] == [bread["id"]]

    order = create_order(items=[{"menuItemId": sandwich["id"], "quantity": 1, "unitPrice": 2000}])
    response = client.post(
        "/api/inventory/order-consumption",
        json={"orderId": order["id"], "location": "Thessaloniki"},
        headers=kitchen_headers,
    )
    assert response.status_code == 201
    assert stock_of(client, kitchen_headers, bread["id"]) == 9


def test_consumption_skips_ingredients_without_stock_record(
        client, storage, kitchen_headers, new_item, menu_item, create_order):
    bread = new_item("Bread", in_stock=10)
    sandwich = menu_item("Club sandwich")
    add_ingredient(client, kitchen_headers, sandwich["id"], bread["id"], 2)
    storage.create_menu_item_ingredient({"menu_item_id": sandwich["id"], "inventory_item_id": 9999, "quantity": 1})

    order = create_order(items=[{"menuItemId": sandwich["id"], "quantity": 2, "unitPrice": 2000}])
    response = client.post(
        "/api/inventory/order-consumption",
        json={"orderId": order["id"], "location": "Thessaloniki"},
        headers=kitchen_headers,
    )
    assert response.status_code == 201
    assert [tx["inventoryItemId"] for tx in response.json()["transactions"]] == [bread["id"]]
    assert stock_of(client, kitchen_headers, bread["id"]) == 6


@pytest.fixture
def patch_urls(client, admin_headers, new_item, menu_item):
    vendor = client.post("/api/inventory/vendors", json={"name": "Aegean Fresh"}, headers=admin_headers).json()
    flour = new_item("Flour")
    dish = menu_item("Bougatsa")
    ingredient = client.post(
        "/api/inventory/menu-ingredients",
        json={"menuItemId": dish["id"], "inventoryItemId": flour["id"], "quantity": 0.2},
        headers=admin_headers,
    ).json()
    po = client.post(
        "/api/inventory/purchase-orders",
        json={"vendorId": vendor["id"], "location": "Thessaloniki"},
        headers=admin_headers,
    ).json()
    po_item = client.post(
        "/api/inventory/purchase-order-items",
        json={"purchaseOrderId": po["id"], "inventoryItemId": flour["id"], "quantity": 2, "unitCost": 350},
        headers=admin_headers,
    ).json()
    return {
        "vendor": f"/api/inventory/vendors/{vendor['id']}",
        "inventory_item": f"/api/inventory/inventory-items/{flour['id']}",
        "menu_item": f"/api/menu-items/{dish['id']}",
        "ingredient": f"/api/inventory/menu-ingredients/{ingredient['id']}",
        "purchase_order": f"/api/inventory/purchase-orders/{po['id']}",
        "purchase_order_item": f"/api/inventory/purchase-order-items/{po_item['id']}",
    }


@pytest.mark.parametrize("resource, field", [
    ("vendor", "name"),
    ("vendor", "isActive"),
    ("inventory_item", "name"),
    ("inventory_item", "unit"),
    ("inventory_item", "reorderPoint"),
    ("inventory_item", "location"),
    ("menu_item", "name"),
    ("menu_item", "priceMykonos"),
    ("menu_item", "available"),
    ("menu_item", "dietaryOptions"),
    ("ingredient", "quantity"),
    ("ingredient", "inventoryItemId"),
    ("purchase_order", "vendorId"),
    ("purchase_order", "status"),
    ("purchase_order", "location"),
    ("purchase_order_item", "quantity"),
    ("purchase_order_item", "unitCost"),
    ("purchase_order_item", "received"),
])
def test_null_for_required_field_is_rejected(client, admin_headers, patch_urls, resource, field):
    response = client.patch(patch_urls[resource], json={field: None}, headers=admin_headers)
    assert response.status_code == 400
    assert [error["path"] for error in response.json()["errors"]] == [[field]]


def test_nullable_fields_can_still_be_cleared(client, admin_headers, patch_urls):
    response = client.patch(patch_urls["purchase_order_item"], json={"notes": None}, headers=admin_headers)
    assert response.status_code == 200
    response = client.patch(patch_urls["vendor"], json={"email": None}, headers=admin_headers)
    assert response.status_code == 200
