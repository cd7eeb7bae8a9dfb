from datetime import datetime

from .conftest import MENU_TEXT


def create_menu(client, admin_headers):
    response = client.post("/api/v1/daily-menus", json={"raw_content": MENU_TEXT}, headers=admin_headers)
    assert response.status_code == 201
    return response.json()["data"]


def buy_package(client, user_headers, admin_headers, turns=5, package_type="normal"):
    template = client.post(
        "/api/v1/meal-packages",
        json={"name": f"Gói {turns}", "turns": turns, "price": turns * 35000,
              "valid_days": 30, "package_type": package_type},
        headers=admin_headers,
    ).json()["data"]
    request = client.post("/api/v1/package-purchases", json={"meal_package_id": template["package_id"]},
                          headers=user_headers)
    assert request.status_code == 201
    approved = client.post(f"/api/v1/package-purchases/{request.json()['data']['request_id']}/approve",
                           headers=admin_headers)
    assert approved.status_code == 200
    return approved.json()["data"]


class TestOrderFlowAPI:
    """下单到确认的完整流程"""

    def test_full_flow(self, client, user_headers, admin_headers, notifier):
        package = buy_package(client, user_headers, admin_headers, turns=5)
        assert notifier.calls[0]["email"] == "alice@example.com"

        me = client.get("/api/v1/users/me", headers=user_headers).json()["data"]
        assert me["active_package_id"] == package["user_package_id"]

        menu = create_menu(client, admin_headers)
        item_ids = [i["item_id"] for i in menu["items"]]

        today = client.get("/api/v1/daily-menus/today", headers=user_headers).json()["data"]
        assert today[0]["can_order"] is True

        created = client.post("/api/v1/orders",
                              json={"items": [{"menu_item_id": item_ids[0]}], "order_type": "normal"},
                              headers=user_headers)
        assert created.status_code == 201
        revised = client.post("/api/v1/orders",
                              json={"items": [{"menu_item_id": i, "note": "ít cơm"} for i in item_ids[:3]]},
                              headers=user_headers)
        assert revised.status_code == 200
        assert revised.json()["data"]["order_id"] == created.json()["data"]["order_id"]
        assert len(revised.json()["data"]["items"]) == 3

        today_order = client.get("/api/v1/orders/today", headers=user_headers).json()["data"]
        assert today_order["user_package_id"] == package["user_package_id"]

        confirmed = client.post("/api/v1/orders/confirm-all", json={"menu_id": menu["menu_id"]},
                                headers=admin_headers)
        assert confirmed.status_code == 200
        assert confirmed.json()["data"] == {"confirmed_count": 1, "total_items": 3}

        packages = client.get("/api/v1/user-packages/my", headers=user_headers).json()["data"]
        assert packages[0]["remaining_turns"] == 2

        again = client.post("/api/v1/orders", json={"items": []}, headers=user_headers)
        assert again.status_code == 400
        assert again.json()["error_code"] == "MENU_LOCKED"
        assert again.json()["details"]["reason"] == "locked"

    def test_outside_window(self, client, clock, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        menu = create_menu(client, admin_headers)
        clock.set_local(datetime(2025, 3, 10, 10, 50))

        response = client.post("/api/v1/orders",
                               json={"items": [{"menu_item_id": menu["items"][0]["item_id"]}]},
                               headers=user_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "MENU_LOCKED"
        assert body["details"]["reason"] == "outside_time"

    def test_not_enough_turns(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers, turns=2)
        menu = create_menu(client, admin_headers)

        response = client.post("/api/v1/orders",
                               json={"items": [{"menu_item_id": i["item_id"]} for i in menu["items"][:3]]},
                               headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "NOT_ENOUGH_TURNS"
        assert client.get("/api/v1/orders/today", headers=user_headers).json()["data"] is None

    def test_no_matching_package(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers, package_type="normal")
        create_menu(client, admin_headers)

        response = client.post("/api/v1/orders", json={"items": [], "order_type": "no-rice"},
                               headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "NO_MATCHING_PACKAGE"

    def test_invalid_order_type(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        create_menu(client, admin_headers)

        response = client.post("/api/v1/orders", json={"items": [], "order_type": "half"},
                               headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_ORDER_TYPE"

    def test_no_menu_today(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        response = client.post("/api/v1/orders", json={"items": []}, headers=user_headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "MENU_NOT_FOUND"

    def test_request_validation_error(self, client, user_headers):
        response = client.post("/api/v1/orders", json={"items": [{"note": "thiếu món"}]},
                               headers=user_headers)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_note_length_counted_after_trimming(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        menu = create_menu(client, admin_headers)
        item_id = menu["items"][0]["item_id"]

        padded = "   " + "x" * 200 + "   "
        response = client.post("/api/v1/orders", json={"items": [{"menu_item_id": item_id, "note": padded}]},
                               headers=user_headers)
        assert response.status_code == 201
        today = client.get("/api/v1/orders/today", headers=user_headers).json()["data"]
        assert today["items"][0]["note"] == "x" * 200

        too_long = client.post("/api/v1/orders",
                               json={"items": [{"menu_item_id": item_id, "note": "x" * 201}]},
                               headers=user_headers)
        assert too_long.status_code == 422

    def test_admin_order_views(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        menu = create_menu(client, admin_headers)
        client.post("/api/v1/orders", json={"items": [{"menu_item_id": menu["items"][0]["item_id"]}]},
                    headers=user_headers)

        by_date = client.get("/api/v1/orders/by-date/2025-03-10", headers=admin_headers)
        assert by_date.status_code == 200
        assert by_date.json()["data"]["summary"][0]["count"] == 1

        copy_text = client.get(f"/api/v1/orders/copy-text/{menu['menu_id']}", headers=admin_headers)
        assert copy_text.json()["data"]["total_meals"] == 1

        dashboard = client.get("/api/v1/statistics/dashboard", headers=admin_headers)
        assert dashboard.json()["data"]["today_orders"] == 1

        revenue = client.get("/api/v1/statistics/revenue?period=month", headers=admin_headers)
        assert revenue.json()["data"]["total_revenue"] == 5 * 35000


class TestCatalogAPI:
    """套餐目录与购买申请API"""

    def test_referenced_template_update_rejected(self, client, user_headers, admin_headers):
        template = client.post("/api/v1/meal-packages",
                               json={"name": "Gói 10", "turns": 10, "price": 350000, "valid_days": 30},
                               headers=admin_headers).json()["data"]
        client.post("/api/v1/package-purchases", json={"meal_package_id": template["package_id"]},
                    headers=user_headers)

        response = client.put(f"/api/v1/meal-packages/{template['package_id']}", json={"price": 1},
                              headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "PACKAGE_IN_USE"

    def test_duplicate_purchase_request(self, client, user_headers, admin_headers):
        template = client.post("/api/v1/meal-packages",
                               json={"name": "Gói 10", "turns": 10, "price": 350000, "valid_days": 30},
                               headers=admin_headers).json()["data"]
        payload = {"meal_package_id": template["package_id"]}
        assert client.post("/api/v1/package-purchases", json=payload, headers=user_headers).status_code == 201

        response = client.post("/api/v1/package-purchases", json=payload, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "REQUEST_ALREADY_EXISTS"

    def test_approve_twice(self, client, user_headers, admin_headers):
        buy_package(client, user_headers, admin_headers)
        requests = client.get("/api/v1/package-purchases?status=approved", headers=admin_headers).json()["data"]
        response = client.post(f"/api/v1/package-purchases/{requests[0]['request_id']}/approve",
                               headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error_code"] == "REQUEST_ALREADY_PROCESSED"

    def test_set_active_unknown_package(self, client, user_headers):
        response = client.post("/api/v1/user-packages/999/set-active", headers=user_headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "PACKAGE_NOT_FOUND"

    def test_menu_preview(self, client, admin_headers):
        response = client.post("/api/v1/daily-menus/preview", json={"raw_content": MENU_TEXT},
                               headers=admin_headers)
        assert response.json()["data"]["total"] == 5
