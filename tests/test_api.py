from datetime import datetime, timedelta

from sqlalchemy import select

from app.core.security import create_password_setup_token
from app.models.analytics import DailyAnalytics
from app.models.qr_code import QrCode
from app.models.subscription import SubscriptionStatus
from app.models.user import UserRole
from app.services.subscription import subscription_service
from app.utils.time import as_utc, utcnow
from tests.conftest import add_member, auth_headers, make_tenant, make_user


def set_status(session_factory, tenant_id, status):
    with session_factory() as session:
        subscription_service.store.upsert(session, tenant_id=tenant_id, values={"status": status})


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAuth:

    def test_register_and_login(self, client):
        response = client.post("/api/auth/register", json={"phone": "+201222333444", "password": "s3cretpass"})
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "owner"

        response = client.post("/api/auth/login", json={"phone": "+201222333444", "password": "s3cretpass"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = client.get("/api/tenants", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json() == []

    def test_register_duplicate_phone(self, client, owner_id):
        response = client.post("/api/auth/register", json={"phone": "+201000000001", "password": "s3cretpass"})
        assert response.status_code == 409

    def test_register_cannot_self_assign_admin(self, client):
        response = client.post(
            "/api/auth/register",
            json={"phone": "+201222333445", "password": "s3cretpass", "role": "platform_admin"},
        )
        assert response.status_code == 400

    def test_wrong_password(self, client, owner_id):
        response = client.post("/api/auth/login", json={"phone": "+201000000001", "password": "wrongpass"})
        assert response.status_code == 401

    def test_passwordless_login_requires_pending_setup(self, client, owner_id):
        response = client.post("/api/auth/login", json={"phone": "+201000000001"})
        assert response.status_code == 401

    def test_password_setup_flow(self, client, session_factory):
        make_user(session_factory, "+201777000111", requires_password_change=True)

        response = client.post("/api/auth/login", json={"phone": "+201777000111"})
        assert response.status_code == 200
        assert response.json()["requires_password_setup"] is True
        setup_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

        # Setup tokens open nothing but set-password
        assert client.get("/api/tenants", headers=setup_headers).status_code == 401

        response = client.post(
            "/api/auth/set-password",
            json={"password": "newpass123", "confirm_password": "newpass123"},
            headers=setup_headers,
        )
        assert response.status_code == 200
        access_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
        assert client.get("/api/tenants", headers=access_headers).status_code == 200

        # Once used, the setup path is closed
        assert client.post("/api/auth/login", json={"phone": "+201777000111"}).status_code == 401
        response = client.post(
            "/api/auth/set-password",
            json={"password": "another123", "confirm_password": "another123"},
            headers=setup_headers,
        )
        assert response.status_code == 401

    def test_access_token_cannot_set_password(self, client, session_factory):
        user_id = make_user(session_factory, "+201777000222", requires_password_change=True)
        response = client.post(
            "/api/auth/set-password",
            json={"password": "newpass123", "confirm_password": "newpass123"},
            headers=auth_headers(user_id),
        )
        assert response.status_code == 401

    def test_mismatched_passwords(self, client, session_factory):
        user_id = make_user(session_factory, "+201777000333", requires_password_change=True)
        token = create_password_setup_token(data={"id": str(user_id)})
        response = client.post(
            "/api/auth/set-password",
            json={"password": "newpass123", "confirm_password": "newpass124"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 400

    def test_missing_token(self, client, tenant_id):
        response = client.get(f"/api/tenants/{tenant_id}")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"


class TestTenantAccess:

    def test_owner_creates_and_reads_tenant(self, client, owner_id):
        response = client.post("/api/tenants", json={"name": "Blue Door"}, headers=auth_headers(owner_id))
        assert response.status_code == 201
        body = response.json()
        assert body["subscription"]["status"] == "ACTIVE"
        assert body["settings"]["default_language"] == "en"

        response = client.get(f"/api/tenants/{body['id']}", headers=auth_headers(owner_id))
        assert response.status_code == 200
        assert response.json()["slug"] == "blue-door"

    def test_stranger_is_denied(self, client, session_factory, tenant_id):
        stranger = make_user(session_factory, "+201000000777")
        response = client.get(f"/api/tenants/{tenant_id}/qr-codes", headers=auth_headers(stranger))
        assert response.status_code == 403

    def test_member_is_allowed(self, client, session_factory, tenant_id):
        staff = make_user(session_factory, "+201000000778", role=UserRole.STAFF)
        add_member(session_factory, tenant_id, staff)
        response = client.get(f"/api/tenants/{tenant_id}/qr-codes", headers=auth_headers(staff))
        assert response.status_code == 200

    def test_unknown_tenant(self, client, owner_id):
        response = client.get("/api/tenants/9999/qr-codes", headers=auth_headers(owner_id))
        assert response.status_code == 404

    def test_inactive_subscription_blocks_gated_routes(self, client, session_factory, owner_id, tenant_id):
        set_status(session_factory, tenant_id, SubscriptionStatus.PAST_DUE)

        response = client.get(f"/api/tenants/{tenant_id}/qr-codes", headers=auth_headers(owner_id))
        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "SUBSCRIPTION_INACTIVE"
        assert response.json()["detail"]["status"] == "PAST_DUE"

        # The subscription itself stays readable
        response = client.get(f"/api/tenants/{tenant_id}/subscription", headers=auth_headers(owner_id))
        assert response.status_code == 200
        assert response.json()["status"] == "PAST_DUE"

    def test_expired_subscription_blocks_gated_routes(self, client, session_factory, owner_id):
        expired = make_tenant(session_factory, owner_id, name="Old Place", period_end=utcnow() - timedelta(days=1))

        response = client.get(f"/api/tenants/{expired}/analytics", headers=auth_headers(owner_id))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "SUBSCRIPTION_EXPIRED"
        assert "expiredAt" in response.json()["detail"]

    def test_owner_cancels_at_period_end(self, client, owner_id, tenant_id):
        response = client.post(f"/api/tenants/{tenant_id}/subscription/cancel", headers=auth_headers(owner_id))
        assert response.status_code == 200
        assert response.json()["cancel_at_period_end"] is True
        assert response.json()["status"] == "ACTIVE"

    def test_only_owner_deletes(self, client, session_factory, owner_id, tenant_id):
        manager = make_user(session_factory, "+201000000779", role=UserRole.MANAGER)
        add_member(session_factory, tenant_id, manager, role=UserRole.MANAGER)

        assert client.delete(f"/api/tenants/{tenant_id}", headers=auth_headers(manager)).status_code == 403
        assert client.delete(f"/api/tenants/{tenant_id}", headers=auth_headers(owner_id)).status_code == 204
        assert client.get(f"/api/tenants/{tenant_id}", headers=auth_headers(owner_id)).status_code == 404


class TestMemberships:

    def test_add_list_remove(self, client, session_factory, owner_id, tenant_id):
        make_user(session_factory, "+201000000880", role=UserRole.STAFF)
        url = f"/api/tenants/{tenant_id}/memberships"

        response = client.post(url, json={"phone": "+201000000880"}, headers=auth_headers(owner_id))
        assert response.status_code == 201
        membership_id = response.json()["id"]

        duplicate = client.post(url, json={"phone": "+201000000880"}, headers=auth_headers(owner_id))
        assert duplicate.status_code == 409

        listed = client.get(url, headers=auth_headers(owner_id)).json()
        assert [m["user"]["phone"] for m in listed] == ["+201000000880"]

        assert client.delete(f"{url}/{membership_id}", headers=auth_headers(owner_id)).status_code == 204
        assert client.get(url, headers=auth_headers(owner_id)).json() == []

    def test_change_role(self, client, session_factory, owner_id, tenant_id):
        staff = make_user(session_factory, "+201000000881", role=UserRole.STAFF)
        membership_id = add_member(session_factory, tenant_id, staff)
        url = f"/api/tenants/{tenant_id}/memberships/{membership_id}"

        response = client.patch(url, json={"role": "manager"}, headers=auth_headers(owner_id))
        assert response.status_code == 200
        assert response.json()["role"] == "manager"

        response = client.patch(url, json={"role": "platform_admin"}, headers=auth_headers(owner_id))
        assert response.status_code == 422

        assert client.patch(url, json={"role": "staff"}, headers=auth_headers(staff)).status_code == 403

    def test_unknown_phone(self, client, owner_id, tenant_id):
        response = client.post(
            f"/api/tenants/{tenant_id}/memberships", json={"phone": "+209999"}, headers=auth_headers(owner_id)
        )
        assert response.status_code == 404


class TestMenuAndQrCodes:

    def test_create_menu_and_serve_it_publicly(self, client, session_factory, owner_id, tenant_id):
        headers = auth_headers(owner_id)
        category = client.post(
            f"/api/tenants/{tenant_id}/menu/categories",
            json={"name": "Drinks", "name_translations": {"ar": "مشروبات"}},
            headers=headers,
        ).json()
        client.post(
            f"/api/tenants/{tenant_id}/menu/items",
            json={"category_id": category["id"], "name": "Tea", "price": "15.00"},
            headers=headers,
        )
        client.post(
            f"/api/tenants/{tenant_id}/menu/items",
            json={"category_id": category["id"], "name": "Hidden", "is_available": False},
            headers=headers,
        )

        response = client.get(f"/api/public/menus/{tenant_id}", params={"lang": "ar"})

        assert response.status_code == 200
        body = response.json()
        assert body["current_language"] == "ar"
        assert body["categories"][0]["name"] == "مشروبات"
        assert [i["name"] for i in body["categories"][0]["items"]] == ["Tea"]

        with session_factory() as session:
            rollup = session.execute(
                select(DailyAnalytics).where(DailyAnalytics.tenant_id == tenant_id)
            ).scalar_one()
            assert rollup.views == 1

    def test_item_needs_own_category(self, client, session_factory, owner_id, tenant_id):
        other_owner = make_user(session_factory, "+201000000990")
        other_tenant = make_tenant(session_factory, other_owner, name="Rival")
        foreign = client.post(
            f"/api/tenants/{other_tenant}/menu/categories", json={"name": "Theirs"}, headers=auth_headers(other_owner)
        ).json()

        response = client.post(
            f"/api/tenants/{tenant_id}/menu/items",
            json={"category_id": foreign["id"], "name": "Sneaky"},
            headers=auth_headers(owner_id),
        )
        assert response.status_code == 404

    def test_hiding_an_item_removes_it_from_the_public_menu(self, client, owner_id, tenant_id):
        headers = auth_headers(owner_id)
        base = f"/api/tenants/{tenant_id}/menu"
        category = client.post(f"{base}/categories", json={"name": "Mains"}, headers=headers).json()
        item = client.post(
            f"{base}/items", json={"category_id": category["id"], "name": "Koshari", "price": "40"}, headers=headers
        ).json()
        item_id, category_id = item["id"], category["id"]

        response = client.patch(f"{base}/items/{item_id}", json={"is_available": False}, headers=headers)
        assert response.status_code == 200
        assert response.json()["is_available"] is False
        assert response.json()["name"] == "Koshari"

        renamed = client.patch(f"{base}/categories/{category_id}", json={"name": "Main dishes"}, headers=headers)
        assert renamed.json()["name"] == "Main dishes"

        body = client.get(f"/api/public/menus/{tenant_id}").json()
        assert body["categories"][0]["name"] == "Main dishes"
        assert body["categories"][0]["items"] == []

        assert client.patch(f"{base}/items/999999", json={"name": "x"}, headers=headers).status_code == 404

    def test_public_menu_is_gated(self, client, session_factory, tenant_id):
        set_status(session_factory, tenant_id, SubscriptionStatus.CANCELLED)

        response = client.get(f"/api/public/menus/{tenant_id}")

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "SUBSCRIPTION_INACTIVE"

    def test_public_menu_of_lapsed_subscription_reports_expiry(self, client, session_factory, owner_id):
        period_end = utcnow() - timedelta(days=1)
        lapsed = make_tenant(session_factory, owner_id, name="Lapsed Place", period_end=period_end)

        response = client.get(f"/api/public/menus/{lapsed}")

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["code"] == "SUBSCRIPTION_EXPIRED"
        expired_at = as_utc(datetime.fromisoformat(detail["expiredAt"]))
        assert abs(expired_at - period_end) < timedelta(seconds=1)

    def test_item_view_is_recorded(self, client, session_factory, tenant_id):
        url = f"/api/public/menus/{tenant_id}/views"
        assert client.post(url, json={"item_id": 12, "category_id": 3}).status_code == 202
        assert client.post(url, json={"item_id": "12"}).status_code == 202

        with session_factory() as session:
            rollup = session.execute(
                select(DailyAnalytics).where(DailyAnalytics.tenant_id == tenant_id)
            ).scalar_one()
            assert rollup.item_views == {"12": 2}
            assert rollup.category_views == {"3": 1}

    def test_qr_lifecycle(self, client, session_factory, owner_id, tenant_id):
        headers = auth_headers(owner_id)
        url = f"/api/tenants/{tenant_id}/qr-codes"

        created = client.post(url, params={"table_id": "T-5"}, headers=headers)
        assert created.status_code == 201
        again = client.post(url, params={"table_id": "T-5"}, headers=headers)
        assert again.json()["id"] == created.json()["id"]
        code = created.json()["code"]

        resolved = client.get(f"/api/public/qr-codes/{code}", headers={"User-Agent": "phone", "X-Forwarded-For": "1.2.3.4"})
        assert resolved.status_code == 200
        assert resolved.json()["tenant_id"] == tenant_id
        assert resolved.json()["table_id"] == "T-5"

        with session_factory() as session:
            qr_code = session.execute(select(QrCode).where(QrCode.code == code)).scalar_one()
            assert qr_code.scan_count == 1
            assert qr_code.scans[0].source_address == "1.2.3.4"
            assert qr_code.scans[0].user_agent == "phone"

        qr_code_id = created.json()["id"]
        assert client.get(f"{url}/{qr_code_id}", headers=headers).json()["scan_count"] == 1
        assert client.delete(f"{url}/{qr_code_id}", headers=headers).status_code == 204
        assert client.get(f"/api/public/qr-codes/{code}").status_code == 404

    def test_analytics_summary(self, client, owner_id, tenant_id):
        client.post(f"/api/public/menus/{tenant_id}/views", json={"item_id": "1"})
        client.post(f"/api/public/menus/{tenant_id}/views", json={"item_id": "1"})

        response = client.get(f"/api/tenants/{tenant_id}/analytics", headers=auth_headers(owner_id))

        assert response.status_code == 200
        body = response.json()
        assert body["totals"]["total_views"] == 2
        assert body["popular_items"] == [{"item_id": "1", "views": 2}]

    def test_analytics_rejects_inverted_range(self, client, owner_id, tenant_id):
        response = client.get(
            f"/api/tenants/{tenant_id}/analytics",
            params={"start_date": "2026-05-10", "end_date": "2026-05-01"},
            headers=auth_headers(owner_id),
        )
        assert response.status_code == 400


class TestAdmin:

    def test_requires_platform_admin(self, client, owner_id):
        assert client.get("/api/admin/stats", headers=auth_headers(owner_id)).status_code == 403

    def test_stats(self, client, admin_id, tenant_id):
        response = client.get("/api/admin/stats", headers=auth_headers(admin_id))

        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["total_tenants"] == 1
        assert body["stats"]["total_users"] == 2
        assert body["stats"]["active_subscriptions"] == 1
        assert body["subscription_plans"] == {"pro": 1}
        assert body["growth"]["tenants"]["last_24h"] == 1

    def test_list_subscriptions(self, client, admin_id, tenant_id):
        response = client.get("/api/admin/subscriptions", headers=auth_headers(admin_id))
        assert response.status_code == 200
        assert [s["tenant"]["id"] for s in response.json()] == [tenant_id]

    def test_cancel_then_renew(self, client, admin_id, owner_id, tenant_id):
        admin = auth_headers(admin_id)

        cancelled = client.post(f"/api/admin/subscriptions/{tenant_id}/cancel", headers=admin)
        assert cancelled.json()["status"] == "CANCELLED"
        assert client.get(f"/api/tenants/{tenant_id}/qr-codes", headers=auth_headers(owner_id)).status_code == 403

        patched = client.patch(f"/api/admin/subscriptions/{tenant_id}", json={"status": "ACTIVE"}, headers=admin)
        assert patched.status_code == 409

        renewed = client.post(f"/api/admin/subscriptions/{tenant_id}/renew", json={"months": 3}, headers=admin)
        assert renewed.status_code == 200
        assert renewed.json()["status"] == "ACTIVE"
        assert client.get(f"/api/tenants/{tenant_id}/qr-codes", headers=auth_headers(owner_id)).status_code == 200

    def test_patch_rejects_unknown_fields(self, client, admin_id, tenant_id):
        response = client.patch(
            f"/api/admin/subscriptions/{tenant_id}",
            json={"current_period_end": "2030-01-01T00:00:00Z"},
            headers=auth_headers(admin_id),
        )
        assert response.status_code == 422

    def test_unknown_tenant(self, client, admin_id):
        response = client.post("/api/admin/subscriptions/9999/cancel", headers=auth_headers(admin_id))
        assert response.status_code == 404

    def test_tenant_details(self, client, admin_id, tenant_id):
        response = client.get(f"/api/admin/tenants/{tenant_id}", headers=auth_headers(admin_id))
        assert response.status_code == 200
        assert response.json()["subscription"]["plan"] == "pro"
