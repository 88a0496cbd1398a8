import uuid

from advo.core.config import settings
from advo.models import UserRole

ADMIN_URL = f"{settings.API_V1_STR}/admin"


def test_admin_routes_reject_regular_users(client, user_headers):
    for path in ("/users", "/resources", "/analytics"):
        assert client.get(f"{ADMIN_URL}{path}", headers=user_headers).status_code == 403
        assert client.get(f"{ADMIN_URL}{path}").status_code == 401


def test_list_users_paginates(client, admin_headers, make_user):
    for i in range(11):
        make_user(f"member{i}@example.org")

    r = client.get(f"{ADMIN_URL}/users", headers=admin_headers)
    body = r.json()
    assert len(body["data"]) == 10
    assert body["pagination"] == {"total": 12, "page": 1, "limit": 10, "total_pages": 2}
    assert all("hashed_password" not in user for user in body["data"])


def test_create_user(client, admin_headers):
    payload = {"email": "staff@example.org", "password": "staffpass1", "full_name": "Sam Staff"}
    r = client.post(f"{ADMIN_URL}/users", json=payload, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()["email"] == "staff@example.org"

    assert client.post(f"{ADMIN_URL}/users", json=payload, headers=admin_headers).status_code == 409
    r = client.post(f"{ADMIN_URL}/users", json={"email": "nopass@example.org"}, headers=admin_headers)
    assert r.status_code == 400


def test_read_and_update_user(client, admin_headers, normal_user, admin_user):
    url = f"{ADMIN_URL}/users/{normal_user.id}"
    assert client.get(url, headers=admin_headers).json()["email"] == "user@example.org"
    assert client.get(f"{ADMIN_URL}/users/{uuid.uuid4()}", headers=admin_headers).status_code == 404

    r = client.patch(url, json={"is_active": False, "full_name": "Frozen"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["is_active"] is False
    assert r.json()["full_name"] == "Frozen"

    r = client.patch(url, json={"email": "admin@example.org"}, headers=admin_headers)
    assert r.status_code == 409


def test_frozen_user_cannot_use_token(client, admin_headers, normal_user, user_headers):
    client.patch(f"{ADMIN_URL}/users/{normal_user.id}", json={"is_active": False}, headers=admin_headers)
    r = client.get(f"{settings.API_V1_STR}/users/me", headers=user_headers)
    assert r.status_code == 400


def test_role_changes(client, admin_headers, normal_user, make_resource):
    url = f"{ADMIN_URL}/users/{normal_user.id}/role"
    resource = make_resource("Shelter")

    assert client.patch(url, json={"role": "superuser"}, headers=admin_headers).status_code == 400
    assert client.patch(url, json={"role": "business_rep"}, headers=admin_headers).status_code == 400
    r = client.patch(
        url, json={"role": "business_rep", "managed_resource_id": str(uuid.uuid4())}, headers=admin_headers
    )
    assert r.status_code == 400

    r = client.patch(
        url, json={"role": "business_rep", "managed_resource_id": str(resource.id)}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["user"]["role"] == UserRole.BUSINESS_REP.value
    assert r.json()["user"]["managed_resource_id"] == str(resource.id)

    r = client.patch(
        url, json={"role": "user", "managed_resource_id": str(resource.id)}, headers=admin_headers
    )
    assert r.json()["user"]["role"] == "user"
    assert r.json()["user"]["managed_resource_id"] is None

    missing = f"{ADMIN_URL}/users/{uuid.uuid4()}/role"
    assert client.patch(missing, json={"role": "admin"}, headers=admin_headers).status_code == 404


def test_analytics(client, admin_headers, normal_user, make_user, make_resource):
    make_user("frozen@example.org", is_active=False)
    make_resource("Shelter")
    make_resource("Pantry")

    r = client.get(f"{ADMIN_URL}/analytics", headers=admin_headers)
    assert r.json() == {
        "users": {"total": 3, "active": 2, "frozen": 1},
        "resources": {"total": 2},
    }


def test_geocode_zipcodes(client, admin_headers, make_user, make_resource, auth_headers, user_headers):
    url = f"{ADMIN_URL}/geocode-zipcodes"
    payload = {"zipcodes": ["10001", "99999"]}

    r = client.post(url, json=payload, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["results"] == {"10001, USA": {"latitude": 40.7506, "longitude": -73.9972}}
    assert set(body["errors"]) == {"99999, USA"}
    assert (body["total_processed"], body["success_count"], body["error_count"]) == (2, 1, 1)

    rep = make_user(
        "rep@example.org", role=UserRole.BUSINESS_REP, managed_resource_id=make_resource("Shelter").id
    )
    assert client.post(url, json=payload, headers=auth_headers(rep)).status_code == 200
    assert client.post(url, json=payload, headers=user_headers).status_code == 403
    assert client.post(url, json={"zipcodes": []}, headers=admin_headers).status_code == 400


def test_list_users_page_past_the_end_is_empty(client, admin_headers):
    r = client.get(f"{ADMIN_URL}/users", params={"page": 10**19}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == []
    assert r.json()["pagination"]["total"] == 1
