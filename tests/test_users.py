from conftest import ADMIN, INACTIVE, REQUESTER, TECH, ADMIN_ID, REQUESTER_ID, TECH_ID, store_error

BASE = "/api/v1/users"


def new_user(**overrides):
    body = {
        "name": "Nina New",
        "email": "nina@example.com",
        "password": "s3cret-pass",
        "role": "technician",
        "department": "OPS",
    }
    body.update(overrides)
    return body


def test_list_users_paginates_and_nests_department(client):
    response = client.get(f"{BASE}?limit=2", headers=ADMIN)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 4
    assert body["hasMore"] is True
    first = body["items"][0]
    assert first["id"] == "00000000-0000-0000-0000-0000000000d1"
    assert first["department"] == {"id": 5, "name": "Finance", "short_name": "FIN"}


def test_list_users_search_and_role_filter(client):
    body = client.get(f"{BASE}?search=EXAMPLE.com&role=technician", headers=TECH).json()
    assert sorted(item["name"] for item in body["items"]) == ["Ivan Idle", "Tom Tech"]
    body = client.get(f"{BASE}?search=rita", headers=ADMIN).json()
    assert [item["id"] for item in body["items"]] == [REQUESTER_ID]


def test_capabilities_gate_user_endpoints(client):
    assert client.get(BASE, headers=REQUESTER).status_code == 403
    denied = client.post(BASE, json=new_user(), headers=TECH)
    assert denied.status_code == 403
    assert denied.json()["detail"] == "Requires: users:create"
    assert client.delete(f"{BASE}/{REQUESTER_ID}", headers=TECH).status_code == 403
    inactive = client.get(BASE, headers=INACTIVE)
    assert inactive.status_code == 403
    assert inactive.json()["detail"] == "Account inactive"


def test_get_user(client):
    response = client.get(f"{BASE}/{TECH_ID}", headers=TECH)
    assert response.status_code == 200
    assert response.json()["email"] == "tom@example.com"
    assert response.json()["department"]["short_name"] == "OPS"
    assert client.get(f"{BASE}/nobody", headers=ADMIN).status_code == 404


def test_create_user_resolves_role_and_department(client, store):
    response = client.post(BASE, json=new_user(department="Finance"), headers=ADMIN)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user_id = body["data"]["id"]

    profile = store.find("profiles", user_id)
    assert profile["role_id"] == 2
    assert profile["role_name"] == "technician"
    assert profile["department_id"] == 5
    assert profile["is_active"] is True
    assert store.auth_users[user_id]["email_confirm"] is True

    [(_, log)] = [call for call in store.rpc_calls if call[1]["p_action"] == "created"]
    assert log["p_description"] == (
        "Ada Admin (ada@example.com) [admin] created Nina New (nina@example.com) [technician]"
    )


def test_create_user_with_unknown_role_or_department(client, store):
    bad_role = client.post(BASE, json=new_user(role="superuser"), headers=ADMIN)
    assert bad_role.status_code == 400
    assert bad_role.json()["detail"] == "Invalid role"
    bad_department = client.post(BASE, json=new_user(department="HR"), headers=ADMIN)
    assert bad_department.status_code == 400
    assert bad_department.json()["detail"] == "Invalid department"
    assert store.auth_users == {}


def test_create_user_rolls_back_auth_user_when_profile_update_fails(client, store):
    store.fail("profiles", "update", store_error("23514", "check constraint"))
    response = client.post(BASE, json=new_user(), headers=ADMIN)
    assert response.status_code == 500
    assert response.json()["title"] == "UpdateFailed"
    assert len(store.deleted_auth_users) == 1
    assert store.auth_users == {}


def test_create_user_auth_failure_is_conflict(client, store):
    store.fail("auth", "create_user", Exception("User already registered"))
    response = client.post(BASE, json=new_user(), headers=ADMIN)
    assert response.status_code == 409


def test_update_user_partial_and_password(client, store):
    response = client.patch(f"{BASE}/{REQUESTER_ID}", json={
        "name": "Rita Reviewer", "role": "technician", "password": "another-pass",
    }, headers=ADMIN)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Rita Reviewer"
    assert data["role_name"] == "technician"
    assert data["department_id"] == 5
    assert store.auth_users[REQUESTER_ID]["password"] == "another-pass"


def test_technician_cannot_change_roles(client, store):
    promote = client.patch(f"{BASE}/{TECH_ID}", json={"role": "admin"}, headers=TECH)
    assert promote.status_code == 403
    assert promote.json()["detail"] == "Not allowed to change user roles"
    assert store.find("profiles", TECH_ID)["role_name"] == "technician"

    unchanged = client.patch(f"{BASE}/{REQUESTER_ID}", json={"name": "Rita R", "role": "requester"}, headers=TECH)
    assert unchanged.status_code == 200
    assert store.find("profiles", REQUESTER_ID)["name"] == "Rita R"


def test_update_missing_user_is_not_found(client):
    assert client.patch(f"{BASE}/nobody", json={"name": "Ghost"}, headers=ADMIN).status_code == 404


def test_delete_user(client, store):
    response = client.delete(f"{BASE}/{REQUESTER_ID}", headers=ADMIN)
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"deleted": True}}
    assert store.find("profiles", REQUESTER_ID) is None
    assert store.deleted_auth_users == [REQUESTER_ID]
    [(_, log)] = [call for call in store.rpc_calls if call[1]["p_action"] == "deleted"]
    assert log["p_description"].endswith("deleted Rita Requester (rita@example.com) [requester]")


def test_delete_survives_auth_failure(client, store):
    store.fail("auth", "delete_user", Exception("auth down"))
    assert client.delete(f"{BASE}/{REQUESTER_ID}", headers=ADMIN).status_code == 200
    assert store.find("profiles", REQUESTER_ID) is None


def test_cannot_delete_self(client, store):
    response = client.delete(f"{BASE}/{ADMIN_ID}", headers=ADMIN)
    assert response.status_code == 403
    assert store.find("profiles", ADMIN_ID) is not None
