BASE = "/api/v1/users/register"


def registration(**overrides):
    body = {"name": "Paula Public", "email": "paula@example.com", "department": "FIN"}
    body.update(overrides)
    return body


def test_register_is_public_and_stores_pending_request(client, store):
    response = client.post(BASE, json=registration(password="legacy-client-pass"))
    assert response.status_code == 201
    assert response.json() == {"success": True, "message": "Registration request created"}

    [request] = store.rows("registration_requests")
    assert request["status"] == "pending"
    assert request["requested_role"] == "requester"
    assert request["department_id"] == 5
    assert "password" not in request

    [(name, params)] = store.rpc_calls
    assert params["p_type"] == "registration"
    assert params["p_action"] == "requested"
    assert params["p_user_id"] is None


def test_register_existing_profile_email_is_conflict(client):
    response = client.post(BASE, json=registration(email="tom@example.com"))
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already registered"


def test_register_twice_while_pending_is_conflict(client):
    assert client.post(BASE, json=registration()).status_code == 201
    again = client.post(BASE, json=registration(name="Paula Again"))
    assert again.status_code == 409
    assert again.json()["title"] == "Conflict"


def test_register_after_rejection_is_allowed(client, store):
    store.seed("registration_requests", {"id": "r-1", "email": "paula@example.com", "status": "rejected"})
    assert client.post(BASE, json=registration()).status_code == 201


def test_register_unknown_department(client):
    response = client.post(BASE, json=registration(department="Nowhere"))
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid department"


def test_register_only_as_requester(client):
    response = client.post(BASE, json=registration(requestedRole="admin"))
    assert response.status_code == 400
