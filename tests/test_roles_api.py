"""Role administration and effective permission lookups."""

import pytest

from secureshift.services.role_service import role_service


@pytest.fixture()
def admin(make_user):
    return make_user("admin")


def test_effective_permissions_of_default_role(client, frozen, admin, auth):
    resp = client.get("/api/roles/guard/effective", headers=auth(admin))
    assert resp.status_code == 200
    assert resp.json()["inheritance_chain"] == ["guard"]
    assert "shift:apply" in resp.json()["permissions"]


def test_custom_role_inherits_parent(client, frozen, admin, auth):
    resp = client.put(
        "/api/roles/senior_guard",
        json={"permissions": ["shift:assign"], "inheritsFrom": "guard"},
        headers=auth(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["inherits_from"] == "guard"

    body = client.get("/api/roles/senior_guard/effective", headers=auth(admin)).json()
    assert body["inheritance_chain"] == ["senior_guard", "guard"]
    assert {"shift:assign", "shift:apply", "shift:read"} <= set(body["permissions"])


def test_custom_role_grants_route_access(client, frozen, admin, make_user, auth):
    client.put("/api/roles/dispatcher", json={"permissions": ["shift:assign", "shift:read"]}, headers=auth(admin))
    dispatcher = make_user("dispatcher")
    resp = client.get("/api/roles/me/permissions", headers=auth(dispatcher))
    assert resp.json()["permissions"] == ["shift:assign", "shift:read"]


def test_cycle_is_rejected(client, frozen, admin, auth):
    headers = auth(admin)
    client.put("/api/roles/a", json={"permissions": []}, headers=headers)
    client.put("/api/roles/b", json={"permissions": [], "inheritsFrom": "a"}, headers=headers)
    resp = client.put("/api/roles/a", json={"permissions": [], "inheritsFrom": "b"}, headers=headers)
    assert resp.status_code == 400
    assert "cycle" in resp.json()["detail"]

    resp = client.put("/api/roles/c", json={"permissions": [], "inheritsFrom": "c"}, headers=headers)
    assert resp.status_code == 400


def test_missing_parent_and_unknown_permission(client, frozen, admin, auth):
    headers = auth(admin)
    resp = client.put("/api/roles/x", json={"permissions": [], "inheritsFrom": "ghost"}, headers=headers)
    assert resp.status_code == 404
    resp = client.put("/api/roles/x", json={"permissions": ["shift:teleport"]}, headers=headers)
    assert resp.status_code == 422


def test_delete_rules(client, frozen, admin, make_user, auth, db):
    role_service.seed_defaults(db)
    headers = auth(admin)
    assert client.delete("/api/roles/guard", headers=headers).status_code == 403

    client.put("/api/roles/temp", json={"permissions": ["shift:read"]}, headers=headers)
    make_user("temp")
    assert client.delete("/api/roles/temp", headers=headers).status_code == 409

    client.put("/api/roles/spare", json={"permissions": []}, headers=headers)
    assert client.delete("/api/roles/spare", headers=headers).status_code == 200
    assert client.get("/api/roles/spare", headers=headers).status_code == 404


def test_rbac_write_required(client, frozen, make_user, auth):
    guard = make_user("guard")
    resp = client.put("/api/roles/x", json={"permissions": ["*"]}, headers=auth(guard))
    assert resp.status_code == 403


def test_seed_is_idempotent(db):
    assert role_service.seed_defaults(db) == 6
    assert role_service.seed_defaults(db) == 6
    names = [r.name for r in role_service.list_roles(db)]
    assert names == sorted(["super_admin", "admin", "branch_admin", "employer", "guard", "client"])
    assert all(r.is_system for r in role_service.list_roles(db))
