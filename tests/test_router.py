import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from study_access_client.models import StudyPermissions
from study_access_client.server.main import get_access_client, router

from .fakes import make_env, make_study

RECORD = StudyPermissions(study_id="study-1", admin_users=["owner"], readonly_users=["reader"])
OWNER = {"X-User-Id": "owner"}


@pytest.fixture
def api(make_client):
    def _api(**kwargs):
        kwargs.setdefault("studies", [make_study()])
        kwargs.setdefault("permissions", [RECORD])
        client, wb = make_client(**kwargs)
        app = FastAPI()
        app.include_router(router)
        app.dependency_overrides[get_access_client] = lambda: client
        return TestClient(app), wb

    return _api


def test_get_permissions(api):
    http, _ = api()

    response = http.get("/studies/study-1/permissions", headers={"X-User-Id": "reader"})

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "study-1"
    assert body["permissions"]["adminUsers"] == ["owner"]
    assert body["permissions"]["readonlyUsers"] == ["reader"]


def test_get_permissions_requires_identity_and_access(api):
    http, _ = api()

    assert http.get("/studies/study-1/permissions").status_code == 401
    assert http.get("/studies/study-1/permissions", headers={"X-User-Id": "stranger"}).status_code == 404
    assert http.get("/studies/missing/permissions", headers={"X-User-Id": "root", "X-User-Is-Admin": "true"}).status_code == 404


def test_put_permissions(api):
    # --- ARRANGE ---
    http, wb = api()
    body = {"usersToAdd": [{"uid": "u1", "permissionLevel": "readwrite"}], "usersToRemove": []}

    # --- ACT ---
    response = http.put("/studies/study-1/permissions", json=body, headers=OWNER)

    # --- ASSERT ---
    assert response.status_code == 200
    assert response.json()["permissions"]["readwriteUsers"] == ["u1"]
    assert wb.permission_repo.studies["study-1"].readwrite_users == ["u1"]


@pytest.mark.parametrize(
    "headers, body, expected",
    [
        ({"X-User-Id": "reader"}, {"usersToAdd": [{"uid": "u1", "permissionLevel": "readonly"}]}, 403),
        (OWNER, {"usersToRemove": [{"uid": "owner", "permissionLevel": "admin"}]}, 400),
        (OWNER, {"usersToAdd": [{"uid": "u1", "permissionLevel": "superuser"}]}, 422),
    ],
)
def test_put_permissions_errors(api, headers, body, expected):
    http, _ = api()

    response = http.put("/studies/study-1/permissions", json=body, headers=headers)

    assert response.status_code == expected


def test_put_permissions_capacity(api):
    http, _ = api(envs=[make_env(f"env-{i}", "u1") for i in range(101)])

    response = http.put(
        "/studies/study-1/permissions",
        json={"usersToAdd": [{"uid": "u1", "permissionLevel": "readonly"}]},
        headers=OWNER,
    )

    assert response.status_code == 400
    assert "The limit is 100 workspaces" in response.json()["detail"]


def test_put_permissions_partial_failure(api):
    http, _ = api(envs=[make_env("env-1", "u1"), make_env("env-2", "u1")], failing_envs=("env-2",))

    response = http.put(
        "/studies/study-1/permissions",
        json={"usersToAdd": [{"uid": "u1", "permissionLevel": "readonly"}]},
        headers=OWNER,
    )

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["message"] == "Could not process at least 1 workspace"
    assert [f["environment_id"] for f in detail["failures"]] == ["env-2"]
