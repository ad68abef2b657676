import pytest

from study_access_client.exceptions import (
    ForbiddenError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)
from study_access_client.models import RequestContext, StudyPermissions, UpdateRequest, UserPermissions
from study_access_client.services import apply_to_user_permissions, apply_update_request
from study_access_client.services.permission_store import validate_single_level

from .fakes import make_study

pytestmark = pytest.mark.asyncio

OWNER = RequestContext(uid="owner")


def _request(add=(), remove=()):
    return UpdateRequest(
        users_to_add=[{"uid": uid, "permissionLevel": level} for uid, level in add],
        users_to_remove=[{"uid": uid, "permissionLevel": level} for uid, level in remove],
    )


async def test_apply_update_moves_user_between_levels():
    # --- ARRANGE ---
    entity = StudyPermissions(study_id="s1", readwrite_users=["u1"])
    request = _request(add=[("u1", "readonly")], remove=[("u1", "readwrite")])

    # --- ACT ---
    result = apply_update_request(entity, request)

    # --- ASSERT ---
    assert result.admin_users == []
    assert result.readonly_users == ["u1"]
    assert result.readwrite_users == []
    assert result.writeonly_users == []
    assert entity.readwrite_users == ["u1"]


async def test_apply_update_is_idempotent():
    entity = StudyPermissions(study_id="s1", admin_users=["owner"], readonly_users=["u1"])
    request = _request(add=[("u2", "readwrite"), ("owner", "admin")], remove=[("u1", "readonly")])

    once = apply_update_request(entity, request)
    twice = apply_update_request(once, request)

    assert once == twice
    assert twice.admin_users == ["owner"]
    assert twice.readwrite_users == ["u2"]


async def test_wildcard_admin_removal_is_resolved_in_place():
    # --- ARRANGE ---
    entity = StudyPermissions(study_id="s1", admin_users=["old-user"])
    request = _request(add=[("new-user", "admin")], remove=[("*", "admin")])

    # --- ACT ---
    result = apply_update_request(entity, request)

    # --- ASSERT ---
    assert result.admin_users == ["new-user"]
    assert request.to_wire()["usersToRemove"] == [{"uid": "old-user", "permissionLevel": "admin"}]


async def test_user_mirror_add_then_remove_drops_duplicates():
    user = UserPermissions(uid="u1", readwrite_access=["s1", "s2", "s1"])
    request = _request(add=[("u1", "readonly")], remove=[("u1", "readwrite")])

    result = apply_to_user_permissions(request, user, "s1")

    assert result.readonly_access == ["s1"]
    assert result.readwrite_access == ["s2"]


async def test_single_level_validation_names_levels():
    entity = StudyPermissions(study_id="s1", admin_users=["u1"], readonly_users=["u1"], writeonly_users=["u1"])

    with pytest.raises(ValidationError, match="User u1 cannot have multiple permissions: readonly,writeonly"):
        validate_single_level(entity)


async def test_update_persists_study_and_user_records(build):
    # --- ARRANGE ---
    study = make_study()
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])
    request = _request(add=[("u1", "readwrite")])

    # --- ACT ---
    saved = await env.store.update(OWNER, study, request)

    # --- ASSERT ---
    assert saved.readwrite_users == ["u1"]
    assert saved.updated_by == "owner"
    assert env.permission_repo.users["u1"].readwrite_access == [study.id]
    assert env.locks.acquired == [f"study_permissions|Study:{study.id}"]


async def test_wildcard_migration_through_store(build):
    study = make_study()
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["old-user"])])
    request = _request(add=[("new-user", "admin")], remove=[("*", "admin")])

    saved = await env.store.update(RequestContext(uid="old-user"), study, request)

    assert saved.admin_users == ["new-user"]
    assert env.permission_repo.users["new-user"].admin_access == [study.id]
    assert env.permission_repo.users["old-user"].admin_access == []


async def test_last_admin_cannot_be_removed(build):
    study = make_study()
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])

    with pytest.raises(ValidationError, match="At least one Admin must be assigned to the study"):
        await env.store.update(OWNER, study, _request(remove=[("owner", "admin")]))
    assert env.permission_repo.save_calls == 0


async def test_multiple_levels_are_rejected(build):
    study = make_study()
    env = build(
        studies=[study],
        permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"], readonly_users=["u1"])],
    )

    with pytest.raises(ValidationError, match="User u1 cannot have multiple permissions"):
        await env.store.update(OWNER, study, _request(add=[("u1", "readwrite")]))


async def test_non_admin_cannot_manage(build):
    study = make_study()
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])

    with pytest.raises(ForbiddenError):
        await env.store.update(RequestContext(uid="stranger"), study, _request(add=[("u1", "readonly")]))

    # администратор системы может
    saved = await env.store.update(RequestContext(uid="root", is_admin=True), study, _request(add=[("u1", "readonly")]))
    assert saved.readonly_users == ["u1"]


@pytest.mark.parametrize("category", ["Open Data", "My Studies"])
async def test_immutable_categories(build, category):
    study = make_study(category=category)
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])

    with pytest.raises(PolicyViolationError):
        await env.store.update(OWNER, study, _request(add=[("u1", "readonly")]))


@pytest.mark.parametrize(
    "access_type, level",
    [("readonly", "readwrite"), ("readonly", "writeonly"), ("writeonly", "readonly"), ("writeonly", "readwrite")],
)
async def test_levels_above_access_type_cannot_be_granted(build, access_type, level):
    study = make_study(access_type=access_type)
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])

    with pytest.raises(PolicyViolationError):
        await env.store.update(OWNER, study, _request(add=[("u1", level)]))


async def test_wildcard_only_for_admin_removal(build):
    study = make_study()
    env = build(studies=[study], permissions=[StudyPermissions(study_id=study.id, admin_users=["owner"])])

    with pytest.raises(ValidationError):
        await env.store.update(OWNER, study, _request(remove=[("*", "readonly")]))
    with pytest.raises(ValidationError):
        await env.store.update(OWNER, study, _request(add=[("*", "admin")]))


async def test_create_makes_creator_admin(build):
    env = build()

    record = await env.store.create(OWNER, "s9")

    assert record.admin_users == ["owner"]
    assert record.created_by == "owner"
    assert env.permission_repo.users["owner"].admin_access == ["s9"]


async def test_verify_requestor_access(build):
    # --- ARRANGE ---
    study = make_study()
    record = StudyPermissions(
        study_id=study.id, admin_users=["owner"], readonly_users=["reader"], writeonly_users=["writer"]
    )
    env = build(studies=[study], permissions=[record])
    store = env.store

    # --- ACT & ASSERT ---
    for uid in ("owner", "reader", "writer"):
        await store.verify_requestor_access(RequestContext(uid=uid), study.id, "GET")
    await store.verify_requestor_access(OWNER, study.id, "PUT")
    await store.verify_requestor_access(RequestContext(uid="writer"), study.id, "upload")

    with pytest.raises(ForbiddenError):
        await store.verify_requestor_access(RequestContext(uid="reader"), study.id, "PUT")
    with pytest.raises(ForbiddenError):
        await store.verify_requestor_access(RequestContext(uid="reader"), study.id, "UPLOAD")
    with pytest.raises(NotFoundError):
        await store.verify_requestor_access(RequestContext(uid="stranger"), study.id, "GET")
    with pytest.raises(ValueError):
        await store.verify_requestor_access(OWNER, study.id, "FETCH")
