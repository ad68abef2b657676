import asyncio

import pytest
from sqlalchemy import select

from study_access_client.db import AuditEventORM
from study_access_client.exceptions import ConflictError, LockError, NotFoundError
from study_access_client.models import RequestContext, StudyCreate, StudyPermissions, UserPermissions
from study_access_client.repositories import (
    AuditRepository,
    EnvironmentRepository,
    LockRepository,
    StudyPermissionRepository,
    StudyRepository,
)

from ..fakes import make_env

pytestmark = [pytest.mark.asyncio, pytest.mark.integration]


def _study(study_id="study-1"):
    return StudyCreate(
        id=study_id,
        name="Study 1",
        category="Organization",
        access_type="readwrite",
        resources=[{"arn": f"arn:aws:s3:::study-data/studies/Organization/{study_id}/"}],
    )


async def test_study_create_find_and_rev_conflict(session_factory):
    # --- ARRANGE ---
    repo = StudyRepository(session_factory)
    await repo.check_connection()

    # --- ACT ---
    created = await repo.create(_study(), created_by="owner")

    # --- ASSERT ---
    assert created.rev == 0
    assert created.created_by == "owner"
    assert created.resources[0].arn.endswith("/study-1/")
    assert (await repo.must_find("study-1")).name == "Study 1"

    with pytest.raises(ConflictError):
        await repo.create(_study(), created_by="owner")
    with pytest.raises(NotFoundError):
        await repo.must_find("missing")

    # --- ACT: оптимистическая блокировка ---
    renamed = await repo.update(created.model_copy(update={"name": "Renamed"}), updated_by="owner")
    assert renamed.rev == 1
    with pytest.raises(ConflictError):
        await repo.update(created.model_copy(update={"name": "Stale"}), updated_by="owner")


async def test_list_by_ids_keeps_order(session_factory):
    repo = StudyRepository(session_factory)
    for study_id in ("a", "b", "c"):
        await repo.create(_study(study_id), created_by="owner")

    studies = await repo.list_by_ids(["c", "missing", "a"])

    assert [s.id for s in studies] == ["c", "a"]


async def test_permissions_create_save_and_find(session_factory):
    # --- ARRANGE ---
    repo = StudyPermissionRepository(session_factory)
    record = StudyPermissions(study_id="study-1", admin_users=["owner"], created_by="owner", updated_by="owner")
    await repo.create(record, [UserPermissions(uid="owner", admin_access=["study-1"])])

    # --- ACT ---
    updated = record.model_copy(update={"readonly_users": ["u1"], "updated_by": "owner"})
    await repo.save(updated, [UserPermissions(uid="u1", readonly_access=["study-1"])])

    # --- ASSERT ---
    found = await repo.find_by_study("study-1")
    assert found.admin_users == ["owner"]
    assert found.readonly_users == ["u1"]
    assert (await repo.find_by_user("u1")).readonly_access == ["study-1"]

    users = await repo.find_users(["owner", "nobody"])
    assert users["owner"].admin_access == ["study-1"]
    assert users["nobody"] == UserPermissions(uid="nobody")

    with pytest.raises(ConflictError):
        await repo.create(record, [])


async def test_active_environments_filter(session_factory):
    # --- ARRANGE ---
    repo = EnvironmentRepository(session_factory)
    for env in (
        make_env("env-1", "u1"),
        make_env("env-2", "u1", status="TERMINATED"),
        make_env("env-3", "u1", status="STOPPING_FAILED"),
        make_env("env-4", "u2"),
    ):
        await repo.save(env)

    # --- ACT ---
    envs = await repo.get_active_envs_for_user("u1")

    # --- ASSERT ---
    assert [e.id for e in envs] == ["env-1"]
    assert envs[0].workspace_role_arn is not None
    with pytest.raises(NotFoundError):
        await repo.must_find("env-5")


async def test_lock_is_exclusive_and_released(session_factory, propagation_config):
    # --- ARRANGE ---
    locks = LockRepository(session_factory, propagation_config)
    inside = asyncio.Event()
    leave = asyncio.Event()

    async def _hold():
        inside.set()
        await leave.wait()
        return "done"

    # --- ACT ---
    holder = asyncio.create_task(locks.try_write_lock_and_run("study-study-1-operation", _hold))
    await inside.wait()

    # --- ASSERT ---
    with pytest.raises(LockError):
        await locks.try_write_lock_and_run("study-study-1-operation", _hold)

    leave.set()
    assert await holder == "done"
    # после освобождения блокировку можно взять снова
    assert await locks.obtain_write_lock("study-study-1-operation") == "study-study-1-operation"


async def test_audit_write(session_factory):
    audit = AuditRepository(session_factory)

    await audit.write_and_forget(RequestContext(uid="owner"), "update-study-permissions", {"studyId": "study-1"})

    async with session_factory() as session:
        events = (await session.execute(select(AuditEventORM))).scalars().all()
    assert [(e.action, e.actor, e.body) for e in events] == [
        ("update-study-permissions", "owner", {"studyId": "study-1"}),
    ]
