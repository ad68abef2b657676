from study_access_client.models import UpdateRequest
from study_access_client.services import classify, get_impacted_users


def _request(add=(), remove=()):
    return UpdateRequest(
        users_to_add=[{"uid": uid, "permissionLevel": level} for uid, level in add],
        users_to_remove=[{"uid": uid, "permissionLevel": level} for uid, level in remove],
    )


def test_impacted_users_are_unique_in_first_seen_order():
    request = _request(
        add=[("u2", "readonly"), ("u1", "admin"), ("u2", "admin")],
        remove=[("u3", "readwrite"), ("u1", "readonly")],
    )

    assert get_impacted_users(request) == ["u2", "u1", "u3"]


def test_classify_partitions_non_admin_changes():
    # --- ARRANGE ---
    request = _request(
        add=[("allowed", "readonly"), ("changed", "readwrite"), ("admin-only", "admin")],
        remove=[("gone", "readwrite"), ("changed", "readonly"), ("admin-gone", "admin")],
    )

    # --- ACT ---
    delta = classify(request)

    # --- ASSERT ---
    assert delta.allowed == ("allowed",)
    assert delta.disallowed == ("gone",)
    assert delta.changed == ("changed",)
    assert set(delta.allowed).isdisjoint(delta.disallowed)
    assert set(delta.allowed).isdisjoint(delta.changed)
    assert set(delta.disallowed).isdisjoint(delta.changed)
    assert "admin-only" not in delta.impacted


def test_classify_empty_request():
    delta = classify(UpdateRequest())
    assert delta.impacted == ()
