import pytest

from app.core.authz import RequestContext, allow, authorize, ensure, is_public
from app.core.errors import Forbidden

API = "/api"


def ctx(role, user_id=1):
    return RequestContext(user_id=user_id, name="Ann", email="ann@example.com", role=role)


@pytest.mark.parametrize("path", [f"{API}/users", f"{API}/users/7"])
def test_user_routes_need_elevated_role(path):
    assert not allow(path, "USER")
    assert allow(path, "ADMIN")
    assert allow(path, "OWNER")


@pytest.mark.parametrize("path", [
    f"{API}/transactions",
    f"{API}/transactions/3",
    f"{API}/activity-logs",
    f"{API}/dashboard/summary",
])
def test_unlisted_routes_pass_the_edge(path):
    assert allow(path, "USER")


def test_prefix_match_does_not_bleed_into_similar_names():
    assert allow(f"{API}/users-report", "USER")


def test_public_paths():
    assert is_public(f"{API}/auth/login")
    assert is_public(f"{API}/auth/register")
    assert is_public("/health")
    assert not is_public(f"{API}/auth/session")
    assert not is_public(f"{API}/transactions")


def test_owner_of_record_passes_resource_check():
    decision = authorize(ctx("USER", user_id=5), "transactions:modify_any", owner_id=5)
    assert decision
    assert decision.reason == "owner"


def test_non_owner_without_capability_is_denied():
    decision = authorize(ctx("USER", user_id=5), "transactions:modify_any", owner_id=6)
    assert not decision
    with pytest.raises(Forbidden):
        ensure(ctx("USER", user_id=5), "transactions:modify_any", owner_id=6)


def test_role_capability_overrides_ownership():
    assert authorize(ctx("ADMIN", user_id=5), "transactions:modify_any", owner_id=6).reason == "role"
    assert authorize(ctx("OWNER", user_id=5), "users:manage")


def test_global_activity_log_is_owner_only():
    assert ctx("OWNER").can("activity:view_all")
    assert not ctx("ADMIN").can("activity:view_all")
    assert not ctx("USER").can("activity:view_all")


def test_unknown_capability_is_denied():
    assert not authorize(ctx("OWNER"), "nonexistent:capability")


def test_user_deletion_is_owner_only():
    assert ctx("OWNER").can("users:delete")
    assert not ctx("ADMIN").can("users:delete")
    assert ctx("ADMIN").can("users:manage")
