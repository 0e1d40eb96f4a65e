import pytest

from pitchlink.core.errors import AuthorizationError, NotFoundError
from pitchlink.modules.connections import service as connections
from pitchlink.schemas.enums import ConnectionStatus, Role

from conftest import auth


def test_create_pins_initiator_role(db, make_user):
    founder = make_user("founder", Role.initiator)
    investor = make_user("investor", Role.counterparty)

    conn = connections.create(db, investor.id, founder.id)

    assert conn.initiator_id == founder.id
    assert conn.counterparty_id == investor.id
    assert conn.status == ConnectionStatus.active.value


def test_create_same_role_orders_by_id(db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.initiator)

    first = connections.create(db, a.id, b.id)

    assert first.initiator_id == min(a.id, b.id)
    assert first.counterparty_id == max(a.id, b.id)


def test_create_is_idempotent(db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)

    first = connections.create(db, a.id, b.id)
    second = connections.create(db, b.id, a.id)

    assert second.id == first.id
    assert len(connections.find_all_between(db, a.id, b.id)) == 1


def test_create_rejects_self(db, make_user):
    a = make_user("a")
    with pytest.raises(AuthorizationError):
        connections.create(db, a.id, a.id)


def test_create_unknown_user(db, make_user):
    a = make_user("a")
    with pytest.raises(NotFoundError):
        connections.create(db, a.id, "missing")


def test_find_active_ignores_blocked(db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    conn = connections.create(db, a.id, b.id)

    connections.toggle_block(db, conn.id, a.id)

    assert connections.find_active(db, a.id, b.id) is None
    assert connections.find_between(db, a.id, b.id).status == ConnectionStatus.blocked.value
    assert connections.list_for_user(db, a.id) == []


def test_toggle_block_requires_participant(db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    outsider = make_user("c")
    conn = connections.create(db, a.id, b.id)

    with pytest.raises(AuthorizationError):
        connections.toggle_block(db, conn.id, outsider.id)


def test_toggle_block_flips_back(db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    conn = connections.create(db, a.id, b.id)

    assert connections.toggle_block(db, conn.id, b.id).status == ConnectionStatus.blocked.value
    assert connections.toggle_block(db, conn.id, b.id).status == ConnectionStatus.active.value


def test_routes_list_and_check(client, db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    conn = connections.create(db, a.id, b.id)

    res = client.get("/v1/connections", headers=auth(a))
    assert res.status_code == 200
    body = res.json()
    assert [c["id"] for c in body] == [conn.id]
    assert body[0]["other_user_id"] == b.id

    res = client.get(f"/v1/connections/check/{b.id}", headers=auth(a))
    assert res.json()["connected"] is True
    assert res.json()["status"] == "active"


def test_route_get_connection_forbidden_for_outsider(client, db, make_user):
    a = make_user("a", Role.initiator)
    b = make_user("b", Role.counterparty)
    outsider = make_user("c")
    conn = connections.create(db, a.id, b.id)

    res = client.get(f"/v1/connections/{conn.id}", headers=auth(outsider))
    assert res.status_code == 403


def test_missing_identity_header(client):
    res = client.get("/v1/connections")
    assert res.status_code == 401
