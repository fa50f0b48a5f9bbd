"""End-to-end tests for the HTTP graph surface and the subscription socket."""

import pytest
from fastapi.testclient import TestClient

from groupchat.server import create_app


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


def _signup(client, name: str) -> dict:
    response = client.post("/graph/auth/signup", json={"email": f"{name}@example.com", "password": "pw-" + name})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def people(client):
    """alice and bob are friends; carol is not."""
    accounts = {name: _signup(client, name) for name in ("alice", "bob", "carol")}
    response = client.post(
        "/graph/friends",
        json={"user_id": accounts["bob"]["user"]["id"]},
        headers=_auth(accounts["alice"]["token"]),
    )
    assert response.status_code == 200, response.text
    return accounts


@pytest.fixture
def group(client, people):
    response = client.post(
        "/graph/groups",
        json={"name": "Book Club", "user_ids": [people["bob"]["user"]["id"]]},
        headers=_auth(people["alice"]["token"]),
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def _error_code(response) -> str:
    body = response.json()
    assert body["data"] is None
    return body["errors"][0]["code"]


class TestEnvelope:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_create_group_returns_members(self, group, people):
        assert group["name"] == "Book Club"
        assert sorted(u["username"] for u in group["users"]) == ["alice", "bob"]
        assert all("password_hash" not in u for u in group["users"])

    def test_message_round_trip(self, client, group, people):
        headers = _auth(people["bob"]["token"])

        created = client.post(f"/graph/groups/{group['id']}/messages", json={"text": "hi", "correlation_token": "t1"}, headers=headers)
        page = client.get(f"/graph/groups/{group['id']}/messages", params={"first": 5}, headers=headers)

        assert created.status_code == 200
        assert created.json()["errors"] == []
        message = created.json()["data"]["message"]
        assert created.json()["data"]["correlation_token"] == "t1"
        edges = page.json()["data"]["edges"]
        assert edges[0]["node"]["id"] == message["id"]
        assert edges[0]["cursor"] == created.json()["data"]["cursor"]
        assert page.json()["data"]["page_info"]["has_next_page"] is False

    def test_own_user_lookup(self, client, group, people):
        alice = people["alice"]

        response = client.get("/graph/users", params={"email": "alice@example.com"}, headers=_auth(alice["token"]))

        data = response.json()["data"]
        assert [g["id"] for g in data["groups"]] == [group["id"]]
        assert [f["username"] for f in data["friends"]] == ["bob"]

    def test_befriending_allows_a_shared_group(self, client, people):
        headers = _auth(people["carol"]["token"])

        befriended = client.post("/graph/friends", json={"user_id": people["alice"]["user"]["id"]}, headers=headers)

        assert befriended.status_code == 200
        assert befriended.json()["data"]["username"] == "alice"
        assert "password_hash" not in befriended.json()["data"]

        created = client.post(
            "/graph/groups",
            json={"name": "Carol and Alice", "user_ids": [people["alice"]["user"]["id"]]},
            headers=headers,
        )
        assert created.status_code == 200, created.text

        friends = client.get("/graph/users", params={"email": "alice@example.com"}, headers=_auth(people["alice"]["token"]))
        assert sorted(f["username"] for f in friends.json()["data"]["friends"]) == ["bob", "carol"]


class TestErrors:

    def test_missing_credential_is_401(self, client, group):
        response = client.post(f"/graph/groups/{group['id']}/messages", json={"text": "hi"})

        assert response.status_code == 401
        assert _error_code(response) == "UNAUTHENTICATED"

    def test_bad_token_is_401(self, client, group):
        response = client.get(f"/graph/groups/{group['id']}", headers=_auth("garbage"))

        assert response.status_code == 401

    def test_non_member_is_403(self, client, group, people):
        response = client.get(f"/graph/groups/{group['id']}", headers=_auth(people["carol"]["token"]))

        assert response.status_code == 403
        assert _error_code(response) == "UNAUTHORIZED"

    def test_non_friend_group_is_422(self, client, people):
        response = client.post(
            "/graph/groups",
            json={"name": "Nope", "user_ids": [people["carol"]["user"]["id"]]},
            headers=_auth(people["alice"]["token"]),
        )

        assert response.status_code == 422
        assert _error_code(response) == "VALIDATION_ERROR"

    def test_befriending_an_unknown_user_is_404(self, client, people):
        response = client.post("/graph/friends", json={"user_id": 999}, headers=_auth(people["alice"]["token"]))

        assert response.status_code == 404
        assert _error_code(response) == "NOT_FOUND"

    def test_befriending_yourself_is_422(self, client, people):
        alice = people["alice"]

        response = client.post("/graph/friends", json={"user_id": alice["user"]["id"]}, headers=_auth(alice["token"]))

        assert response.status_code == 422
        assert _error_code(response) == "VALIDATION_ERROR"

    @pytest.mark.parametrize("params", [{"first": 2, "last": 2}, {"after": "bogus"}, {"first": 0}])
    def test_bad_pagination_is_422(self, client, group, people, params):
        response = client.get(f"/graph/groups/{group['id']}/messages", params=params, headers=_auth(people["alice"]["token"]))

        assert response.status_code == 422
        assert _error_code(response) == "VALIDATION_ERROR"

    @pytest.mark.parametrize("body", [{"text": ""}, {"text": "hi", "unexpected": 1}, {}])
    def test_malformed_request_is_422(self, client, group, people, body):
        response = client.post(f"/graph/groups/{group['id']}/messages", json=body, headers=_auth(people["alice"]["token"]))

        assert response.status_code == 422
        assert _error_code(response) == "VALIDATION_ERROR"

    def test_deleted_group_is_404(self, client, group, people):
        headers = _auth(people["alice"]["token"])

        deleted = client.delete(f"/graph/groups/{group['id']}", headers=headers)
        response = client.get(f"/graph/groups/{group['id']}", headers=headers)

        assert deleted.status_code == 200
        assert response.status_code == 404
        assert _error_code(response) == "NOT_FOUND"

    def test_leave_until_empty_cascades(self, client, group, people):
        for name in ("alice", "bob"):
            response = client.post(f"/graph/groups/{group['id']}/leave", headers=_auth(people[name]["token"]))
            assert response.json()["data"] == {"id": group["id"]}

        response = client.get(f"/graph/groups/{group['id']}", headers=_auth(people["bob"]["token"]))
        assert response.status_code == 404

    def test_logout_revokes_the_token(self, client, people):
        headers = _auth(people["alice"]["token"])

        assert client.post("/graph/auth/logout", headers=headers).status_code == 200
        assert client.post("/graph/auth/logout", headers=headers).status_code == 401

    def test_wrong_password_is_401(self, client, people):
        response = client.post("/graph/auth/login", json={"email": "alice@example.com", "password": "nope"})

        assert response.status_code == 401


class TestSubscriptions:

    def test_message_added_is_pushed_to_members(self, client, group, people):
        with client.websocket_connect(f"/graph/subscriptions?token={people['alice']['token']}") as ws:
            assert ws.receive_json() == {"type": "connection_ack"}

            ws.send_json({"type": "subscribe", "subscription": "messageAdded", "group_ids": [group["id"]]})
            subscribed = ws.receive_json()
            assert subscribed["type"] == "subscribed"

            client.post(
                f"/graph/groups/{group['id']}/messages",
                json={"text": "pushed", "correlation_token": "p1"},
                headers=_auth(people["bob"]["token"]),
            )

            frame = ws.receive_json()
            assert frame["type"] == "event"
            assert frame["id"] == subscribed["id"]
            assert frame["payload"]["message"]["text"] == "pushed"
            assert frame["payload"]["correlation_token"] == "p1"

    def test_token_in_first_frame(self, client, people):
        with client.websocket_connect("/graph/subscriptions") as ws:
            ws.send_json({"type": "connection_init", "token": people["alice"]["token"]})

            assert ws.receive_json() == {"type": "connection_ack"}

    def test_other_users_groups_are_refused(self, client, people):
        with client.websocket_connect(f"/graph/subscriptions?token={people['alice']['token']}") as ws:
            ws.receive_json()

            ws.send_json({"type": "subscribe", "subscription": "groupAdded", "user_id": people["bob"]["user"]["id"]})

            frame = ws.receive_json()
            assert frame["type"] == "error"
            assert frame["error"]["code"] == "UNAUTHORIZED"

    def test_non_member_subscription_is_refused(self, client, group, people):
        with client.websocket_connect(f"/graph/subscriptions?token={people['carol']['token']}") as ws:
            ws.receive_json()

            ws.send_json({"type": "subscribe", "subscription": "messageAdded", "group_ids": [group["id"]]})

            assert ws.receive_json()["error"]["code"] == "UNAUTHORIZED"

    def test_invalid_token_is_rejected(self, client):
        with client.websocket_connect("/graph/subscriptions?token=garbage") as ws:
            frame = ws.receive_json()

            assert frame["type"] == "error"
            assert frame["error"]["code"] == "UNAUTHENTICATED"

    @pytest.mark.parametrize("send", [
        lambda ws: ws.send_text("not json"),
        lambda ws: ws.send_json([1, 2]),
    ])
    def test_malformed_frame_gets_an_error_and_the_socket_stays_open(self, client, group, people, send):
        with client.websocket_connect(f"/graph/subscriptions?token={people['alice']['token']}") as ws:
            ws.receive_json()

            send(ws)
            frame = ws.receive_json()
            assert frame["type"] == "error"
            assert frame["error"]["code"] == "VALIDATION_ERROR"

            ws.send_json({"type": "subscribe", "subscription": "messageAdded", "group_ids": [group["id"]]})
            assert ws.receive_json()["type"] == "subscribed"
