import pytest

from routers.conversations.api import router as conversations_router
from routers.groups.api import router as groups_router


@pytest.fixture
def group_id(make_client, users):
    return make_client(conversations_router, users["alice"]).post(
        "/conversations",
        json={"recipient_ids": [users["bob"]], "title": "Climbers", "is_group": True},
    ).json()["conversation_id"]


def test_add_members_partial_success(make_client, users, group_id):
    client = make_client(groups_router, users["alice"])

    response = client.post(
        f"/groups/{group_id}/members", json={"usernames": ["carol", "nobody", "bob"]}
    )

    assert response.status_code == 200
    payload = response.json()
    assert [u["username"] for u in payload["added_users"]] == ["carol"]
    assert payload["failed_users"] == ["nobody", "bob"]
    assert payload["member_count"] == 3

    members = client.get(f"/groups/{group_id}/members").json()
    assert {m["name"] for m in members["members"]} == {"alice", "bob", "carol"}


def test_list_groups(make_client, users, group_id):
    response = make_client(groups_router, users["bob"]).get("/groups")

    assert response.status_code == 200
    assert response.json() == [{"group_id": group_id, "group_name": "Climbers"}]


def test_rename_and_photo(make_client, users, group_id, png_bytes):
    client = make_client(groups_router, users["bob"])

    renamed = client.put(f"/groups/{group_id}/name", json={"name": "Boulderers"})
    assert renamed.status_code == 200
    assert renamed.json()["old_name"] == "Climbers"

    invalid = client.put(f"/groups/{group_id}/name", json={"name": "??"})
    assert invalid.status_code == 400

    photo = client.put(
        f"/groups/{group_id}/photo", files={"photo": ("g.jpg", png_bytes, "image/jpeg")}
    )
    assert photo.status_code == 200
    assert photo.json()["new_photo_id"].startswith("media")


def test_leave_until_deleted(make_client, users, group_id):
    bob_left = make_client(groups_router, users["bob"]).delete(f"/groups/{group_id}/members/me")
    assert bob_left.json()["is_group_deleted"] is False

    alice = make_client(groups_router, users["alice"])
    alice_left = alice.delete(f"/groups/{group_id}/members/me")
    assert alice_left.json() == {
        "group_id": group_id,
        "user_id": users["alice"],
        "username": "alice",
        "is_group_deleted": True,
        "remaining_member_count": 0,
    }

    assert alice.get(f"/groups/{group_id}/members").status_code == 404
