from __future__ import annotations

from app.models.ministry import Ministry


def test_admin_creates_ministry_with_pillars(client, authorize, admin_user, leader_user, pillar_user, second_pillar):
    authorize(admin_user)
    resp = client.post(
        "/admin/ministries",
        json={
            "name": "  Youth Ministry ",
            "description": "Teens and young adults",
            "ministry_leader_id": leader_user.id,
            "assigned_pillar_ids": [second_pillar.id, pillar_user.id, pillar_user.id],
        },
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["name"] == "Youth Ministry"
    assert body["slug"] == "youth-ministry"
    assert body["assigned_pillar_ids"] == sorted([pillar_user.id, second_pillar.id])
    assert {pillar["email"] for pillar in body["pillars"]} == {pillar_user.email, second_pillar.email}


def test_create_ministry_validation(client, authorize, admin_user, leader_user, ministry):
    authorize(admin_user)
    duplicate = client.post("/admin/ministries", json={"name": "youth ministry"})
    assert duplicate.status_code == 409

    not_a_pillar = client.post(
        "/admin/ministries",
        json={"name": "Media", "assigned_pillar_ids": [leader_user.id]},
    )
    assert not_a_pillar.status_code == 400
    assert not_a_pillar.json()["detail"] == "Some assigned pillar IDs are invalid"

    bad_leader = client.post("/admin/ministries", json={"name": "Media", "ministry_leader_id": 9999})
    assert bad_leader.status_code == 400


def test_update_ministry_reassigns_pillars(client, authorize, admin_user, ministry, outside_pillar):
    authorize(admin_user)
    resp = client.put(
        f"/admin/ministries/{ministry.id}",
        json={"name": "Youth & Teens", "assigned_pillar_ids": [outside_pillar.id]},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["assigned_pillar_ids"] == [outside_pillar.id]
    assert body["slug"] == "youth-teens"


def test_public_list_shows_active_only(client, authorize, admin_user, leader_user, ministry, db_session):
    db_session.add(Ministry(name="Archive", slug="archive", active=False))
    db_session.commit()

    authorize(leader_user)
    names = [item["name"] for item in client.get("/ministries").json()]
    assert names == ["Youth Ministry"]

    authorize(admin_user)
    names = [item["name"] for item in client.get("/admin/ministries").json()]
    assert names == ["Archive", "Youth Ministry"]


def test_delete_ministry(client, authorize, admin_user, ministry, unassigned_ministry, draft_form):
    authorize(admin_user)
    blocked = client.delete(f"/admin/ministries/{ministry.id}")
    assert blocked.status_code == 400

    resp = client.delete(f"/admin/ministries/{unassigned_ministry.id}")
    assert resp.status_code == 204
    assert client.delete(f"/admin/ministries/{unassigned_ministry.id}").status_code == 404


def test_non_admin_cannot_manage(client, authorize, pastor_user):
    authorize(pastor_user)
    assert client.get("/admin/ministries").status_code == 403
    assert client.post("/admin/ministries", json={"name": "Outreach"}).status_code == 403
