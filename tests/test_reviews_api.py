from base64 import urlsafe_b64encode

import pytest
from fastapi import HTTPException

from conftest import promote, register, user_id
from reviewhub.models import Aggregate, Review
from reviewhub.models.enums import UserRole
from reviewhub.routers.reviews import feed_page
from reviewhub.services.feeds import ReviewFeed


@pytest.fixture()
def admin(client, db):
    headers = register(client, "admin@example.com")
    promote(db, user_id(client, headers), UserRole.admin)
    return headers


@pytest.fixture()
def subject_id(client, admin):
    r = client.post("/subject-types", json={"key": "Restaurant", "display_name": "Restaurants"}, headers=admin)
    assert r.status_code == 201, r.text
    st_id = r.json()["id"]
    assert r.json()["key"] == "restaurant"

    r = client.post(
        "/subjects",
        json={"subject_type_id": st_id, "name": "Mochi House", "slug": "mochi-house"},
        headers=admin,
    )
    assert r.status_code == 201, r.text
    return r.json()["id"]


def _create(client, headers, subject_id, overall=None, **extra):
    body = {"subject_id": subject_id, "title": "Nice place", **extra}
    if overall is not None:
        body["ratings"] = [{"key": "overall", "score": overall}]
    r = client.post("/reviews", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _aggregate(client, subject_id):
    r = client.get(f"/subjects/{subject_id}")
    assert r.status_code == 200, r.text
    return r.json()["aggregate"]


def test_subject_without_reviews_has_no_aggregate(client, subject_id):
    body = client.get(f"/subjects/{subject_id}").json()
    assert body["aggregate"] is None
    assert body["subject_type_key"] == "restaurant"


def test_subjects_require_admin(client, subject_id):
    headers = register(client, "u@example.com")
    r = client.post("/subjects", json={"subject_type_id": 1, "name": "X", "slug": "x"}, headers=headers)
    assert r.status_code == 403


def test_aggregate_follows_review_writes(client, subject_id):
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    u3 = register(client, "u3@example.com")

    _create(client, u1, subject_id, overall=4)
    review2 = _create(client, u2, subject_id, overall=5)
    _create(client, u3, subject_id)

    agg = _aggregate(client, subject_id)
    assert agg["count_reviews"] == 3
    assert agg["avg_overall"] == 4.5
    assert agg["breakdown"]["overall_count"] == 2

    r = client.put(
        f"/reviews/{review2['id']}",
        json={"title": "Changed my mind", "ratings": [{"key": "overall", "score": 1}]},
        headers=u2,
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "pending"
    assert _aggregate(client, subject_id)["avg_overall"] == 2.5

    r = client.delete(f"/reviews/{review2['id']}", headers=u2)
    assert r.status_code == 200, r.text
    agg = _aggregate(client, subject_id)
    assert agg["count_reviews"] == 2
    assert agg["avg_overall"] == 4.0


def test_deleting_last_review_removes_aggregate(client, db, subject_id):
    u1 = register(client, "u1@example.com")
    review = _create(client, u1, subject_id, overall=3)
    assert _aggregate(client, subject_id)["count_reviews"] == 1

    assert client.delete(f"/reviews/{review['id']}", headers=u1).status_code == 200
    assert _aggregate(client, subject_id) is None

    db.expire_all()
    assert db.get(Aggregate, subject_id) is None
    assert db.get(Review, review["id"]).is_deleted is True
    assert client.get(f"/reviews/{review['id']}").status_code == 404


def test_review_validation_and_conflicts(client, subject_id):
    u1 = register(client, "u1@example.com")
    _create(client, u1, subject_id, overall=4, tags=["cosy", "quiet"])

    assert client.post("/reviews", json={"subject_id": subject_id, "title": "again"}, headers=u1).status_code == 409
    assert client.post("/reviews", json={"subject_id": 999, "title": "x"}, headers=u1).status_code == 404

    u2 = register(client, "u2@example.com")
    bad = [
        {"subject_id": subject_id, "title": "   "},
        {"subject_id": subject_id, "title": "x", "ratings": [{"key": "overall", "score": 6}]},
        {"subject_id": subject_id, "title": "x", "ratings": [{"key": " ", "score": 3}]},
        {"subject_id": subject_id, "title": "x", "tags": ["a", "A"]},
        {"subject_id": subject_id, "title": "x", "tags": ["t"] * 11},
    ]
    for body in bad:
        assert client.post("/reviews", json=body, headers=u2).status_code == 422, body


def test_only_author_can_modify(client, subject_id):
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    review = _create(client, u1, subject_id, overall=4)

    assert client.put(f"/reviews/{review['id']}", json={"title": "mine"}, headers=u2).status_code == 403
    assert client.delete(f"/reviews/{review['id']}", headers=u2).status_code == 403
    assert client.delete("/reviews/12345", headers=u2).status_code == 404


def test_moderation_status_change_and_latest_feed(client, db, admin, subject_id):
    authors = [register(client, f"u{i}@example.com") for i in range(3)]
    created = [_create(client, h, subject_id, overall=4) for h in authors]

    assert client.get("/reviews/latest").json()["items"] == []

    pending = client.get("/moderation/reviews/pending", headers=admin).json()
    assert pending["total"] == 3
    for review in created:
        r = client.post(f"/moderation/reviews/{review['id']}/approve", headers=admin)
        assert r.status_code == 204, r.text

    first = client.get("/reviews/latest", params={"page_size": 2}).json()
    assert [i["id"] for i in first["items"]] == [created[2]["id"], created[1]["id"]]
    assert first["total"] == 3
    assert first["has_more"] is True
    assert first["next_cursor"]

    second = client.get("/reviews/latest", params={"page_size": 2, "cursor": first["next_cursor"]}).json()
    assert [i["id"] for i in second["items"]] == [created[0]["id"]]
    assert second["next_cursor"] is None
    assert second["has_more"] is False

    assert client.post(f"/moderation/reviews/{created[0]['id']}/flag", headers=admin).status_code == 204
    assert len(client.get("/reviews/latest").json()["items"]) == 2
    # flagged reviews still count toward the aggregate
    assert _aggregate(client, subject_id)["count_reviews"] == 3


def test_moderation_requires_role(client, subject_id):
    u1 = register(client, "u1@example.com")
    assert client.get("/moderation/reviews/pending", headers=u1).status_code == 403


def test_subject_reviews_feed(client, subject_id):
    authors = [register(client, f"u{i}@example.com") for i in range(3)]
    created = [_create(client, h, subject_id, overall=3) for h in authors]

    r = client.get(f"/subjects/{subject_id}/reviews", params={"page_size": 3})
    assert r.status_code == 200, r.text
    body = r.json()
    assert [i["id"] for i in body["items"]] == [c["id"] for c in reversed(created)]
    assert body["next_cursor"] is None

    assert client.get("/subjects/999/reviews").status_code == 404


@pytest.mark.parametrize(
    "cursor",
    [
        "not-a-cursor",
        "MjAyNS0wMS0wMVQwMDowMDowMHxhYmM=",
        urlsafe_b64encode(b"2025-01-01T00:00:00.000000|99999999999999999999").decode(),
        urlsafe_b64encode(b"0001-01-01T00:00:00+01:00|3").decode(),
    ],
)
def test_malformed_cursor_is_400(client, subject_id, cursor):
    assert client.get("/reviews/latest", params={"cursor": cursor}).status_code == 400
    assert client.get(f"/subjects/{subject_id}/reviews", params={"cursor": cursor}).status_code == 400


@pytest.mark.parametrize("size", [0, 101])
def test_page_size_is_bounded(client, size):
    assert client.get("/reviews/latest", params={"page_size": size}).status_code == 422


@pytest.mark.parametrize("size", [0, 101])
def test_page_size_error_matches_query_bounds(db, size):
    with pytest.raises(HTTPException) as exc:
        feed_page(db, ReviewFeed.latest(), cursor=None, page_size=size)
    assert exc.value.status_code == 422


def test_likes_and_media(client, subject_id):
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    review = _create(client, u1, subject_id, overall=5)
    rid = review["id"]

    r = client.post(f"/reviews/{rid}/like", headers=u2)
    assert r.status_code == 201, r.text
    assert r.json()["like_count"] == 1
    assert client.post(f"/reviews/{rid}/like", headers=u2).status_code == 409

    r = client.post(f"/reviews/{rid}/media", json={"url": "https://cdn.example.com/1.jpg"}, headers=u1)
    assert r.status_code == 201, r.text
    assert client.post(f"/reviews/{rid}/media", json={"url": "https://x"}, headers=u2).status_code == 403

    detail = client.get(f"/reviews/{rid}").json()
    assert detail["like_count"] == 1
    assert detail["media_count"] == 1
    assert detail["media"][0]["type"] == "image"
    assert detail["ratings"] == {"overall": 5.0}

    r = client.delete(f"/reviews/{rid}/like", headers=u2)
    assert r.status_code == 200
    assert r.json()["like_count"] == 0
    assert client.delete(f"/reviews/{rid}/like", headers=u2).status_code == 404


def test_list_reviews_by_subject_and_user(client, subject_id):
    u1 = register(client, "u1@example.com")
    u2 = register(client, "u2@example.com")
    _create(client, u1, subject_id, overall=5)
    _create(client, u2, subject_id, overall=2)

    body = client.get("/reviews", params={"subject_id": subject_id}).json()
    assert body["total"] == 2
    body = client.get("/reviews", params={"user_id": user_id(client, u1)}).json()
    assert body["total"] == 1
