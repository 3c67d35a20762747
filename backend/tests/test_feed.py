"""Tests for feed/gallery reads and model groupings."""
from datetime import datetime, timedelta, timezone

from studio.models.creation import Creation, CreationKind
from studio.models.vote import Vote, VoteDirection
from studio.services import feed_service
from tests.conftest import auth_headers

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _seed(db, count, kind=CreationKind.image, model="Alex", owner_id="owner-1", start=0, score=0):
    """Insert ``count`` creations one minute apart; returns them oldest first."""
    rows = []
    for i in range(start, start + count):
        rows.append(Creation(
            kind=kind,
            generated_url=f"https://cdn.test/{kind.value}-{i}",
            model=model,
            prompt="p",
            owner_id=owner_id,
            vote_score=score,
            created_at=BASE_TIME + timedelta(minutes=i),
        ))
    db.add_all(rows)
    db.commit()
    return rows


class TestPaging:

    def test_clamps(self):
        assert feed_service.normalize_paging(0, 0) == (1, 1)
        assert feed_service.normalize_paging(-3, 500) == (1, 100)
        assert feed_service.normalize_paging(None, None) == (1, 20)

    def test_pagination_math(self):
        p = feed_service.paginate(page=2, limit=20, total=45)
        assert (p.total_pages, p.has_more) == (3, True)
        p = feed_service.paginate(page=3, limit=20, total=45)
        assert p.has_more is False
        assert feed_service.paginate(1, 20, 0).total_pages == 0


class TestFeedQuery:

    def test_new_videos_second_page(self, db):
        """sort=new, type=video, page=2, limit=20 returns items 21–40 by descending time."""
        _seed(db, 50, kind=CreationKind.video, start=0)
        _seed(db, 30, kind=CreationKind.image, start=100)
        ordered = sorted(
            db.query(Creation).filter(Creation.kind == CreationKind.video).all(),
            key=lambda c: c.created_at,
            reverse=True,
        )

        page = feed_service.query(db, viewer_id=None, kind="video", sort="new", page=2, limit=20)
        assert [i.creation.creation_id for i in page.items] == [c.creation_id for c in ordered[20:40]]
        assert all(i.creation.kind == CreationKind.video for i in page.items)
        assert page.pagination.total == 50
        assert page.pagination.total_pages == 3
        assert page.pagination.has_more is True

    def test_top_sorts_by_score_then_recency(self, db):
        old_popular, = _seed(db, 1, start=0, score=5)
        new_plain, = _seed(db, 1, start=10)
        old_plain, = _seed(db, 1, start=5)
        page = feed_service.query(db, viewer_id=None)
        assert [i.creation.creation_id for i in page.items] == [
            old_popular.creation_id, new_plain.creation_id, old_plain.creation_id,
        ]

    def test_model_filters(self, db):
        _seed(db, 2, model="Alex")
        _seed(db, 3, model="Alexandra", start=10)
        _seed(db, 1, model="Sam", start=20)
        assert feed_service.query(db, None, model="Alex").pagination.total == 2
        assert feed_service.query(db, None, model="alex", model_match="contains").pagination.total == 5

    def test_user_vote_annotation_is_viewer_only(self, db):
        a, b = _seed(db, 2)
        db.add_all([
            Vote(user_id="viewer", creation_id=a.creation_id, direction=VoteDirection.down),
            Vote(user_id="other", creation_id=b.creation_id, direction=VoteDirection.up),
        ])
        db.commit()
        votes = {i.creation.creation_id: i.user_vote for i in feed_service.query(db, "viewer").items}
        assert votes == {a.creation_id: "down", b.creation_id: "none"}


class TestFeedAPI:

    def test_gallery_shows_only_own_creations(self, client, db):
        _seed(db, 3, owner_id="u1")
        _seed(db, 2, owner_id="u2", start=10)
        resp = client.get("/api/gallery", headers=auth_headers("u1"))
        assert resp.status_code == 200
        data = resp.json()
        assert data["pagination"] == {"page": 1, "limit": 20, "total": 3, "totalPages": 1, "hasMore": False}
        assert {c["uploadedBy"]["id"] for c in data["creations"]} == {"u1"}

    def test_gallery_requires_identity(self, client):
        assert client.get("/api/gallery").status_code == 401

    def test_feed_is_public(self, client, db):
        _seed(db, 3, owner_id="u1")
        _seed(db, 2, kind=CreationKind.video, owner_id="u2", start=10)
        resp = client.get("/api/feed", params={"type": "video", "sort": "new"})
        assert resp.status_code == 200
        creations = resp.json()["creations"]
        assert len(creations) == 2
        assert all(c["type"] == "video" and c["userVote"] == "none" for c in creations)

    def test_feed_type_all_and_owner(self, client, db):
        _seed(db, 3, owner_id="u1")
        _seed(db, 2, kind=CreationKind.video, owner_id="u2", start=10)
        assert client.get("/api/feed", params={"type": "all"}).json()["pagination"]["total"] == 5
        assert client.get("/api/feed", params={"owner": "u2"}).json()["pagination"]["total"] == 2

    def test_feed_limit_clamped(self, client, db):
        _seed(db, 3)
        data = client.get("/api/feed", params={"limit": 1000, "page": 0}).json()
        assert data["pagination"]["limit"] == 100
        assert data["pagination"]["page"] == 1

    def test_invalid_sort(self, client):
        assert client.get("/api/feed", params={"sort": "random"}).status_code == 422


class TestModels:

    def test_groups_with_thumbnail_preference(self, db):
        _seed(db, 1, model="Alex", start=0, score=1)
        best, = _seed(db, 1, model="Alex", start=1, score=3)
        _seed(db, 1, kind=CreationKind.video, model="Alex", start=2, score=9)
        video_only, = _seed(db, 1, kind=CreationKind.video, model="Sam", start=3)
        _seed(db, 1, model="Other owner", owner_id="someone-else", start=4)

        models = feed_service.list_models(db, "owner-1")
        assert [m["name"] for m in models] == ["Alex", "Sam"]
        assert models[0]["count"] == 3
        assert models[0]["thumbnail"] == best.generated_url
        assert models[1]["thumbnail"] == video_only.generated_url

    def test_ties_broken_by_recency(self, db):
        _seed(db, 1, model="Old", start=0)
        _seed(db, 1, model="New", start=10)
        assert [m["name"] for m in feed_service.list_models(db, "owner-1")] == ["New", "Old"]

    def test_search(self, db):
        _seed(db, 1, model="Alex")
        _seed(db, 1, model="Sam", start=1)
        assert [m["name"] for m in feed_service.list_models(db, "owner-1", search="AL")] == ["Alex"]

    def test_endpoint_empty_when_signed_out(self, client):
        resp = client.get("/api/models")
        assert resp.json() == {"success": True, "models": []}

    def test_endpoint(self, client, db):
        _seed(db, 2, model="Alex", owner_id="u1")
        resp = client.get("/api/models", headers=auth_headers("u1"))
        models = resp.json()["models"]
        assert models[0]["name"] == "Alex"
        assert models[0]["count"] == 2
        assert "latestDate" in models[0]
