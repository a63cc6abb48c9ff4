def make_post(admin_client, **overrides):
    body = {
        "title": "Cenaze Çelengi Nasıl Seçilir?",
        "content": " ".join(["kelime"] * 450),
        "category": "Rehber",
        "status": "published",
    }
    body.update(overrides)
    res = admin_client.post("/api/blog", json=body)
    assert res.status_code == 200
    return res.json()


def test_create_derives_slug_excerpt_and_reading_time(admin_client):
    post = make_post(admin_client)
    assert post["slug"] == "cenaze-celengi-nasil-secilir"
    assert post["wordCount"] == 450
    assert post["readingTime"] == 3
    assert post["excerpt"].endswith("...")
    assert len(post["excerpt"]) == 203
    assert post["publishedAt"] is not None
    assert post["views"] == 0


def test_duplicate_slug_is_rejected(admin_client):
    make_post(admin_client)
    assert admin_client.post("/api/blog", json={"title": "Cenaze Çelengi Nasıl Seçilir?",
                                                "content": "x"}).status_code == 400


def test_get_by_slug_counts_views_and_lists_related(admin_client):
    post = make_post(admin_client)
    make_post(admin_client, title="Ferforje Bakımı")
    make_post(admin_client, title="Taslak Yazı", status="draft")
    body = admin_client.get(f"/api/blog/{post['slug']}").json()
    assert body["post"]["views"] == 1
    assert [p["title"] for p in body["relatedPosts"]] == ["Ferforje Bakımı"]
    assert admin_client.get(f"/api/blog/{post['id']}").json()["post"]["views"] == 2


def test_drafts_are_hidden_from_public(client, admin_client):
    draft = make_post(admin_client, status="draft")
    admin_client.delete("/api/admin/auth")
    assert client.get(f"/api/blog/{draft['id']}").status_code == 404
    assert client.get("/api/blog").json()["posts"] == []
    assert client.get("/api/blog", params={"status": "draft"}).status_code == 401


def test_list_filters_and_stats(admin_client):
    make_post(admin_client, featured=True)
    make_post(admin_client, title="Saksı Bitkileri", category="Bitki")
    make_post(admin_client, title="Taslak", status="draft")
    body = admin_client.get("/api/blog", params={"category": "Bitki"}).json()
    assert [p["title"] for p in body["posts"]] == ["Saksı Bitkileri"]
    assert body["stats"] == {"total": 3, "published": 2, "draft": 1, "totalViews": 0}
    featured = admin_client.get("/api/blog", params={"featured": "true"}).json()["posts"]
    assert len(featured) == 1
    assert len(admin_client.get("/api/blog", params={"status": "all"}).json()["posts"]) == 3
    assert len(admin_client.get("/api/blog", params={"search": "saksı"}).json()["posts"]) == 1


def test_publishing_stamps_published_at(admin_client):
    draft = make_post(admin_client, status="draft")
    assert draft["publishedAt"] is None
    updated = admin_client.put(f"/api/blog/{draft['id']}", json={"status": "published",
                                                                  "content": "kısa içerik"}).json()
    assert updated["publishedAt"] is not None
    assert updated["wordCount"] == 2
    assert updated["readingTime"] == 1


def test_like_and_delete(admin_client):
    post = make_post(admin_client)
    assert admin_client.post(f"/api/blog/{post['id']}/like").json() == {"likes": 1}
    assert admin_client.post(f"/api/blog/{post['id']}/like").json() == {"likes": 2}
    assert admin_client.delete(f"/api/blog/{post['id']}").status_code == 200
    assert admin_client.post(f"/api/blog/{post['id']}/like").status_code == 404
