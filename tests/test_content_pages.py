import pytest

from services.content_pages import sanitize_html


@pytest.fixture
async def admin(make_user, login):
    user = await make_user(is_admin=True)
    await login(user)
    return user


def test_sanitize_strips_scripts_and_handlers():
    cleaned = sanitize_html('<p onclick="steal()">Ciao</p><script>alert(1)</script><a href="/privacy">Privacy</a>')
    assert "<script" not in cleaned
    assert "onclick" not in cleaned
    assert "<p>Ciao</p>" in cleaned
    assert '<a href="/privacy">Privacy</a>' in cleaned
    assert sanitize_html(None) == ""


async def test_admin_creates_and_updates_pages(client, admin):
    created = await client.post(
        "/api/admin/content-pages",
        json={
            "slug": "Chi Siamo",
            "title": "Chi siamo",
            "content": "<h2>Team</h2><script>x()</script>",
            "placement": "footer",
            "isPublished": True,
        },
    )
    assert created.status_code == 201
    page = created.json()
    assert page["slug"] == "chi-siamo"
    assert "<script" not in page["content"]

    duplicate = await client.post("/api/admin/content-pages", json={"slug": "chi-siamo", "title": "Altro"})
    assert duplicate.status_code == 409
    assert duplicate.json()["message"] == "A page with this slug already exists"

    updated = await client.patch(
        f"/api/admin/content-pages/{page['id']}",
        json={"content": '<p style="color:red">Nuovo</p>', "sortOrder": 3},
    )
    assert updated.status_code == 200
    assert updated.json()["content"] == "<p>Nuovo</p>"
    assert updated.json()["sortOrder"] == 3

    assert (await client.patch("/api/admin/content-pages/999", json={"title": "X"})).status_code == 404


async def test_invalid_slug_rejected(client, admin):
    response = await client.post("/api/admin/content-pages", json={"slug": "!!!", "title": "Vuoto"})
    assert response.status_code == 422


async def test_public_listing_shows_published_pages(client, admin):
    pages = [
        {"slug": "privacy", "title": "Privacy", "placement": "footer", "sortOrder": 2, "isPublished": True},
        {"slug": "termini", "title": "Termini", "placement": "footer", "sortOrder": 1, "isPublished": True},
        {"slug": "servizi", "title": "Servizi", "placement": "header", "isPublished": True},
        {"slug": "bozza", "title": "Bozza", "placement": "footer"},
    ]
    for page in pages:
        assert (await client.post("/api/admin/content-pages", json=page)).status_code == 201

    client.cookies.clear()
    everything = (await client.get("/api/content-pages")).json()["pages"]
    assert "bozza" not in [p["slug"] for p in everything]

    footer = (await client.get("/api/content-pages", params={"placement": "footer"})).json()["pages"]
    assert [p["slug"] for p in footer] == ["termini", "privacy"]

    assert (await client.get("/api/content-pages/servizi")).json()["title"] == "Servizi"
    missing = await client.get("/api/content-pages/bozza")
    assert missing.status_code == 404
    assert missing.json()["message"] == "Page not found"


async def test_delete_page(client, admin):
    page = (await client.post("/api/admin/content-pages", json={"slug": "faq", "title": "FAQ"})).json()
    deleted = await client.delete(f"/api/admin/content-pages/{page['id']}")
    assert deleted.json() == {"success": True, "message": "Content page deleted successfully"}
    assert (await client.delete(f"/api/admin/content-pages/{page['id']}")).status_code == 404


async def test_content_admin_requires_admin(client, make_user, login):
    await login(await make_user())
    assert (await client.get("/api/admin/content-pages")).status_code == 403
