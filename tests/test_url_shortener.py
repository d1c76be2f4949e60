from datetime import datetime, timedelta
from urllib.parse import quote

from fastapi.testclient import TestClient

from redirector_app.config import settings

API = "/api/v1/urls"
BASE = "http://testserver"


def shorten(client: TestClient, original_url: str = "https://example.com") -> str:
    """Shorten a URL and return its bare short code"""
    response = client.post(API, json={"originalUrl": original_url})
    assert response.status_code == 200
    return response.text.rsplit("/", 1)[-1]


class TestShorten:
    """POST /api/v1/urls"""

    def test_returns_full_short_link(self, client: TestClient):
        """Test shortening returns the fully-qualified short link"""
        response = client.post(API, json={"originalUrl": "https://example.com"})
        assert response.status_code == 200

        link = response.text
        assert link.startswith(f"{BASE}{API}/")
        assert len(link.rsplit("/", 1)[-1]) == settings.short_code_length

    def test_each_call_mints_a_new_code(self, client: TestClient):
        """Test shortening the same URL twice gives two codes"""
        assert shorten(client) != shorten(client)

    def test_invalid_url_is_rejected(self, client: TestClient):
        """Test an invalid URL is rejected with 400"""
        response = client.post(API, json={"originalUrl": "not-a-valid-url"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid URL."

    def test_missing_url_is_rejected(self, client: TestClient):
        """Test a body without originalUrl is rejected with 400"""
        response = client.post(API, json={})
        assert response.status_code == 400


class TestRedirect:
    """GET /api/v1/urls/{identifier}"""

    def test_redirects_to_original_url(self, client: TestClient):
        """Test a short code redirects to its original URL"""
        code = shorten(client, "https://www.github.com")

        response = client.get(f"{API}/{code}", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com"

    def test_unknown_code_goes_to_not_found_page(self, client: TestClient):
        """Test an unknown code redirects to the not-found page"""
        response = client.get(f"{API}/nonexistent", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == f"{BASE}/404.html"

    def test_static_pages_are_served(self, client: TestClient):
        """Test the redirect target pages are served"""
        assert client.get("/404.html").status_code == 200
        assert client.get("/RateLimit.html").status_code == 200

    def test_rate_limited_link_goes_to_rate_limit_page(self, client: TestClient):
        """Test redirects past the rate limit go to the rate-limit page"""
        code = shorten(client)
        client.put(f"{API}/{code}", json={"alias": "limited", "rateLimit": 2})

        for _ in range(2):
            response = client.get(f"{API}/limited", follow_redirects=False)
            assert response.headers["location"] == "https://example.com"

        response = client.get(f"{API}/limited", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == f"{BASE}/RateLimit.html"

    def test_zero_rate_limit_means_unlimited(self, uncached_client: TestClient):
        """Test a rate limit of 0 does not block redirects"""
        code = shorten(uncached_client)
        uncached_client.put(f"{API}/{code}", json={"alias": "free", "rateLimit": 0})

        for _ in range(5):
            response = uncached_client.get(f"{API}/free", follow_redirects=False)
            assert response.headers["location"] == "https://example.com"


class TestUpdateAlias:
    """PUT /api/v1/urls/{identifier}"""

    def test_alias_resolves_like_short_code(self, client: TestClient):
        """Test an alias redirects like the short code"""
        code = shorten(client, "https://www.python.org")

        response = client.put(f"{API}/{code}", json={"alias": "python"})
        assert response.status_code == 200
        assert response.content == b""

        response = client.get(f"{API}/python", follow_redirects=False)
        assert response.headers["location"] == "https://www.python.org"

    def test_alias_taken_by_other_url(self, client: TestClient):
        """Test an alias held by another URL is rejected"""
        first = shorten(client)
        second = shorten(client)
        client.put(f"{API}/{first}", json={"alias": "taken"})

        response = client.put(f"{API}/{second}", json={"alias": "taken"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Alias already used before"

    def test_reassigning_own_alias(self, client: TestClient):
        """Test a URL can be updated with the alias it already has"""
        code = shorten(client)
        client.put(f"{API}/{code}", json={"alias": "mine"})

        response = client.put(f"{API}/mine", json={"alias": "mine", "rateLimit": 3})
        assert response.status_code == 200

    def test_unknown_url(self, client: TestClient):
        """Test updating an unknown URL returns 404"""
        response = client.put(f"{API}/nonexistent", json={"alias": "whatever"})
        assert response.status_code == 404
        assert response.json()["detail"] == "URL not found"

    def test_invalid_alias(self, client: TestClient):
        """Test aliases outside the allowed characters are rejected"""
        code = shorten(client)

        for alias in ["has spaces", "abc\n", "\nabc", "a/b", "x" * 65]:
            response = client.put(f"{API}/{code}", json={"alias": alias})
            assert response.status_code == 400, alias

        entry = client.get(API).json()[0]
        assert entry["alias"] is None

    def test_negative_rate_limit(self, client: TestClient):
        """Test a negative rate limit is rejected"""
        code = shorten(client)

        response = client.put(f"{API}/{code}", json={"alias": "neg", "rateLimit": -1})
        assert response.status_code == 400

    def test_accepts_full_short_link(self, client: TestClient):
        """Test the identifier may be the full short link"""
        link = client.post(API, json={"originalUrl": "https://example.com"}).text

        response = client.put(f"{API}/{quote(link, safe='')}", json={"alias": "fromlink"})
        assert response.status_code == 200

        response = client.get(f"{API}/fromlink", follow_redirects=False)
        assert response.headers["location"] == "https://example.com"


class TestDelete:
    """DELETE /api/v1/urls/{identifier}"""

    def test_deleted_url_stops_redirecting_but_stays_listed(self, client: TestClient):
        """Test a deleted URL no longer redirects but is still listed"""
        code = shorten(client)
        client.get(f"{API}/{code}", follow_redirects=False)

        response = client.delete(f"{API}/{code}")
        assert response.status_code == 200
        assert response.content == b""

        response = client.get(f"{API}/{code}", follow_redirects=False)
        assert response.headers["location"] == f"{BASE}/404.html"

        listed = client.get(API).json()
        assert len(listed) == 1
        assert listed[0]["deleted"] is True

    def test_delete_by_alias(self, client: TestClient):
        """Test deleting a URL through its alias"""
        code = shorten(client)
        client.put(f"{API}/{code}", json={"alias": "gone"})

        assert client.delete(f"{API}/gone").status_code == 200

    def test_delete_twice(self, client: TestClient):
        """Test deleting an already deleted URL returns 404"""
        code = shorten(client)
        client.delete(f"{API}/{code}")

        response = client.delete(f"{API}/{code}")
        assert response.status_code == 404

    def test_deleted_alias_can_be_reused(self, client: TestClient):
        """Test the alias of a deleted URL can be given to another URL"""
        old = shorten(client, "https://old.example.com")
        new = shorten(client, "https://new.example.com")
        client.put(f"{API}/{old}", json={"alias": "reused"})
        client.delete(f"{API}/{old}")

        response = client.put(f"{API}/{new}", json={"alias": "reused"})
        assert response.status_code == 200

        response = client.get(f"{API}/reused", follow_redirects=False)
        assert response.headers["location"] == "https://new.example.com"


class TestListUrls:
    """GET /api/v1/urls"""

    def test_stats_grouped_by_ip(self, uncached_client: TestClient, monkeypatch):
        """Test visits are grouped per client IP in write order"""
        monkeypatch.setattr(settings, "trust_proxy_headers", True)
        code = shorten(uncached_client)
        uncached_client.put(f"{API}/{code}", json={"alias": "stats"})

        def visit(ip: str, agent: str):
            uncached_client.get(
                f"{API}/{code}",
                headers={"X-Forwarded-For": ip, "User-Agent": agent, "Referer": "https://ref.example"},
                follow_redirects=False,
            )

        visit("10.0.0.1", "first")
        visit("10.0.0.2", "other")
        visit("10.0.0.1", "second")

        listed = uncached_client.get(API).json()
        assert len(listed) == 1
        entry = listed[0]

        assert entry["originalUrl"] == "https://example.com"
        assert entry["shortUrl"] == f"{BASE}{API}/{code}"
        assert entry["alias"] == f"{BASE}{API}/stats"
        assert entry["accessCount"] == 3
        assert entry["deleted"] is False
        assert entry["rateLimit"] is None

        stats = entry["stats"]
        assert set(stats) == {"10.0.0.1", "10.0.0.2"}
        assert stats["10.0.0.1"]["count"] == 2
        assert [r["agent"] for r in stats["10.0.0.1"]["result"]] == ["first", "second"]
        assert stats["10.0.0.2"]["count"] == 1
        assert stats["10.0.0.2"]["result"][0]["referer"] == "https://ref.example"
        assert "accessedAt" in stats["10.0.0.2"]["result"][0]

    def test_visit_time_is_utc(self, client: TestClient):
        """Test accessedAt is reported as a UTC instant"""
        code = shorten(client)
        client.get(f"{API}/{code}", follow_redirects=False)

        stats = client.get(API).json()[0]["stats"]
        accessed_at = stats["testclient"]["result"][0]["accessedAt"]

        parsed = datetime.fromisoformat(accessed_at.replace("Z", "+00:00"))
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)

    def test_url_without_alias_or_visits(self, client: TestClient):
        """Test a fresh URL lists a null alias and no stats"""
        shorten(client)

        entry = client.get(API).json()[0]
        assert entry["alias"] is None
        assert entry["accessCount"] == 0
        assert entry["stats"] == {}


class TestMeta:

    def test_health(self, client: TestClient):
        """Test health endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client: TestClient):
        """Test root endpoint points at the docs"""
        assert client.get("/").json()["docs"] == "/docs"
