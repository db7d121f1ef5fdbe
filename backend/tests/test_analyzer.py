import httpx

from apps.crawler.analyzer import (
    MAX_SITEMAP_URLS,
    RobotsRules,
    analyze_domain,
    extract_sitemap_urls,
    parse_sitemap,
)
from apps.crawler.http_client import HttpClient, HttpClientConfig


def urlset(urls):
    entries = "".join(f"<url><loc>{u}</loc></url>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemapindex(urls):
    entries = "".join(f"<sitemap><loc>{u}</loc></sitemap>" for u in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


class FakeSite:
    """httpx.MockTransport handler serving a fixed path -> body map."""

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        body = self.routes.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)

    def fetched(self, path):
        return ("GET", path) in self.requests


def client_for(site):
    client = HttpClient(HttpClientConfig(max_retries=0), transport=httpx.MockTransport(site))
    client._sleep = lambda seconds: None
    return client


class TestParseSitemap:
    def test_urlset(self):
        kind, locs = parse_sitemap(urlset(["https://acme.co/a", "https://acme.co/b"]))
        assert kind == "urlset"
        assert locs == ["https://acme.co/a", "https://acme.co/b"]

    def test_index(self):
        kind, locs = parse_sitemap(sitemapindex(["https://acme.co/posts.xml"]))
        assert kind == "sitemapindex"
        assert locs == ["https://acme.co/posts.xml"]

    def test_garbage(self):
        assert parse_sitemap("not xml at all") == (None, [])


class TestRobotsRules:
    def test_absent_robots_allows_everything(self):
        rules = RobotsRules()
        assert rules.present is False
        assert rules.can_fetch("https://acme.co/anything")
        assert rules.sitemaps() == []

    def test_disallow_and_sitemap_directives(self):
        rules = RobotsRules(
            "User-agent: *\nDisallow: /private\nCrawl-delay: 3\nSitemap: https://acme.co/map.xml\n",
            url="https://acme.co/robots.txt",
        )
        assert rules.present is True
        assert not rules.can_fetch("https://acme.co/private/page")
        assert rules.can_fetch("https://acme.co/contact")
        assert rules.sitemaps() == ["https://acme.co/map.xml"]
        assert rules.crawl_delay() == 3.0


class TestExtractSitemapUrls:
    def test_index_expanded_one_level_and_capped(self):
        children = [f"https://acme.co/child{i}.xml" for i in range(7)]
        routes = {"/index.xml": sitemapindex(children)}
        for i in range(7):
            routes[f"/child{i}.xml"] = urlset([f"https://acme.co/c{i}/p{n}" for n in range(150)])
        site = FakeSite(routes)

        urls = extract_sitemap_urls(["https://acme.co/index.xml"], "https://acme.co", client_for(site))

        assert len(urls) == MAX_SITEMAP_URLS
        assert urls[0] == "https://acme.co/c0/p0"
        assert not site.fetched("/child5.xml")
        assert not site.fetched("/child6.xml")

    def test_nested_index_not_followed(self):
        site = FakeSite({
            "/index.xml": sitemapindex(["https://acme.co/inner.xml", "https://acme.co/pages.xml"]),
            "/inner.xml": sitemapindex(["https://acme.co/deep.xml"]),
            "/deep.xml": urlset(["https://acme.co/deep-page"]),
            "/pages.xml": urlset(["https://acme.co/about", "https://acme.co/about#team"]),
        })

        urls = extract_sitemap_urls(["https://acme.co/index.xml"], "https://acme.co", client_for(site))

        assert urls == ["https://acme.co/about"]
        assert not site.fetched("/deep.xml")


class TestAnalyzeDomain:
    def test_robots_and_sitemaps(self):
        site = FakeSite({
            "/robots.txt": "User-agent: *\nDisallow: /private\nSitemap: https://acme.co/sitemap_index.xml\n",
            "/sitemap_index.xml": sitemapindex(["https://acme.co/pages.xml"]),
            "/pages.xml": urlset(["https://acme.co/", "https://acme.co/contact"]),
        })

        analysis = analyze_domain("https://acme.co", http_client=client_for(site))

        assert analysis.success
        assert analysis.robots_txt.startswith("User-agent")
        assert analysis.sitemaps == ["https://acme.co/sitemap_index.xml"]
        assert analysis.urls == ["https://acme.co/", "https://acme.co/contact"]
        assert not analysis.robots.can_fetch("https://acme.co/private/x")
        assert ("HEAD", "/sitemap.xml") in site.requests

    def test_missing_robots(self):
        analysis = analyze_domain("https://acme.co", http_client=client_for(FakeSite({})))

        assert analysis.success
        assert analysis.robots_txt is None
        assert analysis.robots.present is False
        assert analysis.urls == []

    def test_invalid_url_never_raises(self):
        analysis = analyze_domain("not-a-url")
        assert analysis.success is False
        assert "Invalid domain URL" in analysis.error
