from errors import FetchError


class FakeFetcher:
    """Serves canned HTML by URL; anything else is a 404. ``redirects`` maps a requested URL to where it lands."""

    def __init__(self, pages=None, redirects=None):
        self.pages = dict(pages or {})
        self.redirects = dict(redirects or {})
        self.calls = []
        self.batches = []

    async def fetch_page(self, url):
        self.calls.append(url)
        final_url = self.redirects.get(url, url)
        if final_url not in self.pages:
            raise FetchError(f"HTTP 404 for {url}", url=url, status_code=404)
        return final_url, self.pages[final_url]

    async def fetch(self, url):
        _, html = await self.fetch_page(url)
        return html

    async def fetch_many(self, urls, concurrency=5):
        self.batches.append(list(urls))
        results = []
        for url in urls:
            try:
                results.append(await self.fetch(url))
            except FetchError:
                results.append(None)
        return results
