"""Confluence REST API client (pages, labels, spaces)."""

from .atlassian import AtlassianClient


class ConfluenceClient(AtlassianClient):
    service = "Confluence"
    api_path = "/wiki/rest/api"

    def get_space(self, space_key: str) -> dict:
        return self._request("GET", f"space/{space_key}")

    def search_page(self, space_key: str, title: str) -> dict | None:
        """Find a page by exact title in a space; None when absent."""
        data = self._request("GET", "content", params={
            "spaceKey": space_key,
            "title": title,
            "expand": "version",
        })
        results = data.get("results") or []
        return results[0] if results else None

    def create_page(self, space_key: str, title: str, content: str, labels: list[str] | None = None) -> dict:
        payload = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {"storage": {"value": content, "representation": "storage"}},
            "metadata": {"labels": [{"name": label} for label in labels or []]},
        }
        return self._request("POST", "content", json=payload)

    def update_page(self, page_id: str, title: str, content: str, version: int) -> dict:
        """Replace page content; version is the page's current version number."""
        payload = {
            "version": {"number": version + 1},
            "title": title,
            "type": "page",
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        return self._request("PUT", f"content/{page_id}", json=payload)

    def add_labels(self, page_id: str, labels: list[str]) -> None:
        if labels:
            self._request("POST", f"content/{page_id}/label", json=[{"name": label} for label in labels])

    def page_url(self, page: dict) -> str | None:
        webui = (page.get("_links") or {}).get("webui")
        return f"{self.site_url}/wiki{webui}" if webui else None
