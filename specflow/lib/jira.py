"""Jira Cloud REST v3 client and Atlassian Document Format helpers."""

from .atlassian import AtlassianClient

SEARCH_PAGE_SIZE = 100


class JiraClient(AtlassianClient):
    service = "Jira"
    api_path = "/rest/api/3"

    def get_project(self, project_key: str) -> dict:
        return self._request("GET", f"project/{project_key}")

    def search_issues(self, jql: str, fields: list[str] | None = None) -> list[dict]:
        """Run a JQL search, following pagination tokens."""
        issues: list[dict] = []
        payload = {
            "jql": jql,
            "maxResults": SEARCH_PAGE_SIZE,
            "fields": fields or ["summary", "labels", "issuetype"],
        }
        while True:
            data = self._request("POST", "search/jql", json=payload)
            issues.extend(data.get("issues") or [])
            token = data.get("nextPageToken")
            if not token or data.get("isLast", True):
                return issues
            payload = {**payload, "nextPageToken": token}

    def create_issue(self, fields: dict) -> dict:
        return self._request("POST", "issue", json={"fields": fields})

    def update_issue(self, issue_key: str, fields: dict) -> None:
        self._request("PUT", f"issue/{issue_key}", json={"fields": fields})

    def issue_url(self, issue_key: str) -> str:
        return f"{self.site_url}/browse/{issue_key}"


def text_node(text: str, marks: list[dict] | None = None) -> dict:
    node = {"type": "text", "text": text}
    if marks:
        node["marks"] = marks
    return node


def paragraph(*nodes: dict) -> dict:
    return {"type": "paragraph", "content": list(nodes)}


def heading(text: str, level: int = 2) -> dict:
    return {"type": "heading", "attrs": {"level": level}, "content": [text_node(text)]}


def bullet_list(items: list[str]) -> dict:
    return {
        "type": "bulletList",
        "content": [{"type": "listItem", "content": [paragraph(text_node(item))]} for item in items],
    }


def document(content: list[dict]) -> dict:
    return {"type": "doc", "version": 1, "content": content}


def text_to_adf(text: str) -> dict:
    """Plain text as an ADF document, one paragraph per non-blank line."""
    lines = [line for line in text.splitlines() if line.strip()] or [text]
    return document([paragraph(text_node(line)) for line in lines])
