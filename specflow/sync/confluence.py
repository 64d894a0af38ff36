"""
Confluence document sync.

Publishes requirements.md / design.md / tasks.md as Confluence pages,
creating the page on first sync and updating it afterwards, then records
the page id in the feature's spec.json.
"""

import logging
from dataclasses import dataclass

from specflow.lib.config import Settings
from specflow.lib.confluence import ConfluenceClient
from specflow.lib.constants import GITHUB_SYNC_LABEL, PHASES
from specflow.lib.errors import PrerequisiteError
from specflow.lib.project_meta import ProjectMetadata, load_project_meta
from specflow.lib.spec_state import SpecState
from specflow.lib.storage_format import convert_markdown, render_page

logger = logging.getLogger(__name__)

DOC_TYPE_LABELS = {
    "requirements": "Requirements",
    "design": "Design",
    "tasks": "Task Breakdown",
}


@dataclass
class PageSyncResult:
    feature: str
    doc_type: str
    title: str
    page_id: str
    url: str | None
    created: bool  # False when an existing page was updated


def page_title(meta: ProjectMetadata, feature: str, doc_type: str) -> str:
    return f"[{meta.project_name}] {feature} {DOC_TYPE_LABELS.get(doc_type, doc_type)}"


def github_blob_url(meta: ProjectMetadata, feature: str, filename: str) -> str:
    return f"{meta.repository}/blob/main/.kiro/specs/{feature}/{filename}"


class ConfluenceSyncer:
    """Create-or-update Confluence pages from a feature's Markdown documents."""

    def __init__(self, settings: Settings, client: ConfluenceClient | None = None,
                 project_meta: ProjectMetadata | None = None):
        self.settings = settings
        self._client = client
        self._meta = project_meta

    @property
    def client(self) -> ConfluenceClient:
        if self._client is None:
            self._client = ConfluenceClient(self.settings)
        return self._client

    @property
    def meta(self) -> ProjectMetadata:
        if self._meta is None:
            self._meta = load_project_meta(self.settings.project_json_path)
        return self._meta

    def sync(self, feature: str, doc_type: str = "requirements") -> PageSyncResult:
        """Publish one document and record the page in spec.json.

        Raises:
            ValueError: unknown doc_type
            PrerequisiteError: the Markdown document does not exist
            ConfigurationError: credentials or project.json missing/invalid, or spec.json unreadable
            RemoteCallError: a Confluence call failed
        """
        if doc_type not in PHASES:
            raise ValueError(f"Unknown doc type: {doc_type} (expected one of {', '.join(PHASES)})")

        print(f"Syncing {doc_type} for feature: {feature}")
        meta = self.meta
        print(f"Project: {meta.project_name} ({meta.project_id})")

        doc_path = self.settings.document_path(feature, doc_type)
        if not doc_path.exists():
            raise PrerequisiteError(
                f"{doc_type}.md not found: {doc_path}",
                remediation=[f"Write {doc_type}.md for '{feature}' before syncing it"],
            )

        # A broken state file stops the sync before any remote change
        state = SpecState.load_for_update(self.settings.state_path(feature))

        title = page_title(meta, feature, doc_type)
        content = render_page(
            convert_markdown(doc_path.read_text(encoding="utf-8")),
            github_url=github_blob_url(meta, feature, doc_path.name),
            approvers=meta.stakeholders,
            project_name=meta.project_name,
        )
        labels = [*meta.confluence_labels, doc_type, feature, GITHUB_SYNC_LABEL]
        space = self.settings.confluence_space

        existing = self.client.search_page(space, title)
        if existing:
            print(f"Updating existing page: {title}")
            page = self.client.update_page(existing["id"], title, content, existing["version"]["number"])
            self.client.add_labels(existing["id"], labels)
            created = False
        else:
            print(f"Creating new page: {title}")
            page = self.client.create_page(space, title, content, labels)
            created = True

        page_id = str(page["id"] if page.get("id") else existing["id"])
        url = self.client.page_url(page)
        print(f"Page {'created' if created else 'updated'}: {url or page_id}")

        state.record_page(space, doc_type, page_id, url)
        state.save()
        logger.debug(f"Recorded {doc_type} page {page_id} in {state.path}")

        return PageSyncResult(
            feature=feature,
            doc_type=doc_type,
            title=title,
            page_id=page_id,
            url=url,
            created=created,
        )
