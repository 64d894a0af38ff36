"""
Jira task sync.

Turns tasks.md into one Epic per feature and one Story per `### Story`
heading. Safe to re-run:

- The Epic is reused from spec.json (jira.epicKey) or found by a JQL
  summary search before anything is created. If that search fails the
  sync aborts, since creating blind could duplicate the Epic.
- Stories are matched against existing issues carrying the feature label,
  by exact summary ("Story: <title>"). If that search fails the sync
  continues as if none exist and says so in the summary warnings.
- A Story that fails to create is recorded as a failed outcome and the
  loop moves on to the next one.
"""

import logging
from dataclasses import dataclass, field

from specflow.lib.config import Settings
from specflow.lib.errors import ConfigurationError, PrerequisiteError, RemoteCallError
from specflow.lib.jira import (
    JiraClient,
    bullet_list,
    document,
    heading,
    paragraph,
    text_node,
    text_to_adf,
)
from specflow.lib.project_meta import ProjectMetadata, load_project_meta
from specflow.lib.spec_state import SpecState
from specflow.lib.taskparse import Story, parse_tasks

logger = logging.getLogger(__name__)

STATUS_CREATED = "created"
STATUS_REUSED = "reused"
STATUS_FAILED = "failed"
STATUS_LINKED = "linked"

DEFAULT_PRIORITY = "Medium"
PRIORITY_MAP = {
    "high": "High",
    "高": "High",
    "medium": "Medium",
    "中": "Medium",
    "low": "Low",
    "低": "Low",
}

STORY_ISSUE_TYPE = "Story"


@dataclass
class StoryOutcome:
    """Result of processing one story."""
    title: str
    status: str  # created, reused, failed, linked
    key: str | None = None
    error: str | None = None
    epic_linked: bool | None = None  # None when linking was not attempted


@dataclass
class TaskSyncSummary:
    """Batch result of a tasks.md -> Jira sync."""
    feature: str
    epic_key: str
    epic_created: bool
    total: int
    outcomes: list[StoryOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def new_count(self) -> int:
        return self._count(STATUS_CREATED)

    @property
    def reused_count(self) -> int:
        return self._count(STATUS_REUSED)

    @property
    def failed_count(self) -> int:
        return self._count(STATUS_FAILED)

    @property
    def processed_count(self) -> int:
        """Stories that now exist in Jira (new + reused)."""
        return self.new_count + self.reused_count

    @property
    def failures(self) -> list[StoryOutcome]:
        return [o for o in self.outcomes if o.status == STATUS_FAILED]


def map_priority(priority: str | None) -> str:
    if not priority:
        return DEFAULT_PRIORITY
    return PRIORITY_MAP.get(priority.strip().lower(), DEFAULT_PRIORITY)


def story_description(story: Story, github_url: str) -> dict:
    """Rich ADF description: details, metadata, checklists and a footer."""
    content: list[dict] = []

    if story.description:
        content.append(heading("Description"))
        content.append(paragraph(text_node(story.description)))

    metadata = [
        f"{label}: {value}"
        for label, value in (
            ("Priority", story.priority),
            ("Estimate", story.estimate),
            ("Assignee", story.assignee),
            ("Dependencies", story.dependencies),
        )
        if value
    ]
    if metadata:
        content.append(heading("Metadata"))
        content.extend(paragraph(text_node(item)) for item in metadata)

    if story.acceptance_criteria:
        content.append(heading("Acceptance Criteria"))
        content.append(bullet_list(story.acceptance_criteria))

    if story.subtasks:
        content.append(heading("Subtasks"))
        content.append(bullet_list(story.subtasks))

    content.append({"type": "rule"})
    content.append(paragraph(
        text_node("Phase: ", [{"type": "strong"}]),
        text_node(story.phase_label),
    ))
    content.append(paragraph(
        text_node("GitHub: ", [{"type": "strong"}]),
        text_node(github_url, [{"type": "link", "attrs": {"href": github_url}}]),
    ))
    return document(content)


class JiraSyncer:
    """Create-or-reuse the Epic and Stories for a feature's tasks.md."""

    def __init__(self, settings: Settings, client: JiraClient | None = None,
                 project_meta: ProjectMetadata | None = None):
        self.settings = settings
        self._client = client
        self._meta = project_meta

    @property
    def client(self) -> JiraClient:
        if self._client is None:
            self._client = JiraClient(self.settings)
        return self._client

    @property
    def meta(self) -> ProjectMetadata:
        if self._meta is None:
            self._meta = load_project_meta(self.settings.project_json_path)
        return self._meta

    def _tree_url(self, feature: str, filename: str = "") -> str:
        suffix = f"/{filename}" if filename else ""
        return f"{self.meta.repository}/tree/main/.kiro/specs/{feature}{suffix}"

    def sync(self, feature: str) -> TaskSyncSummary:
        """Sync tasks.md to Jira and record the result in spec.json.

        Raises:
            PrerequisiteError: tasks.md missing
            ConfigurationError: credentials or project.json missing/invalid, or spec.json unreadable
            RemoteCallError: Epic search or creation failed
        """
        print(f"Syncing tasks for feature: {feature}")
        meta = self.meta

        tasks_path = self.settings.document_path(feature, "tasks")
        if not tasks_path.exists():
            raise PrerequisiteError(
                f"tasks.md not found: {tasks_path}",
                remediation=[f"Write tasks.md for '{feature}' before syncing it"],
            )
        stories = parse_tasks(tasks_path.read_text(encoding="utf-8"))

        state = SpecState.load_for_update(self.settings.state_path(feature))
        epic_key, epic_created = self._ensure_epic(feature, state)

        summary = TaskSyncSummary(feature=feature, epic_key=epic_key,
                                  epic_created=epic_created, total=len(stories))

        existing = self._existing_stories(feature, summary)
        print(f"Found {len(existing)} existing stories for this feature")

        github_url = self._tree_url(feature, "tasks.md")
        for story in stories:
            if story.summary in existing:
                print(f"Skipping Story (already exists): {story.title}")
                summary.outcomes.append(StoryOutcome(story.title, STATUS_REUSED, key=existing[story.summary]))
                continue

            print(f"Creating Story: {story.title} [{story.phase_label}]")
            outcome = self._create_story(feature, story, epic_key, github_url)
            summary.outcomes.append(outcome)
            if outcome.key:
                existing[story.summary] = outcome.key

        state.record_jira(epic_key, created=summary.processed_count, total=summary.total,
                          epic_url=self.client.issue_url(epic_key))
        state.save()

        print("\nJIRA sync completed")
        print(f"   Epic: {epic_key}")
        print(f"   Stories: {summary.processed_count} processed "
              f"({summary.new_count} new, {summary.reused_count} reused, {summary.failed_count} failed)")
        for failed in summary.failures:
            print(f"   Failed: {failed.title}: {failed.error}")
        return summary

    def _ensure_epic(self, feature: str, state: SpecState) -> tuple[str, bool]:
        """Return (epic_key, created)."""
        if state.epic_key:
            print(f"Existing Epic found: {state.epic_key} (skipping creation)")
            return state.epic_key, False

        meta = self.meta
        # Substring match on the summary; see DESIGN.md on dedup keys
        jql = f'project = {meta.jira_project_key} AND issuetype = Epic AND summary ~ "{feature}"'
        try:
            found = self.client.search_issues(jql)
        except RemoteCallError as e:
            raise RemoteCallError(
                f"JIRA Epic search failed: {e.message}",
                status_code=e.status_code,
                remediation=["Cannot verify idempotency; refusing to create an Epic that may duplicate one",
                             "Check credentials and network access, then re-run: specflow jira-sync " + feature],
            ) from e

        if found:
            print(f"Found existing Epic with similar title: {found[0]['key']}")
            return found[0]["key"], False

        print("Creating Epic...")
        epic = self.client.create_issue({
            "project": {"key": meta.jira_project_key},
            "summary": f"[{feature}] {meta.project_name}",
            "description": text_to_adf(f"Feature: {feature}\nGitHub: {self._tree_url(feature)}"),
            "issuetype": {"name": "Epic"},
            "labels": list(meta.confluence_labels),
        })
        print(f"Epic created: {epic['key']}")
        return epic["key"], True

    def _existing_stories(self, feature: str, summary: TaskSyncSummary) -> dict[str, str]:
        """Map of summary -> key for stories labelled with the feature."""
        jql = (f'project = {self.meta.jira_project_key} AND issuetype = Story '
               f'AND labels = "{feature}"')
        try:
            issues = self.client.search_issues(jql)
        except RemoteCallError as e:
            message = f"Story search failed ({e.message}); duplicates may be created"
            logger.warning(message)
            summary.warnings.append(message)
            return {}

        existing = {}
        for issue in issues:
            issue_summary = (issue.get("fields") or {}).get("summary")
            if issue_summary and issue_summary not in existing:
                existing[issue_summary] = issue["key"]
        return existing

    def _story_fields(self, feature: str, story: Story, github_url: str) -> dict:
        meta = self.meta
        issue_type = (
            {"id": self.settings.jira_story_issue_type_id}
            if self.settings.jira_story_issue_type_id
            else {"name": STORY_ISSUE_TYPE}
        )
        fields = {
            "project": {"key": meta.jira_project_key},
            "summary": story.summary,
            "description": story_description(story, github_url),
            "issuetype": issue_type,
            "labels": [*meta.confluence_labels, feature, story.phase_label],
            "priority": {"name": map_priority(story.priority)},
        }
        if story.due_date:
            fields["duedate"] = story.due_date
        return fields

    def _create_story(self, feature: str, story: Story, epic_key: str, github_url: str) -> StoryOutcome:
        try:
            issue = self.client.create_issue(self._story_fields(feature, story, github_url))
        except RemoteCallError as e:
            detail = f"{e.message}: {e.response_body}" if e.response_body else e.message
            logger.warning(f"Failed to create Story '{story.title}': {detail}")
            print(f"  Failed to create Story \"{story.title}\": {e.message}")
            return StoryOutcome(story.title, STATUS_FAILED, error=detail)

        key = issue["key"]
        print(f"  Story created: {key} [{story.phase_label}]")
        if story.due_date:
            print(f"     Due: {story.due_date}")
        if story.estimate:
            print(f"     Estimate: {story.estimate}")

        outcome = StoryOutcome(story.title, STATUS_CREATED, key=key)
        if self.settings.jira_epic_link_field:
            outcome.epic_linked = self._link(key, epic_key)
        else:
            print(f"  Link to Epic {epic_key} manually (set JIRA_EPIC_LINK_FIELD to automate)")
        return outcome

    def _link(self, issue_key: str, epic_key: str) -> bool:
        try:
            self.client.update_issue(issue_key, {self.settings.jira_epic_link_field: epic_key})
        except RemoteCallError as e:
            logger.warning(f"Could not link {issue_key} to {epic_key}: {e.message}")
            return False
        return True

    def link_stories(self, feature: str) -> list[StoryOutcome]:
        """Link every Story labelled with the feature to the recorded Epic.

        Raises:
            ConfigurationError: JIRA_EPIC_LINK_FIELD not set, or spec.json unreadable
            PrerequisiteError: no Epic recorded in spec.json
            RemoteCallError: the story search failed
        """
        field_id = self.settings.jira_epic_link_field
        if not field_id:
            raise ConfigurationError(
                "JIRA_EPIC_LINK_FIELD is not set",
                remediation=["Find the Epic Link custom field id in Jira admin (e.g. customfield_10014)",
                             "Add JIRA_EPIC_LINK_FIELD=<id> to .env"],
            )

        state = SpecState.load_for_update(self.settings.state_path(feature))
        if not state.epic_key:
            raise PrerequisiteError(
                f"No Epic recorded for '{feature}'",
                remediation=[f"Run: specflow jira-sync {feature}"],
            )

        jql = (f'project = {self.meta.jira_project_key} AND issuetype = Story '
               f'AND labels = "{feature}"')
        outcomes = []
        for issue in self.client.search_issues(jql):
            title = (issue.get("fields") or {}).get("summary", issue["key"])
            try:
                self.client.update_issue(issue["key"], {field_id: state.epic_key})
            except RemoteCallError as e:
                print(f"  Link failed: {issue['key']}: {e.message}")
                outcomes.append(StoryOutcome(title, STATUS_FAILED, key=issue["key"], error=e.message))
                continue
            print(f"  Linked: {issue['key']} -> {state.epic_key}")
            outcomes.append(StoryOutcome(title, STATUS_LINKED, key=issue["key"], epic_linked=True))
        return outcomes
