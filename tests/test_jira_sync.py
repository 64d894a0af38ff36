"""Tests for specflow.sync.jira module."""

import json
import re

import pytest

from specflow.lib.config import load_settings
from specflow.lib.errors import ConfigurationError, PrerequisiteError, RemoteCallError
from specflow.lib.spec_state import StateFileError
from specflow.lib.taskparse import Story
from specflow.sync.jira import (
    STATUS_CREATED,
    STATUS_FAILED,
    STATUS_LINKED,
    STATUS_REUSED,
    JiraSyncer,
    map_priority,
    story_description,
)

from conftest import write_feature

TASKS_MD = """## Phase 1: Build（実装）

### Story 1.1: Login form
**Priority**: High
**Due**: 2025-02-03

### Story 1.2: Logout
**Priority**: 低

### Story 1.3: Audit log
"""


class FakeJira:
    """In-memory stand-in for JiraClient that understands the syncer's JQL."""

    def __init__(self):
        self.issues = []
        self.created = []
        self.updates = []
        self.fail_summaries = set()
        self.fail_story_search = False
        self.fail_epic_search = False
        self.fail_updates = False

    def _new_key(self):
        return f"DEMO-{len(self.issues) + 1}"

    def search_issues(self, jql, fields=None):
        if "issuetype = Epic" in jql:
            if self.fail_epic_search:
                raise RemoteCallError("Jira API error 500", status_code=500)
            needle = re.search(r'summary ~ "([^"]+)"', jql).group(1)
            return [i for i in self.issues if i["type"] == "Epic" and needle in i["fields"]["summary"]]
        if self.fail_story_search:
            raise RemoteCallError("Jira API error 400", status_code=400)
        label = re.search(r'labels = "([^"]+)"', jql).group(1)
        return [i for i in self.issues if i["type"] == "Story" and label in i["fields"]["labels"]]

    def create_issue(self, fields):
        if fields["summary"] in self.fail_summaries:
            raise RemoteCallError("Jira API error 400 on POST issue", status_code=400,
                                  response_body='{"errors": {"priority": "invalid"}}')
        issue_type = fields["issuetype"].get("name", "Story")
        issue = {"key": self._new_key(), "type": issue_type, "fields": fields}
        self.issues.append(issue)
        self.created.append(issue)
        return {"key": issue["key"]}

    def update_issue(self, key, fields):
        if self.fail_updates:
            raise RemoteCallError("Jira API error 400", status_code=400)
        self.updates.append((key, fields))

    def issue_url(self, key):
        return f"https://acme.atlassian.net/browse/{key}"


@pytest.fixture
def jira():
    return FakeJira()


@pytest.fixture
def feature(settings):
    write_feature(settings, docs={"tasks": TASKS_MD}, state={"milestones": {"design": {"completed": True}}})
    return "demo"


def epics(jira):
    return [i for i in jira.created if i["type"] == "Epic"]


def stories(jira):
    return [i for i in jira.created if i["type"] == "Story"]


class TestMapPriority:
    @pytest.mark.parametrize("raw,expected", [
        ("High", "High"), ("高", "High"), ("medium", "Medium"), ("低", "Low"),
        (None, "Medium"), ("", "Medium"), ("Urgent", "Medium"),
    ])
    def test_mapping(self, raw, expected):
        assert map_priority(raw) == expected


class TestStoryDescription:
    def test_sections(self):
        story = Story(title="T", description="Do it", acceptance_criteria=["works"],
                      subtasks=["step"], priority="High", phase_label="testing")
        doc = story_description(story, "https://github.com/acme/demo/tree/main/.kiro/specs/demo/tasks.md")
        headings = [n["content"][0]["text"] for n in doc["content"] if n["type"] == "heading"]
        assert headings == ["Description", "Metadata", "Acceptance Criteria", "Subtasks"]
        footer = doc["content"][-1]["content"][1]
        assert footer["marks"][0]["attrs"]["href"].endswith("tasks.md")

    def test_minimal_story_has_footer_only(self):
        doc = story_description(Story(title="T"), "https://x")
        assert [n["type"] for n in doc["content"]] == ["rule", "paragraph", "paragraph"]


class TestJiraSync:
    """Test JiraSyncer.sync."""

    def test_creates_epic_and_stories(self, settings, meta, jira, feature):
        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)

        assert summary.epic_created is True
        assert summary.epic_key == "DEMO-1"
        assert summary.total == 3
        assert summary.new_count == 3
        assert [o.status for o in summary.outcomes] == [STATUS_CREATED] * 3

        epic = epics(jira)[0]["fields"]
        assert epic["summary"] == "[demo] Demo Project"
        assert epic["labels"] == ["demo", "specflow"]
        assert epic["issuetype"] == {"name": "Epic"}

        first = stories(jira)[0]["fields"]
        assert first["summary"] == "Story: Login form"
        assert first["labels"] == ["demo", "specflow", "demo", "implementation"]
        assert first["priority"] == {"name": "High"}
        assert first["duedate"] == "2025-02-03"
        assert first["issuetype"] == {"name": "Story"}
        assert stories(jira)[1]["fields"]["priority"] == {"name": "Low"}
        assert "duedate" not in stories(jira)[2]["fields"]

    def test_records_result_in_state(self, settings, meta, jira, feature):
        JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        state = json.loads(settings.state_path(feature).read_text())
        assert state["jira"]["epicKey"] == "DEMO-1"
        assert state["jira"]["epicUrl"] == "https://acme.atlassian.net/browse/DEMO-1"
        assert state["jira"]["stories"] == {"created": 3, "total": 3}
        assert state["milestones"]["design"]["completed"] is True

    def test_second_run_creates_no_duplicates(self, settings, meta, jira, feature):
        JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        created_first = len(jira.created)

        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)

        assert len(jira.created) == created_first
        assert summary.epic_created is False
        assert summary.epic_key == "DEMO-1"
        assert summary.reused_count == 3
        assert summary.new_count == 0

    def test_epic_found_by_search_when_state_has_no_key(self, settings, meta, jira, feature):
        JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        settings.state_path(feature).write_text("{}")

        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)

        assert len(epics(jira)) == 1
        assert summary.epic_key == "DEMO-1"
        assert summary.epic_created is False

    def test_duplicate_titles_in_one_run_create_one_story(self, settings, meta, jira):
        write_feature(settings, docs={"tasks": "### Story 1: Same\n### Story 2: Same\n"})
        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync("demo")
        assert len(stories(jira)) == 1
        assert [o.status for o in summary.outcomes] == [STATUS_CREATED, STATUS_REUSED]

    def test_story_failure_is_recorded_and_loop_continues(self, settings, meta, jira, feature):
        jira.fail_summaries.add("Story: Logout")
        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)

        assert [o.status for o in summary.outcomes] == [STATUS_CREATED, STATUS_FAILED, STATUS_CREATED]
        assert summary.failed_count == 1
        assert "priority" in summary.failures[0].error
        state = json.loads(settings.state_path(feature).read_text())
        assert state["jira"]["stories"] == {"created": 2, "total": 3}

    def test_epic_search_failure_is_fatal(self, settings, meta, jira, feature):
        jira.fail_epic_search = True
        with pytest.raises(RemoteCallError, match="Epic search failed"):
            JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        assert jira.created == []

    def test_story_search_failure_degrades_to_warning(self, settings, meta, jira, feature, caplog):
        jira.fail_story_search = True
        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        assert summary.new_count == 3
        assert len(summary.warnings) == 1
        assert "Story search failed" in caplog.text

    def test_missing_tasks_document(self, settings, meta, jira):
        with pytest.raises(PrerequisiteError, match="tasks.md not found"):
            JiraSyncer(settings, client=jira, project_meta=meta).sync("demo")

    def test_unparsable_state_is_preserved(self, settings, meta, jira, feature):
        original = '{"milestones": {"design": {"completed": true}},'
        settings.state_path(feature).write_text(original)

        with pytest.raises(StateFileError, match="not valid JSON"):
            JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)

        assert jira.created == []
        assert settings.state_path(feature).read_text() == original

    def test_story_issue_type_id_from_settings(self, project_root, meta, jira):
        settings = load_settings(project_root, environ={"JIRA_STORY_ISSUE_TYPE_ID": "10001"})
        write_feature(settings, docs={"tasks": "### Story 1: One\n"})
        JiraSyncer(settings, client=jira, project_meta=meta).sync("demo")
        assert jira.created[-1]["fields"]["issuetype"] == {"id": "10001"}


class TestEpicLinking:
    """Epic linking through JIRA_EPIC_LINK_FIELD."""

    @pytest.fixture
    def link_settings(self, project_root):
        return load_settings(project_root, environ={"JIRA_EPIC_LINK_FIELD": "customfield_10014"})

    def test_new_stories_are_linked(self, link_settings, meta, jira):
        write_feature(link_settings, docs={"tasks": TASKS_MD})
        summary = JiraSyncer(link_settings, client=jira, project_meta=meta).sync("demo")
        assert all(o.epic_linked for o in summary.outcomes)
        assert jira.updates[0] == ("DEMO-2", {"customfield_10014": "DEMO-1"})

    def test_link_failure_is_not_fatal(self, link_settings, meta, jira, caplog):
        write_feature(link_settings, docs={"tasks": TASKS_MD})
        jira.fail_updates = True
        summary = JiraSyncer(link_settings, client=jira, project_meta=meta).sync("demo")
        assert summary.new_count == 3
        assert all(o.epic_linked is False for o in summary.outcomes)
        assert "Could not link" in caplog.text

    def test_no_link_attempt_without_field(self, settings, meta, jira, feature):
        summary = JiraSyncer(settings, client=jira, project_meta=meta).sync(feature)
        assert jira.updates == []
        assert all(o.epic_linked is None for o in summary.outcomes)

    def test_link_stories_batch(self, link_settings, meta, jira):
        write_feature(link_settings, docs={"tasks": TASKS_MD})
        JiraSyncer(link_settings, client=jira, project_meta=meta).sync("demo")
        jira.updates.clear()

        outcomes = JiraSyncer(link_settings, client=jira, project_meta=meta).link_stories("demo")
        assert [o.status for o in outcomes] == [STATUS_LINKED] * 3
        assert {key for key, _ in jira.updates} == {"DEMO-2", "DEMO-3", "DEMO-4"}

    def test_link_stories_records_failures(self, link_settings, meta, jira):
        write_feature(link_settings, docs={"tasks": TASKS_MD})
        JiraSyncer(link_settings, client=jira, project_meta=meta).sync("demo")
        jira.fail_updates = True

        outcomes = JiraSyncer(link_settings, client=jira, project_meta=meta).link_stories("demo")
        assert [o.status for o in outcomes] == [STATUS_FAILED] * 3

    def test_link_stories_requires_field(self, settings, meta, jira, feature):
        with pytest.raises(ConfigurationError, match="JIRA_EPIC_LINK_FIELD"):
            JiraSyncer(settings, client=jira, project_meta=meta).link_stories(feature)

    def test_link_stories_requires_epic(self, link_settings, meta, jira):
        write_feature(link_settings, docs={"tasks": TASKS_MD})
        with pytest.raises(PrerequisiteError, match="No Epic recorded"):
            JiraSyncer(link_settings, client=jira, project_meta=meta).link_stories("demo")
