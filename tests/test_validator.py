"""Tests for specflow.workflow.validator module."""

import pytest

from specflow.workflow.validator import (
    PhaseValidator,
    ValidationResult,
    format_validation_result,
    tasks_marker_warnings,
)

from conftest import write_feature

MARKED_TASKS = """# Tasks (weekends excluded)

## Schedule
- Day 1 (Mon): kickoff
- Day 2 (Tue): build
"""

COMPLETE_STATE = {
    "confluence": {"spaceKey": "DOCS", "requirementsPageId": "1", "designPageId": "2"},
    "jira": {"epicKey": "DEMO-1", "stories": {"created": 3, "total": 3}},
    "milestones": {
        "requirements": {"completed": True},
        "design": {"completed": True},
        "tasks": {"completed": True},
    },
}


@pytest.fixture
def validator(settings):
    return PhaseValidator(settings)


class TestStateFile:
    """spec.json is loaded before anything else."""

    @pytest.mark.parametrize("phase", ["requirements", "design", "tasks"])
    def test_missing_state_file_gives_one_error_no_warnings(self, settings, validator, phase):
        write_feature(settings, docs={phase: "# doc"})
        result = validator.validate("demo", phase)
        assert result.valid is False
        assert len(result.errors) == 1
        assert "spec.json" in result.errors[0]
        assert result.warnings == []

    def test_unparsable_state_file(self, settings, validator):
        feature_dir = write_feature(settings)
        (feature_dir / "spec.json").write_text("{broken")
        result = validator.validate("demo", "requirements")
        assert len(result.errors) == 1
        assert result.warnings == []

    def test_non_integer_story_count_fails_the_phase(self, settings, validator):
        state = {**COMPLETE_STATE, "jira": {"epicKey": "DEMO-1", "stories": {"created": "two", "total": 2}}}
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=state)
        result = validator.validate("demo", "tasks")
        assert result.valid is False
        assert len(result.errors) == 1
        assert "jira.stories.created" in result.errors[0]
        assert result.warnings == []

    def test_unknown_phase(self, validator):
        with pytest.raises(ValueError, match="Unknown phase"):
            validator.validate("demo", "implement")


class TestRequirements:
    def test_complete(self, settings, validator):
        write_feature(settings, docs={"requirements": "# R"}, state=COMPLETE_STATE)
        result = validator.validate("demo", "requirements")
        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_everything_missing(self, settings, validator):
        write_feature(settings, state={})
        result = validator.validate("demo", "requirements")
        assert len(result.errors) == 3
        assert "requirements.md" in result.errors[0]
        assert "specflow confluence-sync demo requirements" in result.errors[1]
        assert "spaceKey" in result.errors[2]
        assert result.warnings == ["milestones.requirements.completed is false in spec.json"]

    def test_incomplete_milestone_is_only_a_warning(self, settings, validator):
        state = {"confluence": {"spaceKey": "DOCS", "requirementsPageId": "1"},
                 "milestones": {"requirements": {"completed": False}}}
        write_feature(settings, docs={"requirements": "# R"}, state=state)
        result = validator.validate("demo", "requirements")
        assert result.valid
        assert len(result.warnings) == 1


class TestDesign:
    def test_requires_requirements_milestone(self, settings, validator):
        state = {"confluence": {"spaceKey": "DOCS", "designPageId": "2"},
                 "milestones": {"requirements": {"completed": False}, "design": {"completed": True}}}
        write_feature(settings, docs={"design": "# D"}, state=state)
        result = validator.validate("demo", "design")
        assert result.valid is False
        assert result.errors == ["Requirements phase is not complete (prerequisite)"]

    def test_complete(self, settings, validator):
        write_feature(settings, docs={"design": "# D"}, state=COMPLETE_STATE)
        assert validator.validate("demo", "design").valid

    def test_missing_page_and_document(self, settings, validator):
        write_feature(settings, state={"milestones": {"requirements": {"completed": True}}})
        result = validator.validate("demo", "design")
        assert len(result.errors) == 2
        assert "design.md" in result.errors[0]
        assert "specflow confluence-sync demo design" in result.errors[1]
        assert result.warnings == ["milestones.design.completed is false in spec.json"]


class TestTasks:
    def test_complete_with_markers(self, settings, validator):
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=COMPLETE_STATE)
        result = validator.validate("demo", "tasks")
        assert result.valid
        assert result.warnings == []

    def test_no_markers_gives_three_warnings_and_no_errors(self, settings, validator):
        write_feature(settings, docs={"tasks": "# Tasks\n\n- build it\n"}, state=COMPLETE_STATE)
        result = validator.validate("demo", "tasks")
        assert result.errors == []
        assert len(result.warnings) == 3

    def test_requires_design_milestone(self, settings, validator):
        state = {**COMPLETE_STATE, "milestones": {"design": {"completed": False}, "tasks": {"completed": True}}}
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=state)
        result = validator.validate("demo", "tasks")
        assert "Design phase is not complete (prerequisite)" in result.errors

    def test_missing_jira_artifacts(self, settings, validator):
        state = {"milestones": COMPLETE_STATE["milestones"]}
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=state)
        result = validator.validate("demo", "tasks")
        assert len(result.errors) == 2
        assert all("specflow jira-sync demo" in e for e in result.errors)

    def test_zero_created_stories_is_an_error(self, settings, validator):
        state = {**COMPLETE_STATE, "jira": {"epicKey": "DEMO-1", "stories": {"created": 0, "total": 2}}}
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=state)
        result = validator.validate("demo", "tasks")
        assert result.errors == ["No JIRA Stories have been created → run: specflow jira-sync demo"]

    def test_partial_stories_is_a_warning(self, settings, validator):
        state = {**COMPLETE_STATE, "jira": {"epicKey": "DEMO-1", "stories": {"created": 2, "total": 3}}}
        write_feature(settings, docs={"tasks": MARKED_TASKS}, state=state)
        result = validator.validate("demo", "tasks")
        assert result.valid
        assert result.warnings == ["Some JIRA Stories were not created: 2/3"]

    def test_missing_document(self, settings, validator):
        write_feature(settings, state=COMPLETE_STATE)
        result = validator.validate("demo", "tasks")
        assert result.errors == ["tasks.md has not been written"]


class TestTasksMarkerWarnings:
    def test_all_markers_present(self):
        assert tasks_marker_warnings(MARKED_TASKS) == []

    def test_japanese_markers(self):
        assert tasks_marker_warnings("Day 1（月）開始\n土日は除く") == []

    def test_each_missing_marker_reported(self):
        assert len(tasks_marker_warnings("Day 1 only")) == 2


class TestFormatValidationResult:
    def test_failed(self):
        text = format_validation_result(ValidationResult("design", errors=["e1"], warnings=["w1"]))
        assert "Validation result (design):" in text
        assert "  - e1" in text
        assert "  - w1" in text
        assert "Validation failed" in text

    def test_passed(self):
        assert "Validation passed" in format_validation_result(ValidationResult("tasks"))
