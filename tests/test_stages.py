"""Tests for specflow.workflow.stages module."""

import pytest

from specflow.lib.errors import ConfigurationError
from specflow.workflow.stages import StageError, StageResult, StageSkipped, run_stage


class TestRunStage:
    """Test run_stage wrapper."""

    def test_passed(self):
        stages = {}
        assert run_stage(stages, "requirements", lambda: None) == StageResult.PASSED
        assert stages["requirements"]["status"] == "passed"
        assert stages["requirements"]["duration_seconds"] >= 0
        assert stages["requirements"]["notes"] == ""

    def test_skipped(self):
        def placeholder():
            raise StageSkipped("test", "nothing to run")

        stages = {}
        assert run_stage(stages, "test", placeholder) == StageResult.SKIPPED
        assert stages["test"]["status"] == "skipped"
        assert stages["test"]["notes"] == "nothing to run"

    def test_exception_wrapped_in_stage_error(self):
        def broken():
            raise RuntimeError("disk full")

        stages = {}
        with pytest.raises(StageError) as exc_info:
            run_stage(stages, "tasks", broken)
        assert exc_info.value.stage == "tasks"
        assert exc_info.value.message == "disk full"
        assert exc_info.value.exit_code == 1
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert stages["tasks"]["status"] == "failed"
        assert stages["tasks"]["notes"] == "disk full"

    def test_specflow_error_message_and_exit_code(self):
        def misconfigured():
            raise ConfigurationError("Missing Atlassian credentials", remediation=["edit .env"])

        with pytest.raises(StageError) as exc_info:
            run_stage({}, "design", misconfigured)
        assert exc_info.value.message == "Missing Atlassian credentials"
        assert exc_info.value.exit_code == 2

    def test_stage_error_passes_through(self):
        def fail():
            raise StageError("release", "not ready", exit_code=3)

        stages = {}
        with pytest.raises(StageError) as exc_info:
            run_stage(stages, "release", fail)
        assert exc_info.value.exit_code == 3
        assert stages["release"]["notes"] == "not ready"

    def test_str(self):
        assert str(StageError("design", "boom")) == "[design] boom"
