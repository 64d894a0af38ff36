"""
Error types shared across specflow.

Every error carries remediation lines (what to run, what to edit) that the
CLI prints under the message.
"""


class SpecflowError(Exception):
    """Base class for errors that terminate a command."""

    exit_code = 1

    def __init__(self, message: str, remediation: list[str] | None = None):
        self.message = message
        self.remediation = list(remediation or [])
        super().__init__(message)


class ConfigurationError(SpecflowError):
    """Missing or invalid credentials, project descriptor or workflow config."""

    exit_code = 2


class PrerequisiteError(SpecflowError):
    """A remote space/project is absent or an earlier phase is incomplete."""


class RemoteCallError(SpecflowError):
    """An HTTP call to Confluence or Jira failed."""

    def __init__(self, message: str, status_code: int | None = None,
                 response_body: str | None = None, remediation: list[str] | None = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, remediation)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401
