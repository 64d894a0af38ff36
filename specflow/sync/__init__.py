"""Remote artifact syncers for Confluence pages and Jira issues.

Both syncers create-or-update idempotently and record the remote
identifiers back into the feature's spec.json.
"""

from specflow.sync.confluence import ConfluenceSyncer, PageSyncResult
from specflow.sync.jira import JiraSyncer, StoryOutcome, TaskSyncSummary

__all__ = [
    "ConfluenceSyncer",
    "PageSyncResult",
    "JiraSyncer",
    "StoryOutcome",
    "TaskSyncSummary",
]
