"""
specflow confluence-sync / jira-sync / link-stories - Publish documents.
"""

from specflow.lib.config import Settings
from specflow.lib.project_meta import format_project_info
from specflow.sync.confluence import ConfluenceSyncer
from specflow.sync.jira import STATUS_FAILED, JiraSyncer


def cmd_confluence_sync(args, settings: Settings) -> int:
    result = ConfluenceSyncer(settings).sync(args.feature, args.doc_type)
    print(f"\nConfluence: {result.url or result.page_id}")
    return 0


def cmd_jira_sync(args, settings: Settings) -> int:
    syncer = JiraSyncer(settings)
    print(format_project_info(syncer.meta))
    print()
    summary = syncer.sync(args.feature)

    for warning in summary.warnings:
        print(f"WARNING: {warning}")
    if summary.failed_count:
        print(f"\n{summary.failed_count} of {summary.total} stories failed; re-run to retry them")
        return 1
    return 0


def cmd_link_stories(args, settings: Settings) -> int:
    outcomes = JiraSyncer(settings).link_stories(args.feature)
    failed = [o for o in outcomes if o.status == STATUS_FAILED]
    print(f"\nLinked {len(outcomes) - len(failed)} of {len(outcomes)} stories")
    return 1 if failed else 0
