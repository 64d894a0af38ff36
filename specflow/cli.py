#!/usr/bin/env python3
"""specflow CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from specflow.lib.config import load_settings
from specflow.lib.constants import FEATURE_NAME_PATTERN, PHASES, SCOPE_ALIASES
from specflow.lib.errors import SpecflowError
from specflow.commands import convert as cmd_convert_module
from specflow.commands import estimate as cmd_estimate_module
from specflow.commands import phase as cmd_phase_module
from specflow.commands import preflight as cmd_preflight_module
from specflow.commands import sync as cmd_sync_module
from specflow.commands import validate as cmd_validate_module
from specflow.commands import workflow as cmd_workflow_module


def feature_name(value: str) -> str:
    """argparse type for feature names (a directory under .kiro/specs)."""
    if not FEATURE_NAME_PATTERN.match(value):
        raise argparse.ArgumentTypeError(
            f"invalid feature name: {value!r} (letters, digits, '.', '_' and '-' only)"
        )
    return value


def get_settings(args):
    return load_settings(args.project_root)


def cmd_validate(args):
    return cmd_validate_module.cmd_validate(args, get_settings(args))


def cmd_preflight(args):
    return cmd_preflight_module.cmd_preflight(args, get_settings(args))


def cmd_phase(args):
    return cmd_phase_module.cmd_phase(args, get_settings(args))


def cmd_confluence_sync(args):
    return cmd_sync_module.cmd_confluence_sync(args, get_settings(args))


def cmd_jira_sync(args):
    return cmd_sync_module.cmd_jira_sync(args, get_settings(args))


def cmd_link_stories(args):
    return cmd_sync_module.cmd_link_stories(args, get_settings(args))


def cmd_workflow(args):
    return cmd_workflow_module.cmd_workflow(args, get_settings(args))


def cmd_estimate(args):
    return cmd_estimate_module.cmd_estimate(args, get_settings(args))


def cmd_convert(args):
    return cmd_convert_module.cmd_convert(args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='specflow',
        description='Sync .kiro specs to Confluence and JIRA, and gate phase progression',
    )
    parser.add_argument('--project-root', type=Path, default=None,
                        help='Project root containing .env and .kiro/ (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # specflow validate
    p_validate = subparsers.add_parser('validate', help="Check a phase's exit criteria")
    p_validate.add_argument('feature', type=feature_name, help='Feature name')
    p_validate.add_argument('phase', choices=PHASES, help='Phase to validate')
    p_validate.set_defaults(func=cmd_validate)

    # specflow preflight
    p_preflight = subparsers.add_parser('preflight', help='Verify credentials and remote prerequisites')
    p_preflight.add_argument('scope', nargs='?', default='all', choices=sorted(SCOPE_ALIASES),
                             help='What to check (default: all)')
    p_preflight.set_defaults(func=cmd_preflight)

    # specflow phase
    p_phase = subparsers.add_parser('phase', help='Run one phase: publish, then validate')
    p_phase.add_argument('feature', type=feature_name, help='Feature name')
    p_phase.add_argument('phase', choices=PHASES, help='Phase to run')
    p_phase.set_defaults(func=cmd_phase)

    # specflow confluence-sync
    p_confluence = subparsers.add_parser('confluence-sync', help='Publish a document to Confluence')
    p_confluence.add_argument('feature', type=feature_name, help='Feature name')
    p_confluence.add_argument('doc_type', nargs='?', default='requirements', choices=PHASES,
                              help='Document to publish (default: requirements)')
    p_confluence.set_defaults(func=cmd_confluence_sync)

    # specflow jira-sync
    p_jira = subparsers.add_parser('jira-sync', help='Create the Epic and Stories from tasks.md')
    p_jira.add_argument('feature', type=feature_name, help='Feature name')
    p_jira.set_defaults(func=cmd_jira_sync)

    # specflow link-stories
    p_link = subparsers.add_parser('link-stories', help="Link the feature's Stories to its Epic")
    p_link.add_argument('feature', type=feature_name, help='Feature name')
    p_link.set_defaults(func=cmd_link_stories)

    # specflow workflow
    p_workflow = subparsers.add_parser('workflow', help='Run a feature through all workflow stages')
    p_workflow.add_argument('--feature', type=feature_name, required=True, help='Feature name')
    p_workflow.add_argument('--config', help='YAML workflow config (stages, approval_gates)')
    p_workflow.set_defaults(func=cmd_workflow)

    # specflow estimate
    p_estimate = subparsers.add_parser('estimate', help='Summarize the estimate table in design.md')
    p_estimate.add_argument('feature', type=feature_name, help='Feature name')
    p_estimate.set_defaults(func=cmd_estimate)

    # specflow convert
    p_convert = subparsers.add_parser('convert', help='Print Markdown as Confluence storage format')
    p_convert.add_argument('markdown_file', help='Markdown file to convert')
    p_convert.set_defaults(func=cmd_convert)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except SpecflowError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        for line in e.remediation:
            print(f"  → {line}", file=sys.stderr)
        return e.exit_code
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
