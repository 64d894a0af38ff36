"""specflow: sync .kiro feature specs to Confluence and Jira and gate phase progression."""

__version__ = "0.1.0"
