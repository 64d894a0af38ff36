"""
HTTP plumbing shared by the Confluence and Jira clients.

Both services live on the same Atlassian site and authenticate with
email + API token over basic auth.
"""

import logging

import requests

from .config import Settings
from .errors import RemoteCallError

logger = logging.getLogger(__name__)

# Response bodies are truncated in error messages
MAX_ERROR_BODY = 500


def build_session(settings: Settings) -> requests.Session:
    """Create an authenticated session. Requires credentials in settings."""
    settings.require_credentials()
    session = requests.Session()
    session.auth = (settings.atlassian_email, settings.atlassian_api_token)
    session.headers.update({
        "Accept": "application/json",
        "Content-Type": "application/json",
    })
    return session


class AtlassianClient:
    """Base REST client: one session, one API root, errors as RemoteCallError."""

    service = "Atlassian"
    api_path = ""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.site_url = settings.base_url
        self.base_url = f"{self.site_url}{self.api_path}"
        self.timeout = settings.http_timeout
        self.session = session if session is not None else build_session(settings)

    def _request(self, method: str, endpoint: str, **kwargs) -> dict | list:
        """Make an authenticated request and return the decoded JSON body."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"{self.service} {method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteCallError(f"{self.service} request failed: {e}") from e

        if not response.ok:
            body = (response.text or "")[:MAX_ERROR_BODY]
            logger.debug(f"{self.service} API error: {response.status_code} - {body}")
            raise RemoteCallError(
                f"{self.service} API error {response.status_code} on {method} {endpoint}",
                status_code=response.status_code,
                response_body=body,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallError(f"{self.service} returned a non-JSON response for {endpoint}") from e
