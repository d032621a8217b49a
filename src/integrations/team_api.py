"""
Team API Integration Module

This module resolves a user's team memberships, either from a remote team
API or from a fixed offline list.

Usage:
    from integrations import team_api

    client = team_api.create_team_api_client("remote", "https://run.mocky.io/v3/...")
    teams = client.get_teams()
    print(teams)  # ['team-a', 'team-b']
"""

import logging
from typing import List, Optional

import httpx

from domain.exceptions import ConfigurationError
from domain.models import ResolveFailureKind, TeamList

# Configure logging
logger = logging.getLogger(__name__)

REMOTE = 'remote'
STATIC = 'static'

# Names used by earlier deployments of the mapper
_IMPL_ALIASES = {
    'mocky': REMOTE,
    'dummy': STATIC,
}


# ============================================================================
# Custom Exception Classes
# ============================================================================

class TeamApiError(Exception):
    """Raised when the team lookup fails."""
    kind: ResolveFailureKind


class TeamApiNetworkError(TeamApiError):
    """Raised when the team API cannot be reached."""
    kind = ResolveFailureKind.NETWORK_ERROR


class TeamApiHttpStatusError(TeamApiError):
    """Raised when the team API responds with a non-2xx status."""
    kind = ResolveFailureKind.HTTP_STATUS_ERROR

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TeamApiParseError(TeamApiError):
    """Raised when the team API response is not {"teams": [str, ...]}."""
    kind = ResolveFailureKind.PARSE_ERROR


# ============================================================================
# Team API Clients
# ============================================================================

class StaticTeamApiClient:
    """Offline replacement for the team API. Always returns the same teams."""

    TEAMS = (
        "demo-enhjoern-æ",
        "demo-enhjoern-ø",
    )

    def __init__(self):
        logger.info("Using static team API")

    def get_teams(self) -> List[str]:
        return list(self.TEAMS)


class RemoteTeamApiClient:
    """
    Client for a remote team API.

    Performs a single GET per call with the transport's default timeout.
    No retries and no caching.
    """

    def __init__(self, team_api_url: str):
        self.team_api_url = team_api_url
        logger.info(f"Using remote team API ({team_api_url})")

    def get_teams(self) -> List[str]:
        """
        Fetch the user's teams.

        Returns:
            List[str]: Team names in the order the API returned them

        Raises:
            TeamApiNetworkError: If the request could not be completed
            TeamApiHttpStatusError: If the response status is not 2xx
            TeamApiParseError: If the body is not {"teams": [str, ...]}
        """
        try:
            response = httpx.get(self.team_api_url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Error fetching teams from {self.team_api_url}: {e}")
            raise TeamApiNetworkError(
                f"Error fetching teams from {self.team_api_url}: {e}"
            ) from e

        if not response.is_success:
            logger.error(
                f"Team API returned unexpected status: "
                f"url={self.team_api_url}, status_code={response.status_code}"
            )
            raise TeamApiHttpStatusError(
                f"Unexpected status {response.status_code} from {self.team_api_url}",
                status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TeamApiParseError(
                f"Team API response from {self.team_api_url} is not valid JSON"
            ) from e

        teams = body.get('teams') if isinstance(body, dict) else None
        if not isinstance(teams, list) or not all(isinstance(t, str) for t in teams):
            raise TeamApiParseError(
                f"Team API response from {self.team_api_url} has no 'teams' list of strings"
            )

        logger.info(f"Fetched {len(teams)} team(s) from {self.team_api_url}")
        return teams


# ============================================================================
# Factory
# ============================================================================

def create_team_api_client(impl: Optional[str], team_api_url: Optional[str] = None):
    """
    Create the team API client for the configured implementation.

    Args:
        impl: "remote" or "static" ("Mocky" and "Dummy" are accepted as aliases)
        team_api_url: Endpoint for the remote implementation

    Returns:
        RemoteTeamApiClient or StaticTeamApiClient

    Raises:
        ConfigurationError: If the implementation is unknown or the remote
            implementation has no valid http(s) URL
    """
    if impl is not None and not isinstance(impl, str):
        raise ConfigurationError(f"teamApiImpl must be a string, got: {impl!r}")

    name = (impl or '').strip().lower()
    name = _IMPL_ALIASES.get(name, name)
    logger.info(f"Using {impl} team API implementation")

    if name == REMOTE:
        if not team_api_url:
            raise ConfigurationError("teamApiUrl is required for the remote team API")
        _validate_url(team_api_url)
        return RemoteTeamApiClient(team_api_url)
    elif name == STATIC:
        return StaticTeamApiClient()
    else:
        raise ConfigurationError(f"Unsupported team API implementation: {impl}")


def resolve_teams(mode: str, endpoint: Optional[str] = None) -> TeamList:
    """
    Resolve teams with the given implementation.

    Raises:
        TeamApiError: If the remote lookup fails
        ConfigurationError: If the mode is unsupported
    """
    client = create_team_api_client(mode, endpoint)
    return TeamList(teams=client.get_teams())


def _validate_url(team_api_url: str) -> None:
    """
    Check that the team API URL is an absolute http(s) URL.

    Raises:
        ConfigurationError: If the URL cannot be parsed or is not http(s)
    """
    if not isinstance(team_api_url, str):
        raise ConfigurationError(f"teamApiUrl must be a string, got: {team_api_url!r}")
    try:
        url = httpx.URL(team_api_url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"Invalid teamApiUrl {team_api_url!r}: {e}") from e
    if url.scheme not in ('http', 'https') or not url.host:
        raise ConfigurationError(f"teamApiUrl must be an absolute http(s) URL: {team_api_url!r}")
