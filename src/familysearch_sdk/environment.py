"""FamilySearch environments and host detection."""
from __future__ import annotations

from enum import Enum

_INTEGRATION_MARKERS = ("integration.familysearch.org", "api-integ.familysearch.org", "identint.familysearch.org")
_BETA_MARKERS = ("beta.familysearch.org", "apibeta.familysearch.org", "identbeta.familysearch.org")


class Environment(str, Enum):
    """FamilySearch deployment environments."""

    PRODUCTION = "production"
    BETA = "beta"
    INTEGRATION = "integration"

    @property
    def ident_host(self) -> str:
        """Identity server used for OAuth."""
        return {
            Environment.PRODUCTION: "https://ident.familysearch.org",
            Environment.BETA: "https://identbeta.familysearch.org",
            Environment.INTEGRATION: "https://identint.familysearch.org",
        }[self]

    @property
    def platform_host(self) -> str:
        """Platform API host for data operations."""
        return {
            Environment.PRODUCTION: "https://api.familysearch.org",
            Environment.BETA: "https://apibeta.familysearch.org",
            Environment.INTEGRATION: "https://api-integ.familysearch.org",
        }[self]

    @property
    def web_host(self) -> str:
        """Public website host, used for person and source links."""
        return {
            Environment.PRODUCTION: "www.familysearch.org",
            Environment.BETA: "beta.familysearch.org",
            Environment.INTEGRATION: "integration.familysearch.org",
        }[self]

    @property
    def authorization_url(self) -> str:
        return f"{self.ident_host}/cis-web/oauth2/v3/authorization"

    @property
    def token_url(self) -> str:
        return f"{self.ident_host}/cis-web/oauth2/v3/token"


def detect_environment(url: str, default: Environment = Environment.PRODUCTION) -> Environment:
    """Guess the environment a FamilySearch URL belongs to.

    Integration markers are checked before beta ones; anything else maps
    to ``default``.
    """
    if any(marker in url for marker in _INTEGRATION_MARKERS):
        return Environment.INTEGRATION
    if any(marker in url for marker in _BETA_MARKERS):
        return Environment.BETA
    return default


def detect_web_host(url: str, default: Environment = Environment.PRODUCTION) -> str:
    return detect_environment(url, default).web_host
