"""Service account authentication for the Google Docs and Drive APIs."""

import logging
from typing import Any, Dict, List, Optional

import google.auth.exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

logger = logging.getLogger('gdocs_site.auth')


class AuthenticationError(Exception):
    """Raised when an access token cannot be obtained for the service account."""
    pass


class AccessTokenProvider:
    """Obtains short-lived bearer tokens through a signed-JWT OAuth exchange.

    Every call to get_token() performs a fresh exchange; tokens are not
    cached or tracked for expiry.
    """

    def __init__(self, config: Dict[str, Any], request: Optional[Request] = None):
        google_config = config.get('google', {})

        client_email = google_config.get('client_email')
        private_key = google_config.get('private_key')
        if not client_email or not private_key:
            raise AuthenticationError(
                "google.client_email and google.private_key are required for service account auth"
            )

        self.client_email = client_email
        self.scopes: List[str] = list(google_config.get('scopes') or [])
        self._info = {
            'type': 'service_account',
            'client_email': client_email,
            # Keys passed through environment variables carry literal "\n"
            'private_key': private_key.replace('\\n', '\n'),
            'token_uri': google_config.get('token_uri', 'https://oauth2.googleapis.com/token'),
        }
        self._request = request or Request()

    def get_token(self) -> str:
        """
        Exchange a signed JWT for a new access token.

        Returns:
            Bearer token string

        Raises:
            AuthenticationError: If the key is invalid or the exchange fails
        """
        try:
            credentials = service_account.Credentials.from_service_account_info(
                self._info, scopes=self.scopes
            )
        except (ValueError, KeyError) as e:
            raise AuthenticationError(f"Invalid service account key for {self.client_email}: {e}") from e

        try:
            credentials.refresh(self._request)
        except google.auth.exceptions.GoogleAuthError as e:
            logger.error(f"Token exchange failed for {self.client_email}: {e}")
            raise AuthenticationError(f"Token exchange failed for {self.client_email}: {e}") from e

        logger.debug(f"Obtained access token for {self.client_email}")
        return credentials.token


__all__ = ['AccessTokenProvider', 'AuthenticationError']
