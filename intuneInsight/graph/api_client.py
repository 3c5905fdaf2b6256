"""
Microsoft Graph API client for fetching Intune policy collections
"""

# Standard library imports
from typing import List, Dict, Optional, Tuple

# Third-party imports
import requests
import urllib3

# Local imports
from ..config import GRAPH_ENDPOINTS, GRAPH_SCOPES, MSGRAPH_DOMAIN, REQUEST_TIMEOUT


def _scope_names() -> str:
    return ', '.join(scope.rsplit('/', 1)[-1] for scope in GRAPH_SCOPES)


class GraphAPIClient:
    """Client for Microsoft Graph API operations"""

    def __init__(self, token: str, proxy: str = None):
        """Initialize the Graph API client with an access token.

        Parameters:
            token (str): Microsoft Graph access token with Intune read permissions
            proxy (str): Proxy address in format 'host:port' (e.g., '127.0.0.1:8080').
                        If provided, routes all requests through proxy without cert verification.
        """
        self.token = token
        self.msgraph_domain = MSGRAPH_DOMAIN

        # Proxy configuration for debugging (e.g., Burp Suite)
        if proxy:
            self.proxies = {
                'http': f'http://{proxy}',
                'https': f'http://{proxy}'
            }
            self.verify_ssl = False
            # Suppress SSL warnings when using proxy
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        else:
            self.proxies = None
            self.verify_ssl = True

        # HTTP Session for connection pooling (reuse TCP connections)
        self.session = requests.Session()
        self.session.proxies = self.proxies
        self.session.verify = self.verify_ssl
        self.session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json"
        })

    def _get(self, url: str) -> Dict:
        """GET a Graph URL and return the decoded JSON body.

        Parameters:
            url (str): Absolute Graph URL (including any nextLink query string)

        Returns:
            Dict: Decoded response body

        Raises:
            ValueError: If the token is invalid, expired, or lacks required permissions
            requests.HTTPError: For any other unsuccessful response
        """
        response = self.session.get(url, timeout=REQUEST_TIMEOUT)

        if response.status_code == 401:
            raise ValueError("Invalid or expired access token. Please provide a valid Microsoft Graph access token.")
        elif response.status_code == 403:
            raise ValueError(f"Access denied. The token lacks required permissions ({_scope_names()}).")

        response.raise_for_status()
        return response.json()

    def validate_token(self) -> Tuple[bool, str]:
        """Validate the access token by making a test API call.

        Tests the token by attempting to access the /me endpoint. Provides
        detailed error messages for common token issues including invalid tokens,
        missing permissions, and network problems.

        Returns:
            Tuple[bool, str]: A tuple containing:
                - bool: True if token is valid and has permissions, False otherwise
                - str: Error message if validation failed, empty string if successful
        """
        try:
            response = self.session.get(GRAPH_ENDPOINTS['me'], timeout=10)

            if response.status_code == 401:
                return False, "Invalid or expired access token. Please provide a valid Microsoft Graph access token."
            elif response.status_code == 403:
                return False, f"Access token is valid but lacks required permissions. Ensure the token has {_scope_names()}."
            elif response.status_code >= 400:
                return False, f"Token validation failed with status {response.status_code}: {response.text}"

            return True, ""
        except requests.exceptions.Timeout:
            return False, "Token validation timed out. Check your network connection."
        except requests.exceptions.RequestException as e:
            return False, f"Token validation failed: {str(e)}"

    def get_current_user(self) -> Dict:
        """Get the signed-in user (id, displayName, mail, userPrincipalName)."""
        return self._get(GRAPH_ENDPOINTS['me'])

    def fetch_page(self, url: str) -> Tuple[List[Dict], Optional[str]]:
        """Fetch one page of a Graph collection.

        Parameters:
            url (str): Collection URL or the '@odata.nextLink' of the previous page

        Returns:
            Tuple[List[Dict], Optional[str]]: Tuple containing:
                - Items of the page ('value')
                - Link to the next page, or None on the last page
        """
        data = self._get(url)
        items = data.get('value') or []
        return items, data.get('@odata.nextLink')

    def fetch_one(self, url: str) -> Dict:
        """Fetch a single Graph object (used to hydrate summary items with details)."""
        return self._get(url)
