"""
MH Identity Client
Logs in against the Ministerio de Hacienda security endpoint

File: src/auth/hacienda_client.py
"""

import logging
from typing import Optional

import requests

from config.dte_config import SystemConfig
from src.auth.errors import HaciendaAuthError

logger = logging.getLogger(__name__)

class HaciendaAuthClient:
    """Client for POST /seguridad/auth"""

    def __init__(
        self,
        base_url: str = SystemConfig.MH_API_BASE_URL,
        timeout: int = SystemConfig.REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def auth_url(self) -> str:
        return f"{self.base_url}{SystemConfig.MH_AUTH_ENDPOINT}"

    def authenticate(self, username: str, password: str) -> str:
        """Return the MH bearer token for the given API user"""
        logger.info(f"Authenticating {username} against MH")

        try:
            response = self.session.post(
                self.auth_url,
                data={'user': username, 'pwd': password},
                headers={'User-Agent': SystemConfig.MH_USER_AGENT},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"MH authentication rejected for {username}: HTTP {status_code}")
            raise HaciendaAuthError(f"MH authentication failed with HTTP {status_code}", status_code) from e
        except ValueError as e:
            logger.error(f"Invalid JSON from MH authentication endpoint: {e}")
            raise HaciendaAuthError("MH authentication returned an invalid response") from e
        except requests.RequestException as e:
            logger.error(f"Failed to reach MH authentication endpoint: {e}")
            raise HaciendaAuthError(f"MH authentication endpoint unreachable: {e}") from e

        body = payload.get('body') or {}
        if payload.get('status') != 'OK' or not body.get('token'):
            description = body.get('descripcionMsg') or payload.get('status') or 'unknown error'
            logger.error(f"MH authentication refused for {username}: {description}")
            raise HaciendaAuthError(f"MH authentication refused: {description}")

        logger.info(f"MH authentication succeeded for {username}")
        return body['token']
