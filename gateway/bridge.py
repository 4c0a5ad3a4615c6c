"""MessagingGateway over an HTTP chat bridge."""
import asyncio
import base64
import logging
from typing import Any, Dict, List, Optional

import backoff
import requests

from . import MessagingGateway, InboundMessage, Identity, GroupRef, ContactRef

logger = logging.getLogger(__name__)


class BridgeError(Exception):
    """Base exception for bridge errors"""
    def __init__(self, message: str, status: Optional[int] = None, endpoint: Optional[str] = None):
        self.status = status
        self.endpoint = endpoint
        super().__init__(f"Bridge Error [{status}] in {endpoint}: {message}" if status else message)


class BridgeConnectionError(BridgeError):
    """Raised when connection to the bridge fails"""
    pass


class BridgeAuthError(BridgeError):
    """Raised when the bridge rejects the token"""
    pass


class BridgeClient:
    """Blocking JSON client for the chat bridge."""

    def __init__(self, url: str, token: str = "", timeout: int = 10):
        self.url = url.rstrip('/')
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers['content-type'] = 'application/json'
        if token:
            self.session.headers['authorization'] = f"Bearer {token}"

    @backoff.on_exception(backoff.expo, BridgeConnectionError, max_tries=3)
    def request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        """Make a request to the bridge

        Args:
            method: HTTP method
            endpoint: Path below the bridge URL
            payload: Optional JSON body

        Returns:
            Decoded JSON response

        Raises:
            BridgeConnectionError: Connection to the bridge failed
            BridgeAuthError: Authentication failed
            BridgeError: Bridge returned an error
        """
        try:
            response = self.session.request(
                method,
                f"{self.url}{endpoint}",
                json=payload,
                timeout=self.timeout
            )

            if response.status_code in (401, 403):
                raise BridgeAuthError("Authentication failed - check bridge_token", response.status_code, endpoint)

            if response.status_code >= 400:
                try:
                    message = response.json().get('error', response.reason)
                except ValueError:
                    message = response.reason
                raise BridgeError(message, response.status_code, endpoint)

            if not response.content:
                return None
            return response.json()

        except requests.exceptions.Timeout as e:
            raise BridgeConnectionError(
                f"Request to {endpoint} timed out after {self.timeout} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise BridgeConnectionError(
                f"Failed to connect to chat bridge at {self.url}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise BridgeConnectionError(f"Request failed: {str(e)}") from e
        except ValueError as e:
            raise BridgeError(f"Invalid response format: {str(e)}", endpoint=endpoint) from e


class BridgeGateway(MessagingGateway):
    """MessagingGateway that forwards every call to the chat bridge."""

    def __init__(self, url: str, token: str = "", timeout: int = 10):
        self.client = BridgeClient(url, token, timeout)

    async def _call(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        return await asyncio.to_thread(self.client.request, method, endpoint, payload)

    async def send_text(self, target_id: str, text: str) -> None:
        await self._call('POST', '/send_text', {'target_id': target_id, 'text': text})
        logger.debug(f"Sent text to {target_id}")

    async def send_image(self, target_id: str, data: bytes) -> None:
        await self._call('POST', '/send_image', {
            'target_id': target_id,
            'data': base64.b64encode(data).decode('ascii')
        })
        logger.debug(f"Sent image ({len(data)} bytes) to {target_id}")

    async def current_sender_identity(self, message: InboundMessage) -> Identity:
        # The bridge already resolves the sender on the inbound event
        return Identity(
            user_id=message.sender_id,
            nickname=message.sender_nickname or message.sender_id
        )

    async def list_groups(self) -> List[GroupRef]:
        groups = await self._call('GET', '/groups') or []
        return [GroupRef(**group) for group in groups]

    async def list_contacts(self) -> List[ContactRef]:
        contacts = await self._call('GET', '/contacts') or []
        return [ContactRef(**contact) for contact in contacts]

    async def fetch_picture(self, message: InboundMessage) -> bytes:
        result = await self._call('GET', f"/messages/{message.message_id}/picture")
        if not result or 'data' not in result:
            raise BridgeError("Picture payload missing", endpoint=f"/messages/{message.message_id}/picture")
        return base64.b64decode(result['data'])
