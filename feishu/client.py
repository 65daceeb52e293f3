"""Authenticated HTTP client for the Feishu Open API"""

import logging
import re
from typing import Any, Dict, Optional

import httpx

from errors import RemoteApiError, TransportError
from headers import JSON_HEADERS, USER_AGENT
from oauth import TokenLifecycleManager
from settings import CONNECT_TIMEOUT, FEISHU_OPEN_API, REQUEST_TIMEOUT, UPLOAD_PARENT_TYPE

logger = logging.getLogger(__name__)

MEDIA_UPLOAD_PATH = "/open-apis/drive/v1/medias/upload_all"

_WHITESPACE = re.compile(r"\s+")
_BODY_METHODS = ("POST", "PATCH", "PUT")


def data_object(path: str, data: Any) -> Dict[str, Any]:
    """The envelope's data as a dict; a missing payload counts as empty"""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TransportError(f"Unexpected data payload from {path}")
    return data


class FeishuClient:
    """Sends bearer-authenticated requests and unwraps the response envelope

    Every Open API response has the shape ``{"code", "msg", "data"}``;
    ``code == 0`` is success and ``data`` is returned to the caller.
    """

    def __init__(
        self,
        token_manager: TokenLifecycleManager,
        base_url: str = FEISHU_OPEN_API,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            token_manager: Source of valid access tokens
            base_url: Open API origin
            http_client: Optional client to share; created and owned otherwise
        """
        self.token_manager = token_manager
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
            headers={"User-Agent": USER_AGENT},
        )

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def __aenter__(self) -> "FeishuClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it"""
        if self._owns_client:
            await self._http.aclose()

    async def _auth_headers(self) -> Dict[str, str]:
        token = await self.token_manager.get_valid_access_token()
        # Pasted tokens often carry stray newlines or spaces
        clean_token = _WHITESPACE.sub("", token)
        return {"Authorization": f"Bearer {clean_token}"}

    async def call(self, path: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        """Call an Open API endpoint

        Args:
            path: Path below the API origin, e.g. /open-apis/docx/v1/documents
            method: HTTP method
            body: JSON body, sent for POST/PATCH/PUT only

        Returns:
            The envelope's ``data`` payload

        Raises:
            SessionExpiredError: No valid access token could be obtained
            RemoteApiError: The envelope carried a non-zero code
            TransportError: The request failed or the body was not an envelope
        """
        method = method.upper()
        headers = await self._auth_headers()
        request_kwargs: Dict[str, Any] = {"headers": headers}
        if method in _BODY_METHODS:
            headers.update(JSON_HEADERS)
            if body is not None:
                request_kwargs["json"] = body

        url = f"{self.base_url}{path}"
        logger.debug(f"Feishu request: {method} {url}")

        try:
            response = await self._http.request(method, url, **request_kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Feishu request failed: {method} {path}: {e}")
            raise TransportError(f"Request to {path} failed: {e}") from e

        return self._unwrap(path, response)

    async def upload_media(self, parent_node: str, content: bytes, file_name: str) -> str:
        """Upload image bytes into the media store of a document block

        Args:
            parent_node: Image block the media belongs to
            content: Raw file bytes
            file_name: File name reported to the service

        Returns:
            The media file token
        """
        headers = await self._auth_headers()
        form = {
            "file_name": file_name,
            "parent_type": UPLOAD_PARENT_TYPE,
            "parent_node": parent_node,
            "size": str(len(content)),
        }
        url = f"{self.base_url}{MEDIA_UPLOAD_PATH}"
        try:
            response = await self._http.post(
                url,
                headers=headers,
                data=form,
                files={"file": (file_name, content)},
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Media upload failed: {e}") from e

        data = data_object(MEDIA_UPLOAD_PATH, self._unwrap(MEDIA_UPLOAD_PATH, response))
        file_token = data.get("file_token")
        if not file_token:
            raise TransportError("Media upload response missing file_token")
        return file_token

    async def download(self, url: str) -> bytes:
        """Fetch the bytes of an external resource (no Feishu credentials)

        Raises:
            TransportError: The URL is unusable, the request failed or the
                response was not a success
        """
        try:
            response = await self._http.get(url, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # InvalidURL is not an HTTPError; captured URLs may carry control characters
            raise TransportError(f"Download of {url!r} failed: {e}") from e
        if not response.is_success:
            raise TransportError(f"Download of {url} failed with status {response.status_code}")
        return response.content

    def _unwrap(self, path: str, response: httpx.Response) -> Any:
        try:
            envelope = response.json()
        except ValueError as e:
            raise TransportError(
                f"Malformed response from {path} (status {response.status_code})"
            ) from e

        if not isinstance(envelope, dict) or "code" not in envelope:
            raise TransportError(f"Unexpected response envelope from {path}")

        code = envelope.get("code")
        if code != 0:
            message = envelope.get("msg") or f"Feishu API Error code: {code}"
            logger.error(f"Feishu API error on {path}: code={code} msg={message}")
            raise RemoteApiError(code, message)

        return envelope.get("data")
