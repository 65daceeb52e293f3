"""Shared fixtures: a fake Feishu Open API, fake clock and wired services."""

import json
import re
from typing import Any, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from feishu import FeishuClient, FeishuDocumentService
from oauth import CredentialSnapshot, TokenLifecycleManager

OPEN_API = "https://open.feishu.cn"
IMAGE_HOST = "img.test"

_PARENT_NODE = re.compile(rb'name="parent_node"\r\n\r\n([^\r]*)\r\n')


class FakeClock:
    def __init__(self, value: float = 1_700_000_000.0) -> None:
        self.value = value

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class FakeFeishu:
    """Routes MockTransport requests like the Open API and records them."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.document_id = "doxcnTest"
        self.create_response: Dict[str, Any] = {
            "code": 0, "msg": "success", "data": {"document": {"document_id": self.document_id}},
        }
        self.children_failures: Dict[int, Dict[str, Any]] = {}
        self.patch_response: Dict[str, Any] = {"code": 0, "msg": "success", "data": {}}
        self.user_info: Dict[str, Any] = {"code": 0, "data": {"name": "Ada", "avatar_url": "https://a/ava.png"}}
        self.root_meta: Dict[str, Any] = {"code": 0, "data": {"token": "fldcnRoot"}}
        self.images: Dict[str, bytes] = {}
        self.rejected_uploads = set()
        self._block_counter = 0
        self._children_calls = 0

    # recorded traffic helpers

    def api_calls(self, method: Optional[str] = None, suffix: str = "") -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host == "open.feishu.cn"
            and (method is None or r.method == method)
            and r.url.path.endswith(suffix)
        ]

    def children_calls(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.api_calls("POST", "/children")]

    def patch_calls(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.api_calls("PATCH", "/batch_update")]

    def upload_parent_nodes(self) -> List[str]:
        nodes = []
        for r in self.api_calls("POST", "/medias/upload_all"):
            match = _PARENT_NODE.search(r.content)
            nodes.append(match.group(1).decode() if match else "")
        return nodes

    # routing

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == IMAGE_HOST:
            body = self.images.get(str(request.url))
            if body is None:
                return httpx.Response(404, content=b"not found")
            return httpx.Response(200, content=body, headers={"Content-Type": "image/png"})

        path = request.url.path
        if request.method == "POST" and path == "/open-apis/docx/v1/documents":
            return httpx.Response(200, json=self.create_response)
        if request.method == "POST" and path.endswith("/children"):
            call_index = self._children_calls
            self._children_calls += 1
            if call_index in self.children_failures:
                return httpx.Response(200, json=self.children_failures[call_index])
            children = json.loads(request.content)["children"]
            created = []
            for _ in children:
                self._block_counter += 1
                created.append({"block_id": f"blk{self._block_counter}"})
            return httpx.Response(200, json={"code": 0, "msg": "success", "data": {"children": created}})
        if request.method == "POST" and path == "/open-apis/drive/v1/medias/upload_all":
            for marker in self.rejected_uploads:
                if marker in request.content:
                    return httpx.Response(200, json={"code": 1061002, "msg": "params error."})
            node = _PARENT_NODE.search(request.content).group(1).decode()
            return httpx.Response(200, json={"code": 0, "data": {"file_token": f"file-{node}"}})
        if request.method == "PATCH" and path.endswith("/blocks/batch_update"):
            return httpx.Response(200, json=self.patch_response)
        if path == "/open-apis/authen/v1/user_info":
            return httpx.Response(200, json=self.user_info)
        if path == "/open-apis/drive/explorer/v2/root_folder/meta":
            return httpx.Response(200, json=self.root_meta)
        return httpx.Response(404, json={"code": 404, "msg": f"unrouted {request.method} {path}"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_feishu():
    return FakeFeishu()


@pytest.fixture
def snapshot(clock):
    return CredentialSnapshot(
        access_token="u-access",
        refresh_token="ur-refresh",
        expires_at=int(clock()) + 7200,
        relay_endpoint="https://relay.test/",
    )


@pytest.fixture
def token_manager(snapshot, clock):
    async def refresher(current):
        raise AssertionError("refresh not expected")

    return TokenLifecycleManager(snapshot, refresher=refresher, clock=clock)


@pytest_asyncio.fixture
async def client(token_manager, fake_feishu):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_feishu))
    yield FeishuClient(token_manager, base_url=OPEN_API, http_client=http)
    await http.aclose()


@pytest.fixture
def service(token_manager, client):
    return FeishuDocumentService(token_manager, client=client, doc_base="https://feishu.cn")
