"""End-to-end tests for publishing a document against a fake Open API."""

import hashlib
import json

import httpx
import pytest

from errors import RemoteApiError, SessionExpiredError, TransportError
from feishu import CompletionRecord, CreateDocumentRequest, FeishuClient, FeishuDocumentService, ImageUploaded
from oauth import CredentialSnapshot, TokenLifecycleManager

from conftest import OPEN_API


@pytest.mark.asyncio
async def test_publish_text_and_image(service, fake_feishu):
    fake_feishu.images["http://img.test/img.png"] = b"png-bytes"

    record = await service.create_document(CreateDocumentRequest(
        title="Clipped page",
        content="Hello\n![x](http://img.test/img.png)\nWorld",
        repository_id="fldcnDest",
    ))

    [create] = fake_feishu.api_calls("POST", "/open-apis/docx/v1/documents")
    assert json.loads(create.content) == {"folder_token": "fldcnDest", "title": "Clipped page"}

    [children_call] = fake_feishu.children_calls()
    assert [child["block_type"] for child in children_call["children"]] == [2, 27, 2]

    [patch] = fake_feishu.patch_calls()
    assert patch == {"requests": [{"block_id": "blk2", "replace_image": {"token": "file-blk2"}}]}

    assert record.href == "https://feishu.cn/docx/doxcnTest"
    assert record.document_id == "doxcnTest"
    assert record.repository_id == "fldcnDest"
    assert record.images == [ImageUploaded(block_id="blk2", source_url="http://img.test/img.png",
                                           media_token="file-blk2")]


@pytest.mark.asyncio
async def test_request_dict_with_clipper_field_names_is_accepted(service, fake_feishu):
    record = await service.create_document({"title": "t", "content": "body", "repositoryId": "fld1"})

    assert record.repository_id == "fld1"
    assert record.model_dump(by_alias=True, exclude={"images"}) == {
        "href": "https://feishu.cn/docx/doxcnTest",
        "repositoryId": "fld1",
        "documentId": "doxcnTest",
    }


@pytest.mark.asyncio
async def test_document_creation_rejected_issues_no_block_calls(service, fake_feishu):
    fake_feishu.create_response = {"code": 7, "msg": "no permission"}

    with pytest.raises(RemoteApiError) as exc_info:
        await service.create_document(CreateDocumentRequest(title="t", content="a\nb", repository_id="f"))

    assert exc_info.value.message == "no permission"
    assert exc_info.value.code == 7
    assert fake_feishu.children_calls() == []


@pytest.mark.asyncio
async def test_creation_response_without_document_id_is_a_transport_error(service, fake_feishu):
    fake_feishu.create_response = {"code": 0, "data": {"document": {}}}

    with pytest.raises(TransportError):
        await service.create_document(CreateDocumentRequest(title="t", content="a", repository_id="f"))
    assert fake_feishu.children_calls() == []


@pytest.mark.asyncio
async def test_expired_session_makes_no_document_service_calls(clock, fake_feishu):
    async def refresher(snapshot):
        request = httpx.Request("POST", "https://relay.test/refresh")
        raise httpx.ConnectError("relay unreachable", request=request)

    snapshot = CredentialSnapshot(
        access_token="old", refresh_token="r", expires_at=int(clock()) - 1, relay_endpoint="https://relay.test",
    )
    manager = TokenLifecycleManager(snapshot, refresher=refresher, clock=clock)
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_feishu)) as http:
        service = FeishuDocumentService(manager, client=FeishuClient(manager, base_url=OPEN_API, http_client=http))

        with pytest.raises(SessionExpiredError):
            await service.create_document(CreateDocumentRequest(title="t", content="a", repository_id="f"))

    assert fake_feishu.requests == []


@pytest.mark.asyncio
async def test_failed_batch_leaves_partial_document_and_propagates(service, fake_feishu):
    fake_feishu.children_failures[1] = {"code": 1770001, "msg": "invalid param"}
    content = "\n".join(f"line {i}" for i in range(120))

    with pytest.raises(RemoteApiError, match="invalid param"):
        await service.create_document(CreateDocumentRequest(title="t", content=content, repository_id="f"))

    assert len(fake_feishu.children_calls()) == 2


@pytest.mark.asyncio
async def test_broken_images_do_not_fail_the_publish(service, fake_feishu):
    fake_feishu.images["https://img.test/good.png"] = b"good"
    content = "intro\n![a](https://img.test/gone.png)\n![b](https://img.test/good.png)\noutro"

    record = await service.create_document(CreateDocumentRequest(title="t", content=content, repository_id="f"))

    assert isinstance(record, CompletionRecord)
    assert [image.status for image in record.images] == ["failed", "uploaded"]
    assert [f.source_url for f in record.failed_images] == ["https://img.test/gone.png"]
    [patch] = fake_feishu.patch_calls()
    assert len(patch["requests"]) == 1


@pytest.mark.asyncio
async def test_images_across_batches_are_patched_per_batch(token_manager, client, fake_feishu):
    service = FeishuDocumentService(token_manager, client=client, batch_size=2)
    for i in range(3):
        fake_feishu.images[f"https://img.test/{i}.png"] = b"x"
    content = "\n".join(f"![i](https://img.test/{i}.png)" for i in range(3))

    record = await service.create_document(CreateDocumentRequest(title="t", content=content, repository_id="f"))

    assert [len(call["children"]) for call in fake_feishu.children_calls()] == [2, 1]
    assert [len(p["requests"]) for p in fake_feishu.patch_calls()] == [2, 1]
    assert [image.source_url for image in record.images] == [f"https://img.test/{i}.png" for i in range(3)]


@pytest.mark.asyncio
async def test_empty_content_creates_an_empty_document(service, fake_feishu):
    record = await service.create_document(CreateDocumentRequest(title="t", content="", repository_id="f"))

    assert record.document_id == "doxcnTest"
    assert fake_feishu.children_calls() == []


@pytest.mark.asyncio
async def test_user_info_is_fetched_once(service, fake_feishu):
    first = await service.get_user_info()
    second = await service.get_user_info()

    assert first == second
    assert first.name == "Ada"
    assert first.avatar == "https://a/ava.png"
    assert len(fake_feishu.api_calls("GET", "/user_info")) == 1


@pytest.mark.asyncio
async def test_user_info_falls_back_to_english_name(service, fake_feishu):
    fake_feishu.user_info = {"code": 0, "data": {"en_name": "Ada L."}}

    assert (await service.get_user_info()).name == "Ada L."


@pytest.mark.asyncio
async def test_repositories_use_root_folder_token(service):
    [repository] = await service.get_repositories()

    assert repository.id == "fldcnRoot"


@pytest.mark.asyncio
async def test_repositories_fall_back_to_root_alias(service, fake_feishu):
    fake_feishu.root_meta = {"code": 99991672, "msg": "scope missing"}

    [repository] = await service.get_repositories()

    assert repository.id == "root"


@pytest.mark.asyncio
async def test_service_id_is_derived_from_relay(service):
    assert service.get_id() == hashlib.md5(b"https://relay.test/").hexdigest()


@pytest.mark.asyncio
async def test_repositories_propagate_expired_session(clock, fake_feishu):
    async def refresher(snapshot):
        raise SessionExpiredError("relay rejected refresh")

    snapshot = CredentialSnapshot(access_token="old", refresh_token="r", expires_at=int(clock()) - 1)
    manager = TokenLifecycleManager(snapshot, refresher=refresher, clock=clock)
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_feishu)) as http:
        service = FeishuDocumentService(manager, client=FeishuClient(manager, base_url=OPEN_API, http_client=http))

        with pytest.raises(SessionExpiredError):
            await service.get_repositories()


@pytest.mark.asyncio
async def test_control_character_in_image_url_fails_only_that_image(service, fake_feishu):
    record = await service.create_document({
        "title": "t", "content": "Hi\n![x](http://img.test/\tb.png)\nBye", "repositoryId": "f",
    })

    [image] = record.images
    assert image.status == "failed"
    assert image.source_url == "http://img.test/\tb.png"
    assert len(fake_feishu.children_calls()) == 1


@pytest.mark.asyncio
async def test_session_expiring_mid_publish_fails_it_with_one_refresh(clock, fake_feishu):
    refresh_calls = []

    async def refresher(snapshot):
        refresh_calls.append(snapshot)
        raise RuntimeError("relay down")

    def handler(request):
        response = fake_feishu(request)
        if request.url.path.endswith("/children"):
            clock.advance(8000)
        return response

    for i in range(3):
        fake_feishu.images[f"http://img.test/{i}.png"] = b"x"
    content = "\n".join(f"![i](http://img.test/{i}.png)" for i in range(3))
    snapshot = CredentialSnapshot(access_token="a", refresh_token="r", expires_at=int(clock()) + 7200)
    manager = TokenLifecycleManager(snapshot, refresher=refresher, clock=clock)
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        service = FeishuDocumentService(manager, client=FeishuClient(manager, base_url=OPEN_API, http_client=http))

        with pytest.raises(SessionExpiredError):
            await service.create_document(CreateDocumentRequest(title="t", content=content, repository_id="f"))

    assert len(refresh_calls) == 1
    assert fake_feishu.upload_parent_nodes() == []
    assert fake_feishu.patch_calls() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [["doxcnTest"], {"document": ["doxcnTest"]}])
async def test_creation_response_with_unexpected_data_shape_is_a_transport_error(service, fake_feishu, data):
    fake_feishu.create_response = {"code": 0, "data": data}

    with pytest.raises(TransportError):
        await service.create_document(CreateDocumentRequest(title="t", content="a", repository_id="f"))
    assert fake_feishu.children_calls() == []


@pytest.mark.asyncio
async def test_block_response_with_unexpected_data_shape_is_a_transport_error(service, fake_feishu):
    fake_feishu.children_failures[0] = {"code": 0, "data": ["blk1"]}

    with pytest.raises(TransportError):
        await service.create_document(CreateDocumentRequest(title="t", content="a", repository_id="f"))


@pytest.mark.asyncio
async def test_repositories_fall_back_when_data_is_not_an_object(service, fake_feishu):
    fake_feishu.root_meta = {"code": 0, "data": "fldcnRoot"}

    [repository] = await service.get_repositories()

    assert repository.id == "root"
