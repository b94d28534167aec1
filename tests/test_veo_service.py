from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai.types import GenerateVideosConfig, Image

from fakes import make_operation
from services.credentials import Credential
from services.input_assembler import assemble
from services.veo_service import MAX_CACHED_CLIENTS, VeoService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _mock_client(operation=None):
    client = MagicMock()
    client.aio.models.generate_videos = AsyncMock(return_value=operation or make_operation())
    client.aio.operations.get = AsyncMock(return_value=make_operation(done=True, uri="https://x/y"))
    return client


@pytest.fixture
def clients():
    return {}


@pytest.fixture
def service(clients):
    def factory(api_key):
        clients[api_key] = _mock_client()
        return clients[api_key]

    return VeoService(client_factory=factory)


@pytest.mark.asyncio
async def test_text_only_submission(service, clients, credential):
    request = assemble(prompt="Standing still", aspect_ratio="16:9")

    await service.submit(request, credential)

    call = clients[credential.api_key].aio.models.generate_videos.await_args
    assert call.kwargs["model"] == "veo-3.1-fast-generate-preview"
    assert call.kwargs["prompt"] == request.full_prompt
    assert "image" not in call.kwargs
    config = call.kwargs["config"]
    assert isinstance(config, GenerateVideosConfig)
    assert config.aspect_ratio == "16:9"
    assert config.resolution == "720p"
    assert config.number_of_videos == 1


@pytest.mark.asyncio
async def test_image_submission_uses_image_variant(service, clients, credential):
    request = assemble(image_bytes=PNG_BYTES, image_mime_type="image/png")

    await service.submit(request, credential)

    call = clients[credential.api_key].aio.models.generate_videos.await_args
    image = call.kwargs["image"]
    assert isinstance(image, Image)
    assert image.image_bytes == PNG_BYTES
    assert image.mime_type == "image/png"
    assert call.kwargs["config"].aspect_ratio == "9:16"


@pytest.mark.asyncio
async def test_clients_are_cached_per_credential(service, clients, credential):
    request = assemble()
    other = Credential("another-key-987654")

    await service.submit(request, credential)
    await service.poll(make_operation(), credential)
    await service.submit(request, other)

    assert set(clients) == {credential.api_key, other.api_key}
    assert clients[credential.api_key].aio.models.generate_videos.await_count == 1
    assert clients[credential.api_key].aio.operations.get.await_count == 1


@pytest.mark.asyncio
async def test_poll_returns_refreshed_operation(service, clients, credential):
    operation = make_operation()

    refreshed = await service.poll(operation, credential)

    clients[credential.api_key].aio.operations.get.assert_awaited_once_with(operation)
    assert refreshed.done


def test_get_error_reads_message():
    assert VeoService.get_error(make_operation(done=True, error={"code": 7, "message": "denied"})) == "denied"
    assert VeoService.get_error(make_operation(done=True)) is None
    assert VeoService.get_error(SimpleNamespace(error=SimpleNamespace(message="boom"))) == "boom"


def test_get_result_locator():
    assert VeoService.get_result_locator(make_operation(done=True, uri="https://x/y")) == "https://x/y"
    assert VeoService.get_result_locator(make_operation(done=True)) is None
    assert VeoService.get_result_locator(SimpleNamespace(response=None, result=None)) is None


def test_get_result_locator_falls_back_to_result():
    video = SimpleNamespace(video=SimpleNamespace(uri="https://x/legacy"))
    operation = SimpleNamespace(response=None, result=SimpleNamespace(generated_videos=[video]))

    assert VeoService.get_result_locator(operation) == "https://x/legacy"


def test_get_state_from_metadata():
    assert VeoService.get_state(make_operation(state="ACTIVE")) == "ACTIVE"
    assert VeoService.get_state(make_operation()) is None


@pytest.mark.asyncio
async def test_client_cache_is_bounded(credential):
    created = []

    def factory(api_key):
        created.append(api_key)
        return _mock_client()

    service = VeoService(client_factory=factory)
    others = [Credential(f"per-request-key-{n:04d}") for n in range(MAX_CACHED_CLIENTS)]

    await service.submit(assemble(), credential)
    for other in others:
        await service.submit(assemble(), other)
    assert len(service._clients) == MAX_CACHED_CLIENTS
    assert credential.api_key not in service._clients

    # the most recent keys are still served from the cache
    await service.poll(make_operation(), others[-1])
    await service.submit(assemble(), credential)

    assert created.count(others[-1].api_key) == 1
    assert created.count(credential.api_key) == 2
