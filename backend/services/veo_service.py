import logging
from collections import OrderedDict
from typing import Any, Callable, Optional

from google import genai
from google.genai.types import (
    GenerateVideosConfig,
    GenerateVideosOperation,
    Image,
)
from models.aura import GenerationRequest
from services.credentials import Credential
from utils.env import settings

logger = logging.getLogger("veo_service")

MAX_CACHED_CLIENTS = 4


def _operation_response(operation: Any) -> Any:
    # the SDK exposes the payload as `response`, older builds as `result`
    return getattr(operation, "response", None) or getattr(operation, "result", None)


class VeoService:
    """Remote Veo collaborator: submit, poll, and read operation outcome."""

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None):
        self._client_factory = client_factory or (lambda api_key: genai.Client(api_key=api_key))
        self._clients: OrderedDict[str, Any] = OrderedDict()
        self.model_id = settings.VEO_MODEL
        self.resolution = settings.VEO_RESOLUTION
        self.number_of_videos = settings.VEO_NUMBER_OF_VIDEOS
        logger.info(f"VeoService initialized, model={self.model_id}, resolution={self.resolution}")

    def _client(self, credential: Credential):
        client = self._clients.get(credential.api_key)
        if client is not None:
            self._clients.move_to_end(credential.api_key)
            return client

        logger.info(f"Creating genai client for key {credential.masked}")
        client = self._client_factory(credential.api_key)
        self._clients[credential.api_key] = client
        # least recently used key is dropped first
        while len(self._clients) > MAX_CACHED_CLIENTS:
            self._clients.popitem(last=False)
        return client

    def build_config(self, request: GenerationRequest) -> GenerateVideosConfig:
        return GenerateVideosConfig(
            number_of_videos=self.number_of_videos,
            resolution=self.resolution,
            aspect_ratio=request.aspect_ratio.value,
        )

    async def submit(self, request: GenerationRequest, credential: Credential) -> GenerateVideosOperation:
        client = self._client(credential)
        config = self.build_config(request)

        if request.image is not None:
            logger.info(f"Calling Veo image-to-video with {request.image.mime_type} ({request.image.size} bytes)")
            operation = await client.aio.models.generate_videos(
                model=self.model_id,
                prompt=request.full_prompt,
                image=Image(
                    image_bytes=request.image.data,
                    mime_type=request.image.mime_type,
                ),
                config=config,
            )
        else:
            logger.info("Calling Veo text-to-video")
            operation = await client.aio.models.generate_videos(
                model=self.model_id,
                prompt=request.full_prompt,
                config=config,
            )

        logger.info(f"Veo operation submitted: {getattr(operation, 'name', None)}")
        return operation

    async def poll(self, operation: GenerateVideosOperation, credential: Credential) -> GenerateVideosOperation:
        client = self._client(credential)
        return await client.aio.operations.get(operation)

    @staticmethod
    def get_error(operation: Any) -> Optional[str]:
        error = getattr(operation, "error", None)
        if not error:
            return None
        if isinstance(error, dict):
            return str(error.get("message") or error)
        return str(getattr(error, "message", None) or error)

    @staticmethod
    def get_result_locator(operation: Any) -> Optional[str]:
        response = _operation_response(operation)
        if not response:
            return None
        videos = getattr(response, "generated_videos", None)
        if not videos:
            return None
        video = getattr(videos[0], "video", None)
        return getattr(video, "uri", None) or None

    @staticmethod
    def get_state(operation: Any) -> Optional[str]:
        metadata = getattr(operation, "metadata", None)
        if isinstance(metadata, dict):
            return metadata.get("state")
        return None
