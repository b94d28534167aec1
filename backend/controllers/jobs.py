# Job controller for aura video generation
import asyncio
import base64
import binascii
import logging

from blacksheep import Content, Request, Response, json
from blacksheep.server.controllers import APIController, get, post
from models.errors import MissingCredentialError, ValidationError
from services.credentials import SettingsCredentialProvider, StaticCredentialProvider
from services.input_assembler import assemble
from services.job_service import JobService

logger = logging.getLogger("jobs_controller")

API_KEY_HEADER = b"X-Goog-Api-Key"
DOWNLOAD_FILENAME = "aura_video.mp4"


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class Jobs(APIController):
    def __init__(self, job_service: JobService):
        self.job_service = job_service

    def _credential_provider(self, request: Request):
        header = request.get_first_header(API_KEY_HEADER)
        if header:
            return StaticCredentialProvider(_text(header))
        return SettingsCredentialProvider()

    async def _read_inputs(self, request: Request) -> dict:
        content_type = _text(request.get_first_header(b"Content-Type")).lower()

        if content_type.startswith("multipart/form-data"):
            inputs: dict = {}
            for part in await request.multipart():
                name = _text(part.name)
                if name == "image":
                    if part.data:
                        inputs["image_bytes"] = part.data
                        inputs["image_mime_type"] = _text(part.content_type) or None
                else:
                    inputs[name] = _text(part.data)
            return inputs

        data = await request.json()
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        inputs = {
            "prompt": data.get("prompt"),
            "aura_type": data.get("aura_type") or data.get("auraType"),
            "aspect_ratio": data.get("aspect_ratio") or data.get("aspectRatio"),
            "transformation_type": data.get("transformation_type") or data.get("transformationType"),
        }
        image_b64 = data.get("image_base64") or data.get("imageBase64")
        if image_b64:
            try:
                inputs["image_bytes"] = base64.b64decode(image_b64, validate=True)
            except (binascii.Error, ValueError):
                raise ValidationError("image_base64 is not valid base64")
            inputs["image_mime_type"] = data.get("image_mime_type") or data.get("imageMimeType")
        return inputs

    @post("/create")
    async def create_job(self, request: Request):
        logger.info("POST /api/jobs/create")
        provider = self._credential_provider(request)
        try:
            credential = provider.get_credential()
        except MissingCredentialError as exc:
            logger.warning("Rejected job: no API key")
            return json({"error": str(exc), "credential_retry": True}, status=401)

        try:
            inputs = await self._read_inputs(request)
            generation_request = assemble(
                prompt=inputs.get("prompt"),
                aura_type=inputs.get("aura_type"),
                aspect_ratio=inputs.get("aspect_ratio"),
                transformation_type=inputs.get("transformation_type"),
                image_bytes=inputs.get("image_bytes"),
                image_mime_type=inputs.get("image_mime_type"),
            )
        except ValidationError as exc:
            logger.warning(f"Rejected job: {exc}")
            return json({"error": str(exc)}, status=400)

        job_id = await self.job_service.create_job(generation_request, credential)
        logger.info(f"Job created: {job_id}")
        return json({"job_id": job_id})

    @get("/status/{job_id}")
    async def get_status(self, job_id: str) -> Response:
        logger.debug(f"GET /api/jobs/status/{job_id}")
        status = await self.job_service.get_job_status(job_id)

        if status is None:
            logger.warning(f"Job {job_id} not found")
            return json({"error": "Job not found"}, status=404)

        if status.status == "done":
            logger.info(f"Job {job_id} DONE, video_url={status.video_url}")
        return json(status.to_dict())

    @get("/video/{job_id}")
    async def get_video(self, job_id: str) -> Response:
        artifact = self.job_service.get_artifact(job_id)
        if artifact is None:
            return json({"error": "Video not ready"}, status=404)

        data = await asyncio.to_thread(self.job_service.store.read, artifact)
        return Response(
            200,
            [(b"Content-Disposition", f'attachment; filename="{DOWNLOAD_FILENAME}"'.encode())],
            Content(artifact.mime_type.encode(), data),
        )
