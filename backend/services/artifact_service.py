import logging
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Optional

import aiohttp

from models.aura import VideoArtifact
from models.errors import DownloadError, FetchError
from services.credentials import Credential
from utils.env import settings

logger = logging.getLogger("artifact_service")

VIDEO_MIME_TYPE = "video/mp4"


class ArtifactStore:
    """Session-scoped directory of downloaded videos."""

    def __init__(self, root: Optional[str] = None):
        root = root if root is not None else settings.ARTIFACT_DIR
        if root:
            self.root = Path(root)
            self.root.mkdir(parents=True, exist_ok=True)
            self._owns_root = False
        else:
            self.root = Path(tempfile.mkdtemp(prefix="aura-artifacts-"))
            self._owns_root = True
        self._artifacts: dict[str, VideoArtifact] = {}
        logger.info(f"ArtifactStore ready at {self.root}")

    def __len__(self) -> int:
        return len(self._artifacts)

    def save(self, data: bytes, source_locator: str) -> VideoArtifact:
        artifact_id = uuid.uuid4().hex
        path = self.root / f"{artifact_id}.mp4"
        path.write_bytes(data)
        artifact = VideoArtifact(
            artifact_id=artifact_id,
            local_address=path.resolve().as_uri(),
            mime_type=VIDEO_MIME_TYPE,
            path=path,
            source_locator=source_locator,
            size_bytes=len(data),
        )
        self._artifacts[artifact_id] = artifact
        logger.info(f"Stored artifact {artifact_id[:8]} ({len(data)} bytes)")
        return artifact

    def get(self, artifact_id: str) -> Optional[VideoArtifact]:
        return self._artifacts.get(artifact_id)

    def read(self, artifact: VideoArtifact) -> bytes:
        return artifact.path.read_bytes()

    def revoke(self, artifact: Optional[VideoArtifact]) -> bool:
        if artifact is None or self._artifacts.pop(artifact.artifact_id, None) is None:
            return False
        artifact.path.unlink(missing_ok=True)
        logger.info(f"Revoked artifact {artifact.artifact_id[:8]}")
        return True

    def close(self):
        for artifact in list(self._artifacts.values()):
            self.revoke(artifact)
        if self._owns_root:
            shutil.rmtree(self.root, ignore_errors=True)
        logger.info("ArtifactStore closed")


class ArtifactMaterializer:
    """Downloads a finished video once and hands back a local artifact."""

    def __init__(self, store: ArtifactStore, session: Optional[aiohttp.ClientSession] = None):
        self.store = store
        self._session = session

    async def _download(self, session: aiohttp.ClientSession, locator: str, credential: Credential) -> bytes:
        async with session.get(locator, params={"key": credential.api_key}) as response:
            if not 200 <= response.status < 300:
                status_text = response.reason or str(response.status)
                logger.error(f"Video download failed: {response.status} {status_text}")
                raise DownloadError(status_text, status=response.status)
            server_type = response.headers.get("Content-Type")
            payload = await response.read()
            if server_type and server_type.split(";")[0].strip() != VIDEO_MIME_TYPE:
                logger.info(f"Server labelled video as {server_type}, retagging as {VIDEO_MIME_TYPE}")
            return payload

    async def materialize(self, locator: str, credential: Credential) -> VideoArtifact:
        logger.info("Downloading video content...")
        try:
            if self._session is not None:
                payload = await self._download(self._session, locator, credential)
            else:
                async with aiohttp.ClientSession() as session:
                    payload = await self._download(session, locator, credential)
        except aiohttp.ClientError as exc:
            raise FetchError(f"Failed to download video: {exc}") from exc
        return self.store.save(payload, source_locator=locator)
