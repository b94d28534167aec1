import logging

from utils.env import settings

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")

from blacksheep import Application
from rodi import Container

from services.artifact_service import ArtifactMaterializer, ArtifactStore
from services.job_service import JobService
from services.veo_service import VeoService

import controllers.auras  # noqa: F401
import controllers.jobs  # noqa: F401

veo_service = VeoService()
artifact_store = ArtifactStore()
job_service = JobService(veo_service, ArtifactMaterializer(artifact_store))

services = Container()
services.add_instance(veo_service)
services.add_instance(artifact_store)
services.add_instance(job_service)

app = Application(services=services)

app.use_cors(
    allow_methods="*",
    allow_origins="*",
    allow_headers="*",
)


async def on_stop(application: Application) -> None:
    await job_service.shutdown()


app.on_stop += on_stop
