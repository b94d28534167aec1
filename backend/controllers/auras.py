from blacksheep import json
from blacksheep.server.controllers import APIController, get

from services.credentials import SettingsCredentialProvider
from utils.aura_presets import presets_payload


class Auras(APIController):
    @classmethod
    def route(cls):
        return "/api/auras"

    @get("/health")
    async def health_check(self):
        return json({"status": "ok"})

    @get("/presets")
    async def get_presets(self):
        payload = presets_payload()
        payload["server_key_configured"] = SettingsCredentialProvider().has_credential()
        return json(payload)
