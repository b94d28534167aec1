import logging
from dataclasses import dataclass, field
from typing import Protocol

from models.errors import CredentialSelectionCancelled, MissingCredentialError
from utils.env import Settings, settings

logger = logging.getLogger("credentials")


@dataclass(frozen=True)
class Credential:
    """Explicit API key handed to every remote call; never stored globally."""
    api_key: str = field(repr=False)

    @property
    def masked(self) -> str:
        if len(self.api_key) <= 8:
            return "****"
        return f"{self.api_key[:4]}...{self.api_key[-4:]}"

    def __repr__(self) -> str:
        return f"Credential({self.masked})"


class CredentialProvider(Protocol):
    def has_credential(self) -> bool: ...

    def request_credential(self) -> None: ...

    def get_credential(self) -> Credential: ...


class StaticCredentialProvider:
    """Holds a key supplied by the caller (e.g. per-request header)."""

    def __init__(self, api_key: str | None = None):
        self._credential = Credential(api_key.strip()) if api_key and api_key.strip() else None

    def has_credential(self) -> bool:
        return self._credential is not None

    def request_credential(self) -> None:
        if self._credential is None:
            raise CredentialSelectionCancelled("No API key was provided.")

    def get_credential(self) -> Credential:
        if self._credential is None:
            raise MissingCredentialError()
        return self._credential


class SettingsCredentialProvider(StaticCredentialProvider):
    """
    Starts from the configured GEMINI_API_KEY; request_credential() loads
    the environment again so a key configured after startup is picked up.
    """

    def __init__(self):
        super().__init__(settings.GEMINI_API_KEY)

    def request_credential(self) -> None:
        super().__init__(Settings().GEMINI_API_KEY)
        if not self.has_credential():
            logger.warning("GEMINI_API_KEY not set - credential selection cancelled")
            raise CredentialSelectionCancelled("GEMINI_API_KEY is not configured.")
