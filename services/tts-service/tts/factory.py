# ============================
# tts-service/tts/factory.py
# ============================
import sys

from config import TTS_CFG, logger
from tts.command_client import CommandClient
from tts.log_client import LogClient
from tts.sapi_client import SapiClient


class TTSFactory:
    """Factoría que genera backends de voz según configuración."""

    registry = {
        "sapi": SapiClient,
        "command": CommandClient,
        "log": LogClient,
    }

    @staticmethod
    def resolve_provider(provider=None, platform=None):
        provider = (provider or TTS_CFG["provider"] or "auto").strip().lower()
        if provider == "auto":
            platform = platform or sys.platform
            return "sapi" if platform.startswith("win") else "command"
        return provider

    @staticmethod
    def get_client(provider=None):
        provider = TTSFactory.resolve_provider(provider)
        cls = TTSFactory.registry.get(provider)

        if cls is None:
            raise ValueError(f"Proveedor TTS no soportado: {provider}")

        logger.info(f"[TTS] Usando backend {provider}")
        return cls()
