# ============================
# tts-service/tts/log_client.py
# ============================
from config import logger
from tts.tts_client import TTSClient


class LogClient(TTSClient):
    """Backend de simulación: escribe el texto en el log en lugar de reproducirlo."""

    name = "log"

    def _synthesize(self, text: str) -> None:
        logger.info(f"[TTS] (simulación) {text}")
