# ============================
# tts-service/tts/tts_client.py
# ============================
import time
from abc import ABC, abstractmethod

from config import logger

PREVIEW_LENGTH = 50


class SpeechError(Exception):
    """Cualquier fallo del backend de voz (inicialización, creación del objeto o la llamada)."""


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Versión recortada del texto para las líneas de log."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class TTSClient(ABC):
    """Interfaz para backends de voz.
    Toda clase que convierta texto en voz audible debe implementar este contrato."""

    name = "tts"

    def speak(self, text: str) -> None:
        """
        Lee el texto en voz alta y bloquea hasta que el backend termina.

        Registra un resumen del texto, el tiempo empleado y el resultado.
        Cualquier fallo se lanza como SpeechError.

        :param text: Texto ya validado.
        """
        logger.info(f"[TTS] ({self.name}) Leyendo: {preview(text)!r}")
        start = time.monotonic()

        try:
            self._synthesize(text)
        except SpeechError as e:
            elapsed = time.monotonic() - start
            logger.error(f"[TTS] ({self.name}) Fallo tras {elapsed:.2f}s: {e}")
            raise
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(f"[TTS] ({self.name}) Fallo tras {elapsed:.2f}s: {e}")
            raise SpeechError(str(e)) from e

        elapsed = time.monotonic() - start
        logger.info(f"[TTS] ({self.name}) Completado en {elapsed:.2f}s")

    @abstractmethod
    def _synthesize(self, text: str) -> None:
        """Llamada bloqueante propia de cada backend."""
        raise NotImplementedError
