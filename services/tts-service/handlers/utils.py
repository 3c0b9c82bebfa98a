import json

from config import TTS_CFG

MAX_TEXT_LENGTH = TTS_CFG["max_length"]


class TextValidationError(ValueError):
    """Texto rechazado antes de llegar al backend de voz."""


def extract_text(raw: str) -> str:
    """
    Elige el texto a leer a partir del payload decodificado.

    Gana un objeto JSON con un campo "text" de texto no vacío; cualquier otra
    cosa (JSON inválido, otros tipos JSON, "text" ausente o vacío) usa
    el payload en bruto.
    """
    try:
        data = json.loads(raw)
    except ValueError:
        return raw

    if isinstance(data, dict):
        text = data.get("text")
        if isinstance(text, str) and text:
            return text

    return raw


def normalize_text(text, max_length=MAX_TEXT_LENGTH) -> str:
    """Recorta el texto y aplica el límite de longitud (en caracteres)."""
    text = (text or "").strip()

    if not text:
        raise TextValidationError("el texto no puede estar vacío")

    if len(text) > max_length:
        raise TextValidationError(
            f"el texto no puede superar {max_length} caracteres (tiene {len(text)})"
        )

    return text
