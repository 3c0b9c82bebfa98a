from .tts_client import TTSClient, SpeechError
from .factory import TTSFactory

__all__ = ["TTSClient", "SpeechError", "TTSFactory"]
