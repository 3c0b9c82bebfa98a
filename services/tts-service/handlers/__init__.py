from .utils import TextValidationError, extract_text, normalize_text
from .speech_handler import SpeechDispatcher, SpeechTask
