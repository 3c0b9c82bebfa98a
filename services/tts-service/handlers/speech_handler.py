import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout

from config import TTS_CFG, logger
from handlers.utils import (
    MAX_TEXT_LENGTH,
    TextValidationError,
    extract_text,
    normalize_text,
)
from tts.tts_client import SpeechError, preview


class SpeechTask:
    """
    Referencia a una petición de voz asíncrona.

    ``future`` se completa cuando el backend termina (aunque ya se haya
    registrado un timeout). ``timed_out`` lo marca el supervisor al dejar de esperar.
    """

    def __init__(self, text: str):
        self.text = text
        self.future = Future()
        self.timed_out = threading.Event()
        self.supervised = threading.Event()

    def done(self) -> bool:
        return self.future.done()

    def wait(self, timeout=None) -> bool:
        """Espera a que el supervisor termine (resultado o timeout)."""
        return self.supervised.wait(timeout)


class SpeechDispatcher:
    """
    Callback de mensajes MQTT: decodifica el payload, valida el texto y
    se lo pasa al backend de voz.

    En modo asíncrono cada mensaje tiene su propio hilo y un supervisor
    que espera como mucho ``timeout`` segundos. La llamada al backend no se
    puede cancelar, así que al vencer el supervisor solo deja de esperar.
    """

    def __init__(self, tts_client, async_dispatch=None, timeout=None,
                 max_length=MAX_TEXT_LENGTH):
        self.tts = tts_client
        self.async_dispatch = TTS_CFG["async"] if async_dispatch is None else async_dispatch
        self.timeout = TTS_CFG["timeout"] if timeout is None else timeout
        self.max_length = max_length

    # ==========================================================
    #  ENTRADA MQTT
    # ==========================================================
    def handle(self, topic: str, payload: bytes):
        """
        Procesa un mensaje entrante. Nunca lanza por problemas del propio mensaje.

        :return: SpeechTask en modo asíncrono, True/False en modo síncrono,
                 None si el mensaje se descartó.
        """
        try:
            raw = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"[HANDLER] El payload de {topic} no es UTF-8 válido: {e}")
            return None

        try:
            text = normalize_text(extract_text(raw), self.max_length)
        except TextValidationError as e:
            logger.warning(f"[HANDLER] Mensaje rechazado en {topic}: {e}")
            return None

        logger.info(f"[HANDLER] Texto recibido en {topic}: {preview(text)!r}")
        return self.dispatch(text)

    # ==========================================================
    #  DESPACHO
    # ==========================================================
    def dispatch(self, text: str):
        if not self.async_dispatch:
            return self._speak(text)

        task = SpeechTask(text)

        worker = threading.Thread(
            target=self._run, args=(task,), name="tts-worker", daemon=True
        )
        supervisor = threading.Thread(
            target=self._supervise, args=(task,), name="tts-supervisor", daemon=True
        )
        worker.start()
        supervisor.start()
        return task

    def _speak(self, text: str) -> bool:
        try:
            self.tts.speak(text)
        except SpeechError as e:
            logger.error(f"[HANDLER] Error en la síntesis: {e}")
            return False
        return True

    def _run(self, task: SpeechTask):
        try:
            self.tts.speak(task.text)
        except Exception as e:
            task.future.set_exception(e)
            if task.timed_out.is_set():
                logger.error(f"[HANDLER] La lectura abandonada terminó con error: {e}")
            return

        task.future.set_result(True)
        if task.timed_out.is_set():
            logger.info(f"[HANDLER] La lectura abandonada terminó: {preview(task.text)!r}")

    def _supervise(self, task: SpeechTask):
        try:
            task.future.result(timeout=self.timeout)
        except FutureTimeout:
            task.timed_out.set()
            logger.warning(
                f"[HANDLER] Tiempo de espera agotado tras {self.timeout:g}s, "
                f"se deja de esperar: {preview(task.text)!r}"
            )
        except SpeechError as e:
            logger.error(f"[HANDLER] Error en la síntesis: {e}")
        except Exception as e:
            logger.error(f"[HANDLER] Error inesperado en la lectura: {e}")
        finally:
            task.supervised.set()
