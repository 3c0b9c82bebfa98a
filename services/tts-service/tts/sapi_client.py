# ============================
# tts-service/tts/sapi_client.py
# ============================
from tts.tts_client import TTSClient, SpeechError


class SapiClient(TTSClient):
    """
    Backend que controla la voz SAPI de Windows (SAPI.SpVoice) mediante COM.

    COM se inicializa y se libera en cada llamada, así el cliente se puede
    usar desde cualquier hilo, incluidos los hilos de cada mensaje.
    """

    name = "sapi"
    PROG_ID = "SAPI.SpVoice"

    def _synthesize(self, text: str) -> None:
        # pywin32 solo existe en Windows
        import pythoncom
        import win32com.client

        try:
            pythoncom.CoInitialize()
        except pythoncom.com_error as e:
            raise SpeechError(f"error al inicializar COM: {e}") from e

        try:
            try:
                voice = win32com.client.Dispatch(self.PROG_ID)
            except pythoncom.com_error as e:
                raise SpeechError(f"error al crear {self.PROG_ID}: {e}") from e

            try:
                # Flags=0: síncrono, vuelve cuando termina la reproducción
                voice.Speak(text, 0)
            except pythoncom.com_error as e:
                raise SpeechError(f"error en Speak: {e}") from e
            finally:
                del voice
        finally:
            pythoncom.CoUninitialize()
