# ============================
# tts-service/tts/command_client.py
# ============================
import shlex
import shutil
import subprocess
import sys

from config import TTS_CFG, logger
from tts.tts_client import TTSClient, SpeechError

# stdin llega en UTF-8; PowerShell lo leería con la página de códigos OEM
POWERSHELL_SCRIPT = (
    "[Console]::InputEncoding = [System.Text.Encoding]::UTF8; "
    "Add-Type -AssemblyName System.Speech; "
    "$s = New-Object System.Speech.Synthesis.SpeechSynthesizer; "
    "$s.Speak([Console]::In.ReadToEnd()); "
    "$s.Dispose()"
)


def default_command(platform=None):
    """
    Comando de voz para la plataforma actual. El texto siempre va por stdin,
    nunca en la línea de comandos.
    """
    platform = platform or sys.platform

    if platform.startswith("win"):
        return [
            "powershell", "-NoProfile", "-NonInteractive",
            "-Command", POWERSHELL_SCRIPT,
        ]

    if platform == "darwin":
        return ["say", "-f", "-"]

    for binary in ("espeak-ng", "espeak"):
        if shutil.which(binary):
            return [binary, "--stdin"]

    return ["espeak-ng", "--stdin"]


class CommandClient(TTSClient):
    """
    Backend por subproceso: pasa el texto a un comando de voz y lo espera.

    Flujo:
    - Lanza el comando con el texto por stdin.
    - Lo espera (límite estricto command_timeout).
    - Salida distinta de cero, binario ausente o timeout -> SpeechError.
    """

    name = "command"

    def __init__(self, command=None, timeout=None):
        if command is None:
            command = TTS_CFG["command"]
        if isinstance(command, str):
            command = shlex.split(command) if command.strip() else None

        self.command = list(command) if command else default_command()
        self.timeout = TTS_CFG["command_timeout"] if timeout is None else timeout
        logger.debug(f"[TTS] Backend por comando: {self.command}")

    def _synthesize(self, text: str) -> None:
        try:
            result = subprocess.run(
                self.command,
                input=text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise SpeechError(f"comando de voz no encontrado: {self.command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise SpeechError(f"el comando de voz superó el tiempo límite de {self.timeout}s") from e
        except OSError as e:
            raise SpeechError(f"no se puede ejecutar el comando de voz: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or "sin salida"
            raise SpeechError(
                f"el comando de voz terminó con código {result.returncode}: {detail}"
            )
