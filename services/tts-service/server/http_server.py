# server/http_server.py
# Endpoint HTTP que expone el backend de voz: POST /tts

import json
from flask import Flask, request, jsonify

from config import HTTP_CFG, logger
from handlers.utils import MAX_TEXT_LENGTH, TextValidationError, normalize_text
from tts.tts_client import SpeechError, preview

PLAIN_TEXT = {"Content-Type": "text/plain; charset=utf-8"}


class HTTPServerError(Exception):
    """El servidor HTTP no pudo arrancar o se detuvo por un error (p. ej. puerto ocupado)."""


def _error(message, status):
    return message, status, PLAIN_TEXT


def _read_text():
    """
    Extrae el campo "text" de un cuerpo JSON o de formulario.
    Devuelve (texto, None) o (None, respuesta_de_error).
    """
    content_type = request.headers.get("Content-Type", "")

    if "application/json" in content_type:
        try:
            data = json.loads(request.get_data(as_text=True) or "null")
        except ValueError:
            return None, _error("Cuerpo JSON no válido", 400)

        if data is None:
            return "", None
        if not isinstance(data, dict):
            return None, _error("El cuerpo JSON debe ser un objeto", 400)

        text = data.get("text", "")
        if text is None:
            text = ""
        if not isinstance(text, str):
            return None, _error("'text' debe ser una cadena de texto", 400)
        return text, None

    if "application/x-www-form-urlencoded" in content_type:
        return request.form.get("text", ""), None

    return None, _error(
        "Content-Type no soportado, use application/json o "
        "application/x-www-form-urlencoded",
        415,
    )


def create_app(tts_client, max_length=MAX_TEXT_LENGTH):
    """Construye la app Flask alrededor de un backend de voz ya creado."""
    app = Flask(__name__)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return "Solo se admite POST", 405, {**PLAIN_TEXT, "Allow": "POST"}

    # Sin OPTIONS automático: cualquier método que no sea POST recibe 405
    @app.route("/tts", methods=["POST"], provide_automatic_options=False)
    def tts():
        text, error = _read_text()
        if error is not None:
            return error

        try:
            text = normalize_text(text, max_length)
        except TextValidationError as e:
            return _error(str(e), 400)

        logger.info(f"[HTTP] Petición de lectura: {preview(text)!r}")
        try:
            tts_client.speak(text)
        except SpeechError as e:
            logger.error(f"[HTTP] Error de TTS: {e}")
            return _error("Fallo en TTS, revise la configuración de voz del sistema", 500)

        return jsonify({"status": "success", "msg": "Lectura iniciada"}), 200

    return app


def log_banner(host, port):
    url = f"http://localhost:{port}/tts"
    logger.info(f"[HTTP] Endpoint TTS escuchando en {host}:{port} ({url})")
    logger.info("[HTTP] Solo POST, Content-Type: application/json o application/x-www-form-urlencoded")
    logger.info(
        f"[HTTP] Ejemplo (JSON): curl -X POST {url} "
        "-H \"Content-Type: application/json\" -d '{\"text\":\"¡Hola, mundo!\"}'"
    )
    logger.info(f"[HTTP] Ejemplo (formulario): curl -X POST {url} -d \"text=Hola desde tts-service\"")


def start_server(tts_client, host=None, port=None):
    """
    Ejecuta el servidor HTTP. Bloquea; se lanza en un hilo para combinarlo con MQTT.

    :raises HTTPServerError: si el servidor no puede escuchar en host:port.
    """
    host = host or HTTP_CFG["host"]
    port = port or HTTP_CFG["port"]

    app = create_app(tts_client)
    log_banner(host, port)
    try:
        app.run(host=host, port=port, threaded=True, use_reloader=False)
    except OSError as e:
        raise HTTPServerError(f"no se puede escuchar en {host}:{port}: {e}") from e
    except SystemExit as e:
        # werkzeug termina con sys.exit(1) si el puerto está ocupado
        raise HTTPServerError(f"no se puede escuchar en {host}:{port} (código {e.code})") from e
