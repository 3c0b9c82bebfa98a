# main.py
# Archivo principal del tts-service.
#
# Conecta los componentes una sola vez al arrancar:
# - Resuelve la configuración (valores por defecto, archivo JSON, flags).
# - Construye el backend de voz mediante la factoría.
# - Suscribe el despachador de mensajes al topic MQTT y/o
#   sirve el endpoint HTTP.

import argparse
import signal
import sys
import threading

from config import (
    HTTP_CFG,
    LOG_FILE,
    LOG_LEVEL,
    ConfigError,
    load_config,
    logger,
    setup_logging,
)
from handlers.speech_handler import SpeechDispatcher
from mqtt.mqtt_client import MQTTClient, TransportError
from server.http_server import HTTPServerError, start_server
from tts.factory import TTSFactory

MODES = ("mqtt", "http", "both")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="tts-service",
        description="Lee en voz alta el texto recibido por MQTT o HTTP.",
    )
    parser.add_argument("-b", "--broker", help="URI del broker, p. ej. tcp://localhost:1883")
    parser.add_argument("-t", "--topic", help="topic al que suscribirse")
    parser.add_argument("-u", "--username", help="usuario del broker")
    parser.add_argument("-p", "--password", help="contraseña del broker")
    parser.add_argument("-c", "--config", help="archivo de configuración JSON")
    parser.add_argument("--mode", choices=MODES, default="mqtt",
                        help="puente mqtt, endpoint http o ambos (por defecto: mqtt)")
    parser.add_argument("--http-port", type=int, default=HTTP_CFG["port"],
                        help=f"puerto HTTP (por defecto: {HTTP_CFG['port']})")
    parser.add_argument("--log-file", default=LOG_FILE, help="escribe también los logs en este archivo")
    return parser


class TTSService:
    """
    Orquestador principal del tts-service. Mantiene la configuración, el
    backend de voz, el despachador y el cliente MQTT.
    """

    def __init__(self, config, tts_client, mode="mqtt", http_port=None):
        self.config = config
        self.tts = tts_client
        self.mode = mode
        self.http_port = http_port or HTTP_CFG["port"]

        self.dispatcher = SpeechDispatcher(self.tts)
        self.mqtt = None
        self.http_error = None

    # ==========================================================
    #  ARRANQUE
    # ==========================================================
    def start(self):
        logger.info(f"[MAIN] Iniciando tts-service ({self.mode}): {self.config.describe()}")

        if self.mode == "http":
            start_server(self.tts, port=self.http_port)
            return

        self.mqtt = MQTTClient(self.config, on_message_cb=self.dispatcher.handle)

        if self.mode == "both":
            http_thread = threading.Thread(
                target=self._serve_http, name="http-server", daemon=True
            )
            http_thread.start()

        self.mqtt.start()

        logger.info("[MAIN] tts-service listo. Esperando mensajes...")
        try:
            self.mqtt.loop_forever()
        finally:
            self.mqtt.close()

        if self.http_error is not None:
            raise self.http_error

    def _serve_http(self):
        """Hilo del servidor HTTP en modo both: si cae, detiene también el puente MQTT."""
        try:
            start_server(self.tts, port=self.http_port)
        except HTTPServerError as e:
            logger.error(f"[MAIN] El servidor HTTP se detuvo: {e}")
            self.http_error = e
            self.stop()

    def stop(self):
        if self.mqtt:
            self.mqtt.stop()


def setup_signal_handlers(service):
    def handler(signum, frame):
        logger.info(f"[MAIN] {signal.Signals(signum).name} recibido, deteniendo...")
        if service.mode == "http":
            sys.exit(0)
        service.stop()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(LOG_LEVEL, args.log_file)

    flags = {
        "broker": args.broker,
        "topic": args.topic,
        "username": args.username,
        "password": args.password,
    }

    try:
        config = load_config(flags, args.config)
        tts_client = TTSFactory.get_client()
    except (ConfigError, ValueError) as e:
        logger.error(f"[MAIN] Configuración inválida: {e}")
        sys.exit(1)

    service = TTSService(config, tts_client, mode=args.mode, http_port=args.http_port)
    setup_signal_handlers(service)

    try:
        service.start()
    except TransportError as e:
        logger.error(f"[MAIN] Error MQTT: {e}")
        sys.exit(1)
    except HTTPServerError as e:
        logger.error(f"[MAIN] Error del servidor HTTP: {e}")
        sys.exit(1)

    logger.info("[MAIN] tts-service detenido")


# ==========================================================
#  PUNTO DE ENTRADA
# ==========================================================
if __name__ == "__main__":
    main()
