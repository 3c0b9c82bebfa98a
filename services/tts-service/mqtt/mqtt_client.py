import os
import threading
import paho.mqtt.client as mqtt

from config import MQTT_CFG, SERVICE_NAME, logger, parse_broker_uri


class TransportError(Exception):
    """Fallo fatal de conexión o suscripción durante el arranque."""


class MQTTClient:
    """
    Cliente MQTT del tts-service.
    - Se conecta al broker y espera el CONNACK (con límite)
    - Se suscribe al topic de voz y espera el SUBACK (con límite)
    - Se vuelve a suscribir tras cada reconexión automática
    - Entrega cada mensaje al callback inyectado
    """

    def __init__(self, config, on_message_cb=None, qos=None):
        self.config = config
        self.address = parse_broker_uri(config.broker)
        self.qos = MQTT_CFG["qos"] if qos is None else qos

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"{SERVICE_NAME}-{os.getpid()}",
            transport=self.address.transport,
        )

        # Autenticación
        if config.username:
            self.client.username_pw_set(
                config.username,
                config.password or None
            )

        if self.address.transport == "websockets":
            self.client.ws_set_options(path=self.address.path)

        if self.address.tls:
            self.client.tls_set()

        # Intervalo de reconexión fijo
        interval = MQTT_CFG["reconnect_interval"]
        self.client.reconnect_delay_set(min_delay=interval, max_delay=interval)

        # Callbacks
        self.client.on_connect = self.on_connect
        self.client.on_connect_fail = self.on_connect_fail
        self.client.on_disconnect = self.on_disconnect
        self.client.on_subscribe = self.on_subscribe
        self.client.on_message = self.on_message

        # Callback externo (inyectado desde main.py)
        self.on_message_cb = on_message_cb

        self._connected = threading.Event()
        self._connect_error = None
        self._subscribed = False
        self._suback = {}
        self._suback_cond = threading.Condition()
        self._stop = threading.Event()

    # ==========================================================
    #  CICLO DE VIDA
    # ==========================================================
    def start(self):
        """Conecta y suscribe. Lanza TransportError ante cualquier fallo."""
        self.connect()
        self.subscribe()

    def connect(self):
        logger.info(
            f"[MQTT] Conectando a {self.address.host}:{self.address.port} "
            f"({self.address.transport}{', tls' if self.address.tls else ''})..."
        )

        try:
            self.client.connect_async(
                self.address.host,
                self.address.port,
                MQTT_CFG["keepalive"]
            )
        except (OSError, ValueError) as e:
            raise TransportError(f"no se puede conectar a {self.config.broker}: {e}") from e

        self.client.loop_start()

        timeout = MQTT_CFG["connect_timeout"]
        if not self._connected.wait(timeout):
            self.client.loop_stop()
            raise TransportError(
                f"sin confirmación de conexión de {self.config.broker} "
                f"tras {timeout:g}s"
            )

        if self._connect_error is not None:
            self.client.loop_stop()
            raise TransportError(
                f"el broker rechazó la conexión: {self._connect_error}"
            )

    def subscribe(self):
        topic = self.config.topic
        result, mid = self.client.subscribe(topic, self.qos)

        if result != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"fallo al suscribirse a {topic}: {mqtt.error_string(result)}"
            )

        timeout = MQTT_CFG["subscribe_timeout"]
        with self._suback_cond:
            acked = self._suback_cond.wait_for(lambda: mid in self._suback, timeout)
            codes = self._suback.pop(mid, None)

        if not acked:
            raise TransportError(
                f"sin confirmación de suscripción a {topic} tras {timeout:g}s"
            )

        failed = [code for code in codes if code.is_failure]
        if failed:
            raise TransportError(f"suscripción a {topic} rechazada: {failed[0]}")

        self._subscribed = True
        logger.info(f"[MQTT] Suscrito a: {topic} (QoS {self.qos})")

    def loop_forever(self):
        """Bloquea hasta que se llama a stop() (manejador de señales, tests)."""
        while not self._stop.wait(1.0):
            pass

    def stop(self):
        self._stop.set()

    def close(self):
        self._stop.set()
        self.client.disconnect()
        self.client.loop_stop()
        logger.info("[MQTT] Desconectado")

    # ==========================================================
    #  MQTT CALLBACKS
    # ==========================================================
    def on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            logger.info("[MQTT] Conectado al broker")

            # Las suscripciones no sobreviven a una reconexión
            if self._subscribed:
                client.subscribe(self.config.topic, self.qos)
                logger.info(f"[MQTT] Suscrito de nuevo a: {self.config.topic}")
        else:
            logger.error(f"[MQTT] Error al conectar con el broker: {reason_code}")
            if not self._connected.is_set():
                self._connect_error = reason_code

        self._connected.set()

    def on_connect_fail(self, client, userdata):
        logger.warning("[MQTT] Falló el intento de conexión, reintentando...")

    def on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if self._stop.is_set():
            return
        logger.warning(f"[MQTT] Conexión perdida: {reason_code}")

    def on_subscribe(self, client, userdata, mid, reason_code_list, properties):
        codes = list(reason_code_list)

        if self._subscribed:
            failed = [code for code in codes if code.is_failure]
            if failed:
                logger.error(f"[MQTT] Nueva suscripción rechazada: {failed[0]}")
            return

        with self._suback_cond:
            self._suback[mid] = codes
            self._suback_cond.notify_all()

    def on_message(self, client, userdata, msg):
        if not self.on_message_cb:
            logger.debug(f"[MQTT] Mensaje ignorado ({msg.topic})")
            return

        try:
            self.on_message_cb(msg.topic, msg.payload)
        except Exception as e:
            logger.error(f"[MQTT] Error procesando mensaje de {msg.topic}: {e}")
