import os
import sys
import json
import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

# =========================
#  IDENTIDAD DEL SERVICIO
# =========================
SERVICE_NAME = os.getenv("SERVICE_NAME", "tts-service")

# =========================
#  MQTT
# =========================
# Valores por defecto del resolvedor (capa de menor prioridad)
DEFAULTS = {
    "broker": os.getenv("MQTT_BROKER", "tcp://localhost:1883"),
    "topic": os.getenv("MQTT_TOPIC", "home/tts/say"),
    "username": os.getenv("MQTT_USER", ""),
    "password": os.getenv("MQTT_PASS", ""),
}

MQTT_CFG = {
    "qos": int(os.getenv("MQTT_QOS", "1")),
    "keepalive": int(os.getenv("MQTT_KEEPALIVE", "60")),
    "connect_timeout": float(os.getenv("MQTT_CONNECT_TIMEOUT_S", "10")),
    "subscribe_timeout": float(os.getenv("MQTT_SUBSCRIBE_TIMEOUT_S", "10")),
    "reconnect_interval": int(os.getenv("MQTT_RECONNECT_INTERVAL_S", "5")),
}

# =========================
#  TTS
# =========================
TTS_CFG = {
    "provider": os.getenv("TTS_PROVIDER", "auto").strip().lower(),
    "command": os.getenv("TTS_COMMAND", ""),
    "command_timeout": float(os.getenv("TTS_COMMAND_TIMEOUT_S", "120")),
    "timeout": float(os.getenv("TTS_TIMEOUT_S", "30")),
    "async": os.getenv("TTS_ASYNC", "true").strip().lower() in ("1", "true", "yes", "on"),
    "max_length": int(os.getenv("TTS_MAX_LENGTH", "500")),
}

# =========================
#  HTTP
# =========================
HTTP_CFG = {
    "host": os.getenv("HTTP_HOST", "0.0.0.0"),
    "port": int(os.getenv("HTTP_PORT", "5555")),
}

CONFIG_FILE = os.getenv("TTS_CONFIG_FILE", "tts_config.json")

# =========================
#  LOGGING
# =========================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"

logger = logging.getLogger(SERVICE_NAME)

CONFIG_KEYS = ("broker", "topic", "username", "password")

# esquema -> (transporte, tls, puerto por defecto)
BROKER_SCHEMES = {
    "tcp": ("tcp", False, 1883),
    "mqtt": ("tcp", False, 1883),
    "ssl": ("tcp", True, 8883),
    "tls": ("tcp", True, 8883),
    "mqtts": ("tcp", True, 8883),
    "ws": ("websockets", False, 80),
    "wss": ("websockets", True, 443),
}


class ConfigError(Exception):
    """Configuración inválida o archivo de configuración mal formado."""


@dataclass(frozen=True)
class BrokerAddress:
    host: str
    port: int
    transport: str = "tcp"
    tls: bool = False
    path: str = "/mqtt"


@dataclass(frozen=True)
class Configuration:
    """
    Configuración efectiva del servicio, construida una sola vez al arrancar.
    """

    broker: str
    topic: str
    username: str = ""
    password: str = ""

    def validate(self):
        if not self.broker.strip():
            raise ConfigError("la URI del broker no puede estar vacía")
        if not self.topic.strip():
            raise ConfigError("el topic no puede estar vacío")
        parse_broker_uri(self.broker)

    def describe(self) -> str:
        """Resumen legible sin la contraseña."""
        user = self.username or "-"
        return f"broker={self.broker} topic={self.topic} user={user}"


def setup_logging(level=LOG_LEVEL, log_file=LOG_FILE):
    """
    Configura el logger raíz con salida por consola y, si se indica una ruta,
    también a archivo. Se puede llamar más de una vez.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    return logger


def parse_broker_uri(uri: str) -> BrokerAddress:
    """
    Separa una URI de broker como ``tcp://host:1883`` o ``wss://host/mqtt``
    en las piezas que necesita paho. Un ``host[:puerto]`` sin esquema es TCP.
    """
    raw = uri.strip()
    if "://" not in raw:
        raw = f"tcp://{raw}"

    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    if scheme not in BROKER_SCHEMES:
        raise ConfigError(f"esquema de broker no soportado '{scheme}' en {uri!r}")

    try:
        port = parts.port
    except ValueError:
        raise ConfigError(f"puerto de broker inválido en {uri!r}") from None

    if not parts.hostname:
        raise ConfigError(f"la URI del broker {uri!r} no tiene host")

    transport, tls, default_port = BROKER_SCHEMES[scheme]
    return BrokerAddress(
        host=parts.hostname,
        port=port or default_port,
        transport=transport,
        tls=tls,
        path=parts.path or "/mqtt",
    )


def load_config_file(path) -> dict:
    """
    Lee un archivo de configuración JSON y devuelve solo las claves conocidas
    con texto no vacío. Cualquier error de lectura o de formato es fatal.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except OSError as e:
        raise ConfigError(f"no se puede leer el archivo de configuración {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"archivo de configuración mal formado {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"el archivo de configuración {path} debe contener un objeto JSON")

    values = {}
    for key in CONFIG_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            values[key] = value
        elif key in data:
            logger.debug(f"[CONFIG] Se ignora '{key}' en {path}: no es un texto no vacío")
    return values


def find_config_file(explicit=None, cwd=None):
    """
    Devuelve el archivo de configuración a cargar: la ruta explícita si se da
    (debe existir), si no CONFIG_FILE en el directorio de trabajo si existe.
    """
    if explicit:
        if not os.path.isfile(explicit):
            raise ConfigError(f"archivo de configuración no encontrado: {explicit}")
        return explicit

    candidate = os.path.join(cwd or os.getcwd(), CONFIG_FILE)
    if os.path.isfile(candidate):
        return candidate
    return None


def resolve_config(flags=None, file_values=None, defaults=None) -> Configuration:
    """
    Combina las tres capas. Por campo: flag si está, si no archivo si está,
    si no el valor por defecto. El texto vacío cuenta como no definido.
    """
    flags = flags or {}
    file_values = file_values or {}
    defaults = DEFAULTS if defaults is None else defaults

    merged = {}
    for key in CONFIG_KEYS:
        merged[key] = defaults.get(key, "") or ""
        if file_values.get(key):
            merged[key] = file_values[key]
        if flags.get(key):
            merged[key] = flags[key]

    config = Configuration(**merged)
    config.validate()
    return config


def load_config(flags=None, config_path=None, cwd=None) -> Configuration:
    path = find_config_file(config_path, cwd=cwd)
    file_values = {}
    if path:
        file_values = load_config_file(path)
        logger.info(f"[CONFIG] Archivo de configuración cargado: {path}")

    return resolve_config(flags, file_values)
