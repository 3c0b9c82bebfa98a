"""
Shared fixtures: fake speech backends and a fake paho client.
"""

import threading
from types import SimpleNamespace

import pytest

from tts.tts_client import TTSClient, SpeechError


class RecordingTTS(TTSClient):
    """Backend that remembers every text it was asked to speak."""

    name = "recording"

    def __init__(self):
        self.spoken = []

    def _synthesize(self, text):
        self.spoken.append(text)


class FailingTTS(TTSClient):
    name = "failing"

    def __init__(self):
        self.calls = 0

    def _synthesize(self, text):
        self.calls += 1
        raise SpeechError("engine unavailable")


class BlockingTTS(TTSClient):
    """Backend that hangs until the test releases it."""

    name = "blocking"

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.spoken = []

    def _synthesize(self, text):
        self.started.set()
        self.release.wait(5)
        self.spoken.append(text)


def reason(value=0, failure=False):
    return SimpleNamespace(value=value, is_failure=failure)


class FakePahoClient:
    """
    Stand-in for paho.mqtt.client.Client. Acknowledgements are delivered
    synchronously; set ``connack``/``suback`` to None to never answer.
    """

    connack = 0
    suback = reason(1)
    instances = []

    def __init__(self, *args, **kwargs):
        self.kwargs = kwargs
        self.credentials = None
        self.ws_path = None
        self.tls = False
        self.reconnect_delay = None
        self.address = None
        self.subscriptions = []
        self.loop_running = False
        self.disconnected = False
        FakePahoClient.instances.append(self)

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def ws_set_options(self, path="/mqtt", headers=None):
        self.ws_path = path

    def tls_set(self, *args, **kwargs):
        self.tls = True

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host, port=1883, keepalive=60):
        self.address = (host, port, keepalive)

    def loop_start(self):
        self.loop_running = True
        if self.connack is not None:
            self.on_connect(self, None, None, self.connack, None)

    def loop_stop(self):
        self.loop_running = False

    def subscribe(self, topic, qos=0):
        self.subscriptions.append((topic, qos))
        mid = len(self.subscriptions)
        if self.suback is not None:
            self.on_subscribe(self, None, mid, [self.suback], None)
        return 0, mid

    def disconnect(self):
        self.disconnected = True


@pytest.fixture
def recording_tts():
    return RecordingTTS()


@pytest.fixture
def failing_tts():
    return FailingTTS()


@pytest.fixture
def blocking_tts():
    tts = BlockingTTS()
    yield tts
    tts.release.set()


@pytest.fixture
def fake_paho(monkeypatch):
    from mqtt import mqtt_client

    FakePahoClient.instances = []
    monkeypatch.setattr(FakePahoClient, "connack", 0)
    monkeypatch.setattr(FakePahoClient, "suback", reason(1))
    monkeypatch.setattr(mqtt_client.mqtt, "Client", FakePahoClient)
    monkeypatch.setitem(mqtt_client.MQTT_CFG, "connect_timeout", 0.1)
    monkeypatch.setitem(mqtt_client.MQTT_CFG, "subscribe_timeout", 0.1)
    return FakePahoClient
