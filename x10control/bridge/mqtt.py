import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

import aiomqtt
from colorama import Fore, Style

from ..api import Environment, Instruction
from ..interface import X10Control, InstructionQueue, StateChangeEvent, TriggerEvent
from ..io import X10Interface, LoopbackInterface
from ..utils import run_with_keyboard_interrupt
from .config import load_config, validate_config
from .topics import TopicScheme


class Const:

    # MQTT settings
    MQTT_RECONNECT_MIN_DELAY = 1
    MQTT_RECONNECT_MAX_DELAY = 10

    # Logging
    LOG_FILE = "x10control-bridge.log"
    DEBUG_FILE = "x10control-bridge.traffic.log"
    LOG_MAX_BYTES = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT = 5


class X10MQTTBridge:
    """Bridge between the X10 device-state engine and an MQTT broker.

    Requests arriving on X10/Request/... topics are turned into instructions and
    sent through the X10 interface. Every state change is published, retained,
    on X10/State/... topics, and whole-house commands on X10/Trigger/... topics.
    """

    # ================================
    #          INIT & RUN
    # ================================

    def __init__(self,
                 config_path: str = "config.yaml",
                 config: Optional[dict[str, Any]] = None,
                 interface: Optional[X10Interface] = None,
                 logger: Optional[logging.Logger] = None,
                 print_traffic: bool = False,
                 ) -> None:
        self.config_path = config_path
        self.config: Optional[dict[str, Any]] = config
        self.interface: Optional[X10Interface] = interface
        self.logger: Optional[logging.Logger] = logger
        self.print_traffic = print_traffic
        self.topics: TopicScheme
        self.source: str
        self.x10: X10Control
        self.queue: InstructionQueue
        self.mqttc: Optional[aiomqtt.Client] = None
        self.outbox: asyncio.Queue[tuple[str, str, bool]] = asyncio.Queue()
        self.mqtt_task: Optional[asyncio.Task] = None
        self.publish_task: Optional[asyncio.Task] = None
        self.send_task: Optional[asyncio.Task] = None

    async def run(self) -> None:
        self.setup_config()
        self.setup_logging()
        self.logger.info("==================================== Starting X10MQTTBridge ====================================")
        self.setup_x10()

        self.mqtt_task = asyncio.create_task(self._mqtt_message_handler())
        self.publish_task = asyncio.create_task(self._publisher())
        self.send_task = asyncio.create_task(self.queue.run())
        try:
            await asyncio.gather(self.mqtt_task, self.publish_task, self.send_task)
        except asyncio.CancelledError:
            self.logger.info("X10MQTTBridge stopped")

    async def stop(self) -> None:
        """Clean shutdown of the bridge"""
        for task in (self.mqtt_task, self.publish_task, self.send_task):
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

    # ================================
    #            CONFIG
    # ================================

    def setup_config(self) -> None:
        if self.config is None:
            self.config = load_config(self.config_path)
        else:
            self.config = validate_config(self.config)

    # ================================
    #             LOGGING
    # ================================

    def setup_logging(self) -> None:
        """
        Log INFO and above to a rotating file, everything to a debug file and
        INFO and above to the console. Skipped when a logger was supplied.
        """
        if self.logger is not None:
            return
        self.logger = logging.getLogger("X10MQTTBridge")
        self.logger.setLevel(logging.DEBUG)
        file_format = logging.Formatter(fmt="%(asctime)s\t%(levelname)s\t%(message)s", datefmt="%Y-%m-%d %H:%M:%S")

        # The rotating log keeps traffic traces out, they go to the debug log only
        activity_log = RotatingFileHandler(Const.LOG_FILE, maxBytes=Const.LOG_MAX_BYTES, backupCount=Const.LOG_BACKUP_COUNT)
        activity_log.setLevel(logging.INFO)
        activity_log.setFormatter(file_format)

        traffic_log = logging.FileHandler(Const.DEBUG_FILE)
        traffic_log.setLevel(logging.DEBUG)
        traffic_log.setFormatter(file_format)

        console = logging.StreamHandler()
        console.setLevel(logging.INFO)
        console.setFormatter(logging.Formatter("%(asctime)s.%(msecs)03d %(levelname)s: %(message)s", datefmt="%H:%M:%S"))

        for handler in (activity_log, traffic_log, console):
            self.logger.addHandler(handler)

    # ================================
    #              X10
    # ================================

    def setup_x10(self) -> None:
        x10_config = self.config["x10"]
        self.topics = TopicScheme(prefix=x10_config["topic_prefix"])
        self.source = x10_config["source"]

        environment = Environment.load(x10_config["environment"], logger=self.logger)
        if self.interface is None:
            self.logger.warning("No X10 interface supplied, sending to a loopback interface")
            self.interface = LoopbackInterface(logger=self.logger)

        self.x10 = X10Control(environment=environment, interface=self.interface, logger=self.logger, print_traffic=self.print_traffic)
        self.x10.add_state_change_callback(self._x10_state_change)
        self.x10.add_trigger_callback(self._x10_trigger)
        self.queue = InstructionQueue(self.x10, source=self.source, logger=self.logger)

    def _x10_state_change(self, event: StateChangeEvent) -> None:
        self.outbox.put_nowait((self.topics.power_state_topic(event.address), "1" if event.power else "0", True))
        if event.level is not None:
            self.outbox.put_nowait((self.topics.level_state_topic(event.address), str(event.level), True))

    def _x10_trigger(self, event: TriggerEvent) -> None:
        self.outbox.put_nowait((self.topics.trigger_topic(event.trigger), event.source, False))

    def handle_request(self, topic: str, payload: str) -> Optional[Instruction]:
        """
        Queue the instruction requested by a topic for the sender task. Returns
        None if the request is invalid.
        """
        instruction = self.topics.instruction_from_topic(topic, payload, self.x10.environment)
        if instruction is None:
            self.logger.warning(f"Ignoring invalid request - {topic}: {payload}")
            return None
        strategy = self.queue.put(instruction)
        self.logger.debug(f"Queued {instruction} ({strategy.name})")
        return instruction

    # ================================
    #              MQTT
    # ================================

    async def _mqtt_message_handler(self) -> None:
        """Handle incoming MQTT messages with automatic reconnection per aiomqtt docs."""
        interval = Const.MQTT_RECONNECT_MIN_DELAY
        mqtt_config = self.config["mqtt"]

        while True:
            try:
                # Create a new client for each connection attempt
                client = aiomqtt.Client(
                    hostname=mqtt_config["host"],
                    port=mqtt_config["port"],
                    username=mqtt_config["user"],
                    password=mqtt_config["password"],
                    keepalive=mqtt_config["keepalive"],
                    will=aiomqtt.Will(topic=f"{self.topics.prefix}availability", payload="offline", retain=True),
                )

                # Use the client context manager for automatic connection handling
                async with client:
                    self.mqttc = client
                    await client.subscribe(self.topics.subscription())
                    await client.publish(f"{self.topics.prefix}availability", "online", retain=True)
                    self.logger.info("Successfully connected to MQTT broker")
                    interval = Const.MQTT_RECONNECT_MIN_DELAY

                    async for message in client.messages:
                        await self._mqtt_on_message(message)

            except asyncio.CancelledError:
                self.logger.info("MQTT message handler cancelled")
                break
            except aiomqtt.MqttError as e:
                self.mqttc = None
                self.logger.warning(f"MQTT connection lost: {e}")
                self.logger.info(f"Reconnecting in {interval} seconds...")
                await asyncio.sleep(interval)
                # Exponential backoff while the broker stays away
                interval = min(interval * 2, Const.MQTT_RECONNECT_MAX_DELAY)

    async def _mqtt_on_message(self, msg: aiomqtt.Message) -> None:
        payload_str = msg.payload.decode('UTF-8') if isinstance(msg.payload, (bytes, bytearray)) else str(msg.payload or "")
        topic_str = str(msg.topic)
        self.logger.debug(f"MQTT received - {topic_str}: {payload_str}")
        if self.print_traffic:
            print(Fore.YELLOW + f"MQTT received - {topic_str}: " + Style.DIM + f"{payload_str}" + Style.RESET_ALL)
        self.handle_request(topic_str, payload_str)

    async def _publisher(self) -> None:
        """Publish queued state and trigger messages whenever the broker is connected"""
        while True:
            topic, payload, retain = await self.outbox.get()
            while self.mqttc is None:
                await asyncio.sleep(Const.MQTT_RECONNECT_MIN_DELAY)
            try:
                await self.mqttc.publish(topic, payload, retain=retain)
                self.logger.debug(f"MQTT sent - {topic}: {payload}")
            except aiomqtt.MqttError as e:
                self.logger.warning(f"Failed to publish {topic}: {e}")


# Usage
async def _run(config_path: str) -> None:
    bridge = X10MQTTBridge(config_path=config_path)
    try:
        await bridge.run()
    finally:
        await bridge.stop()


def main() -> None:
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    run_with_keyboard_interrupt(lambda: _run(config_path), logging.getLogger("X10MQTTBridge"))


if __name__ == "__main__":
    main()
