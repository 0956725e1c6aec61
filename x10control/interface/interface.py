import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, assert_never

from colorama import Fore, Style

from ..api import (
    Address,
    State,
    Selection,
    Environment,
    Instruction,
    Message,
    AddressMessage,
    BrightMessage,
    DimMessage,
    CommandMessage,
    ExtendedMessage,
    PresetDimMessage,
    HouseCode,
    CommandCode,
    DEVICE_CODE,
    Const,
    level_delta_from_repeat_count,
    level_from_extended_code,
    preset_level_for,
)
from ..io import X10Interface, InterfaceStatus, Completion
from ..utils import clamp

"""
===================================================================================
This module keeps a picture of the power and level of every X10 device, built
from the messages seen on the powerline and the instructions sent to it.
===================================================================================

X10 commands don't name their target. An address message selects a device on
a house code, and the next command on that house code applies to whatever is
selected. X10Control follows that selection per house code, then applies each
command to the selected devices (and to the members of the selected scene),
consulting the Environment for what each device is able to do.

Terms:
Selection = The devices most recently addressed on a house code.
Scene = An address whose commands are fanned out to several member devices, each at its own level.
Trigger = A whole-house command, reported once regardless of how many devices it affects.


"""


@dataclass
class StateChangeEvent:
    """One device changed state. level is only set for devices known to dim."""
    address: Address
    state: State
    power: bool
    source: str
    level: Optional[int] = None


@dataclass
class TriggerEvent:
    """A whole-house command was seen, labelled e.g. "A-AllLightsOff" """
    trigger: str
    source: str


@dataclass
class PendingSend:
    """
    An instruction handed to the interface and not yet completed.

    Once abandoned, a status arriving later is logged and dropped: it neither
    updates device state nor reaches the caller's completion.
    """
    instruction: Instruction
    abandoned: bool = False

    def abandon(self) -> None:
        self.abandoned = True


class X10Control:
    def __init__(self,
                 environment: Optional[Environment] = None,
                 interface: Optional[X10Interface] = None,
                 logger: Optional[logging.Logger] = None,
                 print_traffic: bool = False,
                 ):
        self.logger = logger or logging.getLogger(__name__)
        self.interface = interface
        self.print_traffic = print_traffic
        self._environment: Environment = environment or Environment()
        self._device_state: dict[Address, State] = {}
        self._selected_devices: list[Selection] = [Selection() for _ in HouseCode]
        self._selected_scene: Optional[Address] = None
        self._state_change_callbacks: list["CallbackStateChange"] = []
        self._trigger_callbacks: list["CallbackTrigger"] = []

    # ============================
    # Environment
    # ============================

    @property
    def environment(self) -> Environment:
        return self._environment

    @environment.setter
    def environment(self, environment: Environment) -> None:
        self._environment = environment

    def load_environment(self, path: Optional[str] = None) -> Environment:
        """Replace the environment with one loaded from path (default ~/.x10.json)"""
        self._environment = Environment.load(path, logger=self.logger)
        return self._environment

    # ============================
    # Callbacks
    # ============================

    def add_state_change_callback(self, func: "CallbackStateChange") -> None:
        self._state_change_callbacks.append(func)

    def remove_state_change_callback(self, func: "CallbackStateChange") -> None:
        if func in self._state_change_callbacks:
            self._state_change_callbacks.remove(func)

    def add_trigger_callback(self, func: "CallbackTrigger") -> None:
        self._trigger_callbacks.append(func)

    def remove_trigger_callback(self, func: "CallbackTrigger") -> None:
        if func in self._trigger_callbacks:
            self._trigger_callbacks.remove(func)

    # ============================
    # Queries
    # ============================

    def state(self, address: Address) -> Optional[State]:
        """A copy of the last known state of address, or None if nothing is known yet"""
        state = self._device_state.get(address)
        return replace(state) if state else None

    @property
    def device_states(self) -> dict[Address, State]:
        return {address: replace(state) for address, state in self._device_state.items()}

    def selected_devices(self, house: HouseCode) -> frozenset[int]:
        return self._selected_devices[house.index].selection

    @property
    def selected_scene(self) -> Optional[Address]:
        return self._selected_scene

    # ============================
    # Message input
    # ============================

    def receive_messages(self, messages: Iterable[Message], source: str) -> None:
        """Apply messages seen on the powerline, following the selection they imply"""
        self._update_state(messages, manage_selection=True, source=source)

    def update_internal_state(self, messages: Iterable[Message], source: str) -> None:
        """Apply messages to device state without disturbing the current selection"""
        self._update_state(messages, manage_selection=False, source=source)

    def send_instruction(self, instruction: Instruction, source: str, completion: Optional[Completion] = None) -> PendingSend:
        """
        Send an instruction through the interface.

        Device state is only updated once the interface reports success. The
        completion (if any) is called with the interface's status after that.
        Abandoning the returned PendingSend discards whatever status comes later.
        """
        pending = PendingSend(instruction)
        if self.interface is None:
            self.logger.warning(f"Can't send {instruction}, no interface")
            if completion:
                completion(InterfaceStatus.CONNECTION_NOT_OPEN)
            return pending

        def sent(status: InterfaceStatus) -> None:
            if pending.abandoned:
                self.logger.info(f"Ignoring {status.name} for abandoned send of {instruction}")
                return
            if status == InterfaceStatus.SUCCESS:
                self._update_state(instruction.messages, manage_selection=True, source=source)
            else:
                self.logger.info(f"Sending {instruction} failed: {status.name}")
            if completion:
                completion(status)

        if self.print_traffic:
            print(Fore.MAGENTA + f"SEND: {instruction}" + Style.DIM + f"  SOURCE: {source}" + Style.RESET_ALL)
        self.interface.send(instruction, sent)
        return pending

    # ============================
    # Dispatch
    # ============================

    def _update_state(self, messages: Iterable[Message], manage_selection: bool, source: str) -> None:
        for message in messages:
            if self.print_traffic:
                print(Fore.CYAN + f"MESSAGE: {message}" + Style.DIM + f"  SOURCE: {source}" + Style.RESET_ALL)
            match message:
                case AddressMessage(house=house, device=device):
                    if not (Const.HOUSE_DEVICE <= device <= Const.MAX_DEVICE):
                        self.logger.debug(f"Ignoring address message with device {device}")
                        continue
                    if manage_selection:
                        self._select_device(Address(house=house, device=device))
                case BrightMessage(house=house, repeat_count=count):
                    self._command_issued(house, CommandCode.BRIGHT, manage_selection, source, repeat_count=count)
                case DimMessage(house=house, repeat_count=count):
                    self._command_issued(house, CommandCode.DIM, manage_selection, source, repeat_count=count)
                case CommandMessage(house=house, code=code):
                    self._command_issued(house, code, manage_selection, source)
                case ExtendedMessage(house=house, data=data):
                    self._command_issued(house, CommandCode.EXTENDED_CODE, manage_selection, source, data=data)
                case PresetDimMessage(house=house, preset_house=preset_house, code=code):
                    self._command_issued(house, code, manage_selection, source, preset_house=preset_house)
                case _:
                    assert_never(message)

    def _select_device(self, address: Address) -> None:
        self._selected_devices[address.house.index].select(address.device)
        self._selected_scene = address

    def _command_issued(self,
                        house: HouseCode,
                        command: CommandCode,
                        manage_selection: bool,
                        source: str,
                        repeat_count: int = 1,
                        data: bytes = b"",
                        preset_house: Optional[HouseCode] = None,
                        ) -> None:
        if manage_selection:
            self._selected_devices[house.index].close_selection()

        match command:
            case CommandCode.ALL_UNITS_OFF | CommandCode.ALL_LIGHTS_OFF | CommandCode.ALL_LIGHTS_ON:
                self._set_power_for_entire_house(house, command, manage_selection, source)
            case CommandCode.ON:
                self._set_power_for_selected_devices(house, True, source)
            case CommandCode.OFF:
                self._set_power_for_selected_devices(house, False, source)
            case CommandCode.BRIGHT:
                self._adjust_level_for_selected_devices(house, level_delta_from_repeat_count(repeat_count), source)
            case CommandCode.DIM:
                self._adjust_level_for_selected_devices(house, -level_delta_from_repeat_count(repeat_count), source)
            case CommandCode.EXTENDED_CODE:
                if len(data) == Const.EXTENDED_DATA_LENGTH and data[-1] == Const.PRESET_DIM_EXTENDED_COMMAND:
                    device = DEVICE_CODE[data[0] & 0x0F]
                    self._set_extended_level(Address(house=house, device=device), level_from_extended_code(data[1]), source)
                else:
                    self.logger.debug(f"Ignoring extended code on {house} with data {list(data)}")
            case CommandCode.PRESET_DIM_1 | CommandCode.PRESET_DIM_2:
                level = preset_level_for(preset_house, command) if preset_house else None
                if level is not None:
                    self._set_preset_level_for_selected_devices(house, level, source)
            case _:
                pass

    def _set_power_for_entire_house(self, house: HouseCode, command: CommandCode, manage_selection: bool, source: str) -> None:
        if manage_selection:
            self._selected_devices[house.index].deselect_all()

        self._trigger(TriggerEvent(trigger=f"{house}-{command.description}", source=source))

        on = (command == CommandCode.ALL_LIGHTS_ON)
        for address, state in list(self._device_state.items()):
            if self._environment.responds_to_command(address, house, command):
                self._set_state_and_notify(replace(state, on=on), address, source)

    def _set_power_for_selected_devices(self, house: HouseCode, on: bool, source: str) -> None:
        for device in sorted(self.selected_devices(house)):
            address = Address(house=house, device=device)
            state = self._device_state.get(address) or State()
            self._set_state_and_notify(replace(state, on=on), address, source)

        for member in self._selected_scene_members(house):
            member_on = member.level > 0
            state = State(on=(on and member_on), level=(member.level if member_on else Const.MAX_LEVEL))
            self._set_state_and_notify(state, member.address, source)

    def _adjust_level_for_selected_devices(self, house: HouseCode, delta: int, source: str) -> None:
        addresses = [Address(house=house, device=device) for device in sorted(self.selected_devices(house))]
        addresses += [member.address for member in self._selected_scene_members(house)]
        for address in addresses:
            state = self._device_state.get(address)
            if self._environment.is_dimable(address) is True and state is not None and state.on:
                level = clamp(state.level + delta, Const.MIN_LEVEL, Const.MAX_LEVEL)
                self._set_state_and_notify(replace(state, level=level), address, source)

    def _set_extended_level(self, address: Address, level: int, source: str) -> None:
        if self._environment.is_extended(address) is True:
            self._set_state_and_notify(State(on=True, level=level), address, source)

    def _set_preset_level_for_selected_devices(self, house: HouseCode, level: int, source: str) -> None:
        for device in sorted(self.selected_devices(house)):
            address = Address(house=house, device=device)
            if self._environment.is_preset_dimable(address) is True:
                self._set_state_and_notify(State(on=True, level=level), address, source)

    def _selected_scene_members(self, house: HouseCode):
        scene = self._selected_scene
        if scene is None or scene.house != house:
            return []
        return self._environment.scene_members(scene)

    # ============================
    # Events
    # ============================

    def _set_state_and_notify(self, state: State, address: Address, source: str) -> None:
        self._device_state[address] = state
        self.logger.debug(f"{address} is now {state} (source: {source})")
        if self.print_traffic:
            print(Fore.GREEN + f"  STATE: {address} {state}" + Style.RESET_ALL)

        level = state.level if self._environment.is_dimable(address) is True else None
        for callback in list(self._state_change_callbacks):
            callback(StateChangeEvent(address=address, state=replace(state), power=state.on, source=source, level=level))

    def _trigger(self, event: TriggerEvent) -> None:
        self.logger.debug(f"Trigger {event.trigger} (source: {event.source})")
        if self.print_traffic:
            print(Fore.YELLOW + f"  TRIGGER: {event.trigger}" + Style.RESET_ALL)
        for callback in list(self._trigger_callbacks):
            callback(event)


# ============================
# Callback types
# ============================

CallbackStateChange = Callable[[StateChangeEvent], None]
CallbackTrigger = Callable[[TriggerEvent], None]
