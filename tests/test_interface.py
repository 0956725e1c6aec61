"""Tests for the device-state engine."""

import pytest

from x10control import (
    X10Control,
    Environment,
    Address,
    State,
    Instruction,
    HouseCode,
    CommandCode,
    InterfaceStatus,
    LoopbackInterface,
    StateChangeEvent,
    TriggerEvent,
)
from x10control.api.message import (
    AddressMessage,
    BrightMessage,
    DimMessage,
    CommandMessage,
    ExtendedMessage,
    encode,
    encode_extended_level,
    encode_preset_dim,
)


A1 = Address.parse("A1")
A2 = Address.parse("A2")
A3 = Address.parse("A3")


def _on(house: HouseCode) -> CommandMessage:
    return CommandMessage(house=house, code=CommandCode.ON)


def _off(house: HouseCode) -> CommandMessage:
    return CommandMessage(house=house, code=CommandCode.OFF)


class Recorder:
    """Collects the events an X10Control reports"""

    def __init__(self, control: X10Control):
        self.changes: list[StateChangeEvent] = []
        self.triggers: list[TriggerEvent] = []
        control.add_state_change_callback(self.changes.append)
        control.add_trigger_callback(self.triggers.append)


def _control(catalog: dict, interface=None) -> tuple[X10Control, Recorder]:
    control = X10Control(environment=Environment.from_dict(catalog), interface=interface)
    return control, Recorder(control)


# ============================
# Selection
# ============================

def test_address_then_command() -> None:
    control, recorder = _control({"devices": {"A1": {}}})
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    assert control.state(A1) == State(on=True, level=100)
    assert len(recorder.changes) == 1
    event = recorder.changes[0]
    assert event.address == A1
    assert event.power is True
    assert event.level == 100
    assert event.source == "test"


def test_group_addressing() -> None:
    """Several addresses before one command select them all."""
    control, recorder = _control({})
    control.receive_messages([A1.message, A2.message, _on(HouseCode.A)], source="test")
    assert control.state(A1).on and control.state(A2).on
    assert control.selected_devices(HouseCode.A) == {1, 2}


def test_address_after_command_starts_new_selection() -> None:
    control, recorder = _control({})
    control.receive_messages([A1.message, _on(HouseCode.A), A2.message, _off(HouseCode.A)], source="test")
    assert control.selected_devices(HouseCode.A) == {2}
    assert control.state(A1).on is True
    assert control.state(A2).on is False


def test_selection_is_per_house() -> None:
    control, recorder = _control({})
    control.receive_messages([A1.message, Address.parse("B1").message, _on(HouseCode.B)], source="test")
    assert control.state(A1) is None
    assert control.state(Address.parse("B1")).on
    assert control.selected_devices(HouseCode.A) == {1}


def test_update_internal_state_keeps_selection_open() -> None:
    """Reconciling state doesn't select, and doesn't close the current selection."""
    control, recorder = _control({})
    control.receive_messages([A1.message], source="test")
    control.update_internal_state([A2.message, _on(HouseCode.A)], source="sync")
    assert control.state(A1).on is True
    assert control.state(A2) is None
    control.receive_messages([A3.message], source="test")
    assert control.selected_devices(HouseCode.A) == {1, 3}


def test_invalid_address_message_ignored() -> None:
    control, recorder = _control({})
    control.receive_messages([AddressMessage(house=HouseCode.A, device=40), _on(HouseCode.A)], source="test")
    assert control.device_states == {}
    assert recorder.changes == []


# ============================
# Whole-house commands
# ============================

def test_all_lights_off_respects_catalog() -> None:
    b1 = Address.parse("B1")
    b2 = Address.parse("B2")
    b5 = Address.parse("B5")
    control, recorder = _control({"devices": {
        "B1": {},
        "B2": {"allLightsOff": False},
        "A3": {"universalAllLightsOff": True},
        "A4": {},
    }})
    control.receive_messages([b1.message, b2.message, b5.message, _on(HouseCode.B)], source="test")
    control.receive_messages([A3.message, Address.parse("A4").message, _on(HouseCode.A)], source="test")
    control.receive_messages([b1.message], source="test")
    recorder.changes.clear()

    control.receive_messages([CommandMessage(house=HouseCode.B, code=CommandCode.ALL_LIGHTS_OFF)], source="test")

    assert control.state(b1).on is False
    assert control.state(b2).on is True
    assert control.state(A3).on is False
    assert control.state(Address.parse("A4")).on is True
    # No catalog entry, never affected by a broadcast
    assert control.state(b5).on is True
    assert {event.address for event in recorder.changes} == {b1, A3}
    assert control.selected_devices(HouseCode.B) == frozenset()
    control.receive_messages([b2.message], source="test")
    assert control.selected_devices(HouseCode.B) == {2}


def test_house_command_trigger() -> None:
    control, recorder = _control({})
    control.receive_messages([CommandMessage(house=HouseCode.C, code=CommandCode.ALL_UNITS_OFF)], source="cm11a")
    assert recorder.triggers == [TriggerEvent(trigger="C-AllUnitsOff", source="cm11a")]
    assert recorder.changes == []


def test_all_lights_on_keeps_level() -> None:
    control, recorder = _control({"devices": {"A1": {"extended": True}}})
    control.receive_messages([A1.message, encode_extended_level(HouseCode.A, 1, 30), _off(HouseCode.A)], source="test")
    control.receive_messages([CommandMessage(house=HouseCode.A, code=CommandCode.ALL_LIGHTS_ON)], source="test")
    assert control.state(A1) == State(on=True, level=30)


# ============================
# Bright and dim
# ============================

def test_dim_clamps_at_zero() -> None:
    control, recorder = _control({"devices": {"A1": {"dims": True}}})
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    control.receive_messages([DimMessage(house=HouseCode.A, repeat_count=11)], source="test")
    assert control.state(A1) == State(on=True, level=50)
    control.receive_messages([DimMessage(house=HouseCode.A, repeat_count=11)], source="test")
    assert control.state(A1) == State(on=True, level=0)
    control.receive_messages([DimMessage(house=HouseCode.A, repeat_count=11)], source="test")
    assert control.state(A1) == State(on=True, level=0)


def test_bright_clamps_at_hundred() -> None:
    control, recorder = _control({"devices": {"A1": {"extended": True}}})
    control.receive_messages([A1.message, encode_extended_level(HouseCode.A, 1, 90)], source="test")
    control.receive_messages([BrightMessage(house=HouseCode.A, repeat_count=5)], source="test")
    assert control.state(A1).level == 100


def test_bright_without_repeat_count() -> None:
    """A bright command with no payload steps by one repeat."""
    control, recorder = _control({"devices": {"A1": {}}})
    control.receive_messages([A1.message, _on(HouseCode.A), encode(HouseCode.A, CommandCode.DIM, [22])], source="test")
    control.receive_messages([encode(HouseCode.A, CommandCode.BRIGHT)], source="test")
    assert control.state(A1).level == 5


def test_dim_ignores_off_unknown_and_appliance() -> None:
    control, recorder = _control({"devices": {"A1": {}, "A2": {"dims": False}}})
    control.receive_messages([A1.message, A2.message, A3.message, _on(HouseCode.A)], source="test")
    control.receive_messages([A1.message, _off(HouseCode.A)], source="test")
    recorder.changes.clear()
    control.receive_messages([A1.message, A2.message, A3.message, DimMessage(house=HouseCode.A, repeat_count=5)], source="test")
    assert recorder.changes == []


# ============================
# Extended and preset dim
# ============================

def test_extended_set_level() -> None:
    control, recorder = _control({"devices": {"A5": {"extended": True}}})
    a5 = Address.parse("A5")
    control.receive_messages([a5.message, encode_extended_level(HouseCode.A, 5, 50)], source="test")
    assert control.state(a5) == State(on=True, level=51)


def test_extended_uses_device_in_payload() -> None:
    """The extended payload names its device, whatever is selected."""
    control, recorder = _control({"devices": {"A5": {"extended": True}}})
    control.receive_messages([A1.message, encode_extended_level(HouseCode.A, 5, 100)], source="test")
    assert control.state(Address.parse("A5")) == State(on=True, level=100)
    assert control.state(A1) is None


def test_extended_ignored_without_capability() -> None:
    control, recorder = _control({"devices": {"A1": {}}})
    control.receive_messages([A1.message, encode_extended_level(HouseCode.A, 1, 50)], source="test")
    assert control.state(A1) is None


def test_other_extended_codes_ignored() -> None:
    control, recorder = _control({"devices": {"A1": {"extended": True}}})
    control.receive_messages([A1.message, ExtendedMessage(house=HouseCode.A, data=bytes([0x66, 0x20, 0x30]))], source="test")
    assert control.state(A1) is None


def test_preset_dim() -> None:
    control, recorder = _control({"devices": {"A1": {"preset": True}, "A2": {}}})
    control.receive_messages([A1.message, A2.message, encode_preset_dim(HouseCode.A, 45)], source="test")
    assert control.state(A1) == State(on=True, level=45)
    assert control.state(A2) is None


def test_status_commands_are_no_ops() -> None:
    control, recorder = _control({"devices": {"A1": {}}})
    control.receive_messages([A1.message, CommandMessage(house=HouseCode.A, code=CommandCode.STATUS_REQ)], source="test")
    assert control.device_states == {}
    assert recorder.changes == []


# ============================
# Scenes
# ============================

SCENES = {
    "devices": {"A1": {}, "A2": {}, "B4": {"dims": False}},
    "scenes": {"P16": [
        {"address": "A1", "level": 50},
        {"address": "A2", "level": 0},
        {"address": "B4", "level": 100},
    ]},
}


def test_scene_on_sets_member_levels() -> None:
    control, recorder = _control(SCENES)
    p16 = Address.parse("P16")
    control.receive_messages([p16.message, _on(HouseCode.P)], source="test")
    assert control.selected_scene == p16
    assert control.state(p16) == State(on=True, level=100)
    assert control.state(A1) == State(on=True, level=50)
    assert control.state(A2) == State(on=False, level=100)
    assert control.state(Address.parse("B4")) == State(on=True, level=100)
    assert [event.address for event in recorder.changes] == [p16, A1, A2, Address.parse("B4")]
    assert recorder.changes[3].level is None


def test_scene_off() -> None:
    control, recorder = _control(SCENES)
    p16 = Address.parse("P16")
    control.receive_messages([p16.message, _on(HouseCode.P), _off(HouseCode.P)], source="test")
    assert control.state(A1) == State(on=False, level=50)


def test_scene_dim_only_dims_members_that_are_on() -> None:
    control, recorder = _control(SCENES)
    p16 = Address.parse("P16")
    control.receive_messages([p16.message, _on(HouseCode.P), DimMessage(house=HouseCode.P, repeat_count=11)], source="test")
    assert control.state(A1) == State(on=True, level=0)
    assert control.state(A2) == State(on=False, level=100)
    assert control.state(Address.parse("B4")) == State(on=True, level=100)


def test_scene_ignored_on_other_house() -> None:
    control, recorder = _control(SCENES)
    control.receive_messages([Address.parse("P16").message, _on(HouseCode.A)], source="test")
    assert control.state(A1) is None


# ============================
# Events
# ============================

def test_level_only_reported_for_dimmers() -> None:
    control, recorder = _control({"devices": {"A1": {}, "A2": {"dims": False}}})
    control.receive_messages([A1.message, A2.message, A3.message, _on(HouseCode.A)], source="test")
    levels = {event.address: event.level for event in recorder.changes}
    assert levels == {A1: 100, A2: None, A3: None}


def test_remove_callback() -> None:
    control, recorder = _control({})
    control.remove_state_change_callback(recorder.changes.append)
    control.remove_trigger_callback(recorder.triggers.append)
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    control.receive_messages([CommandMessage(house=HouseCode.A, code=CommandCode.ALL_UNITS_OFF)], source="test")
    assert recorder.changes == []
    assert recorder.triggers == []


def test_state_is_a_copy() -> None:
    control, recorder = _control({})
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    control.state(A1).on = False
    recorder.changes[0].state.on = False
    assert control.state(A1).on is True


def test_print_traffic(capsys) -> None:
    control = X10Control(print_traffic=True)
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    out = capsys.readouterr().out
    assert "A1" in out
    assert "ON-100" in out


# ============================
# Sending
# ============================

def test_send_without_interface() -> None:
    control, recorder = _control({"devices": {"A1": {}}})
    statuses = []
    control.send_instruction(Instruction.command(A1, CommandCode.ON), source="app", completion=statuses.append)
    assert statuses == [InterfaceStatus.CONNECTION_NOT_OPEN]
    assert control.state(A1) is None


def test_send_success_updates_state() -> None:
    interface = LoopbackInterface()
    control, recorder = _control({"devices": {"A1": {}}}, interface=interface)
    statuses = []
    instruction = Instruction.command(A1, CommandCode.ON)
    control.send_instruction(instruction, source="app", completion=statuses.append)
    assert statuses == [InterfaceStatus.SUCCESS]
    assert interface.sent == [instruction]
    assert control.state(A1) == State(on=True, level=100)
    assert recorder.changes[0].source == "app"
    assert control.selected_devices(HouseCode.A) == {1}


@pytest.mark.parametrize("status", [
    InterfaceStatus.CONNECTION_NOT_OPEN,
    InterfaceStatus.CONNECTION_CLOSED,
    InterfaceStatus.CANCELLED,
    InterfaceStatus.TIMED_OUT,
    InterfaceStatus.UNEXPECTED_RESPONSE,
    InterfaceStatus.WRITE_FAILED,
])
def test_failed_send_leaves_state_untouched(status: InterfaceStatus) -> None:
    control, recorder = _control({"devices": {"A1": {}}}, interface=LoopbackInterface(status=status))
    control.receive_messages([A1.message, _on(HouseCode.A)], source="test")
    before = control.device_states
    statuses = []
    control.send_instruction(Instruction.command(A1, CommandCode.OFF), source="app", completion=statuses.append)
    assert statuses == [status]
    assert control.device_states == before


def test_state_waits_for_completion() -> None:
    interface = LoopbackInterface(auto_complete=False)
    control, recorder = _control({"devices": {"A1": {}}}, interface=interface)
    control.send_instruction(Instruction.command(A1, CommandCode.ON), source="app")
    assert control.state(A1) is None
    assert interface.waiting == 1
    assert interface.complete()
    assert control.state(A1).on is True
    assert not interface.complete()


def test_abandoned_send_ignores_late_status() -> None:
    """Once abandoned, a send reports nothing and changes nothing, even on success."""
    interface = LoopbackInterface(auto_complete=False)
    control, recorder = _control({"devices": {"A1": {}}}, interface=interface)
    statuses = []
    pending = control.send_instruction(Instruction.command(A1, CommandCode.ON), source="app", completion=statuses.append)
    pending.abandon()
    assert interface.complete(InterfaceStatus.SUCCESS)
    assert control.state(A1) is None
    assert recorder.changes == []
    assert statuses == []


def test_load_environment(tmp_path) -> None:
    path = tmp_path / "x10.json"
    path.write_text('{"devices": {"A1": {"extended": true}}}', encoding="utf-8")
    control = X10Control()
    control.load_environment(str(path))
    assert control.environment.is_extended(A1) is True
