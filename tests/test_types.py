"""Tests for house codes, command codes and the device-select tables."""

from x10control.api.types import HouseCode, CommandCode, DEVICE_CODE, DEVICE_ADDR
from x10control.utils import round_half_away, clamp


def test_house_code_index_is_dense() -> None:
    """Every house code maps to a distinct index 0-15."""
    assert HouseCode.A.index == 6
    assert HouseCode.M.index == 0
    assert HouseCode.J.index == 15
    assert sorted(house.index for house in HouseCode) == list(range(16))


def test_house_code_named() -> None:
    assert HouseCode.named("C") is HouseCode.C
    assert HouseCode.named("Q") is None
    assert HouseCode.named("c") is None
    assert str(HouseCode.P) == "P"


def test_house_commands() -> None:
    """Only the three whole-house broadcasts are house commands."""
    house_commands = {code for code in CommandCode if code.is_house_command}
    assert house_commands == {CommandCode.ALL_UNITS_OFF, CommandCode.ALL_LIGHTS_ON, CommandCode.ALL_LIGHTS_OFF}


def test_command_code_names() -> None:
    assert CommandCode.ALL_LIGHTS_OFF.camel_name == "allLightsOff"
    assert CommandCode.PRESET_DIM_1.camel_name == "presetDim1"
    assert CommandCode.ON.description == "On"
    assert CommandCode.EXTENDED_CODE.description == "ExtendedCode"
    assert CommandCode.named("allUnitsOff") is CommandCode.ALL_UNITS_OFF
    assert CommandCode.named("statusReq") is CommandCode.STATUS_REQ
    assert CommandCode.named("AllUnitsOff") is None


def test_device_tables_are_inverse() -> None:
    """Translating a device number to its nibble and back gives the same device."""
    assert len(DEVICE_CODE) == 16
    for device in range(1, 17):
        assert DEVICE_CODE[DEVICE_ADDR[device]] == device
    assert DEVICE_CODE[0x0] == 13
    assert DEVICE_ADDR[1] == 0x6


def test_round_half_away_from_zero() -> None:
    """Halves round away from zero, unlike round()."""
    assert round_half_away(0.5) == 1
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(2.49) == 2
    assert round_half_away(-0.4) == 0


def test_clamp() -> None:
    assert clamp(-5, 0, 100) == 0
    assert clamp(105, 0, 100) == 100
    assert clamp(50, 0, 100) == 50
