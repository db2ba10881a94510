import math
from enum import Enum

BATTERY_VOLTAGE = 0.9
RESISTOR_RESISTANCE = 100.0
CAPACITOR_CAPACITANCE = 0.001
FACTORY_CAPACITANCE = 0.1
CAPACITOR_MAX_VOLTAGE = 5.0
LIGHTBULB_RESISTANCE = 0.36


class Kind(str, Enum):
    BATTERY = "battery"
    RESISTOR = "resistor"
    CAPACITOR = "capacitor"
    LED = "led"
    LIGHTBULB = "lightbulb"


LOAD_KINDS = (Kind.RESISTOR, Kind.CAPACITOR, Kind.LED, Kind.LIGHTBULB)

FACTORY_FIELDS = {
    Kind.BATTERY: {"charge": 1.0, "voltage": BATTERY_VOLTAGE},
    Kind.RESISTOR: {"resistance": RESISTOR_RESISTANCE, "current": 0.0},
    Kind.CAPACITOR: {"capacitance": FACTORY_CAPACITANCE, "voltage": 0.0, "maxVoltage": CAPACITOR_MAX_VOLTAGE},
    Kind.LED: {"brightness": 0.0},
    Kind.LIGHTBULB: {"brightness": 0.0, "resistance": LIGHTBULB_RESISTANCE, "current": 0.0, "power": 0.0},
}


def kind_of(component):
    if not isinstance(component, dict):
        return None
    try:
        return Kind(component.get("type"))
    except (ValueError, TypeError):
        return None


def valid_id(value):
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, str))


def read_number(component, key, default):
    value = component.get(key, default)
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    value = float(value)
    if not math.isfinite(value):
        return default
    return value


def battery_charge(battery):
    return min(max(read_number(battery, "charge", 1.0), 0.0), 1.0)


def is_live(battery):
    return battery_charge(battery) > 0


def capacitor_capacitance(capacitor):
    capacitance = read_number(capacitor, "capacitance", CAPACITOR_CAPACITANCE)
    if capacitance <= 0:
        return CAPACITOR_CAPACITANCE
    return capacitance


def capacitor_max_voltage(capacitor):
    return max(read_number(capacitor, "maxVoltage", CAPACITOR_MAX_VOLTAGE), 0.0)


def capacitor_voltage(capacitor):
    voltage = read_number(capacitor, "voltage", 0.0)
    return min(max(voltage, 0.0), capacitor_max_voltage(capacitor))


def load_resistance(component):
    if kind_of(component) is Kind.LIGHTBULB:
        return max(read_number(component, "resistance", LIGHTBULB_RESISTANCE), 0.0)
    return max(read_number(component, "resistance", RESISTOR_RESISTANCE), 0.0)


def create_component(kind, component_id, x=0, y=0):
    """Build a fresh record with the nameplate values the toolbar uses."""
    kind = Kind(kind)
    record = {"id": component_id, "type": kind.value, "x": x, "y": y}
    record.update(FACTORY_FIELDS[kind])
    return record
