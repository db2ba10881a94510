import math

from sim.components import (
    CAPACITOR_MAX_VOLTAGE,
    Kind,
    battery_charge,
    kind_of,
    load_resistance,
    read_number,
)


def _percent(fraction):
    # Half-up rounding, so 0.125 shows as 13 rather than 12.
    return int(math.floor(fraction * 100 + 0.5))


def battery_visual_state(battery):
    charge = battery_charge(battery)
    if charge > 0.75:
        state = "full"
    elif charge > 0.5:
        state = "medium"
    elif charge > 0.25:
        state = "low"
    elif charge > 0:
        state = "depleted"
    else:
        state = "dead"
    return {
        "chargePercent": _percent(charge),
        "chargeBarFill": charge,
        "state": state,
        "glowIntensity": charge * 0.5,
    }


def led_visual_state(led):
    brightness = read_number(led, "brightness", 0.0)
    if brightness == 0:
        state = "off"
    elif brightness < 0.4:
        state = "dim"
    elif brightness < 0.8:
        state = "medium"
    else:
        state = "bright"
    return {
        "brightness": brightness,
        "brightnessPercent": _percent(brightness),
        "glowIntensity": brightness,
        "glowRadius": 5 + brightness * 15,
        "state": state,
    }


def resistor_visual_state(resistor):
    current = read_number(resistor, "current", 0.0)
    power = current * current * load_resistance(resistor)
    heat = min(power / 2.0, 1.0)
    if heat < 0.25:
        state = "cool"
    elif heat < 0.6:
        state = "warm"
    elif heat < 0.9:
        state = "hot"
    else:
        state = "overheating"
    return {
        "powerDissipated": power,
        "heatLevel": heat,
        "state": state,
        "voltageDrop": read_number(resistor, "voltageDrop", 0.0),
        "current": current,
    }


def capacitor_visual_state(capacitor):
    voltage = read_number(capacitor, "voltage", 0.0)
    max_voltage = read_number(capacitor, "maxVoltage", CAPACITOR_MAX_VOLTAGE)
    if max_voltage <= 0:
        max_voltage = CAPACITOR_MAX_VOLTAGE
    fill = voltage / max_voltage
    if fill < 0.1:
        state = "empty"
    elif fill < 0.5:
        state = "charging"
    elif fill < 0.9:
        state = "charged"
    else:
        state = "full"
    return {
        "chargePercent": _percent(fill),
        "chargeFill": fill,
        "state": state,
        "voltage": voltage,
        "maxVoltage": max_voltage,
    }


def lightbulb_visual_state(bulb):
    brightness = read_number(bulb, "brightness", 0.0)
    power = read_number(bulb, "power", 0.0)
    if brightness == 0:
        state = "off"
    elif brightness < 0.3:
        state = "dim"
    elif brightness < 0.7:
        state = "warm"
    else:
        state = "bright"
    return {
        "brightness": brightness,
        "brightnessPercent": _percent(brightness),
        "glowIntensity": brightness,
        "filamentHeat": min(power, 1.0),
        "state": state,
        "power": power,
    }


VISUAL_STATES = {
    Kind.BATTERY: battery_visual_state,
    Kind.LED: led_visual_state,
    Kind.RESISTOR: resistor_visual_state,
    Kind.CAPACITOR: capacitor_visual_state,
    Kind.LIGHTBULB: lightbulb_visual_state,
}


def visual_state(component):
    kind = kind_of(component)
    if kind is None:
        return None
    return VISUAL_STATES[kind](component)
