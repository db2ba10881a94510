from sim.components import LOAD_KINDS, Kind, kind_of, load_resistance

LED_FULL_CURRENT = 0.02
BULB_GLOW_LEVEL = 0.1
BULB_GLOW_POWER = 0.01
BULB_RATED_VOLTAGE = 3.2
BULB_EXPONENT = 3

TRANSIENT_FIELDS = {
    Kind.RESISTOR: ("current", "voltageDrop", "power"),
    Kind.CAPACITOR: (),
    Kind.LED: ("brightness", "current", "voltage"),
    Kind.LIGHTBULB: ("brightness", "current", "power", "voltage"),
}


def led_brightness(current):
    return min(1.0, max(0.0, current / LED_FULL_CURRENT))


def bulb_brightness(power, voltage):
    """Filament output for the power it dissipates and the voltage across it.

    Any current gives a faint glow of up to BULB_GLOW_LEVEL; past that the
    output follows the cube of the voltage and reaches full at the rated
    voltage, so one, two and three cells land near 0.1, 0.3 and 0.7.
    """
    if power <= 0:
        return 0.0
    glow = BULB_GLOW_LEVEL * power / (power + BULB_GLOW_POWER)
    return min(1.0, glow + (abs(voltage) / BULB_RATED_VOLTAGE) ** BULB_EXPONENT)


def clear_outputs(component):
    kind = kind_of(component)
    if kind not in LOAD_KINDS:
        return component
    for key in TRANSIENT_FIELDS[kind]:
        component[key] = 0.0
    component["overCurrent"] = False
    return component


def apply_flow(component, flow):
    kind = kind_of(component)
    if kind not in LOAD_KINDS:
        return component
    current = flow["current"]
    if kind is Kind.RESISTOR:
        resistance = load_resistance(component)
        component["current"] = current
        component["voltageDrop"] = current * resistance
        component["power"] = current * current * resistance
    elif kind is Kind.LED:
        component["current"] = current
        # Terminal voltage: the forward drop plus the drop across the series resistance.
        component["voltage"] = flow["voltage"] if flow["active"] else 0.0
        component["brightness"] = led_brightness(current)
    elif kind is Kind.LIGHTBULB:
        resistance = load_resistance(component)
        power = current * current * resistance
        voltage = current * resistance
        component["current"] = current
        component["power"] = power
        component["voltage"] = voltage
        component["brightness"] = bulb_brightness(power, voltage)
    component["overCurrent"] = flow["overCurrent"]
    return component


def reset_component(component):
    """Copy a record with its transient state restored to the factory values."""
    record = dict(component)
    kind = kind_of(record)
    if kind is Kind.BATTERY:
        record["charge"] = 1.0
    elif kind is Kind.CAPACITOR:
        record["voltage"] = 0.0
    return clear_outputs(record)
