import math

from sim.components import (
    battery_charge,
    capacitor_capacitance,
    capacitor_max_voltage,
    capacitor_voltage,
)
from sim.network import CAPACITOR_LEAD_RESISTANCE

LEAKAGE_RESISTANCE = 1e7
BATTERY_CAPACITY = 400.0


def integrate_capacitor(capacitor, flow, dt):
    # Exact solution of dV/dt = (target - V) / RC over one step.
    voltage = capacitor_voltage(capacitor)
    capacitance = capacitor_capacitance(capacitor)
    if flow is not None and flow["active"]:
        resistance = max(flow["loopResistance"], CAPACITOR_LEAD_RESISTANCE)
        target = voltage + flow["charging"] * resistance
    else:
        resistance = LEAKAGE_RESISTANCE
        target = 0.0
    voltage = target + (voltage - target) * math.exp(-dt / (resistance * capacitance))
    capacitor["voltage"] = min(max(voltage, 0.0), capacitor_max_voltage(capacitor))
    return capacitor


def drain_battery(battery, current, dt):
    charge = battery_charge(battery)
    if current > 0 and dt > 0:
        charge = max(0.0, charge - current * dt / BATTERY_CAPACITY)
    battery["charge"] = charge
    return battery
