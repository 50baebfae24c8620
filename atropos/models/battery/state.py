"""Names and positions of the values in the vectors of the battery model"""
from enum import IntEnum


class BatteryStates(IntEnum):
    """State of a lithium-ion cell"""

    tb = 0
    """Bulk temperature. Units: K"""
    vo = 1
    """Ohmic overpotential. Units: V"""
    vsn = 2
    """Surface overpotential at the negative electrode. Units: V"""
    vsp = 3
    """Surface overpotential at the positive electrode. Units: V"""
    qnb = 4
    """Charge in the bulk of the negative electrode. Units: C"""
    qns = 5
    """Charge at the surface of the negative electrode. Units: C"""
    qpb = 6
    """Charge in the bulk of the positive electrode. Units: C"""
    qps = 7
    """Charge at the surface of the positive electrode. Units: C"""


class BatteryInputs(IntEnum):
    """Load applied to the cell"""

    p = 0
    """Power drawn from the cell. Positive for discharge. Units: W"""


class BatteryOutputs(IntEnum):
    """Measurable quantities"""

    tbm = 0
    """Measured temperature. Units: °C"""
    vm = 1
    """Measured terminal voltage. Units: V"""


class BatteryPredictedOutputs(IntEnum):
    """Quantities reported with each prediction"""

    soc = 0
    """State of charge, the fraction of the mobile charge still held by the negative electrode"""
