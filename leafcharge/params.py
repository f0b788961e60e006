"""Shared vehicle parameter store keyed by :class:`Param`."""

from __future__ import annotations

import enum


class Mode(enum.IntEnum):
    """Vehicle operation modes stored under :attr:`Param.OPMODE`."""

    OFF = 0
    RUN = 1
    PRECHARGE = 2
    PCHFAIL = 3
    CHARGE = 4
    LAST = 5


class Param(enum.IntEnum):
    """Names of the values exchanged between the CAN nodes."""

    OBC_CHARGE_STATUS = 0
    PILOT_LIM = 1
    CABLE_LIM = 2
    PLUG_DET = 3
    PILOT_TYP = 4
    CCS_V_CON = 5
    CCS_V_AVAIL = 6
    CCS_I_AVAIL = 7
    CCS_COND = 8
    CCS_V = 9
    CCS_I = 10
    CCS_V_MIN = 11
    CCS_CONTACTOR = 12
    CCS_STATE = 13
    CCS_ILIM = 14  # maximum current allowed by the BMS
    CCS_IREQ = 15
    CHADEMO_IREQ = 16
    VOLTSPNT = 17
    CP_DOOR = 18
    UDC = 19  # battery voltage, V
    IDC = 20  # battery current, A
    SOC = 21  # state of charge, %
    SOCFC = 22  # state of charge, %
    BATT_CAP = 23  # battery capacity, Wh
    OPMODE = 24  # vehicle operation mode, see Mode


class ParamStore:
    """Integer parameters; unset parameters read as zero."""

    def __init__(self):
        self._values: dict[Param, int] = {}

    def set_int(self, param, value) -> None:
        """Store ``value`` truncated toward zero."""
        self._values[Param(param)] = int(value)

    def get_int(self, param) -> int:
        return self._values.get(Param(param), 0)

    def get_bool(self, param) -> bool:
        """True only when the parameter holds exactly 1."""
        return self.get_int(param) == 1

    def snapshot(self) -> dict[Param, int]:
        """A copy of all set parameters, ordered by parameter."""
        return dict(sorted(self._values.items()))