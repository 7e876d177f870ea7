"""
Decoder for the BLE Blood Pressure Measurement characteristic.

Cuffs exposing the Blood Pressure service (0x1810) notify characteristic
0x2A35 with this layout:

    byte 0      flags
                  bit 0  units (0 = mmHg, 1 = kPa)
                  bit 1  timestamp present
                  bit 2  pulse rate present
    bytes 1-2   systolic            uint16 LE
    bytes 3-4   diastolic           uint16 LE
    bytes 5-6   mean arterial       uint16 LE
    [7 bytes]   year uint16 LE, month, day, hours, minutes, seconds
                (0 in year, month or day = not known)
    [2 bytes]   pulse rate          uint16 LE

Values are read as plain integers; cuffs in the field report whole mmHg.
"""

import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

BLOOD_PRESSURE_SERVICE_UUID = 0x1810
BLOOD_PRESSURE_MEASUREMENT_UUID = 0x2A35

FLAG_UNITS_KPA = 0x01
FLAG_TIMESTAMP_PRESENT = 0x02
FLAG_PULSE_PRESENT = 0x04

HEADER_LENGTH = 7
TIMESTAMP_LENGTH = 7
PULSE_LENGTH = 2


class BloodPressureParseError(ValueError):
    """Payload could not be decoded."""


class UnsupportedUnitsError(BloodPressureParseError):
    """Cuff reports kPa; only mmHg is accepted."""


@dataclass(frozen=True)
class BloodPressureMeasurement:
    systolic: int
    diastolic: int
    mean_arterial_pressure: int
    measurement_time: datetime
    heart_rate: Optional[int] = None
    device_timestamp: bool = False

    def to_reading(self) -> Dict[str, Any]:
        reading = {
            "systolic": self.systolic,
            "diastolic": self.diastolic,
            "measurementTime": self.measurement_time.isoformat(),
        }
        if self.heart_rate is not None:
            reading["heartRate"] = self.heart_rate
        return reading


def _read_timestamp(data: bytes, offset: int) -> Optional[datetime]:
    """Zero year, month or day means the cuff does not know the date."""
    year, month, day, hours, minutes, seconds = struct.unpack_from("<HBBBBB", data, offset)
    if not (year and month and day):
        return None
    try:
        return datetime(year, month, day, hours, minutes, seconds, tzinfo=timezone.utc)
    except ValueError as e:
        raise BloodPressureParseError(f"Timestamp non valido nel dispositivo: {e}") from e


def parse_blood_pressure_measurement(data: bytes, now: Optional[datetime] = None) -> BloodPressureMeasurement:
    """
    Decode one 0x2A35 notification.

    Optional fields flagged but truncated are ignored: a missing timestamp
    falls back to ``now``, as does a timestamp the cuff reports as
    not known. A missing pulse leaves ``heart_rate`` unset.
    """
    data = bytes(data)
    if len(data) < HEADER_LENGTH:
        raise BloodPressureParseError(
            f"Dati pressione incompleti: {len(data)} byte ricevuti, minimo {HEADER_LENGTH}"
        )

    flags = data[0]
    if flags & FLAG_UNITS_KPA:
        raise UnsupportedUnitsError("Unità non supportata: solo mmHg")

    systolic, diastolic, mean_arterial = struct.unpack_from("<HHH", data, 1)
    offset = HEADER_LENGTH

    measurement_time = None
    if flags & FLAG_TIMESTAMP_PRESENT and len(data) >= offset + TIMESTAMP_LENGTH:
        measurement_time = _read_timestamp(data, offset)
        offset += TIMESTAMP_LENGTH

    heart_rate = None
    if flags & FLAG_PULSE_PRESENT and len(data) >= offset + PULSE_LENGTH:
        (heart_rate,) = struct.unpack_from("<H", data, offset)

    return BloodPressureMeasurement(
        systolic=systolic,
        diastolic=diastolic,
        mean_arterial_pressure=mean_arterial,
        measurement_time=measurement_time or now or datetime.now(timezone.utc),
        heart_rate=heart_rate,
        device_timestamp=measurement_time is not None,
    )
