"""Sources of the timestamped sensor values read by a prognoser"""
from abc import abstractmethod
from typing import Dict, Mapping, NamedTuple


class TimestampedValue(NamedTuple):
    """A sensor reading"""

    value: float
    """Value of the reading"""
    time: float
    """Time at which the reading was taken. Units: ms"""


class TelemetrySource:
    """Lookup of the latest reading of each named sensor

    Lookups must not block. Implementations hold the latest value
    received from whatever communication bus delivers the data.
    """

    @abstractmethod
    def get_value(self, name: str) -> TimestampedValue:
        """Get the latest reading of a sensor

        Args:
            name: Name of the sensor
        Returns:
            The value and the time it was recorded
        """
        raise NotImplementedError()


class InMemoryTelemetry(TelemetrySource):
    """Telemetry source which holds readings pushed into it by the caller"""

    def __init__(self):
        self._latest: Dict[str, TimestampedValue] = {}

    def update(self, name: str, value: float, time: float):
        """Store a new reading

        Args:
            name: Name of the sensor
            value: Value of the reading
            time: Time of the reading. Units: ms
        """
        self._latest[name] = TimestampedValue(float(value), float(time))

    def update_many(self, values: Mapping[str, float], time: float):
        """Store readings from several sensors taken at the same time

        Args:
            values: Value of each sensor
            time: Time of the readings. Units: ms
        """
        for name, value in values.items():
            self.update(name, value, time)

    def get_value(self, name: str) -> TimestampedValue:
        if name not in self._latest:
            raise KeyError(f'No readings received for "{name}"')
        return self._latest[name]
