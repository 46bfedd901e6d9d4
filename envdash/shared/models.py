"""Core data models for sensor readings and view filters."""

import datetime as dt
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

LOADING_TEXT = "Loading..."


def parse_timestamp(value: Any) -> dt.datetime:
    """Parse a wire timestamp (ISO-8601 string or epoch seconds)."""
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return dt.datetime.fromtimestamp(value)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if isinstance(value, str):
        # fromisoformat() only accepts a trailing Z on 3.11+
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return dt.datetime.fromisoformat(value)
    raise ValueError(f"Unsupported timestamp: {value!r}")


def parse_date(value: Union[None, str, dt.date]) -> Optional[dt.date]:
    """Parse a calendar date filter value.

    None and the empty string both mean "no date" (live mode).

    Raises:
        ValueError: If the value is neither empty nor a YYYY-MM-DD date.
    """
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    value = value.strip()
    if not value:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"Invalid date '{value}', expected YYYY-MM-DD")


@dataclass(frozen=True)
class Reading:
    """A single reading from a sensor node."""
    node_id: str
    timestamp: dt.datetime
    temperature: float
    humidity: float
    co2: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reading":
        """Create a reading from a wire record.

        Raises:
            ValueError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Reading record must be an object, got {type(data).__name__}")
        try:
            return cls(
                node_id=str(data["nodeId"]),
                timestamp=parse_timestamp(data["timestamp"]),
                temperature=float(data["temperature"]),
                humidity=float(data["humidity"]),
                co2=float(data["co2"]),
            )
        except KeyError as e:
            raise ValueError(f"Reading record missing field {e}")
        except TypeError as e:
            raise ValueError(f"Invalid reading record: {e}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "nodeId": self.node_id,
            "timestamp": self.timestamp.isoformat(),
            "temperature": self.temperature,
            "humidity": self.humidity,
            "co2": self.co2,
        }


def parse_readings(payload: Iterable[Any]) -> Tuple[Reading, ...]:
    """Parse a batch of wire records, keeping arrival order.

    Malformed records are logged and skipped rather than failing the batch.
    """
    readings: List[Reading] = []
    for record in payload:
        try:
            readings.append(Reading.from_dict(record))
        except ValueError as e:
            logger.warning(f"Skipping malformed reading: {e}")
    return tuple(readings)


@dataclass(frozen=True)
class Filter:
    """The node and date currently selected for the view.

    ``date`` of None means live mode.
    """
    node_id: str
    date: Optional[dt.date] = None

    @property
    def is_live(self) -> bool:
        return self.date is None

    def with_node(self, node_id: str) -> "Filter":
        return replace(self, node_id=node_id)

    def with_date(self, value: Union[None, str, dt.date]) -> "Filter":
        return replace(self, date=parse_date(value))

    def query_payload(self) -> Dict[str, str]:
        """Payload for the getDataByDate request."""
        return {
            "date": self.date.isoformat() if self.date else "",
            "nodeId": self.node_id,
        }

    def __str__(self) -> str:
        return f"{self.node_id}@{self.date.isoformat() if self.date else 'live'}"


@dataclass(frozen=True)
class LatestSummary:
    """Most recent values for a node, shown on the stat cards."""
    node_id: Optional[str] = None
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    co2: Optional[float] = None

    @classmethod
    def loading(cls) -> "LatestSummary":
        """Sentinel used before the first successful fetch."""
        return cls()

    @classmethod
    def from_reading(cls, reading: Reading) -> "LatestSummary":
        return cls(
            node_id=reading.node_id,
            temperature=reading.temperature,
            humidity=reading.humidity,
            co2=reading.co2,
        )

    @property
    def is_loading(self) -> bool:
        return self.node_id is None

    def display_values(self) -> Dict[str, str]:
        """Stat card strings, e.g. {"temperature": "21.5°C", ...}."""
        if self.is_loading:
            return {
                "temperature": LOADING_TEXT,
                "humidity": LOADING_TEXT,
                "co2": LOADING_TEXT,
            }
        return {
            "temperature": f"{_format_number(self.temperature)}°C",
            "humidity": f"{_format_number(self.humidity)}%",
            "co2": f"{_format_number(self.co2)} ppm",
        }


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return "?"
    # 21.0 -> "21", 21.5 -> "21.5"
    return f"{value:g}"
