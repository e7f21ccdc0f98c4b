# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Jeff Culverhouse
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

DeviceId = str


def device_id(name: str | None, vendor: str | None, serial: str | None, location: str | None) -> DeviceId:
    """Build an id that survives index shifts in the OpenRGB device list.

    The SDK's own device id is a list index, so it changes whenever a device
    is added or removed. Name (or vendor) plus serial (or location) does not.
    """
    label = (name or "").strip() or (vendor or "").strip()
    where = (serial or "").strip() or (location or "").strip()
    return f"{label}:{where}"


@dataclass(frozen=True)
class Color:
    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for channel in (self.red, self.green, self.blue):
            if not 0 <= channel <= 255:
                raise ValueError(f"color channel out of range: {channel}")

    @classmethod
    def from_packed(cls, value: int) -> "Color":
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    @classmethod
    def parse(cls, value: Any) -> "Color":
        """Accept a packed int, [r, g, b], an r/g/b dict, "#rrggbb" or a Color."""
        if isinstance(value, Color):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid color value: {value!r}")
        if isinstance(value, int):
            return cls.from_packed(value)
        if isinstance(value, str):
            text = value.strip().lstrip("#")
            if len(text) != 6:
                raise ValueError(f"invalid color value: {value!r}")
            try:
                return cls.from_packed(int(text, 16))
            except ValueError as err:
                raise ValueError(f"invalid color value: {value!r}") from err
        if isinstance(value, (list, tuple)) and len(value) == 3:
            return cls(int(value[0]), int(value[1]), int(value[2]))
        if isinstance(value, Mapping):
            if "red" in value:
                return cls(int(value["red"]), int(value.get("green", 0)), int(value.get("blue", 0)))
            return cls(int(value.get("r", 0)), int(value.get("g", 0)), int(value.get("b", 0)))
        raise ValueError(f"invalid color value: {value!r}")

    def to_packed(self) -> int:
        return (self.red << 16) | (self.green << 8) | self.blue

    def to_hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"


WHITE = Color(255, 255, 255)


@dataclass(frozen=True)
class DeviceTopology:
    index: int
    name: str
    leds: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeviceState:
    colors: tuple[Color, ...] = ()


@dataclass(frozen=True)
class Snapshot:
    devices: dict[DeviceId, DeviceTopology] = field(default_factory=dict)
    states: dict[DeviceId, DeviceState] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "Snapshot":
        devices: dict[DeviceId, DeviceTopology] = {}
        states: dict[DeviceId, DeviceState] = {}

        # two devices deriving the same id: the later record wins
        for record in records:
            key = device_id(record.get("name"), record.get("vendor"), record.get("serial"), record.get("location"))
            devices[key] = DeviceTopology(
                index=int(record.get("index", 0)),
                name=record.get("name") or "",
                leds=tuple(_led_name(led) for led in record.get("leds") or []),
            )
            states[key] = DeviceState(colors=tuple(Color.parse(c) for c in record.get("colors") or []))

        return cls(devices=devices, states=states)


def _led_name(led: Any) -> str:
    if isinstance(led, Mapping):
        return str(led.get("name", ""))
    return str(led)


@dataclass(frozen=True)
class SnapshotDiff:
    topology_changed: bool
    state_changed: bool

    @property
    def changed(self) -> bool:
        return self.topology_changed or self.state_changed


class SnapshotStore:
    """Last-known mirror of the OpenRGB devices.

    Written only by the poll completion step; everything else reads it.
    """

    def __init__(self) -> None:
        self._current: Snapshot | None = None

    @property
    def current(self) -> Snapshot:
        return self._current if self._current is not None else Snapshot()

    @property
    def devices(self) -> dict[DeviceId, DeviceTopology]:
        return self.current.devices

    @property
    def states(self) -> dict[DeviceId, DeviceState]:
        return self.current.states

    @property
    def is_empty(self) -> bool:
        return self._current is None

    def diff(self, snapshot: Snapshot) -> SnapshotDiff:
        if self._current is None:
            return SnapshotDiff(topology_changed=True, state_changed=True)
        return SnapshotDiff(
            topology_changed=snapshot.devices != self._current.devices,
            state_changed=snapshot.states != self._current.states,
        )

    def apply(self, snapshot: Snapshot) -> SnapshotDiff:
        diff = self.diff(snapshot)
        if diff.changed:
            self._current = snapshot
        return diff

    def clear(self) -> None:
        self._current = None
