"""Data models for iCalendar component parsing and recurrence normalization."""

import weakref
from collections.abc import Iterator
from enum import Enum
from typing import Any, Optional, Union

from icalendar.parser import Contentline, Parameters
from icalendar.prop import vInline
from pydantic import BaseModel, ConfigDict, Field


class PropertyKind(str, Enum):
    """Property names the recurrence normalizer acts on."""

    DTSTART = "DTSTART"
    DTEND = "DTEND"
    DURATION = "DURATION"
    RRULE = "RRULE"
    RDATE = "RDATE"
    EXRULE = "EXRULE"
    EXDATE = "EXDATE"
    UNRECOGNIZED = "UNRECOGNIZED"

    @classmethod
    def from_name(cls, name: str) -> "PropertyKind":
        """Map a property name onto its kind, ``UNRECOGNIZED`` for anything else."""
        try:
            kind = cls(name.upper())
        except ValueError:
            return cls.UNRECOGNIZED
        return cls.UNRECOGNIZED if kind is cls.UNRECOGNIZED else kind


class RDateEncoding(str, Enum):
    """How RDATE/EXDATE occurrences are flattened into the normalized record."""

    # "<tzid>;<values>": drops the TZID= key and any VALUE parameter
    LEGACY = "legacy"
    # "TZID=<tzid>;VALUE=DATE:<values>": the parameters as written on the wire
    PARAMETERS = "parameters"


class Property(BaseModel):
    """A single content line: name, parameters and raw value."""

    name: str = Field(..., description="Upper-cased property name")
    parameters: dict[str, str] = Field(
        default_factory=dict, description="Parameter name to value, in source order"
    )
    value: str = Field(default="", description="Raw property value")

    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> PropertyKind:
        """Closed classification of this property's name."""
        return PropertyKind.from_name(self.name)

    def get_parameter(self, name: str) -> Optional[str]:
        """Get a parameter value by (case-insensitive) name."""
        return self.parameters.get(name.upper())

    def to_ical(self) -> str:
        """Render this property as one unfolded content line.

        Parameter values are quoted by icalendar where needed; the value is
        written as is.
        """
        line = Contentline.from_parts(
            self.name, Parameters(self.parameters), vInline(self.value), sorted=False
        )
        return str(line)


class Component:
    """A named node holding ordered properties and child components.

    The parent link is a weak reference: the tree root owns its children, a
    child never keeps its parent alive.
    """

    def __init__(self, name: str, parent: Optional["Component"] = None) -> None:
        self.name = name.upper()
        self._parent_ref: Optional[weakref.ReferenceType[Component]] = (
            weakref.ref(parent) if parent is not None else None
        )
        self.properties: list[Property] = []
        self.components: list[Component] = []

    @property
    def parent(self) -> Optional["Component"]:
        """The enclosing component, or None for a root."""
        return self._parent_ref() if self._parent_ref is not None else None

    def add_property(self, prop: Property) -> None:
        self.properties.append(prop)

    def add_child(self, name: str) -> "Component":
        """Create, attach and return a child component."""
        child = Component(name, parent=self)
        self.components.append(child)
        return child

    def get_properties(self, name: Union[str, PropertyKind]) -> list[Property]:
        """All properties with the given name, in source order."""
        key = name.value if isinstance(name, PropertyKind) else name.upper()
        return [prop for prop in self.properties if prop.name == key]

    def get_first_property(self, name: Union[str, PropertyKind]) -> Optional[Property]:
        props = self.get_properties(name)
        return props[0] if props else None

    def get_components(self, name: str) -> list["Component"]:
        """Direct children with the given name."""
        return [child for child in self.components if child.name == name.upper()]

    def walk(self, name: Optional[str] = None) -> Iterator["Component"]:
        """Depth-first iteration over this component and its descendants."""
        if name is None or self.name == name.upper():
            yield self
        for child in self.components:
            yield from child.walk(name)

    def to_ical(self) -> str:
        """Serialize the component tree to newline-separated content lines."""
        lines = [f"BEGIN:{self.name}"]
        lines.extend(prop.to_ical() for prop in self.properties)
        lines.extend(child.to_ical() for child in self.components)
        lines.append(f"END:{self.name}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Component(name={self.name!r}, properties={len(self.properties)}, "
            f"components={len(self.components)})"
        )


class NormalizedRecurrence(BaseModel):
    """Canonical, storage-ready recurrence metadata of one event."""

    rrule: Optional[str] = Field(default=None, description="Newline-joined RRULE values")
    rdate: Optional[str] = Field(default=None, description="Encoded RDATE values")
    exrule: Optional[str] = Field(default=None, description="Newline-joined EXRULE values")
    exdate: Optional[str] = Field(default=None, description="Encoded EXDATE values")
    dtstart_millis: int = Field(..., description="Start as milliseconds since the Unix epoch")
    timezone: str = Field(..., description="Timezone governing the event")
    duration: str = Field(..., description="ISO-8601 style duration")
    all_day: bool = Field(default=False, description="Date-only start")

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        """Check if the event repeats through a rule or explicit dates."""
        return self.rrule is not None or self.rdate is not None

    def to_storage_values(self) -> dict[str, Any]:
        """Flat field set for a calendar storage layer (``allDay`` as 0/1)."""
        return {
            "rrule": self.rrule,
            "rdate": self.rdate,
            "exrule": self.exrule,
            "exdate": self.exdate,
            "dtstart": self.dtstart_millis,
            "eventTimezone": self.timezone,
            "duration": self.duration,
            "allDay": int(self.all_day),
        }
