"""Line-oriented iCalendar component parser."""

import logging
from collections.abc import Iterator
from typing import Optional

from icalendar.parser import Contentline, Contentlines, q_split

from .exceptions import ICSFormatError, MalformedLineError
from .models import Component, Property

logger = logging.getLogger(__name__)

# Name of the synthetic container created when the caller supplies none
ROOT_COMPONENT_NAME = "ROOT"

BEGIN = "BEGIN"
END = "END"


def unfold_lines(text: str) -> list[str]:
    """Split raw text into logical content lines.

    Bare CR line endings are turned into LF first; icalendar then removes the
    folds and splits the lines. Blank logical lines are dropped.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return [line for line in Contentlines.from_ical(text) if line.strip()]


class ComponentParser:
    """Parser turning content lines into a tree of ``Component`` objects.

    Each logical line has the form ``NAME;PARAM=VALUE;PARAM=VALUE:VALUE`` or
    ``NAME:VALUE`` and is split by icalendar's ``Contentline``. ``BEGIN``/``END``
    lines open and close nested components. Property values are kept
    verbatim; interpreting them is the recurrence normalizer's job.
    """

    def parse(self, text: str, component: Optional[Component] = None) -> Component:
        """Parse ``text`` into ``component`` (or a fresh root) and return it.

        Args:
            text: Raw, possibly folded, content lines
            component: Container receiving the top-level properties

        Returns:
            The container component

        Raises:
            MalformedLineError: If any line breaks the content-line grammar or
                components are not properly nested.
        """
        root = component if component is not None else Component(ROOT_COMPONENT_NAME)
        current = root
        line_count = 0

        for line in unfold_lines(text):
            line_count += 1
            prop = self.parse_line(line)

            if prop.name == BEGIN:
                if not prop.value.strip():
                    raise MalformedLineError("BEGIN without a component name", line)
                current = current.add_child(prop.value.strip())
            elif prop.name == END:
                if current is root or prop.value.strip().upper() != current.name:
                    raise MalformedLineError(
                        f"END does not match open component {current.name}", line
                    )
                current = current.parent or root
            else:
                current.add_property(prop)

        if current is not root:
            raise MalformedLineError("Unterminated component", f"{BEGIN}:{current.name}")

        logger.debug(f"Parsed {line_count} content lines into {root!r}")
        return root

    def parse_line(self, line: str) -> Property:
        """Parse one unfolded content line into a ``Property``.

        Raises:
            MalformedLineError: If the line has no ``:`` separator outside
                quotes, a parameter repeats, or icalendar rejects the name or
                a parameter.
        """
        line = str(line)
        if "\n" in line or "\r" in line:
            raise MalformedLineError("Unexpected line break in content line", line)

        head_and_value = q_split(line, ":", maxsplit=1)
        if len(head_and_value) != 2:
            raise MalformedLineError("Expected ':' in content line", line)
        head, value = head_and_value

        # icalendar keeps the last of repeated parameters
        seen: set[str] = set()
        for param in q_split(head, ";")[1:]:
            param_name = param.split("=", 1)[0].strip().upper()
            if not param_name:
                continue
            if param_name in seen:
                raise MalformedLineError(f"Duplicate parameter {param_name}", line)
            seen.add(param_name)

        # parts() unescapes the value, so only its name and parameters are used
        try:
            name, params, _ = Contentline(line).parts()
        except ValueError as e:
            raise MalformedLineError(f"Invalid content line: {e}", line) from e

        parameters = {
            key.upper(): ",".join(val) if isinstance(val, list) else str(val)
            for key, val in params.items()
        }
        return Property(name=name.upper(), parameters=parameters, value=value)


# Module-level parser; ComponentParser keeps no state between calls
_parser = ComponentParser()


def parse(text: str, component: Optional[Component] = None) -> Component:
    """Parse content lines into ``component`` or a fresh root component."""
    return _parser.parse(text, component)


def parse_line(line: str) -> Property:
    """Parse a single unfolded content line."""
    return _parser.parse_line(line)


def _single_child(root: Component, name: str) -> Component:
    children = root.get_components(name)
    if len(children) != 1 or root.properties or len(root.components) != 1:
        raise ICSFormatError(f"Expected exactly one top-level {name} component")
    return children[0]


def parse_calendar(text: str) -> Component:
    """Parse a complete ``VCALENDAR`` document and return the calendar component.

    Raises:
        ICSFormatError: If the text is malformed or is not a single VCALENDAR.
    """
    return _single_child(parse(text), "VCALENDAR")


def parse_event(text: str) -> Component:
    """Parse a single ``BEGIN:VEVENT`` ... ``END:VEVENT`` block.

    Raises:
        ICSFormatError: If the text is malformed or is not a single VEVENT.
    """
    return _single_child(parse(text), "VEVENT")


def iter_events(component: Component) -> Iterator[Component]:
    """Yield every ``VEVENT`` in the tree rooted at ``component``."""
    yield from component.walk("VEVENT")
