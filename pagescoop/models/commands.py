"""Pydantic models for scrape jobs and the commands they carry.

A job arrives as loosely-typed JSON (``{"type": "attr", "selector": ...}``).
It is parsed once, here, into a closed set of command models; everything
downstream works with the typed variants only.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic import Field as PydanticField

from pagescoop.utils.exceptions import CommandError

logger = logging.getLogger(__name__)

FieldKind = Literal['text', 'attribute', 'markup', 'image']


class WaitCommand(BaseModel):
    """Pause for a fixed number of milliseconds before the next command."""

    model_config = ConfigDict(frozen=True)

    type: Literal['wait'] = 'wait'
    time: float = PydanticField(default=0.0, description='Delay in milliseconds')

    @field_validator('time', mode='before')
    @classmethod
    def _coerce_time(cls, value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return number if number > 0 else 0.0


class ScopeCommand(BaseModel):
    """Selector whose matches become parent contexts for every field command."""

    model_config = ConfigDict(frozen=True)

    type: Literal['scope'] = 'scope'
    selector: str = ''


class FieldCommand(BaseModel):
    """Extract one named value per node matched by the selector.

    Attributes:
        kind: What to read from each node (text, attribute, markup, image)
        name: Output key in the record; duplicates overwrite earlier fields
        selector: Selector expression (may use ``>>``, ``next:`` and ``:has-text``)
        attribute: Attribute to read for ``attribute`` fields; inferred from the
            selector's last ``[...]`` clause when omitted

    """

    model_config = ConfigDict(frozen=True)

    type: Literal['field'] = 'field'
    kind: FieldKind
    name: str = PydanticField(min_length=1)
    selector: str = ''
    attribute: str | None = None


class ClickCommand(BaseModel):
    """Click every node matched by the selector."""

    model_config = ConfigDict(frozen=True)

    type: Literal['click'] = 'click'
    selector: str = ''


class FillCommand(BaseModel):
    """Set the value of every node matched by the selector."""

    model_config = ConfigDict(frozen=True)

    type: Literal['fill'] = 'fill'
    selector: str = ''
    value: str = ''

    @field_validator('value', mode='before')
    @classmethod
    def _stringify_value(cls, value: Any) -> str:
        return '' if value is None else str(value)


Command = WaitCommand | ScopeCommand | FieldCommand | ClickCommand | FillCommand

# Accepted spellings of the raw "type" string -> (model, field kind)
COMMAND_TYPES: dict[str, tuple[type[BaseModel], str | None]] = {
    'wait': (WaitCommand, None),
    'waiter': (WaitCommand, None),
    'scope': (ScopeCommand, None),
    'patent': (ScopeCommand, None),
    'text': (FieldCommand, 'text'),
    'tag': (FieldCommand, 'text'),
    'attribute': (FieldCommand, 'attribute'),
    'attr': (FieldCommand, 'attribute'),
    'markup': (FieldCommand, 'markup'),
    'html': (FieldCommand, 'markup'),
    'image': (FieldCommand, 'image'),
    'img': (FieldCommand, 'image'),
    'click': (ClickCommand, None),
    'fill': (FillCommand, None),
}

# Page preparation switches a job may list under "flags"
JOB_FLAGS = frozenset(
    {
        'remove-videos',
        'pause-videos',
        'clear-local-storage',
        'clear-session-storage',
        'clear-cookies',
        'disable-animation',
        'disable-indexed-db',
        'disable-web-proxy',
    }
)


def parse_command(raw: Any) -> Command:
    """Parse one raw command mapping into its typed variant.

    Args:
        raw: Mapping with at least a ``type`` key, or an already-typed command

    Returns:
        The matching command model

    Raises:
        CommandError: If the type is missing or unknown, or the body is invalid

    """
    if isinstance(raw, (WaitCommand, ScopeCommand, FieldCommand, ClickCommand, FillCommand)):
        return raw
    if not isinstance(raw, dict):
        raise CommandError(f'Command must be an object, got {type(raw).__name__}')

    raw_type = raw.get('type')
    command_type = raw_type.strip().lower() if isinstance(raw_type, str) else ''
    if command_type not in COMMAND_TYPES:
        raise CommandError(f'Unknown command type: {raw_type!r}')

    model, kind = COMMAND_TYPES[command_type]
    body = {key: value for key, value in raw.items() if key != 'type'}
    if kind is not None:
        body['kind'] = kind
    if isinstance(body.get('attribute'), str):
        body['attribute'] = body['attribute'].strip() or None

    try:
        return model.model_validate(body)  # type: ignore[return-value]
    except ValidationError as e:
        raise CommandError(f'Invalid {command_type} command: {e.errors()[0]["msg"]}') from e


def parse_commands(raw_commands: Any) -> list[Command]:
    """Parse a raw command list, skipping entries that cannot be parsed.

    Args:
        raw_commands: List of raw command mappings (anything else yields [])

    Returns:
        Typed commands in their original order

    """
    if not isinstance(raw_commands, list):
        return []

    commands: list[Command] = []
    for index, raw in enumerate(raw_commands):
        try:
            commands.append(parse_command(raw))
        except CommandError as e:
            logger.warning(f'Ignoring command #{index}: {e}')
    return commands


class ScrapeJob(BaseModel):
    """One page visit: where to go, what to wait for, and what to extract.

    Attributes:
        id: Caller-supplied identifier, echoed in the result and used for file names
        url: Page URL
        wait_for: Plain CSS selector polled for before extraction starts
        timer_delay: Settle delay in milliseconds (takes precedence over sleep)
        sleep: Fallback settle delay in milliseconds
        flags: Page preparation switches from JOB_FLAGS, applied before wait-for
        commands: Parsed commands, read from the ``requests`` key

    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | int | None = None
    url: str = PydanticField(min_length=1)
    wait_for: str | None = PydanticField(default=None, alias='waitFor')
    timer_delay: float | None = PydanticField(default=None, alias='timerDelay')
    sleep: float | None = None
    flags: list[str] = PydanticField(default_factory=list)
    commands: list[Command] = PydanticField(default_factory=list, alias='requests')

    @field_validator('commands', mode='before')
    @classmethod
    def _parse_requests(cls, value: Any) -> list[Command]:
        return parse_commands(value)

    @field_validator('flags', mode='before')
    @classmethod
    def _normalise_flags(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        flags: list[str] = []
        for item in value:
            flag = item.strip().lower() if isinstance(item, str) else ''
            if flag not in JOB_FLAGS:
                logger.warning(f'Ignoring unknown job flag: {item!r}')
            elif flag not in flags:
                flags.append(flag)
        return flags

    @field_validator('timer_delay', 'sleep', mode='before')
    @classmethod
    def _coerce_delay(cls, value: Any) -> float | None:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None

    @property
    def settle_delay(self) -> float:
        """Delay in milliseconds to apply once the page has loaded."""
        return self.timer_delay or self.sleep or 0.0

    @property
    def scope_commands(self) -> list[ScopeCommand]:
        """Scope commands, in job order."""
        return [cmd for cmd in self.commands if isinstance(cmd, ScopeCommand)]

    @property
    def field_commands(self) -> list[FieldCommand]:
        """Field commands, in job order."""
        return [cmd for cmd in self.commands if isinstance(cmd, FieldCommand)]

    @classmethod
    def from_payload(cls, payload: Any) -> 'ScrapeJob':
        """Build a job from decoded JSON.

        Raises:
            CommandError: If the payload is not a valid job

        """
        if not isinstance(payload, dict):
            raise CommandError('Scrape job must be a JSON object')
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise CommandError(f'Invalid scrape job: {e}') from e
