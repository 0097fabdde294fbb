"""Splitting of annotated SQL migration files into individual statements."""

from __future__ import annotations

import enum
import io
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Iterator, Mapping, Union

_log = logging.getLogger(__name__)

_SCAN_BUF_SIZE = 4 * 1024 * 1024


class Direction(str, enum.Enum):
    """Direction in which a migration is applied."""

    UP = "up"
    DOWN = "down"

    def __str__(self) -> str:
        return self.value

    def to_bool(self) -> bool:
        """Return True for the up direction."""
        return self is Direction.UP


def from_bool(b: bool) -> Direction:
    """Map True to ``Direction.UP`` and False to ``Direction.DOWN``."""
    return Direction.UP if b else Direction.DOWN


class Annotation(str, enum.Enum):
    """Supported ``-- +goose`` annotations."""

    UP = "Up"
    DOWN = "Down"
    STATEMENT_BEGIN = "StatementBegin"
    STATEMENT_END = "StatementEnd"
    NO_TRANSACTION = "NO TRANSACTION"
    ENVSUB_ON = "ENVSUB ON"
    ENVSUB_OFF = "ENVSUB OFF"

    def __str__(self) -> str:
        return self.value


class SQLParseError(ValueError):
    """Raised when a SQL migration cannot be parsed."""


@dataclass
class ParsedSQL:
    """Statements of both directions of one migration file."""

    use_tx: bool = True
    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)


class _State(enum.IntEnum):
    START = 0
    GOOSE_UP = 1
    STATEMENT_BEGIN_UP = 2
    STATEMENT_END_UP = 3
    GOOSE_DOWN = 4
    STATEMENT_BEGIN_DOWN = 5
    STATEMENT_END_DOWN = 6


_UP_STATES = frozenset({_State.GOOSE_UP, _State.STATEMENT_BEGIN_UP, _State.STATEMENT_END_UP})
_DOWN_STATES = frozenset(
    {_State.GOOSE_DOWN, _State.STATEMENT_BEGIN_DOWN, _State.STATEMENT_END_DOWN}
)
_END_STATES = frozenset({_State.STATEMENT_END_UP, _State.STATEMENT_END_DOWN})


class _Machine:
    def __init__(self, verbose: bool) -> None:
        self.state = _State.START
        self.verbose = verbose

    def move(self, new: _State) -> None:
        self.note(f"set {int(self.state)} => {int(new)}")
        self.state = new

    def note(self, msg: str) -> None:
        if self.verbose:
            _log.debug("StateMachine: %s", msg)


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _scan_lines(text: str) -> Iterator[str]:
    if not text:
        return
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    for line in lines:
        if len(line.encode("utf-8", "surrogateescape")) > _SCAN_BUF_SIZE:
            raise SQLParseError("failed to scan migration: token too long")
        yield line[:-1] if line.endswith("\r") else line


def _missing_semicolon_error(state: _State, direction: Direction, remaining: str) -> SQLParseError:
    return SQLParseError(
        f"failed to parse migration: state {int(state)}, direction: {direction}: "
        f"unexpected unfinished SQL query: {_quote(remaining)}: missing semicolon?"
    )


def parse_sql_migration(
    stream: IO, direction: Union[Direction, str], debug: bool = False
) -> tuple[list[str], bool]:
    """Split a migration read from ``stream`` into statements for ``direction``.

    Statements end at a line whose last word ends with a semicolon, or at a
    ``-- +goose StatementEnd`` annotation. Returns the statements and whether
    the migration runs inside a transaction.
    """
    direction = Direction(direction)
    content = stream.read()
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    machine = _Machine(debug)
    use_tx = True
    use_envsub = False
    buf: list[str] = []
    stmts: list[str] = []

    def flush(note: str) -> None:
        stmts.append("".join(buf).strip())
        buf.clear()
        machine.note(note)

    for line in _scan_lines(content):
        if debug:
            _log.debug("%s", line)
        stripped = line.strip()
        if machine.state is _State.START and not stripped:
            continue

        if stripped.startswith("--") and "+goose" in line:
            try:
                cmd = extract_annotation(line)
            except SQLParseError as exc:
                raise SQLParseError(
                    f"failed to parse annotation line {_quote(line)}: {exc}"
                ) from exc

            state = machine.state
            if cmd is Annotation.UP:
                if state is not _State.START:
                    raise SQLParseError(
                        f"duplicate '-- +goose Up' annotations; stateMachine={int(state)}"
                    )
                machine.move(_State.GOOSE_UP)
                continue
            if cmd is Annotation.DOWN:
                if state not in (_State.GOOSE_UP, _State.STATEMENT_END_UP):
                    raise SQLParseError(
                        "must start with '-- +goose Up' annotation, "
                        f"stateMachine={int(state)}"
                    )
                remaining = "".join(buf).strip()
                if remaining:
                    raise _missing_semicolon_error(state, direction, remaining)
                machine.move(_State.GOOSE_DOWN)
                continue
            if cmd is Annotation.STATEMENT_BEGIN:
                if state in (_State.GOOSE_UP, _State.STATEMENT_END_UP):
                    machine.move(_State.STATEMENT_BEGIN_UP)
                elif state in (_State.GOOSE_DOWN, _State.STATEMENT_END_DOWN):
                    machine.move(_State.STATEMENT_BEGIN_DOWN)
                else:
                    raise SQLParseError(
                        "'-- +goose StatementBegin' must be defined after '-- +goose Up' "
                        f"or '-- +goose Down' annotation, stateMachine={int(state)}"
                    )
                continue
            if cmd is Annotation.STATEMENT_END:
                if state is _State.STATEMENT_BEGIN_UP:
                    machine.move(_State.STATEMENT_END_UP)
                elif state is _State.STATEMENT_BEGIN_DOWN:
                    machine.move(_State.STATEMENT_END_DOWN)
                else:
                    raise SQLParseError(
                        "'-- +goose StatementEnd' must be defined after "
                        "'-- +goose StatementBegin'"
                    )
                # Falls through so the finished statement gets stored below.
            elif cmd is Annotation.NO_TRANSACTION:
                use_tx = False
                continue
            elif cmd is Annotation.ENVSUB_ON:
                use_envsub = True
                continue
            elif cmd is Annotation.ENVSUB_OFF:
                use_envsub = False
                continue

        # Leading comments and empty lines before a statement are ignored.
        if not buf and (stripped.startswith("--") or line == ""):
            machine.note("ignore comment")
            continue

        state = machine.state
        if state not in _END_STATES:
            if use_envsub:
                try:
                    line = _interpolate(line, os.environ)
                except _InterpolationError as exc:
                    raise SQLParseError(
                        f"variable substitution failed: {exc}:\n{line}"
                    ) from exc
            buf.append(line + "\n")

        if state in _UP_STATES:
            if direction is Direction.DOWN:
                buf.clear()
                machine.note("ignore down")
                continue
        elif state in _DOWN_STATES:
            if direction is Direction.UP:
                buf.clear()
                machine.note("ignore up")
                continue
        else:
            raise SQLParseError(
                f"failed to parse migration: unexpected state {int(state)} "
                f"on line {_quote(line)}"
            )

        if state is _State.GOOSE_UP:
            if ends_with_semicolon(line):
                flush("store simple Up query")
        elif state is _State.GOOSE_DOWN:
            if ends_with_semicolon(line):
                flush("store simple Down query")
        elif state is _State.STATEMENT_END_UP:
            flush("store Up statement")
            machine.move(_State.GOOSE_UP)
        elif state is _State.STATEMENT_END_DOWN:
            flush("store Down statement")
            machine.move(_State.GOOSE_DOWN)

    if machine.state is _State.START:
        raise SQLParseError(
            "failed to parse migration: must start with '-- +goose Up' annotation"
        )
    if machine.state in (_State.STATEMENT_BEGIN_UP, _State.STATEMENT_BEGIN_DOWN):
        raise SQLParseError(
            "failed to parse migration: missing '-- +goose StatementEnd' annotation"
        )
    remaining = "".join(buf).strip()
    if remaining:
        raise _missing_semicolon_error(machine.state, direction, remaining)
    return stmts, use_tx


def parse_all_from_fs(
    root: Union[str, os.PathLike], filename: str, debug: bool = False
) -> ParsedSQL:
    """Parse both directions of the migration ``filename`` found under ``root``.

    Raises ``FileNotFoundError`` if the file does not exist.
    """
    data = (Path(root) / filename).read_bytes()
    results = {}
    for direction in (Direction.UP, Direction.DOWN):
        try:
            results[direction] = parse_sql_migration(io.BytesIO(data), direction, debug)
        except SQLParseError as exc:
            raise SQLParseError(f"failed to parse {filename}: {exc}") from exc
    up, use_tx = results[Direction.UP]
    down, _ = results[Direction.DOWN]
    return ParsedSQL(use_tx=use_tx, up=up, down=down)


_EMPTY_ANNOTATION = "empty annotation"
_INVALID_ANNOTATION = "invalid annotation"


def extract_annotation(line: str) -> Annotation:
    """Return the annotation in a ``-- +goose <annotation>`` line.

    The match is case-insensitive. Raises ``SQLParseError`` for leading
    whitespace, repeated ``+goose`` markers, empty or unknown annotations.
    """
    if line.startswith((" ", "\t")):
        raise SQLParseError(f"{_quote(line)} contains leading whitespace: {_INVALID_ANNOTATION}")
    cmd = line.replace("--", "")
    cmd = cmd.replace("+goose", "", 1)
    if "+goose" in cmd:
        raise SQLParseError(
            f"{_quote(cmd)} contains multiple '+goose' annotations: {_INVALID_ANNOTATION}"
        )
    cmd = cmd.strip()
    if not cmd:
        raise SQLParseError(_EMPTY_ANNOTATION)
    wanted = cmd.casefold()
    for annotation in Annotation:
        if annotation.value.casefold() == wanted:
            return annotation
    raise SQLParseError(f"{_quote(cmd)} not supported: {_INVALID_ANNOTATION}")


def ends_with_semicolon(line: str) -> bool:
    """Tell whether the last word before any ``--`` comment ends with ``;``."""
    prev = ""
    for word in line.split():
        if word.startswith("--"):
            break
        prev = word
    return prev.endswith(";")


# Environment variable substitution used under ``-- +goose ENVSUB ON``.

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class _InterpolationError(Exception):
    pass


def _interpolate(text: str, env: Mapping[str, str]) -> str:
    out: list[str] = []
    pos = 0
    size = len(text)
    while pos < size:
        ch = text[pos]
        if ch == "\\" and text.startswith("$", pos + 1):
            out.append("$")
            pos += 2
            continue
        if ch != "$":
            out.append(ch)
            pos += 1
            continue
        nxt = text[pos + 1 : pos + 2]
        if nxt == "$":
            out.append("$")
            pos += 2
        elif nxt == "{":
            end = _matching_brace(text, pos + 2)
            out.append(_expand_braced(text[pos + 2 : end], env))
            pos = end + 1
        else:
            match = _IDENT.match(text, pos + 1)
            if match:
                out.append(env.get(match.group(), ""))
                pos = match.end()
            else:
                out.append("$")
                pos += 1
    return "".join(out)


def _matching_brace(text: str, start: int) -> int:
    depth = 1
    pos = start
    while pos < len(text):
        if text.startswith("${", pos):
            depth += 1
            pos += 2
            continue
        if text[pos] == "}":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    raise _InterpolationError("unterminated variable expansion: missing '}'")


def _required_error(name: str, message: str, env: Mapping[str, str]) -> _InterpolationError:
    msg = _interpolate(message, env) or "not set"
    return _InterpolationError(f"${name}: {msg}")


def _expand_braced(body: str, env: Mapping[str, str]) -> str:
    match = _IDENT.match(body)
    if not match:
        raise _InterpolationError(f"invalid variable name in ${{{body}}}")
    name = match.group()
    rest = body[match.end():]
    value = env.get(name)
    if not rest:
        return value or ""
    if rest.startswith(":-"):
        return value if value else _interpolate(rest[2:], env)
    if rest.startswith("-"):
        return value if value is not None else _interpolate(rest[1:], env)
    if rest.startswith(":?"):
        if value:
            return value
        raise _required_error(name, rest[2:], env)
    if rest.startswith("?"):
        if value is not None:
            return value
        raise _required_error(name, rest[1:], env)
    if rest.startswith(":"):
        return _substring(value or "", rest[1:], body)
    raise _InterpolationError(f"unsupported expansion ${{{body}}}")


def _substring(value: str, spec: str, body: str) -> str:
    offset_text, sep, length_text = spec.partition(":")
    try:
        offset = int(offset_text.strip())
        length = int(length_text.strip()) if sep else None
    except ValueError as exc:
        raise _InterpolationError(f"invalid substring expansion ${{{body}}}") from exc
    start = offset if offset >= 0 else max(len(value) + offset, 0)
    if length is None:
        return value[start:]
    end = start + length if length >= 0 else len(value) + length
    return value[start:end] if end > start else ""