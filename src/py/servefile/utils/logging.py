import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, ClassVar, NamedTuple, TypeAlias

from ..config import LOG_LEVEL

ERR = sys.stderr

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False

TPrimitive: TypeAlias = (
	None | bool | int | float | str | bytes | list[Any] | tuple[Any, ...] | dict[str, Any]
)

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="servefile")


class Term:
	BOLD: ClassVar[str] = "" if NO_COLOR else "\033[1m"
	RESET: ClassVar[str] = "" if NO_COLOR else "\033[0m"

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogType(Enum):
	Message = 0  # A general information message
	Event = 20  # An event, like a request being served


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR: dict[LogLevel, int] = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}

THRESHOLD: LogLevel = LogLevel.__members__.get(LOG_LEVEL, LogLevel.Info)


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: TPrimitive = None
	context: dict[str, TPrimitive] | None = None
	icon: str | None = None


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	"""Writes out the entry to stderr, one line per entry."""
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	if entry.type == LogType.Event:
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
		)
	else:
		icon: str = f" {entry.icon}" if entry.icon else ""
		ERR.write(
			f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
		)
	ERR.flush()
	return entry


def logged(level: LogLevel) -> bool:
	"""Tells if entries of the given level are currently output. This is
	used to guard against building entries that would be discarded."""
	return level.value >= THRESHOLD.value


def log(
	level: LogLevel,
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	context: dict[str, TPrimitive],
) -> LogEntry:
	entry = LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		level=level,
		message=message,
		context=context,
		icon=icon,
	)
	return send(entry) if logged(level) else entry


def debug(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TPrimitive
) -> LogEntry:
	return log(LogLevel.Debug, message, origin=origin, icon=icon, context=context)


def info(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TPrimitive
) -> LogEntry:
	return log(LogLevel.Info, message, origin=origin, icon=icon, context=context)


def warning(
	message: str, *, origin: str | None = None, icon: str | None = None, **context: TPrimitive
) -> LogEntry:
	return log(LogLevel.Warning, message, origin=origin, icon=icon, context=context)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	entry = LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		level=LogLevel.Error,
		message=message,
		value=code,
		context=context,
	)
	return send(entry) if logged(LogLevel.Error) else entry


def event(
	event: str,
	value: Any = None,
	*,
	origin: str | None = None,
	**context: TPrimitive,
) -> LogEntry:
	entry = LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		type=LogType.Event,
		name=event,
		value=value,
		context=context,
	)
	return send(entry) if logged(entry.level) else entry


def exception(
	exception: BaseException,
	message: str | None = None,
) -> BaseException:
	try:
		stream = ERR
		stream.write(
			f"!!! EXCP {f'{message}: ' if message else ''}[{exception.__class__.__name__}] {exception}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			stream.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		stream.flush()
	except Exception:  # nosec: B110
		# This may be called from within a logging failure, so it must never
		# raise itself.
		pass
	# Returned so that it can be used as `raise exception(e)`
	return exception


# EOF
