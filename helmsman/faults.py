"""
Helmsman faults and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every console fault, grouped
  by domain so logs and searches stay predictable.
- CommandException: base type carrying a message plus read-only options (code, title,
  hint and fault-specific context) that knows how to render itself as plain text
  (render) or as a Rich renderable (__rich__).
- Concrete faults for the dispatch taxonomy:
  • UnknownCommandError : no command answers to the typed name or alias.
  • ArgumentCountError  : the token count falls outside every target's arity.
  • ArgumentParseError  : no typed value combination satisfies any target.
  • PromptRejectedError : the pending prompt declined the turn (never logged).
  • MalformedInputError : the raw line could not be tokenized.
  • CommandError        : declared failure raised on purpose by a command body.
- trigger(): merge extra context into a fault and raise it. Attribute commands use
  it to stamp argument faults with the command name and a help hint.

Integration
- Command bodies raise CommandError (or call Context.check / Argument.get, which raise
  the argument faults). The console catches every Exception at the dispatch boundary
  and turns it into exactly one error log; nothing propagates past Console.execute.
- Hosts may remap codes through a __codes__ mapping and restyle output through a
  __styles__ mapping declared in __main__.
"""
import traceback
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Missing


class FaultCode(IntEnum):
    """
    canonical fault codes used across the console (stable identifiers).

    grouping
    - lookup (2110x): UNKNOWN_COMMAND, MALFORMED_INPUT
    - arguments (2111x): ARGUMENT_COUNT, ARGUMENT_PARSE
    - prompts (2112x): PROMPT_REJECTED
    - invocation (2113x): COMMAND_ERROR
    """
    # --- lookup (211xx) ---
    UNKNOWN_COMMAND  = 21101
    MALFORMED_INPUT  = 21102

    # --- arguments ---
    ARGUMENT_COUNT   = 21111
    ARGUMENT_PARSE   = 21112

    # --- prompts ---
    PROMPT_REJECTED  = 21121

    # --- invocation ---
    COMMAND_ERROR    = 21131

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host can provide a __codes__ mapping in __main__ to replace numeric
        ids with friendlier labels; otherwise the number itself is used.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    base of every console fault.

    contract
    - message: short, user-facing sentence (str(fault) returns it).
    - options: read-only mapping with at least 'code', 'title' and 'hint';
      subclasses add their own context (count, literal, expected, ...).
    - render(trace=False) gives the plain text used in error logs; with trace the
      formatted traceback follows the message.
    """
    code = FaultCode.COMMAND_ERROR
    title = "command error"

    def __init__(self, message=Missing, /, **options):
        if not isinstance(message, str) and message is not Missing:
            raise TypeError(f"{type(self).__name__}() message must be a string")
        super().__init__(message if message is not Missing else "")
        self.message = message if message is not Missing else self.describe(options)
        self.options = MappingProxyType({"code": self.code, "title": self.title, "hint": None} | options)

    def describe(self, options, /):
        """
        build the message when none was given explicitly (subclasses override).
        """
        return self.title.capitalize()

    def __getattr__(self, name):
        # context options read like attributes (fault.count, fault.literal, ...)
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __str__(self):
        return self.message

    def render(self, trace=False):
        if not trace or self.__traceback__ is None:
            return self.message
        return "%s\n%s" % (self.message, "".join(traceback.format_tb(self.__traceback__)).rstrip())

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        header = Text.assemble(
            "[ ",
            (self.options["code"].normalize(), styles["code"]),
            " | ",
            (self.options["title"].title(), styles["error-title"]),
            " ]",
        )
        body = [Text(self.message, styles["error-message"])]
        if hint := self.options["hint"]:
            body.append(Text.assemble((" → ", styles["hint-arrow"]), (hint, styles["hint"])))

        return Panel(Group(*body), title=header, title_align="left")

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        options = {key: value for key, value in self.options.items() if key not in ("code", "title")}
        return type(self)(self.message, **(options | overrides))


class CommandError(CommandException):
    """
    declared failure raised deliberately by a command body.

    the message is shown to the user as-is; the traceback is appended only when
    the console runs with trace=True.
    """


class UnknownCommandError(CommandException):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"

    def describe(self, options, /):
        return "Command %s doesn't exist" % options["name"]


class MalformedInputError(CommandException):
    code = FaultCode.MALFORMED_INPUT
    title = "malformed input"

    def describe(self, options, /):
        return "Unable to read input %r" % options["input"]


class ArgumentCountError(CommandException):
    """
    the supplied token count does not fit [minimum, maximum].
    """
    code = FaultCode.ARGUMENT_COUNT
    title = "wrong argument count"

    def describe(self, options, /):
        if options["count"] < options["minimum"]:
            return "Not enough arguments"
        if options["count"] > options["maximum"]:
            return "Too many arguments"
        return "Invalid argument count"


class ArgumentParseError(CommandException):
    """
    a token could not be read as the type expected at its position.

    options: expected (type), literal (raw token text), position (0-based, optional),
    target (closest matching target, optional).
    """
    code = FaultCode.ARGUMENT_PARSE
    title = "unparsable argument"

    def describe(self, options, /):
        expected = options["expected"]
        return "Unable to parse '%s' to %s" % (options["literal"], getattr(expected, "__name__", expected))


class PromptRejectedError(CommandException):
    code = FaultCode.PROMPT_REJECTED
    title = "prompt rejected"


def trigger(fault, /, **options):
    """
    raise a fault after merging extra context into its options.

    contract
    - fault must be a CommandException (or provide __replace__).
    - options override the fault's existing context, e.g. trigger(error, hint="...").
    """
    if not hasattr(fault, "__replace__") or not callable(fault.__replace__):
        raise TypeError("trigger() argument must have a __replace__ method")
    raise fault.__replace__(**options) from None


__all__ = (
    "FaultCode",
    "CommandException",
    "CommandError",
    "UnknownCommandError",
    "MalformedInputError",
    "ArgumentCountError",
    "ArgumentParseError",
    "PromptRejectedError",
    "trigger",
)
