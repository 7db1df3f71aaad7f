"""
Helmsman value parsers: string → typed candidate values.

Overview
- ValueParser: one converter for one declared type. Calling a parser never raises;
  a failed conversion yields Missing.
- Standard parsers: IntegerParser, FloatParser, DecimalParser, BooleanParser and
  StringParser (always succeeds, pass-through).
- ParserRegistry: ordered collection of parsers. candidates(text) runs every parser
  and keeps every success (not just the first), deduplicated by exact type.
- ShellParser: the default line parser; shell-style splitting (shlex) followed by
  one Argument per token.

Ordering matters
- Candidate discovery order mirrors registration order. The standard registry
  registers int before float, Decimal, bool and str, so "5" produces
  (int, float, Decimal, str) candidates in that order, and overload resolution
  tries the int reading first.

Integer widths
- Python has a single integer type; bounded readings (e.g. an unsigned byte) are
  expressed as IntegerParser(minimum=0, maximum=255) still yielding int.

Quick example
    >>> registry = ParserRegistry.standard()
    >>> [candidate.type for candidate in registry.candidates("5")]
    [<class 'int'>, <class 'float'>, <class 'decimal.Decimal'>, <class 'str'>]
"""
import builtins
import decimal
import re
import shlex
from decimal import Decimal

from .arguments import Argument, ValueCandidate
from .faults import MalformedInputError
from .utils import *


class ValueParser(metaclass=ReflectiveType):
    """
    Convert raw token text into a value of one declared type.

    Parameters
    - type: the runtime type produced on success (used for exact-type matching).
    - converter: optional callable(text) -> value; subclasses override convert().

    Calling the parser returns the converted value or Missing. Conversion errors
    (ValueError, TypeError, ArithmeticError) are swallowed, everything else is a bug
    in the converter and propagates.
    """
    __introspectable__ = ("type",)

    def __init__(self, type, converter=Missing, /):
        if not isinstance(type, builtins.type):
            raise TypeError(f"{self.__typename__} type must be a class")
        if converter is not Missing and not callable(converter):
            raise TypeError(f"{self.__typename__} converter must be callable")
        self._type = type
        self._converter = converter

    def convert(self, text, /):
        if self._converter is Missing:
            return self._type(text)
        return self._converter(text)

    def __call__(self, text, /):
        try:
            value = self.convert(text)
        except (ValueError, TypeError, ArithmeticError):
            return Missing
        # a converter answering None or a foreign type did not really parse
        if value is None or value is Missing or type(value) is not self._type:
            return Missing
        return value


class IntegerParser(ValueParser):
    """
    Decimal integer literals with an optional sign ("-12", "+3"), optionally bounded.
    """
    __introspectable__ = ("type", "minimum", "maximum")

    def __init__(self, minimum=None, maximum=None):
        super().__init__(int)
        if minimum is not None and maximum is not None and minimum > maximum:
            raise ValueError(f"{self.__typename__} minimum cannot exceed maximum")
        self._minimum = minimum
        self._maximum = maximum

    def convert(self, text, /):
        if not re.fullmatch(r"[+-]?\d+", text):
            raise ValueError(text)
        value = int(text)
        if self._minimum is not None and value < self._minimum:
            raise ValueError(text)
        if self._maximum is not None and value > self._maximum:
            raise ValueError(text)
        return value


def _plain(text):
    # python's numeric constructors tolerate padding and digit separators, tokens must not
    if text != text.strip() or "_" in text or not text:
        raise ValueError(text)
    return text


class FloatParser(ValueParser):
    def __init__(self):
        super().__init__(float)

    def convert(self, text, /):
        return float(_plain(text))


class DecimalParser(ValueParser):
    def __init__(self):
        super().__init__(Decimal)

    def convert(self, text, /):
        try:
            return Decimal(_plain(text))
        except decimal.InvalidOperation:
            raise ValueError(text) from None


class BooleanParser(ValueParser):
    """
    "true" / "false", case-insensitive.
    """
    def __init__(self):
        super().__init__(bool)

    def convert(self, text, /):
        match text.lower():
            case "true":
                return True
            case "false":
                return False
        raise ValueError(text)


class StringParser(ValueParser):
    """
    Pass-through parser; always succeeds.
    """
    def __init__(self):
        super().__init__(str)

    def convert(self, text, /):
        return str(text)


class ParserRegistry:
    """
    Ordered set of value parsers consulted for every token.

    Behavior
    - register(parser) appends; register(type, converter) builds a ValueParser first.
    - candidates(text) runs all parsers in order, keeping every success; a type
      already produced by an earlier parser is not produced twice.
    - argument(text) wraps the candidates into an Argument.
    - Pure: no side effects beyond the parsers themselves.
    """

    def __init__(self, parsers=(), /):
        self._parsers = []
        for parser in parsers:
            self.register(parser)

    @classmethod
    def standard(cls):
        """
        build the default registry: int, float, Decimal, bool, then str.
        """
        return cls((
            IntegerParser(),
            FloatParser(),
            DecimalParser(),
            BooleanParser(),
            StringParser(),
        ))

    def register(self, parser, converter=Missing, /):
        if isinstance(parser, type):
            parser = ValueParser(parser, converter)
        elif converter is not Missing:
            raise TypeError("register() converter is only accepted together with a type")
        if not isinstance(parser, ValueParser):
            raise TypeError("register() argument must be a value parser or a type")
        self._parsers.append(parser)
        return parser

    def unregister(self, parser, /):
        self._parsers.remove(parser)

    def candidates(self, text, /):
        if not isinstance(text, str):
            raise TypeError("candidates() argument must be a string")
        seen = set()
        result = []
        for parser in self._parsers:
            if parser.type in seen:
                continue
            if (value := parser(text)) is Missing:
                continue
            seen.add(parser.type)
            result.append(ValueCandidate(parser.type, value))
        return tuple(result)

    def argument(self, text, /):
        return Argument(text, self.candidates(text))

    def __iter__(self):
        return iter(tuple(self._parsers))

    def __len__(self):
        return len(self._parsers)

    def __repr__(self):
        return "parser-registry(%s)" % ", ".join(parser.type.__name__ for parser in self._parsers)


class ShellParser:
    """
    Default line parser: shell-like tokenization, then one Argument per token.

    The first token is, by convention, the command name. Unbalanced quotes raise
    MalformedInputError so the console reports them as a regular fault.
    """

    def __init__(self, registry=Missing, /):
        self.registry = ParserRegistry.standard() if registry is Missing else registry

    def __call__(self, line, /):
        if not isinstance(line, str):
            raise TypeError("line parser argument must be a string")
        try:
            tokens = shlex.split(line)
        except ValueError:
            raise MalformedInputError(input=line, hint="check for an unclosed quote") from None
        return [self.registry.argument(token) for token in tokens]


__all__ = (
    "ValueParser",
    "IntegerParser",
    "FloatParser",
    "DecimalParser",
    "BooleanParser",
    "StringParser",
    "ParserRegistry",
    "ShellParser",
)
