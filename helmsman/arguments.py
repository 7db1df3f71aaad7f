"""
Helmsman argument model: typed candidates, argument tokens and the invocation context.

Overview
- ValueCandidate(type, value)
  • One successful reading of a token by one parser. The type is the parser's declared
    runtime type and is what overload resolution compares, slot by slot.

- Argument
  • A raw token text plus its ordered, type-distinct candidates.
  • Immutable: narrow(types) returns a new Argument with fewer candidates, never more.
  • Convenience readers for class-based commands: get(type), has(type), values.
    These accept subclasses (a bool satisfies get(int)); the resolver does not.

- Context
  • Everything a command body receives: the raw input, the command name, the
    argument tokens after the name, the active prompt (or None) and the console.
  • check(minimum, maximum) raises ArgumentCountError when the argument count does
    not fit; bodies call it first, the way built-in commands do.

Invariants
- Within one Argument, candidate types are pairwise distinct; duplicates are dropped
  on construction keeping the first occurrence.
- Plain strings are always kept by narrow() so a token can fall back to its text.
"""
from collections import namedtuple

from .faults import ArgumentCountError, ArgumentParseError
from .utils import *

ValueCandidate = namedtuple("ValueCandidate", ("type", "value"))
ValueCandidate.__doc__ = "one typed reading of a token: (runtime type, value)"


class Argument(metaclass=ReflectiveType):
    """
    A token of command-line text and every typed value it can stand for.

    Parameters
    - text: str, the raw token as the line parser produced it.
    - candidates: iterable of ValueCandidate or (type, value) pairs.
      When omitted, the text itself is the only (str) candidate.
    """
    __introspectable__ = ("text", "candidates")

    def __init__(self, text, candidates=Missing, /):
        if not isinstance(text, str):
            raise TypeError(f"{self.__typename__} text must be a string")

        seen = set()
        unique = []
        for candidate in coalesce(candidates, ((str, text),)):
            candidate = ValueCandidate(*candidate)
            if not isinstance(candidate.type, type):
                raise TypeError(f"{self.__typename__} candidate type must be a class")
            if candidate.type in seen:
                continue
            seen.add(candidate.type)
            unique.append(candidate)

        self._text = text
        self._candidates = unique

    @property
    def values(self):
        return tuple(candidate.value for candidate in self._candidates)

    @property
    def types(self):
        return tuple(candidate.type for candidate in self._candidates)

    def narrow(self, types, /):
        """
        return a copy keeping only candidates whose exact type is in types (str always kept).
        """
        types = frozenset(types)
        return type(self)(self._text, [
            candidate for candidate in self._candidates
            if candidate.type in types or candidate.type is str
        ])

    def find(self, type, /, default=Missing):
        """
        return the first candidate value that is an instance of type, or default.
        """
        for candidate in self._candidates:
            if issubclass(candidate.type, type):
                return candidate.value
        return default

    def has(self, type, /):
        return self.find(type) is not Missing

    def get(self, type, /):
        """
        return the value read as type; raises ArgumentParseError when there is none.
        """
        if (value := self.find(type)) is Missing:
            raise ArgumentParseError(expected=type, literal=self._text)
        return value

    def __str__(self):
        return self._text

    def __eq__(self, other):
        if not isinstance(other, Argument):
            return NotImplemented
        return self._text == other._text and self._candidates == other._candidates

    def __hash__(self):
        return hash((self._text, tuple(self._candidates)))


class Context(metaclass=ReflectiveType):
    """
    Invocation context handed to every dispatch.

    Fields
    - input: the raw text of the turn (prompt turns carry the raw keystroke/line).
    - name: the command name as typed, lowercased.
    - arguments: tuple of Argument following the command name.
    - prompt: the prompt this turn answers, or None on a fresh invocation.
    - console: the Console running the command.

    Bodies can index the context (context[0] is the first argument), iterate it and
    take len() of it.
    """
    __introspectable__ = ("input", "name", "arguments", "prompt", "console")
    __displayable__ = ("input", "name", "arguments", "prompt")

    def __init__(self, input, name, arguments=(), prompt=None, console=None):
        if not isinstance(input, str):
            raise TypeError(f"{self.__typename__} input must be a string")
        if not isinstance(name, str):
            raise TypeError(f"{self.__typename__} name must be a string")
        arguments = tuple(arguments)
        if not all(isinstance(argument, Argument) for argument in arguments):
            raise TypeError(f"{self.__typename__} arguments must be Argument instances")
        self._input = input
        self._name = name
        self._arguments = arguments
        self._prompt = prompt
        self._console = console

    def check(self, minimum, maximum=Missing, /):
        """
        raise ArgumentCountError unless minimum <= len(arguments) <= maximum.

        check(n) requires exactly n arguments.
        """
        maximum = coalesce(maximum, minimum)
        if not minimum <= (count := len(self._arguments)) <= maximum:
            raise ArgumentCountError(count=count, minimum=minimum, maximum=maximum)

    def __getitem__(self, index):
        return self._arguments[index]

    def __iter__(self):
        return iter(self._arguments)

    def __len__(self):
        return len(self._arguments)


__all__ = (
    "ValueCandidate",
    "Argument",
    "Context",
)
