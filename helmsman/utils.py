"""
Helmsman utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the argument, target, command and console layers.
- Exported for consumers, but shaped around what the higher layers need.

Overview
- MissingType / Missing
  • Singleton sentinel for “value not provided” without conflating with None.
  • Used as the padding marker for optional trailing parameters, so callees can
    substitute their own defaults.

- coalesce(value, default=None)
  • Replace Missing with a concrete default, preserving legitimate falsey values.

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated callables.

- mirror("attr")
  • Read-only property exposing a private backing field (self._attr) as an
    immutable view (tuple / MappingProxyType / frozenset).

- ReflectiveType
  • Metaclass wiring __introspectable__ names to mirrored properties plus a stable
    __repr__/__rich_repr__ pair.

- ordinal(number)
  • Human-friendly ordinal labels ("first", "12th") for position-first messages.

- mglob(pattern)
  • Expands "game.**.commands" into the module names CommandList.include() imports.
"""
import builtins
import fnmatch
import functools
import importlib
import itertools
import operator
import pkgutil
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class MissingType:
    """
    Sentinel type representing a value that was not provided.

    The resolver pads optional trailing parameters with the single instance,
    Missing, and command bodies compare against it to decide whether an argument
    was supplied at all (e.g. read a member vs. assign it).

    Characteristics
    - Boolean-false, distinct from None and 0.
    - repr(Missing) -> "Missing".
    - Singleton per process and sealed against subclassing.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Missing"

    def __reduce__(self):
        return "Missing"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'MissingType' is not an acceptable base type")


Missing = MissingType()


def coalesce(object, default=None, /):
    """
    Resolve the Missing sentinel to a concrete default.

    Falsey values like None, 0 or "" are returned as-is; only Missing is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Missing, "fallback") -> "fallback"
    - coalesce(None, "fallback")    -> None
    """
    return object if object is not Missing else default


def rename(*parameters):
    """
    Give a callable a stable __name__/__qualname__.

    - rename(callable, name) updates the callable in place and returns it.
    - rename(name) returns a decorator doing the same.
    """
    match parameters:
        case [str() as name]:
            def decorator(target):
                return rename(target, name)

            return decorator
        case [target, str() as name] if builtins.callable(target):
            try:
                target.__name__ = target.__qualname__ = name
            except (AttributeError, TypeError):
                raise TypeError(f"rename() cannot update {target!r}") from None
            return target
        case [_]:
            raise TypeError("@rename() argument must be a string")
        case [_, _]:
            raise TypeError("rename() arguments must be a callable and a string")
        case _:
            raise TypeError("rename() takes 1 or 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    # strings are sequences too, keep them whole
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    if isinstance(object, Mapping):
        return MappingProxyType(object)
    if isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the backing attribute "_{name}".

    Containers are returned as immutable views so callers cannot reach into
    registry state through the public API.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


class ReflectiveType(type):
    """
    Metaclass for value objects that expose their state read-only.

    Responsibilities
    - Publish every name in __introspectable__ as a mirror() property.
    - Derive __typename__ from the class name ("ValueCandidate" -> "value-candidate").
    - Provide __repr__ and __rich_repr__ from __displayable__ (or __introspectable__).
    """
    __introspectable__ = ()
    __displayable__ = None

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                field: mirror(field) for field in namespace.get("__introspectable__", ())
            },
        )

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for field in type(self).__displayable__ or type(self).__introspectable__:
                yield field, getattr(self, field)

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__())),
            )

        if "__rich_repr__" not in namespace:
            self.__rich_repr__ = __rich_repr__
        if "__repr__" not in namespace:
            self.__repr__ = __repr__
        return self


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth").
    - Other numbers use numeric ordinals with English suffixes (11th, 21st, 102nd).
    """
    try:
        return (
            "first", "second", "third", "fourth", "fifth",
            "sixth", "seventh", "eighth", "ninth", "tenth",
        )[number - 1] if number > 0 else str(number)
    except IndexError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"
    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _matches(pattern, parts):
    # "**" spans zero or more whole segments; other segments follow fnmatch rules
    match pattern, parts:
        case [], []:
            return True
        case ["**", *rest], _:
            return _matches(rest, parts) or bool(parts) and _matches(pattern, parts[1:])
        case [segment, *rest], [part, *others]:
            return fnmatch.fnmatchcase(part, segment) and _matches(rest, others)
        case _:
            return False


def mglob(source, /):
    """
    expand a dotted module pattern into the module names an include() pass imports.

    - the leading segments must name an importable package ("game.*", not "*.game").
    - segments accept fnmatch wildcards, "**" spans any depth of subpackages.
    - a pattern without wildcards is returned unchanged.
    - an unimportable package yields no modules; results are sorted.
    """
    if not isinstance(source, str):
        raise TypeError("mglob() argument must be a string")
    segments = source.strip().split(".")
    package = list(itertools.takewhile(str.isidentifier, segments))
    if len(package) == len(segments):
        return [".".join(segments)]
    if not package:
        raise ValueError("mglob() pattern must start with a package name")

    prefix = ".".join(package)
    try:
        root = importlib.import_module(prefix)
    except ImportError:
        return []

    found = [prefix] if _matches(segments, package) else []
    for module in pkgutil.walk_packages(getattr(root, "__path__", ()), prefix + "."):
        if _matches(segments, module.name.split(".")):
            found.append(module.name)
    return sorted(found)


__all__ = (
    "MissingType",
    "Missing",
    "coalesce",
    "rename",
    "mirror",
    "ReflectiveType",
    "ordinal",
    "mglob",
)
