"""
Helmsman targets and overload resolution.

Targets
- Target is one callable signature bound to a command name. It is a tagged variant:
  • TargetKind.FUNCTION: a free function, static/class method or instance method.
  • TargetKind.MEMBER  : a gettable/settable attribute or property: no argument
    reads it, one argument assigns it (and answers None).
- Every target declares its parameter types, its arity range [minimum, maximum]
  (any injected Context excluded), whether a Context is injected as the first
  parameter, whether it is static, and its owner type.
- Non-static targets fan out over live instances of the owner type: instances
  produced by the target's providers plus, when registered is set, the objects
  registered on the console. Each instance is invoked in order; only a single
  instance surfaces its return value.

Resolution (resolve)
1. Check the argument count against the union arity range of all targets.
2. Keep the targets whose own range covers the count.
3. Narrow every argument to the candidate types some surviving target accepts at
   that position (plain strings are always kept).
4. Depth-first search over the candidates of each position; every complete value
   tuple is matched against the surviving targets in registration order using exact
   type equality per slot (no widening: a bool never satisfies an int slot).
5. The first exact match wins. Along the way the target with the longest matching
   prefix is remembered so a failure can report where the closest match diverged.

Example
    >>> from helmsman.parsers import ParserRegistry
    >>> registry = ParserRegistry.standard()
    >>> def square(x: int): return x * x
    >>> resolution = resolve([registry.argument("5")], [Target.function(square)])
    >>> resolution.values
    (5,)
"""
import functools
import inspect
from collections import namedtuple
from enum import Enum
from inspect import Parameter

from .arguments import Context
from .faults import ArgumentCountError, ArgumentParseError
from .utils import *


class TargetKind(Enum):
    FUNCTION = "function"
    MEMBER = "member"


class Target(metaclass=ReflectiveType):
    """
    One invocable signature registered under a command name.

    Prefer the factories:
    - Target.function(callback, ...) introspects the callback's signature.
    - Target.member(owner, attribute, type, ...) wraps an attribute or property.

    Metadata shared by both kinds
    - name, aliases, descr, detailed: command-facing metadata (merged by AttributeCommand).
    - registered: also fan out over objects registered on the console.
    - providers: callables(owner) -> iterable of extra live instances.
    """
    __introspectable__ = (
        "kind",
        "name",
        "aliases",
        "descr",
        "detailed",
        "types",
        "minimum",
        "maximum",
        "context",
        "static",
        "owner",
        "registered",
        "providers",
    )
    __displayable__ = ("kind", "name", "types", "minimum", "maximum", "context", "static", "owner")

    def __init__(
            self,
            kind,
            subject,
            /,
            types=(),
            minimum=Missing,
            maximum=Missing,
            *,
            name=Missing,
            aliases=(),
            descr=None,
            detailed=None,
            context=False,
            static=True,
            owner=None,
            registered=True,
            providers=(),
    ):
        if not isinstance(kind, TargetKind):
            raise TypeError(f"{self.__typename__} kind must be a target kind")
        types = tuple(types)
        if not all(isinstance(item, type) for item in types):
            raise TypeError(f"{self.__typename__} types must be classes")
        minimum = coalesce(minimum, len(types))
        maximum = coalesce(maximum, len(types))
        if not 0 <= minimum <= maximum <= len(types):
            raise ValueError(f"{self.__typename__} arity must satisfy 0 <= minimum <= maximum <= len(types)")
        if not static and owner is None:
            raise TypeError(f"{self.__typename__} non-static targets need an owner type")
        if isinstance(aliases, str):
            raise TypeError(f"{self.__typename__} aliases must be an iterable of strings")
        if not all(callable(provider) for provider in providers):
            raise TypeError(f"{self.__typename__} providers must be callable")

        self._kind = kind
        self._subject = subject
        self._name = coalesce(name, getattr(subject, "__name__", str(subject))).lower()
        self._aliases = [alias.lower() for alias in aliases]
        self._descr = descr
        self._detailed = detailed
        self._types = types
        self._minimum = minimum
        self._maximum = maximum
        self._context = bool(context)
        self._static = bool(static)
        self._owner = owner
        self._registered = bool(registered)
        self._providers = list(providers)

    @classmethod
    def function(cls, callback, /, *, owner=None, static=Missing, types=Missing, **metadata):
        """
        build a function target from a callable's signature.

        rules
        - with an owner and static unset, the callback is an instance method: its first
          parameter receives each live instance and is not part of the signature.
        - a first (remaining) parameter annotated with Context receives the context.
        - annotations give the parameter types; unannotated parameters read as str.
        - parameters with defaults are optional (they raise the maximum only).
        - *args / **kwargs / keyword-only parameters are not supported.
        """
        if not callable(callback):
            raise TypeError("Target.function() argument must be callable")
        static = coalesce(static, owner is None)
        parameters = list(inspect.signature(callback, eval_str=True).parameters.values())

        if not static:
            if not parameters:
                raise TypeError("Target.function() instance method needs a self parameter")
            parameters.pop(0)

        context = bool(parameters) and _is_context(parameters[0].annotation)
        if context:
            parameters.pop(0)

        for parameter in parameters:
            if parameter.kind not in (Parameter.POSITIONAL_ONLY, Parameter.POSITIONAL_OR_KEYWORD):
                raise TypeError(f"Target.function() parameter {parameter.name!r} must be positional")

        if types is Missing:
            types = [
                str if parameter.annotation is Parameter.empty else parameter.annotation
                for parameter in parameters
            ]
        elif len(types := tuple(types)) != len(parameters):
            raise ValueError("Target.function() types must cover every parameter")

        minimum = sum(parameter.default is Parameter.empty for parameter in parameters)
        return cls(
            TargetKind.FUNCTION,
            callback,
            types,
            minimum,
            len(parameters),
            context=context,
            static=static,
            owner=owner,
            **metadata,
        )

    @classmethod
    def member(cls, owner, attribute, type, /, *, static=False, settable=True, **metadata):
        """
        build a member target: read with no argument, assign with one.
        """
        if not isinstance(attribute, str):
            raise TypeError("Target.member() attribute must be a string")
        metadata.setdefault("name", attribute)
        return cls(
            TargetKind.MEMBER,
            attribute,
            (type,),
            0,
            1 if settable else 0,
            static=static,
            owner=owner,
            **metadata,
        )

    @property
    def subject(self):
        return self._subject

    def prefix(self, types, /):
        """
        length of the longest prefix of types equal, slot by slot, to this signature.
        """
        length = 0
        for expected, actual in zip(self._types, types):
            if expected is not actual:
                break
            length += 1
        return length

    def instances(self, context, /):
        """
        live objects this target fans out over, in order, without duplicates.
        """
        found = []
        for provider in self._providers:
            found.extend(provider(self._owner))
        console = context.console
        if self._registered and console is not None:
            found.extend(target for target in console.targets if isinstance(target, self._owner))

        unique = []
        for instance in found:
            if instance is not None and not any(instance is other for other in unique):
                unique.append(instance)
        return unique

    def call(self, instance, values, /):
        """
        invoke the subject once; values already carry the context and Missing padding.
        """
        match self._kind:
            case TargetKind.FUNCTION:
                values = list(values)
                # trailing Missing slots are left out so the callee's own defaults apply
                while values and values[-1] is Missing:
                    values.pop()
                if instance is None:
                    return self._subject(*values)
                return self._subject(instance, *values)
            case TargetKind.MEMBER:
                holder = self._owner if instance is None else instance
                if values[0] is Missing:
                    return getattr(holder, self._subject)
                setattr(holder, self._subject, values[0])
                return None

    def invoke(self, values, context, /):
        """
        run the target for resolved values.

        - the context is prepended when the target injects it.
        - optional trailing parameters are padded with Missing.
        - static targets run once and return their result.
        - non-static targets run once per live instance through the console's
          fault boundary; a single instance surfaces its result, several log their
          results one by one and answer None.
        """
        values = tuple(values)
        if self._context:
            values = (context,) + values
        values += (Missing,) * (self._maximum + self._context - len(values))

        if self._static:
            return self.call(None, values)

        console = context.console
        instances = self.instances(context)
        if not instances:
            if console is not None:
                console.warning("No targets registered for command '%s'" % context.name)
            return None

        result = None
        for instance in instances:
            call = functools.partial(self.call, instance, values)
            if console is None:
                result = call()
                continue
            console.log("Executing command for target '%s'" % instance)
            result = console.attempt(context.name, call)
            if len(instances) == 1:
                continue
            if inspect.isawaitable(result):
                console.defer(context.name, result)
            elif result is not None:
                console.log("Command returned '%s'" % (result,))
        return result if len(instances) == 1 else None


def _is_context(annotation):
    return isinstance(annotation, type) and issubclass(annotation, Context)


Resolution = namedtuple("Resolution", ("target", "values"))
Resolution.__doc__ = "the winning target and the typed values it will be invoked with"


def resolve(arguments, targets, /):
    """
    pick the first target whose exact parameter types match a reading of the arguments.

    parameters
    - arguments: sequence of Argument following the command name.
    - targets: sequence of Target sharing the command name, in registration order.

    returns
    - Resolution(target, values) with one value per argument (no padding).

    raises
    - ArgumentCountError: the count is outside every target's arity.
    - ArgumentParseError: no combination matches; reports the expected type and the
      offending token where the closest target (longest matching prefix) diverged.
    """
    arguments = tuple(arguments)
    targets = tuple(targets)
    if not targets:
        raise ValueError("resolve() needs at least one target")

    count = len(arguments)
    minimum = min(target.minimum for target in targets)
    maximum = max(target.maximum for target in targets)
    if not minimum <= count <= maximum:
        raise ArgumentCountError(count=count, minimum=minimum, maximum=maximum)

    survivors = [target for target in targets if target.minimum <= count <= target.maximum]
    if not survivors:
        # the union range covers the count but no single target does
        raise ArgumentCountError(count=count, minimum=minimum, maximum=maximum)

    accepted = [set() for _ in range(count)]
    for target in survivors:
        for position, expected in enumerate(target.types[:count]):
            accepted[position].add(expected)
    narrowed = [argument.narrow(accepted[position]) for position, argument in enumerate(arguments)]

    # closest match so far: (target, length of its exact-type prefix)
    closest = [None, -1]

    def match(candidates):
        types = tuple(candidate.type for candidate in candidates)
        values = tuple(candidate.value for candidate in candidates)
        for target in survivors:
            length = target.prefix(types)
            if length > closest[1]:
                closest[:] = [target, length]
            if length == count:
                return Resolution(target, values)
        return None

    def search(candidates):
        if (position := len(candidates)) == count:
            return match(candidates)
        for candidate in narrowed[position].candidates:
            if (found := search(candidates + (candidate,))) is not None:
                return found
        return None

    if (resolution := search(())) is not None:
        return resolution

    target, length = closest
    if target is None:
        # some token had no usable reading at all, blame the first of them
        length = next(position for position, argument in enumerate(narrowed) if not argument.candidates)
        target = survivors[0]
    raise ArgumentParseError(
        expected=target.types[length],
        literal=arguments[length].text,
        position=length,
        target=target,
        hint="expected %s for the %s argument" % (target.types[length].__name__, ordinal(length + 1)),
    )


__all__ = (
    "TargetKind",
    "Target",
    "Resolution",
    "resolve",
)
