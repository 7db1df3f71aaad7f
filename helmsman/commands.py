"""
Helmsman command layer: command entries, the registry and the registration pass.

What this module provides
- Command: base class for class-based commands. Subclasses set name/aliases/descr/
  detailed and implement run(context); the return value is the command's output,
  a Prompt to keep the console on the command, or an awaitable for async work.

- AttributeCommand: a command whose behavior comes from one or more Targets sharing
  its name (overloads, members, instance methods). run() resolves the argument
  tokens against the targets and invokes the winner.

- CommandList: the registry consumed by the console.
  • add/extend/remove, case-insensitive get() over names and aliases.
  • discover(*sources) is the registration pass: it scans modules, classes and
    functions marked with @command and turns them into Targets.
  • attribute(owner, name, type) registers a plain attribute as a member target.
  • include(pattern) imports every module matching a module glob and discovers it.
  • added/removed listener lists are notified with the commands actually
    added or removed; new targets merge into an existing same-named entry.

- command(...): mark a function, method or property as a command target.

Quick start
    from helmsman import Console, CommandList, Context, command

    @command("greet", aliases=("hi",), descr="Greets someone.")
    def greet(name: str, times: int = 1):
        return " ".join(["hello " + name] * times)

    commands = CommandList().builtins()
    commands.discover(greet)
    Console(commands=commands).execute("greet world 2")
"""
import importlib
import inspect
from types import ModuleType

from .faults import ArgumentCountError, ArgumentParseError, CommandError, trigger
from .targets import Target, resolve
from .utils import *


class Command:
    """
    Base class for class-based commands.

    Class attributes
    - name: str, the main name (matched case-insensitively).
    - aliases: tuple of str, alternative names.
    - descr: short description used by the help listing.
    - detailed: longer description used by "help <command>".

    Subclasses implement run(context). Commands read their arguments from the
    context (context[0].get(int), context.check(1), ...) and raise CommandError for
    failures the user should see.
    """
    name = Missing
    aliases = ()
    descr = None
    detailed = None

    @property
    def names(self):
        return tuple(dict.fromkeys(name.lower() for name in (self.name, *self.aliases)))

    def run(self, context, /):
        raise NotImplementedError(f"{type(self).__name__}.run() is not implemented")

    def __repr__(self):
        return f"{type(self).__name__.lower()}(name={self.name!r})"


class AttributeCommand(Command):
    """
    Command built from Targets registered under one name.

    Metadata is merged from the targets: aliases are the distinct union in target
    order, descr/detailed come from the first target that has one.
    """

    def __init__(self, name, /, targets=()):
        if not isinstance(name, str) or not name.strip():
            raise ValueError("attribute command name must be a non-empty string")
        self.name = name.strip().lower()
        self._targets = []
        for target in targets:
            self.add(target)

    @property
    def targets(self):
        return tuple(self._targets)

    @property
    def aliases(self):
        return tuple(dict.fromkeys(alias for target in self._targets for alias in target.aliases))

    @property
    def descr(self):
        return next((target.descr for target in self._targets if target.descr is not None), None)

    @property
    def detailed(self):
        return next((target.detailed for target in self._targets if target.detailed is not None), None)

    def add(self, target, /):
        if not isinstance(target, Target):
            raise TypeError("attribute command add() argument must be a target")
        if target.name != self.name:
            raise ValueError(f"target {target.name!r} does not belong to command {self.name!r}")
        self._targets.append(target)
        return target

    def run(self, context, /):
        if not self._targets:
            raise CommandError("Command '%s' has no targets" % self.name)
        try:
            resolution = resolve(context.arguments, self._targets)
        except (ArgumentCountError, ArgumentParseError) as error:
            trigger(error, command=self.name, hint=error.hint or "see 'help %s'" % self.name)
        return resolution.target.invoke(resolution.values, context)


def _marks(object):
    # the function object carrying @command metadata for a raw class/module member
    match object:
        case staticmethod() | classmethod():
            return getattr(object.__func__, "__commands__", ())
        case property():
            return getattr(object.fget, "__commands__", ())
        case _:
            return getattr(object, "__commands__", ())


class CommandList:
    """
    Registry of commands, queried by name or alias.

    Iteration yields commands in registration order; indexing and len() follow the
    same order. Names are unique across the registry (aliases excluded).
    """

    def __init__(self, commands=(), /):
        self._commands = []
        self.added = []
        self.removed = []
        self.extend(commands)

    def _notify(self, listeners, commands):
        if commands:
            for listener in tuple(listeners):
                listener(list(commands))

    def extend(self, commands, /):
        commands = list(commands)
        for command in commands:
            if not isinstance(command, Command):
                raise TypeError("command list accepts only Command instances")
            if not isinstance(command.name, str) or not command.name:
                raise ValueError(f"{type(command).__name__} must define a name")
            if any(other.name.lower() == command.name.lower() for other in self._commands):
                raise ValueError(f"command name {command.name!r} is already in use")
        self._commands.extend(commands)
        self._notify(self.added, commands)
        return self

    def add(self, command, /):
        return self.extend((command,))

    def remove(self, command, /):
        if command in self._commands:
            self._commands.remove(command)
            self._notify(self.removed, (command,))
        return self

    def get(self, name, /, default=None):
        """
        find a command by name or alias (case-insensitive); first registered wins.
        """
        if not isinstance(name, str):
            raise TypeError("get() argument must be a string")
        name = name.lower()
        for command in self._commands:
            if name in command.names:
                return command
        return default

    def builtins(self):
        """
        add the built-in commands (clear, echo, exit, helloworld, help, version).
        """
        from .builtin import BUILTINS
        return self.extend(command() for command in BUILTINS)

    def extend_targets(self, targets, /):
        """
        merge targets into same-named attribute commands, creating them when needed.
        """
        created = []
        for target in targets:
            command = next((other for other in self._commands if other.name.lower() == target.name), None)
            if command is None:
                command = AttributeCommand(target.name)
                self._commands.append(command)
                created.append(command)
            elif not isinstance(command, AttributeCommand):
                raise ValueError(f"command name {target.name!r} is already used by {command!r}")
            command.add(target)
        self._notify(self.added, created)
        return self

    def attribute(self, owner, attribute, type, /, **metadata):
        """
        register owner.<attribute> as a gettable/settable member command.

        static=True reads and assigns the attribute on the owner itself; otherwise
        every live instance of owner is read/assigned.
        """
        return self.extend_targets((Target.member(owner, attribute, type, **metadata),))

    def discover(self, *sources):
        """
        registration pass over modules, classes and marked functions.

        - modules: marked functions and classes defined in the module itself.
        - classes: marked instance methods (fan out over live instances), static and
          class methods (run once) and properties (member targets).
        - functions: marked functions (static targets).
        """
        targets = []
        for source in sources:
            match source:
                case ModuleType():
                    for member in vars(source).values():
                        if getattr(member, "__module__", None) != source.__name__:
                            continue
                        if isinstance(member, type):
                            targets.extend(self._scan(member))
                        else:
                            targets.extend(self._function(member))
                case type():
                    targets.extend(self._scan(source))
                case _ if callable(source):
                    targets.extend(self._function(source))
                case _:
                    raise TypeError("discover() arguments must be modules, classes or callables")
        return self.extend_targets(targets)

    @staticmethod
    def _function(function, owner=None, static=Missing):
        for metadata in getattr(function, "__commands__", ()):
            yield Target.function(function, owner=owner, static=static, **metadata)

    def _scan(self, cls):
        for attribute, member in vars(cls).items():
            if not (marks := _marks(member)):
                continue
            match member:
                case staticmethod():
                    yield from (Target.function(member.__func__, owner=cls, static=True, **metadata) for metadata in marks)
                case classmethod():
                    bound = getattr(cls, attribute)
                    yield from (Target.function(bound, owner=cls, static=True, **metadata) for metadata in marks)
                case property():
                    annotation = inspect.signature(member.fget, eval_str=True).return_annotation
                    type_ = str if annotation is inspect.Signature.empty else annotation
                    for metadata in marks:
                        yield Target.member(
                            cls,
                            attribute,
                            type_,
                            settable=member.fset is not None,
                            **({"name": attribute} | metadata),
                        )
                case _:
                    yield from self._function(member, owner=cls)

    def include(self, pattern, /):
        """
        import every module matching a dotted module glob and discover it.
        """
        if not isinstance(pattern, str):
            raise TypeError("include() argument must be a string")

        def load(module):
            try:
                return importlib.import_module(module)
            except ImportError:
                raise TypeError(f"unable to import module {module!r}") from None

        return self.discover(*map(load, mglob(pattern)))

    def __iter__(self):
        return iter(tuple(self._commands))

    def __len__(self):
        return len(self._commands)

    def __getitem__(self, index):
        return self._commands[index]

    def __contains__(self, name):
        return isinstance(name, str) and self.get(name) is not None

    def __repr__(self):
        return "command-list(%s)" % ", ".join(command.name for command in self._commands)


def command(source=Missing, /, name=Missing, *, aliases=(), descr=None, detailed=None, registered=True, providers=()):
    """
    Mark a function, method or property as a command target.

    Invocation modes
    - @command                      → name taken from the function name
    - @command("name", aliases=...) → explicit name
    - command(function, "name")     → direct marking

    Marks stack: decorating the same function twice registers it under two names.
    Nothing is registered until CommandList.discover() (or include()) runs.

    Parameters
    - aliases: alternative names.
    - descr / detailed: help texts.
    - registered: instance targets also fan out over objects registered on the console.
    - providers: callables(owner) -> iterable of extra live instances.
    """
    if isinstance(source, str):
        if name is not Missing:
            raise TypeError("command() got the name twice")
        source, name = Missing, source

    if isinstance(aliases, str):
        raise TypeError("command() aliases must be an iterable of strings")

    @rename("command")
    def wrapper(source, /):
        match source:
            case staticmethod() | classmethod():
                function = source.__func__
            case property():
                function = source.fget
            case _ if callable(source):
                function = source
            case _:
                raise TypeError("@command() must be applied to a callable or a property")

        metadata = {
            "name": coalesce(name, function.__name__).lower(),
            "aliases": tuple(aliases),
            "descr": descr,
            "detailed": detailed,
            "registered": registered,
            "providers": tuple(providers),
        }
        function.__commands__ = getattr(function, "__commands__", ()) + (metadata,)
        return source

    return wrapper(source) if source is not Missing else wrapper


__all__ = (
    "Command",
    "AttributeCommand",
    "CommandList",
    "command",
)
