"""
Helmsman console: the execution state machine.

States
- IDLE: no current command. A turn tokenizes the input, looks the command up by its
  first token (name or alias, case-insensitive) and dispatches it.
- AWAITING_PROMPT: the last body returned a Prompt. A turn is offered to that prompt
  first (can_execute), its arguments come from the prompt (or a fresh tokenization
  when the prompt reparses) and the same command runs again.

After a dispatch
- a Prompt result keeps (or puts) the console in AWAITING_PROMPT;
- any other result returns it to IDLE and, when not None, is logged as
  "Command returned '<value>'";
- an awaitable result is deferred: the turn answers None right away and the
  completion goes through the same logging/classification path later.

Faults
- Every Exception raised while dispatching is caught here and turned into exactly
  one error log; the console state is cleared. PromptRejectedError is silent and
  leaves the state alone. BaseExceptions such as SystemExit propagate.
- CommandException renders its own message. With trace set, faults raised by a
  command body carry their traceback; lookup and argument faults never do.
- Anything else is reported generically unless verbose is set.

Threading
- Turns are expected to be serialized by the caller. Deferred awaitables complete on
  the running event loop when there is one, otherwise on a worker thread with its
  own loop; Console.join() waits for those.
"""
import asyncio
import concurrent.futures
import functools
import inspect
import shlex
import threading
import traceback
import uuid
from enum import Enum
from types import MappingProxyType

from .arguments import Argument, Context
from .commands import CommandList
from .faults import (
    ArgumentCountError,
    ArgumentParseError,
    CommandException,
    MalformedInputError,
    PromptRejectedError,
    UnknownCommandError,
)
from .logs import Log, LogKind, RichSink
from .parsers import ShellParser
from .prompts import Prompt
from .utils import *


# lookup and argument binding faults are reported without a traceback
_DISPATCH_FAULTS = (UnknownCommandError, MalformedInputError, ArgumentCountError, ArgumentParseError)


class ConsoleState(Enum):
    IDLE = "idle"
    AWAITING_PROMPT = "awaiting-prompt"


class Console:
    """
    Interactive command console.

    Options (keyword-only)
    - name: identifier of the console, random when omitted.
    - commands: CommandList to dispatch against (empty by default).
    - parser: line parser, callable(str) -> list of Argument (ShellParser by default).
    - sinks: iterable of callables(log) receiving every log record (a RichSink by default).
    - trace: append tracebacks to CommandException error logs.
    - verbose: include the exception detail for unexpected errors.
    - info: mapping with project, version, engine and engine_version (version built-in).

    Example
        >>> console = Console(commands=CommandList().builtins(), sinks=[])
        >>> console.execute("echo hi")
        >>> console.logs[-1].message
        'hi'
    """

    def __init__(
            self,
            *,
            name=Missing,
            commands=Missing,
            parser=Missing,
            sinks=Missing,
            trace=False,
            verbose=False,
            info=None,
    ):
        if commands is not Missing and not isinstance(commands, CommandList):
            raise TypeError("console commands must be a command list")
        if parser is not Missing and not callable(parser):
            raise TypeError("console parser must be callable")

        self.name = str(coalesce(name, uuid.uuid4().hex))
        self.commands = CommandList() if commands is Missing else commands
        self.parser = ShellParser() if parser is Missing else parser
        self.trace = bool(trace)
        self.verbose = bool(verbose)
        self.info = None if info is None else MappingProxyType(dict(info))

        self._sinks = []
        for sink in (RichSink(),) if sinks is Missing else sinks:
            self.subscribe(sink)

        self._command = None
        self._prompt = None
        self._returned = None
        self._logs = []
        self._targets = []
        self._pending = []
        self._lock = threading.Lock()

    @property
    def state(self):
        return ConsoleState.IDLE if self._prompt is None else ConsoleState.AWAITING_PROMPT

    @property
    def command(self):
        return self._command

    @property
    def prompt(self):
        return self._prompt

    @property
    def returned(self):
        return self._returned

    @property
    def logs(self):
        return tuple(self._logs)

    @property
    def targets(self):
        return tuple(self._targets)

    @property
    def pending(self):
        with self._lock:
            return tuple(self._pending)

    # --- targets ---

    def register(self, target, /):
        """
        make an object visible to instance commands of its type.
        """
        if target is None:
            raise TypeError("register() argument must not be None")
        if not any(target is other for other in self._targets):
            self._targets.append(target)
        return target

    def deregister(self, target, /):
        self._targets[:] = [other for other in self._targets if other is not target]

    # --- logging ---

    def subscribe(self, sink, /):
        if not callable(sink):
            raise TypeError("subscribe() argument must be callable")
        self._sinks.append(sink)
        return sink

    def unsubscribe(self, sink, /):
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, log, /):
        if not isinstance(log, Log):
            raise TypeError("emit() argument must be a log")
        self._logs.append(log)
        for sink in tuple(self._sinks):
            sink(log)
        return log

    def log(self, message, /):
        return self.emit(Log(str(message), LogKind.INFO))

    def warning(self, message, /):
        return self.emit(Log(str(message), LogKind.WARNING))

    def error(self, message, /, exception=None):
        return self.emit(Log(str(message), LogKind.ERROR, exception))

    def clear(self):
        return self.emit(Log("", LogKind.CLEAR))

    # --- execution ---

    def _line(self, input):
        return input if isinstance(input, str) else shlex.join(argument.text for argument in input)

    def _tokenize(self, input):
        if isinstance(input, str):
            return list(self.parser(input))
        arguments = list(input)
        if not all(isinstance(argument, Argument) for argument in arguments):
            raise TypeError("execute() tokens must be Argument instances")
        return arguments

    def _begin(self, input):
        """
        build the (command, context) pair for a turn; None for an empty line.
        """
        if self._prompt is not None:
            line = self._line(input)
            if not self._prompt.can_execute(line):
                raise PromptRejectedError()
            arguments = self._tokenize(input) if self._prompt.reparse else self._prompt.prepare(line)
            return self._command, Context(line, self._command.name, arguments, self._prompt, self)

        if not (tokens := self._tokenize(input)):
            return None
        name = tokens[0].text.lower()
        if (command := self.commands.get(name)) is None:
            raise UnknownCommandError(name=name)
        return command, Context(self._line(input), name, tokens[1:], None, self)

    def execute(self, input, /):
        """
        run one turn; input is a raw line or a sequence of Argument tokens.

        returns the command's result (a Prompt while the interaction continues),
        or None for empty input, faults and deferred awaitables.
        """
        name = None
        try:
            if (begun := self._begin(input)) is None:
                return None
            command, context = begun
            name = context.name
            result = command.run(context)
        except PromptRejectedError:
            return None
        except Exception as error:
            self._reset()
            self._fault(name if name is not None else str(input), error)
            return None

        if inspect.isawaitable(result):
            self._reset()
            self.defer(name, result, command)
            return None
        return self._commit(command, result)

    async def execute_async(self, input, /):
        """
        run one turn, awaiting an awaitable result in the caller's event loop.

        unlike execute(), a Prompt produced by an async body is committed normally.
        """
        name = None
        try:
            if (begun := self._begin(input)) is None:
                return None
            command, context = begun
            name = context.name
            result = command.run(context)
            if inspect.isawaitable(result):
                result = await result
        except PromptRejectedError:
            return None
        except Exception as error:
            self._reset()
            self._fault(name if name is not None else str(input), error)
            return None
        return self._commit(command, result)

    def attempt(self, name, callback, /):
        """
        call callback() inside the fault boundary; a failure is logged and answers None.
        """
        try:
            return callback()
        except PromptRejectedError:
            return None
        except Exception as error:
            self._fault(name, error)
            return None

    def _reset(self):
        self._command = None
        self._prompt = None

    def _commit(self, command, result):
        self._returned = result
        if isinstance(result, Prompt):
            self._command = command
            self._prompt = result
            return result
        self._reset()
        if result is not None:
            self.log("Command returned '%s'" % (result,))
        return result

    def _fault(self, name, error):
        match error:
            case PromptRejectedError():
                return
            case CommandException():
                self.error(error.render(self.trace and not isinstance(error, _DISPATCH_FAULTS)), error)
            case _ if self.verbose:
                detail = "".join(traceback.format_exception(error)).rstrip()
                self.error("There was an error while executing command '%s': %s" % (name, detail), error)
            case _:
                self.error("There was an error while executing command '%s'." % name, error)

    # --- deferred work ---

    def defer(self, name, awaitable, /, command=None):
        """
        complete an awaitable out-of-band and log its outcome like a synchronous result.

        with a running event loop the awaitable becomes a task on it; otherwise a
        daemon worker thread runs it to completion on its own loop. Returns the
        asyncio or concurrent future tracking it.
        """
        if not inspect.isawaitable(awaitable):
            raise TypeError("defer() argument must be awaitable")
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            future = concurrent.futures.Future()
            with self._lock:
                self._pending.append(future)
            threading.Thread(
                target=self._work,
                args=(name, command, awaitable, future),
                name="helmsman-%s" % name,
                daemon=True,
            ).start()
            return future

        future = asyncio.ensure_future(awaitable)
        with self._lock:
            self._pending.append(future)
        future.add_done_callback(functools.partial(self._settle, name, command))
        return future

    def _forget(self, future):
        with self._lock:
            if future in self._pending:
                self._pending.remove(future)

    def _work(self, name, command, awaitable, future):
        async def wait():
            return await awaitable

        try:
            result = asyncio.run(wait())
        except Exception as error:
            self._fault(name, error)
            self._forget(future)
            future.set_exception(error)
        else:
            self._finish(name, command, result)
            self._forget(future)
            future.set_result(result)

    def _settle(self, name, command, future):
        self._forget(future)
        if future.cancelled():
            return
        if (error := future.exception()) is None:
            self._finish(name, command, future.result())
        elif isinstance(error, Exception):
            self._fault(name, error)

    def _finish(self, name, command, result):
        if not isinstance(result, Prompt):
            self._returned = result
            if result is not None:
                self.log("Command returned '%s'" % (result,))
        elif command is not None and self._prompt is None:
            self._returned = result
            self._command = command
            self._prompt = result
        else:
            self.warning("Command '%s' returned a prompt while another command is active" % name)

    def join(self, timeout=None):
        """
        wait for deferred work running on worker threads; True when none is left.

        tasks on an event loop are not waited for here, await them from that loop.
        """
        futures = [future for future in self.pending if isinstance(future, concurrent.futures.Future)]
        done, remaining = concurrent.futures.wait(futures, timeout)
        return not remaining

    def __repr__(self):
        return "console(name=%r, state=%s)" % (self.name, self.state.value)


__all__ = (
    "ConsoleState",
    "Console",
)
