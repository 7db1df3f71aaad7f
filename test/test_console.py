"""
Console state machine tests.

Scope
- Idle dispatch: lookup, return value logging, fault classification.
- Prompt continuation: acceptance, rejection, reparsing and state transitions.
- Fan-out over registered instances and member commands.
- Deferred (async) command bodies on worker threads and on a running loop.
- Built-in commands through the console.

Conventions
- Sinks are list.append, so every record can be inspected.
- Test method names follow CamelCase per project convention.
"""
import asyncio
import io
import unittest
from unittest import TestCase

from rich.console import Console as RichConsole

from helmsman import (
    Command,
    CommandError,
    CommandList,
    Console,
    ConsoleState,
    Context,
    KeyPrompt,
    LogKind,
    MalformedInputError,
    NavigationKey,
    ParserRegistry,
    Prompt,
    RichSink,
    TextPrompt,
    UnknownCommandError,
    command,
)


class Menu(Command):
    name = "menu"
    descr = "Navigates a menu until cancelled."

    def run(self, context, /):
        if context.prompt is None:
            return KeyPrompt()
        if context.prompt.key is NavigationKey.CANCEL:
            return "cancelled"
        return context.prompt


class Rename(Command):
    name = "rename"

    def run(self, context, /):
        if context.prompt is None:
            return TextPrompt()
        return "renamed to %s" % context[0].text


class Collect(Command):
    name = "collect"

    class Reparsing(Prompt):
        reparse = True

    def run(self, context, /):
        if context.prompt is None:
            return self.Reparsing()
        return tuple(argument.types[0].__name__ for argument in context)


class Crash(Command):
    name = "crash"

    def run(self, context, /):
        raise RuntimeError("secret")


class Refuse(Command):
    name = "refuse"

    def run(self, context, /):
        raise CommandError("boom", hint="try again")


@command("add")
def add(a: int, b: int):
    return a + b


@command("slow")
async def slow(n: int):
    await asyncio.sleep(0)
    return n * 2


@command("late")
async def late():
    raise CommandError("late failure")


@command("ask")
async def ask():
    return TextPrompt()


class Turret:
    def __init__(self, label):
        self.label = label
        self._heat = 0

    @command("fire")
    def fire(self, shots: int = 1):
        return "%s fired %d" % (self.label, shots)

    @command("heat")
    @property
    def heat(self) -> int:
        return self._heat

    @heat.setter
    def heat(self, value):
        self._heat = value

    def __str__(self):
        return self.label


class ConsoleTestCase(TestCase):

    def setUp(self):
        self.records = []
        self.commands = CommandList().builtins()
        self.commands.extend((Menu(), Rename(), Collect(), Crash(), Refuse()))
        self.commands.discover(add, slow, late, ask, Turret)
        self.console = Console(commands=self.commands, sinks=[self.records.append])

    def messages(self, kind=None):
        return [log.message for log in self.records if kind is None or log.kind is kind]


class DispatchTest(ConsoleTestCase):

    def testUnknownCommandLogsOnce(self):
        self.assertIsNone(self.console.execute("frobnicate"))
        self.assertEqual(len(self.records), 1)
        self.assertIs(self.records[0].kind, LogKind.ERROR)
        self.assertEqual(self.records[0].message, "Command frobnicate doesn't exist")
        self.assertIsInstance(self.records[0].exception, UnknownCommandError)
        self.assertIs(self.console.state, ConsoleState.IDLE)

    def testEmptyInputDoesNothing(self):
        self.assertIsNone(self.console.execute("   "))
        self.assertEqual(self.records, [])

    def testReturnValueIsLogged(self):
        self.assertEqual(self.console.execute("add 2 3"), 5)
        self.assertEqual(self.messages(), ["Command returned '5'"])
        self.assertEqual(self.console.returned, 5)

    def testNameLookupIsCaseInsensitive(self):
        self.assertEqual(self.console.execute("ADD 1 1"), 2)

    def testPreTokenizedInput(self):
        registry = ParserRegistry.standard()
        arguments = [registry.argument(text) for text in ("add", "4", "5")]
        self.assertEqual(self.console.execute(arguments), 9)

    def testArgumentFaults(self):
        self.console.execute("add 2 x")
        self.console.execute("add 2")
        self.console.execute("clear extra")
        self.assertEqual(self.messages(LogKind.ERROR), [
            "Unable to parse 'x' to int",
            "Not enough arguments",
            "Too many arguments",
        ])

    def testArgumentFaultsNameTheCommand(self):
        self.console.execute("add 2")
        fault = self.records[-1].exception
        self.assertEqual(fault.command, "add")
        self.assertEqual(fault.hint, "see 'help add'")

        self.console.execute("add 2 x")
        fault = self.records[-1].exception
        self.assertEqual(fault.command, "add")
        self.assertEqual(fault.hint, "expected int for the second argument")

    def testMalformedInput(self):
        self.assertIsNone(self.console.execute('echo "oops'))
        self.assertIsInstance(self.records[-1].exception, MalformedInputError)
        self.assertIs(self.records[-1].kind, LogKind.ERROR)

    def testDeclaredErrorRendersItsMessage(self):
        self.console.execute("refuse")
        self.assertEqual(self.messages(LogKind.ERROR), ["boom"])

    def testDeclaredErrorWithTrace(self):
        console = Console(commands=self.commands, sinks=[self.records.append], trace=True)
        console.execute("refuse")
        message = self.records[-1].message
        self.assertTrue(message.startswith("boom\n"))
        self.assertIn("File", message)

    def testLookupFaultsOmitTraceback(self):
        console = Console(commands=self.commands, sinks=[self.records.append], trace=True)
        console.execute("frobnicate")
        console.execute("add 2 x")
        console.execute("add 2")
        console.execute('echo "oops')
        self.assertEqual(self.messages(LogKind.ERROR), [
            "Command frobnicate doesn't exist",
            "Unable to parse 'x' to int",
            "Not enough arguments",
            "Unable to read input 'echo \"oops'",
        ])

    def testUnexpectedErrorIsGeneric(self):
        self.console.execute("crash")
        self.assertEqual(self.messages(LogKind.ERROR), ["There was an error while executing command 'crash'."])

    def testUnexpectedErrorVerbose(self):
        console = Console(commands=self.commands, sinks=[self.records.append], verbose=True)
        console.execute("crash")
        message = self.records[-1].message
        self.assertTrue(message.startswith("There was an error while executing command 'crash': "))
        self.assertIn("secret", message)

    def testExitPropagates(self):
        with self.assertRaises(SystemExit):
            self.console.execute("exit")
        self.assertEqual(self.messages(), ["Goodbye"])

    def testSinksAndHistory(self):
        extra = []
        self.console.subscribe(extra.append)
        self.console.log("one")
        self.console.unsubscribe(extra.append)
        self.console.warning("two")
        self.assertEqual([log.message for log in extra], ["one"])
        self.assertEqual([log.message for log in self.console.logs], ["one", "two"])
        self.assertIs(self.console.logs[-1].kind, LogKind.WARNING)


class PromptTest(ConsoleTestCase):

    def testKeyPromptUntilCancel(self):
        prompt = self.console.execute("menu")
        self.assertIsInstance(prompt, KeyPrompt)
        self.assertIs(self.console.state, ConsoleState.AWAITING_PROMPT)
        self.assertIs(self.console.command, self.commands.get("menu"))

        self.assertIs(self.console.execute("down"), prompt)
        self.assertIs(self.console.state, ConsoleState.AWAITING_PROMPT)

        self.assertEqual(self.console.execute("Escape"), "cancelled")
        self.assertIs(self.console.state, ConsoleState.IDLE)
        self.assertIsNone(self.console.prompt)
        self.assertEqual(self.messages(), ["Command returned 'cancelled'"])

    def testRejectedTurnChangesNothing(self):
        prompt = self.console.execute("menu")
        self.assertIsNone(self.console.execute(""))
        self.assertIs(self.console.prompt, prompt)
        self.assertEqual(self.records, [])

    def testPromptTurnsBypassCommandLookup(self):
        self.console.execute("rename")
        self.assertEqual(self.console.execute("help me out"), "renamed to help me out")
        self.assertIs(self.console.state, ConsoleState.IDLE)

    def testReparsingPrompt(self):
        self.console.execute("collect")
        self.assertEqual(self.console.execute("5 x 1.5"), ("int", "str", "float"))

    def testFailureDuringPromptClearsState(self):
        class Fragile(Command):
            name = "fragile"

            def run(self, context, /):
                if context.prompt is None:
                    return TextPrompt()
                raise CommandError("gave up")

        self.commands.add(Fragile())
        self.console.execute("fragile")
        self.console.execute("anything")
        self.assertIs(self.console.state, ConsoleState.IDLE)
        self.assertIsNone(self.console.command)
        self.assertEqual(self.messages(LogKind.ERROR), ["gave up"])


class TargetDispatchTest(ConsoleTestCase):

    def testFanOut(self):
        self.console.register(Turret("left"))
        self.console.register(Turret("right"))
        self.assertIsNone(self.console.execute("fire 3"))
        self.assertEqual(self.messages(), [
            "Executing command for target 'left'",
            "Command returned 'left fired 3'",
            "Executing command for target 'right'",
            "Command returned 'right fired 3'",
        ])

    def testFanOutSkipsEmptyResults(self):
        self.console.register(Turret("left"))
        self.console.register(Turret("right"))
        self.assertIsNone(self.console.execute("heat 5"))
        self.assertEqual(self.messages(), [
            "Executing command for target 'left'",
            "Executing command for target 'right'",
        ])

    def testSingleInstanceResult(self):
        self.console.register(Turret("solo"))
        self.assertEqual(self.console.execute("fire"), "solo fired 1")

    def testDeregister(self):
        turret = self.console.register(Turret("gone"))
        self.console.deregister(turret)
        self.console.execute("fire")
        self.assertEqual(self.messages(LogKind.WARNING), ["No targets registered for command 'fire'"])

    def testPropertyMember(self):
        turret = self.console.register(Turret("hot"))
        self.assertEqual(self.console.execute("heat"), 0)
        self.assertIsNone(self.console.execute("heat 40"))
        self.assertEqual(turret.heat, 40)

    def testStaticAttribute(self):
        class Settings:
            volume = 3

        self.commands.attribute(Settings, "volume", int, static=True)
        self.assertEqual(self.console.execute("volume"), 3)
        self.assertIsNone(self.console.execute("volume 9"))
        self.assertEqual(Settings.volume, 9)


class AsyncTest(ConsoleTestCase):

    def testDeferredOnWorkerThread(self):
        self.assertIsNone(self.console.execute("slow 4"))
        self.assertTrue(self.console.join(5))
        self.assertIn("Command returned '8'", self.messages())
        self.assertEqual(self.console.pending, ())

    def testDeferredFailureIsClassified(self):
        self.console.execute("late")
        self.assertTrue(self.console.join(5))
        self.assertEqual(self.messages(LogKind.ERROR), ["late failure"])

    def testDeferredPromptIsAdoptedWhenIdle(self):
        self.console.execute("ask")
        self.assertTrue(self.console.join(5))
        self.assertIsInstance(self.console.prompt, TextPrompt)
        self.assertIs(self.console.command, self.commands.get("ask"))

    def testExecuteAsync(self):
        self.assertEqual(asyncio.run(self.console.execute_async("slow 5")), 10)
        self.assertEqual(self.messages(), ["Command returned '10'"])

    def testExecuteAsyncCommitsPrompts(self):
        prompt = asyncio.run(self.console.execute_async("ask"))
        self.assertIsInstance(prompt, TextPrompt)
        self.assertIs(self.console.state, ConsoleState.AWAITING_PROMPT)

    def testDeferredOnRunningLoop(self):
        async def scenario():
            self.assertIsNone(self.console.execute("slow 6"))
            future, = self.console.pending
            self.assertIsInstance(future, asyncio.Future)
            await future

        asyncio.run(scenario())
        self.assertIn("Command returned '12'", self.messages())
        self.assertEqual(self.console.pending, ())


class BuiltinTest(ConsoleTestCase):

    def testEcho(self):
        self.console.execute('echo "hello world"')
        self.console.execute("print hi")
        self.assertEqual(self.messages(), ["hello world", "hi"])

    def testHello(self):
        self.console.execute("hello")
        self.assertEqual(self.messages(), ["Hello world :)"])

    def testClear(self):
        self.console.execute("cls")
        self.assertIs(self.records[-1].kind, LogKind.CLEAR)

    def testHelpListing(self):
        self.console.execute("help")
        listing = self.messages()[-1].splitlines()
        self.assertEqual(listing[0], "List of available commands, page: 0")
        self.assertIn("echo - Echos a message.", listing)
        self.assertIn("add - No description", listing)

    def testHelpPaging(self):
        self.commands.get("help").limit = 2
        self.console.execute("help 1")
        listing = self.messages()[-1].splitlines()
        self.assertEqual(listing[1:], [
            "exit - Closes the application.",
            "helloworld - Hello World!",
        ])
        self.console.execute("help 99")
        self.assertEqual(self.messages(LogKind.ERROR), ["Page index out of range"])

    def testHelpForOneCommand(self):
        self.console.execute("help hello")
        self.console.execute("help nope")
        self.console.execute("help add")
        self.assertEqual(self.messages(LogKind.INFO), [
            "Help for command 'helloworld': Logs a test message to the console.",
            "No detailed help available for command 'add'",
        ])
        self.assertEqual(self.messages(LogKind.ERROR), ["Command 'nope' does not exist!"])

    def testVersionWithoutInfo(self):
        self.console.execute("version")
        self.assertEqual(self.messages(LogKind.ERROR), ["No version information is supplied."])

    def testVersionWithInfo(self):
        info = {"project": "Demo", "version": "1.2", "engine": "CPython", "engine_version": "3.12"}
        console = Console(commands=self.commands, sinks=[self.records.append], info=info)
        console.execute("about")
        self.assertEqual(self.messages(), ["Demo v1.2, made with CPython v3.12"])


class RichSinkTest(TestCase):

    def setUp(self):
        self.buffer = io.StringIO()
        self.sink = RichSink(RichConsole(file=self.buffer, color_system=None, width=120), colorful=False)
        self.console = Console(commands=CommandList().builtins(), sinks=[self.sink])

    def testPrintsFormattedRecords(self):
        self.console.execute("echo [bold]hi")
        output = self.buffer.getvalue()
        self.assertIn("[info] [bold]hi", output)

    def testErrorsUseTheirKind(self):
        self.console.execute("frobnicate")
        self.assertIn("[error] Command frobnicate doesn't exist", self.buffer.getvalue())

    def testFancyWrapsInPanel(self):
        self.sink.fancy = True
        self.console.warning("careful")
        output = self.buffer.getvalue()
        self.assertIn("careful", output)
        self.assertIn("warning", output)

    def testFancyRendersFaultPanels(self):
        @command("double")
        def double(n: int):
            return n * 2

        self.console.commands.discover(double)
        self.sink.fancy = True
        self.console.execute("double x")
        output = self.buffer.getvalue()
        self.assertIn("21112", output)
        self.assertIn("Unparsable Argument", output)
        self.assertIn("Unable to parse 'x' to int", output)
        self.assertIn("expected int for the first argument", output)

    def testClearPrintsNothing(self):
        self.console.clear()
        self.assertEqual(self.buffer.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
