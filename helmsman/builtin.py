"""
Helmsman built-in commands.

- clear (cls, clr)        clear the console output.
- echo (print)            log the single argument back.
- exit (quit)             log "Goodbye" and exit the process.
- helloworld (hello)      log a test message.
- help                    list commands page by page, or show one command's help.
- version (info, about)   log the project information supplied to the console.

CommandList().builtins() registers one instance of each.
"""
import sys

from .commands import Command
from .faults import CommandError


class Clear(Command):
    name = "clear"
    aliases = ("cls", "clr")
    descr = "Clears the console."

    def run(self, context, /):
        context.check(0)
        context.console.clear()


class Echo(Command):
    name = "echo"
    aliases = ("print",)
    descr = "Echos a message."

    def run(self, context, /):
        context.check(1)
        context.console.log(context[0].text)


class Exit(Command):
    name = "exit"
    aliases = ("quit",)
    descr = "Closes the application."

    def run(self, context, /):
        context.check(0)
        context.console.log("Goodbye")
        sys.exit(0)


class Hello(Command):
    name = "helloworld"
    aliases = ("hello",)
    descr = "Hello World!"
    detailed = "Logs a test message to the console."

    def run(self, context, /):
        context.check(0)
        context.console.log("Hello world :)")


class Help(Command):
    """
    help            → first page of the command listing
    help <page>     → another page (0-based), when pages is set
    help <command>  → the command's detailed (or short) description, when detailed is set
    """
    name = "help"
    descr = "Displays a list of all available commands."
    detailed = "help [page | command] - lists commands page by page or describes one command."

    def __init__(self, pages=True, detailed=True, limit=16):
        if not isinstance(limit, int) or limit < 1:
            raise ValueError("help limit must be a positive integer")
        self.pages = pages
        self.details = detailed
        self.limit = limit

    def run(self, context, /):
        context.check(0, 1 if self.pages or self.details else 0)
        index = 0

        if len(context) == 1:
            argument = context[0]
            if self.pages and int in argument.types:
                index = argument.get(int)
            elif self.details:
                return self.describe(context, argument.text)
            else:
                index = argument.get(int)

        return self.listing(context, index)

    def describe(self, context, name):
        if (command := context.console.commands.get(name)) is None:
            raise CommandError("Command '%s' does not exist!" % name)
        if command.detailed is None and command.descr is None:
            context.console.log("No detailed help available for command '%s'" % name)
            return None
        context.console.log("Help for command '%s': %s" % (command.name, command.detailed or command.descr))
        return None

    def listing(self, context, index):
        commands = list(context.console.commands)
        if not self.pages:
            index, limit = 0, len(commands)
        else:
            limit = self.limit
        if index < 0 or index * limit >= len(commands):
            raise CommandError("Page index out of range")

        lines = ["List of available commands, page: %d" % index if self.pages else "List of available commands"]
        for command in commands[index * limit:(index + 1) * limit]:
            lines.append("%s - %s" % (command.name, command.descr or "No description"))
        context.console.log("\n".join(lines))


class Version(Command):
    name = "version"
    aliases = ("info", "about")
    descr = "Displays current project version."

    def run(self, context, /):
        context.check(0)
        if not (info := context.console.info):
            context.console.error("No version information is supplied.")
            return None

        parts = []
        if project := info.get("project"):
            parts.append(project)
        if version := info.get("version"):
            parts.append("v%s" % version)
        text = " ".join(parts)
        if engine := info.get("engine"):
            text += ", made with %s" % engine
            if engine_version := info.get("engine_version"):
                text += " v%s" % engine_version
        context.console.log(text.lstrip(", "))


BUILTINS = (Clear, Echo, Exit, Hello, Help, Version)


__all__ = (
    "Clear",
    "Echo",
    "Exit",
    "Hello",
    "Help",
    "Version",
    "BUILTINS",
)
