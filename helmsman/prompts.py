"""
Helmsman prompts: resumable, multi-turn command continuations.

A command body returns a Prompt instead of a final result to keep the console on
that command for the next input turn. On that turn the console:
1. asks can_execute(input); a refusal drops the turn silently (no state change),
2. builds the arguments: retokenizes the raw line when the prompt sets reparse,
   otherwise takes prepare(input) verbatim,
3. runs the same command again with context.prompt set to the prompt.

The body decides what happens next: returning a prompt (the same one or another)
keeps the console waiting, returning anything else ends the interaction.

Built-in prompts
- TextPrompt: accepts anything and forwards the whole line as one str argument;
  the last answer stays readable as prompt.text.
- KeyPrompt: accepts any non-empty input, reduces it to one key: a recognized key
  name (up, down, left, right, confirm, cancel and common aliases) becomes a
  NavigationKey, anything else is cut to its first character.
"""
from enum import Enum

from .arguments import Argument


class Prompt:
    """
    Base prompt: accepts every turn and never retokenizes.

    Subclasses implement prepare(input) -> sequence of Argument.
    """
    reparse = False

    def can_execute(self, input, /):
        return True

    def prepare(self, input, /):
        raise NotImplementedError(f"{type(self).__name__}.prepare() is not implemented")

    def __repr__(self):
        return f"{type(self).__name__.lower()}()"


class TextPrompt(Prompt):
    """
    Free-form follow-up ("enter a value..."): the raw line becomes one str argument.
    """

    def __init__(self):
        self.text = None

    def prepare(self, input, /):
        self.text = input
        return [Argument(input, [(str, input)])]


class NavigationKey(Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    CONFIRM = "confirm"
    CANCEL = "cancel"


class KeyPrompt(Prompt):
    """
    Single-key interaction for menus and confirmations.

    After prepare(), prompt.key holds the NavigationKey of the turn (NONE for plain
    characters). The produced argument carries the key as a NavigationKey candidate
    (for named keys) and its text as a str candidate.
    """
    names = {
        "up": NavigationKey.UP,
        "down": NavigationKey.DOWN,
        "left": NavigationKey.LEFT,
        "right": NavigationKey.RIGHT,
        "confirm": NavigationKey.CONFIRM,
        "cancel": NavigationKey.CANCEL,
        # names terminals report for the same keys
        "uparrow": NavigationKey.UP,
        "downarrow": NavigationKey.DOWN,
        "leftarrow": NavigationKey.LEFT,
        "rightarrow": NavigationKey.RIGHT,
        "enter": NavigationKey.CONFIRM,
        "return": NavigationKey.CONFIRM,
        "escape": NavigationKey.CANCEL,
        "esc": NavigationKey.CANCEL,
    }

    def __init__(self):
        self.key = NavigationKey.NONE

    def can_execute(self, input, /):
        return len(input) > 0

    def prepare(self, input, /):
        try:
            self.key = self.names[input.lower()]
        except KeyError:
            self.key = NavigationKey.NONE
            character = input[0]
            return [Argument(character, [(str, character)])]
        return [Argument(self.key.value, [(NavigationKey, self.key), (str, self.key.value)])]


__all__ = (
    "Prompt",
    "TextPrompt",
    "NavigationKey",
    "KeyPrompt",
)
