"""Stateless key-chord router for interactive front ends.

Maps a key press (key name plus modifiers) to a named action. It holds no
focus or form state; callers pass whether a text input currently has focus.
"""

from collections.abc import Mapping
from dataclasses import dataclass

MODIFIERS = ("ctrl", "alt", "shift")


@dataclass(frozen=True)
class KeyChord:
    """A key plus the set of held modifiers."""

    key: str
    modifiers: frozenset[str] = frozenset()

    @classmethod
    def parse(cls, text: str) -> "KeyChord":
        """
        Parse chords such as "Shift+E", "Esc" or "?".

        Letter keys are case-insensitive; "Esc" is an alias of "escape".
        """
        parts = [part.strip() for part in text.split("+")]
        if text.strip() == "+":
            parts = ["+"]
        *mods, key = parts
        modifiers = frozenset(mod.lower() for mod in mods)
        unknown = modifiers - set(MODIFIERS)
        if unknown or not key:
            raise ValueError(f"Invalid key chord '{text}'")
        return cls(key=_normalize_key(key), modifiers=modifiers)

    def __str__(self) -> str:
        mods = [mod.capitalize() for mod in MODIFIERS if mod in self.modifiers]
        key = self.key.upper() if len(self.key) == 1 else self.key.capitalize()
        return "+".join([*mods, key])


def _normalize_key(key: str) -> str:
    key = key.lower()
    return {"esc": "escape", "return": "enter"}.get(key, key)


DEFAULT_BINDINGS: dict[str, tuple[str, str]] = {
    "Shift+E": ("toggle_expense_form", "Toggle expense form"),
    "Shift+D": ("toggle_deposit_form", "Toggle deposit form"),
    "Shift+C": ("toggle_import", "Toggle CSV import"),
    "Shift+M": ("toggle_manage_owners", "Toggle manage owners"),
    "Esc": ("close", "Close active form/modal"),
    "?": ("toggle_help", "Toggle this help"),
    "Shift+Enter": ("submit", "Submit active form"),
    "Shift+Tab": ("switch_tab", "Switch tabs in manage mode"),
    "X": ("open_export", "Open export menu"),
}


class KeyRouter:
    """Resolve key presses to action names."""

    def __init__(self, bindings: Mapping[str, tuple[str, str]] | None = None):
        source = DEFAULT_BINDINGS if bindings is None else bindings
        self._actions: dict[KeyChord, str] = {}
        self._descriptions: dict[str, str] = {}
        for chord_text, (action, description) in source.items():
            chord = KeyChord.parse(chord_text)
            if chord in self._actions:
                raise ValueError(f"Duplicate binding for '{chord}'")
            self._actions[chord] = action
            self._descriptions[action] = description

    def resolve(
        self,
        key: str,
        shift: bool = False,
        ctrl: bool = False,
        alt: bool = False,
        in_text_input: bool = False,
    ) -> str | None:
        """
        Find the action bound to a key press.

        Presses without ctrl/alt, other than Escape and Shift+Enter, are
        ignored while a text input has focus so typing is never intercepted.
        """
        key = _normalize_key(key)
        # Symbols like "?" already encode shift in the character itself
        if len(key) == 1 and not key.isalnum():
            shift = False
        modifiers = frozenset(
            name for name, held in (("shift", shift), ("ctrl", ctrl), ("alt", alt)) if held
        )
        chord = KeyChord(key=key, modifiers=modifiers)

        if in_text_input and not (ctrl or alt):
            if chord.key != "escape" and not (chord.key == "enter" and shift):
                return None

        return self._actions.get(chord)

    def bindings(self) -> list[tuple[str, str, str]]:
        """(chord, action, description) triples in declaration order."""
        return [
            (str(chord), action, self._descriptions[action])
            for chord, action in self._actions.items()
        ]
