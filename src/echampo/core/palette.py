from __future__ import annotations

from dataclasses import dataclass
import re


@dataclass(frozen=True)
class NamedColor:
    name: str
    value: str


@dataclass(frozen=True)
class DefaultSubject:
    name: str
    color: str
    coefficient: float


COLORS: tuple[NamedColor, ...] = (
    NamedColor("Rose", "#FF6B9D"),
    NamedColor("Coral", "#FF8C42"),
    NamedColor("Sunset", "#FFA94D"),
    NamedColor("Honey", "#FFD93D"),
    NamedColor("Lime", "#95E1D3"),
    NamedColor("Mint", "#6BCB77"),
    NamedColor("Turquoise", "#4ECDC4"),
    NamedColor("Ocean", "#45B7D1"),
    NamedColor("Sky", "#5DADE2"),
    NamedColor("Lavender", "#A8DADC"),
    NamedColor("Sage", "#B4C7A3"),
    NamedColor("Peach", "#FFABAB"),
    NamedColor("Salmon", "#FF9AA2"),
    NamedColor("Marigold", "#FFC75F"),
    NamedColor("Emerald", "#45B384"),
    NamedColor("Teal", "#36CFC9"),
)

HIGHLIGHT_COLORS: tuple[NamedColor, ...] = (
    NamedColor("Jaune", "#FEF08A"),
    NamedColor("Vert", "#BBF7D0"),
    NamedColor("Bleu", "#BFDBFE"),
    NamedColor("Rose", "#FBCFE8"),
    NamedColor("Orange", "#FED7AA"),
)

DEFAULT_COLOR = "#FF6B9D"
FALLBACK_BLOCK_COLOR = "#E2E8F0"

# Seeded for a user whose subject list is still empty.
DEFAULT_SUBJECTS: tuple[DefaultSubject, ...] = (
    DefaultSubject("Français", "#FF6B9D", 4),
    DefaultSubject("Mathématiques", "#45B7D1", 4),
    DefaultSubject("Histoire-Géographie", "#FFA94D", 3),
    DefaultSubject("Anglais", "#6BCB77", 3),
    DefaultSubject("Espagnol", "#FFD93D", 2),
    DefaultSubject("Physique-Chimie", "#4ECDC4", 3),
    DefaultSubject("SVT", "#45B384", 3),
    DefaultSubject("EPS", "#FF8C42", 2),
)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def is_valid_color(token: str) -> bool:
    return isinstance(token, str) and bool(_HEX_COLOR.match(token))


def validate_color(token: str) -> str:
    if not is_valid_color(token):
        raise ValueError(f"Invalid color: {token!r}. Use #RGB or #RRGGBB.")
    return token.upper()


def validate_subject_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Subject name is required.")
    return cleaned
