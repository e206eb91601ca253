"""Utility helpers shared by the pagemint configuration loader."""

from __future__ import annotations

from pagemint.geometry import PageSize, Watermark
from pagemint.models import FontSpec, StylingMode

from .models import ConfigError

DEBUG_KEYS = frozenset({"grid", "margins", "headers", "breaks"})


def _optional_str(value: object | None) -> str | None:
    """Return a stripped string value or None when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _normalize_keywords(value: str | list[object] | None) -> tuple[str, ...]:
    """Normalize comma-separated or list keywords into a tuple of strings."""
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    if isinstance(value, list):
        return tuple(text for item in value if (text := str(item).strip()))
    return ()


def _positive_number(value: object, *, field: str) -> float:
    """Return ``value`` as a positive float or raise :class:`ConfigError`."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        msg = f"'{field}' must be a number, got {value!r}."
        raise ConfigError(msg) from None
    if number <= 0:
        msg = f"'{field}' must be greater than zero."
        raise ConfigError(msg)
    return number


def _non_negative_int(value: object, *, field: str) -> int:
    """Return ``value`` as a non-negative int or raise :class:`ConfigError`."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"'{field}' must be a non-negative integer, got {value!r}."
        raise ConfigError(msg)
    return value


def _page_size(value: object) -> PageSize | None:
    """Return a named size or a ``(width, height)`` pair."""
    match value:
        case None:
            return None
        case str() as name:
            return name
        case [width, height]:
            return (width, height)
        case {"width": width, "height": height}:
            return (width, height)
        case _:
            msg = f"Invalid page_size {value!r}; use a name or [width, height]."
            raise ConfigError(msg)


def _styling_mode(value: object, *, key: str) -> StylingMode:
    """Return the :class:`StylingMode` named by ``value``."""
    try:
        return StylingMode(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(mode.value for mode in StylingMode)
        msg = f"Document '{key}' has unknown styling '{value}'. Use one of: {allowed}."
        raise ConfigError(msg) from None


def _build_watermark(value: object) -> Watermark | None:
    """Build a watermark from a bare string or a mapping payload."""
    match value:
        case None | "":
            return None
        case str() as text:
            return Watermark(text=text)
        case {"text": str() as text, **rest}:
            defaults = Watermark(text=text)
            return Watermark(
                text=text,
                opacity=float(rest.get("opacity", defaults.opacity)),
                rotation=float(rest.get("rotation", defaults.rotation)),
            )
        case _:
            msg = f"Invalid watermark {value!r}; use text or a mapping with 'text'."
            raise ConfigError(msg)


def _build_fonts(value: object) -> tuple[FontSpec, ...]:
    """Build font specs from family names or mapping payloads."""
    if value is None:
        return ()
    if not isinstance(value, list):
        msg = "'fonts' must be a list."
        raise ConfigError(msg)
    fonts: list[FontSpec] = []
    for item in value:
        match item:
            case str() as family:
                fonts.append(FontSpec(family=family))
            case {"family": str() as family, **rest}:
                defaults = FontSpec(family=family)
                weights = rest.get("weights")
                fonts.append(
                    FontSpec(
                        family=family,
                        src=_optional_str(rest.get("src")),
                        weights=tuple(int(w) for w in weights) if weights else defaults.weights,
                        weight=int(rest.get("weight", defaults.weight)),
                        style=str(rest.get("style", defaults.style)),
                    )
                )
            case _:
                msg = f"Invalid font entry {item!r}."
                raise ConfigError(msg)
    return tuple(fonts)


def _build_margin(value: object) -> str | dict[str, str] | None:
    """Return a CSS margin string or a per-side mapping."""
    match value:
        case None:
            return None
        case str() | int() | float():
            return str(value)
        case dict():
            return {str(side): str(length) for side, length in value.items()}
        case _:
            msg = f"Invalid margin {value!r}."
            raise ConfigError(msg)


def _build_debug(value: object) -> bool | dict[str, bool]:
    """Return the debug flag or a mapping of enabled overlays."""
    match value:
        case None:
            return False
        case bool():
            return value
        case dict():
            unknown = set(value) - DEBUG_KEYS
            if unknown:
                msg = f"Unknown debug overlay(s): {', '.join(sorted(unknown))}."
                raise ConfigError(msg)
            return {str(name): bool(flag) for name, flag in value.items()}
        case _:
            msg = f"Invalid debug setting {value!r}."
            raise ConfigError(msg)


__all__ = [
    "DEBUG_KEYS",
    "_build_debug",
    "_build_fonts",
    "_build_margin",
    "_build_watermark",
    "_non_negative_int",
    "_normalize_keywords",
    "_optional_str",
    "_page_size",
    "_positive_number",
    "_styling_mode",
]
