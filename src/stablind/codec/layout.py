"""Parse layout signatures such as ``"update_minter(quota: u64, epoch_duration: option<i64>)"``.

Both instruction and event layouts are declared this way; the parsed field
list is an ordered sequence of ``(name, borsh_type)`` pairs.
"""

from __future__ import annotations

from stablind.codec.borsh import is_known_type


def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested ``<...>`` types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
    if buf:
        items.append("".join(buf).strip())
    return [i for i in items if i]


def _parse_param(p: str) -> tuple[str, str]:
    """Parse one ``name: type`` fragment."""
    name, sep, typ = p.partition(":")
    name, typ = name.strip(), " ".join(typ.split())
    if not sep or not name or not typ:
        raise ValueError(f"Invalid layout parameter: {p!r}")
    if not is_known_type(typ):
        raise ValueError(f"Unsupported type {typ!r} for field {name!r}")
    return name, typ


def parse_signature(signature: str) -> tuple[str, list[tuple[str, str]]]:
    """Return ``(name, [(field, type), ...])`` for a layout signature."""
    sig = signature.strip()
    open_paren = sig.find("(")
    close_paren = sig.rfind(")")
    if open_paren <= 0 or close_paren < open_paren:
        raise ValueError(f"Invalid layout signature: {signature}")
    name = sig[:open_paren].strip()
    fields = [_parse_param(p) for p in _split_params(sig[open_paren + 1 : close_paren])]

    seen: set[str] = set()
    for field_name, _ in fields:
        if field_name in seen:
            raise ValueError(f"Duplicate field {field_name!r} in {name}")
        seen.add(field_name)
    return name, fields
