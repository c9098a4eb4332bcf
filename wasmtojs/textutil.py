"""Small string helpers shared by the code generator."""

from __future__ import annotations

import re
from collections.abc import Mapping

MAX_VAR_LEN = 30
_TRIM_CHARS = " \t\r\n"
_DOLLAR_REF = re.compile(r"\$(\$|&|\d{1,2})")


def replace_all(text: str, old: str, new: str) -> str:
    """Replace every non-overlapping occurrence of ``old``; an empty ``old`` changes nothing."""
    if not old:
        return text
    return text.replace(old, new)


def trim(text: str) -> str:
    """Strip spaces, tabs, carriage returns and newlines from both ends."""
    return text.strip(_TRIM_CHARS)


def join_kv(mapping: Mapping, sep: str = ", ", kv_sep: str = "=") -> str:
    """Render a mapping as ``k=v`` pairs joined by ``sep``."""
    return sep.join(f"{key}{kv_sep}{value}" for key, value in mapping.items())


def _expand(template: str, match: re.Match) -> str:
    def substitute(ref: re.Match) -> str:
        what = ref.group(1)
        if what == "$":
            return "$"
        if what == "&":
            return match.group(0)
        number = int(what)
        if 0 < number <= (match.re.groups or 0):
            return match.group(number) or ""
        return ref.group(0)

    return _DOLLAR_REF.sub(substitute, template)


def replace_all_regex(text: str, pattern: str, replacement: str) -> str:
    """Replace every match of ``pattern``; ``$&``, ``$n`` and ``$$`` work in the replacement."""
    return re.sub(pattern, lambda m: _expand(replacement, m), text)


def _is_ascii_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _sanitize(name: str) -> str:
    return "".join(c if (c.isascii() and c.isalnum()) or c in "_$" else "_" for c in name)


def parse_renaming_answer(text: str) -> dict[str, str]:
    """Parse ``old=new`` lines into a mapping, cleaning up the new names.

    Comment lines, lines without ``=`` and names not starting with a letter are
    skipped. Names are limited to identifier characters and 30 characters; the
    first mapping given for a name wins.
    """
    result: dict[str, str] = {}
    for raw in text.split("\n"):
        line = trim(raw)
        if not line or line.startswith("#") or "=" not in line:
            continue
        old, _, new = line.partition("=")
        old, new = old.strip(), new.strip()
        if not old or not new or not _is_ascii_alpha(new[0]):
            continue
        result.setdefault(old, _sanitize(new)[:MAX_VAR_LEN])
    return result


_DECL_RE = re.compile(r"\s*let\s+([^;]+);")


def remove_unused_decls(body: str) -> str:
    """Rewrite ``let`` declaration lines, keeping the names that occur in ``body``."""
    lines = body.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    out: list[str] = []
    for line in lines:
        match = _DECL_RE.fullmatch(line)
        if not match:
            out.append(line + "\n")
            continue
        kept = [
            name
            for name in (trim(v) for v in match.group(1).split(","))
            if re.search(r"\b" + re.escape(name) + r"\b", body)
        ]
        if kept:
            out.append("  let " + ", ".join(kept) + ";\n")
    return "".join(out)