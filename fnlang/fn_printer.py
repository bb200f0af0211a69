"""
A printer for fn values and stacks.

Output uses the same literal grammar the parser reads, except for native
operations and definitions, which print as fixed placeholders.
"""
from typing import Iterable

from fnlang.fn_datatypes import (
    Bool, Chr, Comment, Def, Expr, NativeOp, Num, Pair, Quot, Stack, Word
)

STRING_DELIMITERS = ('"', "'", '`')


class Printer:
    """Formats fn expressions into source-like strings."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj: Expr) -> str:
        """Public entry point to format a single expression."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj)

    def pformat_stack(self, stack: Iterable[Expr], definitions: bool = True) -> str:
        """Formats a stack top first, space separated.

        With `definitions=False` the bindings living in the stack are left out,
        which is how the final result of a program is shown.
        """
        parts = []
        for expr in stack:
            if not definitions and isinstance(expr, Def):
                continue
            text = self.pformat(expr)
            if text:
                parts.append(text)
        return " ".join(parts)

    def preview(self, stack: Stack, limit: int = 150) -> str:
        """A bounded rendering of a stack for diagnostics."""
        text = self.pformat(Quot(stack))
        if len(text) > limit:
            return text[:limit] + "..."
        return text

    def _create_handlers(self):
        return {
            Word: self._pformat_word,
            Num: self._pformat_num,
            Bool: self._pformat_bool,
            Chr: self._pformat_chr,
            Quot: self._pformat_nested,
            Pair: self._pformat_nested,
            Def: self._pformat_def,
            NativeOp: self._pformat_native,
            Comment: self._pformat_comment,
        }

    def _pformat_word(self, obj):
        return obj.name

    def _pformat_num(self, obj):
        return str(obj.value)

    def _pformat_bool(self, obj):
        return '?True' if obj.value else '?False'

    def _pformat_chr(self, obj):
        return f".{obj.value}"

    def _pformat_string(self, obj):
        text = obj.text()
        # Pick a delimiter the text does not contain so the output reads back
        for delim in STRING_DELIMITERS:
            if delim not in text:
                return f"{delim}{text}{delim}"
        return f'"{text}"'

    def _pformat_nested(self, obj):
        """Formats quotations and pairs of any depth.

        Pending pieces sit on an explicit work list (plain strings are emitted
        as they are), so deep nesting never exhausts the Python call stack.
        """
        out = []
        work = [obj]
        while work:
            item = work.pop()
            if isinstance(item, str):
                out.append(item)
            elif isinstance(item, Quot) and not item.is_string():
                # Comments render as nothing and take no separator
                items = [e for e in item.items if not isinstance(e, Comment)]
                work.append("]")
                for i, e in enumerate(reversed(items)):
                    if i:
                        work.append(" ")
                    work.append(e)
                work.append("[")
            elif isinstance(item, Pair):
                work.extend([")", item.second, " ", item.first, "("])
            elif isinstance(item, Quot):
                out.append(self._pformat_string(item))
            else:
                out.append(self.pformat(item))
        return "".join(out)

    def _pformat_def(self, obj):
        return "<definition>"

    def _pformat_native(self, obj):
        return "<function>"

    def _pformat_comment(self, obj):
        return ""
