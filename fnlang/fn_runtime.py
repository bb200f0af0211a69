# fn_runtime.py

import operator
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Literal, Optional

from koine import Parser
from fnlang.fn_transformer import FnTransformer
from fnlang.fn_interpreter import Evaluator
from fnlang.fn_printer import Printer
from fnlang.fn_datatypes import (
    Applied, ArithmeticFailure, Bool, Croak, DEFERRED, Def, Expr, FnError,
    NativeOp, Num, ParseFailure, Quot, ShapeMismatch, SourceUnreadable, Stack,
    Word, equals, is_truthy
)

PACKAGE_DIR = Path(__file__).parent


def fn_primitive(name: str):
    """A decorator to mark a StdLib method as the native behind the word `name`."""
    def mark(func):
        func._fn_name = name
        return func
    return mark


# ===================================================================
# 1. The Standard Library
# ===================================================================
class StdLib:
    """Contains Python implementations for all fn primitives.

    Every primitive takes the normalized stack beneath it (top first) and
    returns `Applied(front, base)` or `DEFERRED`.
    """

    def __init__(self, printer: Optional[Printer] = None):
        self.printer = printer or Printer()

    def definitions(self) -> List[Def]:
        """The primitives as `Def(name, [NativeOp(name)])`, in declaration order."""
        defs = []
        for attr, member in type(self).__dict__.items():
            name = getattr(member, '_fn_name', None)
            if name is None:
                continue
            native = NativeOp(name, getattr(self, attr))
            defs.append(Def(name, [native]))
        return defs

    # --- Helpers ---
    def _take(self, st: Stack, n: int, name: str):
        items, rest = st.split(n)
        if len(items) < n:
            raise ShapeMismatch(f"'{name}' needs {n} values on the stack, found {len(items)}", st)
        return items, rest

    def _expect(self, expr: Expr, kind: type, name: str, st: Stack):
        if not isinstance(expr, kind):
            raise ShapeMismatch(
                f"'{name}' expected a {kind.type_name}, got '{self.printer.pformat(expr)}'", st
            )
        return expr

    def _arith(self, st: Stack, name: str, op: Callable[[int, int], int]):
        operands, rest = st.split(2)
        if len(operands) < 2 or not all(isinstance(o, Num) for o in operands):
            return DEFERRED
        x, y = operands
        if name in ('/', '%') and y.value == 0:
            raise ArithmeticFailure(f"Division by zero in '{name} {x.value} {y.value}'", st)
        return Applied([Num(op(x.value, y.value))], rest)

    # --- Stack shuffling ---
    @fn_primitive("drop")
    def _drop(self, st):
        _, rest = self._take(st, 1, "drop")
        return Applied([], rest)

    @fn_primitive("dup")
    def _dup(self, st):
        (e,), rest = self._take(st, 1, "dup")
        return Applied([e, e], rest)

    @fn_primitive("bury")
    def _bury(self, st):
        (n, e), rest = self._take(st, 2, "bury")
        depth = self._expect(n, Num, "bury", st).value
        if depth < 0:
            raise ShapeMismatch(f"Cannot bury at negative depth {depth}", st)
        above, below = self._take(rest, depth, "bury")
        return Applied(above + [e], below)

    @fn_primitive("exhume")
    def _exhume(self, st):
        (n,), rest = self._take(st, 1, "exhume")
        depth = self._expect(n, Num, "exhume", st).value
        if depth < 0:
            raise ShapeMismatch(f"Cannot exhume from negative depth {depth}", st)
        items, below = self._take(rest, depth + 1, "exhume")
        return Applied([items[depth]] + items[:depth], below)

    # --- Logic ---
    @fn_primitive("=")
    def _eq(self, st):
        (e, f), rest = self._take(st, 2, "=")
        return Applied([Bool(equals(e, f))], rest)

    @fn_primitive("not")
    def _not(self, st):
        (e,), rest = self._take(st, 1, "not")
        return Applied([Bool(not is_truthy(e))], rest)

    @fn_primitive("or")
    def _or(self, st):
        (y, x), rest = self._take(st, 2, "or")
        return Applied([x if is_truthy(x) else y], rest)

    @fn_primitive("and")
    def _and(self, st):
        (y, x), rest = self._take(st, 2, "and")
        return Applied([y if is_truthy(x) else x], rest)

    # --- Quotations ---
    @fn_primitive("quote")
    def _quote(self, st):
        (e,), rest = self._take(st, 1, "quote")
        return Applied([Quot([e])], rest)

    @fn_primitive("cons")
    def _cons(self, st):
        (e, q), rest = self._take(st, 2, "cons")
        q = self._expect(q, Quot, "cons", st)
        return Applied([Quot((e,) + q.items)], rest)

    @fn_primitive("uncons")
    def _uncons(self, st):
        (q,), rest = self._take(st, 1, "uncons")
        q = self._expect(q, Quot, "uncons", st)
        if not q.items:
            raise ShapeMismatch("Cannot uncons an empty quotation", st)
        return Applied([q.items[0], Quot(q.items[1:])], rest)

    @fn_primitive("splitAt")
    def _split_at(self, st):
        (n, q), rest = self._take(st, 2, "splitAt")
        index = self._expect(n, Num, "splitAt", st).value
        q = self._expect(q, Quot, "splitAt", st)
        if index < 0 or index > len(q):
            raise ShapeMismatch(f"Cannot split a quotation of length {len(q)} at {index}", st)
        return Applied([Quot(q.items[:index]), Quot(q.items[index:])], rest)

    @fn_primitive("null")
    def _null(self, st):
        (q,), rest = self._take(st, 1, "null")
        if not isinstance(q, Quot):
            raise ShapeMismatch(
                f"Cannot determine if non-quote value '{self.printer.pformat(q)}' is null.", st
            )
        return Applied([Bool(len(q) == 0)], rest)

    @fn_primitive("append")
    def _append(self, st):
        (b, a), rest = self._take(st, 2, "append")
        b = self._expect(b, Quot, "append", st)
        a = self._expect(a, Quot, "append", st)
        return Applied([Quot(a.items + b.items)], rest)

    # --- Reflection ---
    @fn_primitive("show")
    def _show(self, st):
        (e,), rest = self._take(st, 1, "show")
        return Applied([Quot.from_text(self.printer.pformat(e))], rest)

    @fn_primitive("type")
    def _type(self, st):
        (e,), _ = self._take(st, 1, "type")
        # The value stays beneath its tag
        return Applied([Quot.from_text(e.type_name)], st)

    # --- Application ---
    @fn_primitive("dip")
    def _dip(self, st):
        (q, e), rest = self._take(st, 2, "dip")
        q = self._expect(q, Quot, "dip", st)
        return Applied([e, *q.items], rest)

    @fn_primitive("dig")
    def _dig(self, st):
        (n, q), rest = self._take(st, 2, "dig")
        depth = self._expect(n, Num, "dig", st).value
        q = self._expect(q, Quot, "dig", st)
        if depth < 0:
            raise ShapeMismatch(f"Cannot dig to negative depth {depth}", st)
        saved, below = self._take(rest, depth, "dig")
        return Applied(saved + list(q.items), below)

    @fn_primitive("apply")
    def _apply(self, st):
        (e,), rest = self._take(st, 1, "apply")
        match e:
            case Quot():
                return Applied(e.items, rest)
            case NativeOp():
                # Stepping the native runs it against the rest of the stack
                return Applied([e], rest)
            case _:
                raise ShapeMismatch(f"Don't know how to apply {self.printer.pformat(e)}", st)

    # --- Arithmetic ---
    @fn_primitive("+")
    def _add(self, st): return self._arith(st, "+", operator.add)

    @fn_primitive("-")
    def _sub(self, st): return self._arith(st, "-", operator.sub)

    @fn_primitive("*")
    def _mul(self, st): return self._arith(st, "*", operator.mul)

    @fn_primitive("/")
    def _div(self, st): return self._arith(st, "/", operator.floordiv)

    @fn_primitive("%")
    def _mod(self, st): return self._arith(st, "%", operator.mod)

    # --- Errors ---
    @fn_primitive("croak")
    def _croak(self, st):
        (msg,), rest = self._take(st, 1, "croak")
        raise Croak(self.printer.pformat(msg), rest)

    # --- Definitions ---
    @fn_primitive("def")
    def _def(self, st):
        (name, body), rest = self._take(st, 2, "def")
        name = self._expect(name, Word, "def", st)
        body = self._expect(body, Quot, "def", st)
        return Applied([Def(name.name, body.items)], rest)


# ===================================================================
# 2. Script Execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a program run."""
    status: Literal['success', 'error']
    value: Optional[Stack] = None
    error_message: Optional[str] = None
    error: Optional[FnError] = None

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses, assembles and reduces fn programs."""

    _parser: Optional[Parser] = None
    _transformer: Optional[FnTransformer] = None

    def __init__(self, load_prelude: bool = True, prelude_path: Optional[str] = None,
                 max_steps: Optional[int] = None):
        if ScriptRunner._parser is None:
            grammar_path = PACKAGE_DIR / "grammar" / "fn_grammar.yaml"
            ScriptRunner._parser = Parser.from_file(str(grammar_path))

        if ScriptRunner._transformer is None:
            ScriptRunner._transformer = FnTransformer()

        self.parser = ScriptRunner._parser
        self.transformer = ScriptRunner._transformer

        self.load_prelude = load_prelude
        self.prelude_path = Path(prelude_path) if prelude_path else PACKAGE_DIR / "headstone.fn"
        self.printer = Printer()
        self.evaluator = Evaluator(max_steps=max_steps)
        self.stdlib = StdLib(self.printer)
        self.primitives = self.stdlib.definitions()

    def parse(self, source: str) -> List[Expr]:
        """Parses source text into a list of expressions."""
        try:
            parse_out = self.parser.parse(source)
            if parse_out.get('status') != 'success':
                raise ParseFailure(parse_out.get('message') or str(parse_out))
            return self.transformer.transform(parse_out['ast'])
        except RecursionError as e:
            # koine and the transformer recurse once per level of source nesting
            raise ParseFailure("Brackets nested too deeply to parse") from e

    def read_sources(self, paths: Iterable[str]) -> List[str]:
        sources = []
        for path in paths:
            try:
                sources.append(Path(path).read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                reason = getattr(e, 'strerror', None) or str(e)
                raise SourceUnreadable(f"Cannot read source file '{path}': {reason}") from e
        return sources

    def assemble(self, sources: List[str]) -> List[Expr]:
        """User sources, then the prelude, parsed as one text; primitives go last."""
        texts = list(sources)
        if self.load_prelude:
            texts.extend(self.read_sources([self.prelude_path]))
        program = self.parse("\n".join(texts))
        return program + self.primitives

    def run(self, sources: List[str]) -> Stack:
        program = self.assemble(sources)
        if self.evaluator.debugging:
            self.evaluator._dbg("PROGRAM", self.printer.preview(Stack.from_list(program)))
        return self.evaluator.reduce(program)

    def handle_script(self, source: str) -> ExecutionResult:
        """Runs a single in-memory source and reports the outcome."""
        return self._execute(lambda: self.run([source]))

    def run_files(self, paths: Iterable[str]) -> ExecutionResult:
        """Reads every path, in order, and runs them as one program."""
        paths = list(paths)
        return self._execute(lambda: self.run(self.read_sources(paths)))

    def _execute(self, thunk: Callable[[], Stack]) -> ExecutionResult:
        try:
            value = thunk()
        except FnError as e:
            return ExecutionResult(status='error', error_message=self._format_error(e), error=e)
        return ExecutionResult(status='success', value=value)

    def _format_error(self, e: FnError) -> str:
        msg = f"{e.kind}: {e.message}"
        if e.stack is not None:
            msg += f"\nAt\n   {self.printer.preview(e.stack)}"
        return msg
