"""
The fn reduction engine.

A program is reduced right to left: everything written after an expression is
fully normalized before that expression is interpreted. The Evaluator runs
this as a machine with two parts:

  - a control list holding the program not yet read, consumed from its end
    (the rightmost unread expression comes off first), and
  - a value stack (a persistent `Stack`) holding what has been normalized.

Resolving a word or firing a native pushes new expressions onto the control
list instead of recursing, so deep or long-running programs are limited by
memory rather than by the Python call stack.
"""
import os
import sys
from typing import Iterable, List, Optional

from fnlang.fn_datatypes import (
    Applied, Comment, DEFERRED, EMPTY, Expr, FnError, NativeOp, Stack,
    StepLimitExceeded, Word
)


class Evaluator:
    """The fn execution engine."""

    def __init__(self, max_steps: Optional[int] = None):
        # Upper bound on machine steps for one reduction; None means unbounded.
        self.max_steps = max_steps
        self.steps = 0

    @property
    def debugging(self) -> bool:
        return bool(os.environ.get("FN_DEBUG"))

    def _dbg(self, *parts):
        if self.debugging:
            print("[DBG]", *parts, file=sys.stderr)

    def reduce(self, program: Iterable[Expr], base: Stack = EMPTY) -> Stack:
        """Normalizes `program ++ base` and returns the resulting stack.

        `base` must already be normalized; it is never revisited.
        """
        control: List[Expr] = list(program)
        values = base
        self.steps = 0
        while control:
            expr = control.pop()
            values = self.step(expr, values, control)
        return values

    def step(self, expr: Expr, values: Stack, control: List[Expr]) -> Stack:
        """Interprets one expression on top of the normalized stack `values`."""
        self.steps += 1
        if self.max_steps is not None and self.steps > self.max_steps:
            raise StepLimitExceeded(f"Reduction did not finish within {self.max_steps} steps", values)

        match expr:
            case Word():
                definition = values.find_def(expr.name)
                if definition is None:
                    # Unresolved words are data
                    return values.push(expr)
                self._dbg("RESOLVE", expr.name, "body", len(definition.body))
                control.extend(definition.body)
                return values
            case NativeOp():
                return self.invoke(expr, values, control)
            case Comment():
                return values
            case _:
                return values.push(expr)

    def invoke(self, op: NativeOp, values: Stack, control: List[Expr]) -> Stack:
        """Runs a native against the stack beneath it."""
        try:
            outcome = op.fn(values)
        except FnError as e:
            if e.stack is None:
                e.stack = values
            raise
        if outcome is DEFERRED:
            self._dbg("DEFER", op.name)
            return values.push(op)
        if not isinstance(outcome, Applied):
            raise TypeError(f"Native '{op.name}' returned {outcome!r}, expected Applied or DEFERRED")
        control.extend(outcome.front)
        return outcome.base
