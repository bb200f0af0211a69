"""
Defines the core data types for the fn language runtime.

Every value the evaluator touches is an `Expr`: words, quotations, literals,
pairs, definitions, native operations and comments. Programs and data share
one representation, the `Stack`, a persistent cons list whose front is the
top of the stack.
"""

from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple


# =================================================================
# Errors
# =================================================================

class FnError(Exception):
    """Base class for every fatal condition raised while loading or reducing."""
    kind = "Error"

    def __init__(self, message: str, stack: Optional['Stack'] = None):
        super().__init__(message)
        self.message = message
        self.stack = stack


class ParseFailure(FnError):
    kind = "ParseFailure"


class ShapeMismatch(FnError):
    kind = "ShapeMismatch"


class IncomparableValues(FnError):
    kind = "IncomparableValues"


class ArithmeticFailure(FnError):
    kind = "ArithmeticFailure"


class SourceUnreadable(FnError):
    kind = "SourceUnreadable"


class Croak(FnError):
    kind = "Croak"


class StepLimitExceeded(FnError):
    kind = "StepLimitExceeded"


# =================================================================
# Expressions
# =================================================================

class Expr:
    """Abstract base class for every node of a program."""
    __slots__ = ()
    type_name = "expression"


class Word(Expr):
    """An identifier. Resolved against the nearest `Def` of the same name, or kept as data."""
    __slots__ = ("name",)
    type_name = "word"

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Word({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, Word) and self.name == other.name


class Quot(Expr):
    """An unevaluated block of code (`[...]`). Strings are quotations of `Chr`."""
    __slots__ = ("items",)
    type_name = "quotation"

    def __init__(self, items: Iterable[Expr] = ()):
        self.items: Tuple[Expr, ...] = tuple(items)

    @classmethod
    def from_text(cls, text: str) -> 'Quot':
        return cls(Chr(c) for c in text)

    def is_string(self) -> bool:
        return all(isinstance(item, Chr) for item in self.items)

    def text(self) -> str:
        return "".join(item.value for item in self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __repr__(self) -> str:
        return f"Quot({list(self.items)!r})"

    def __eq__(self, other):
        return isinstance(other, Quot) and _compare(self, other, _same_object)


class Bool(Expr):
    __slots__ = ("value",)
    type_name = "boolean"

    def __init__(self, value: bool):
        self.value = bool(value)

    def __repr__(self) -> str:
        return f"Bool({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, Bool) and self.value == other.value


class Num(Expr):
    __slots__ = ("value",)
    type_name = "number"

    def __init__(self, value: int):
        self.value = value

    def __repr__(self) -> str:
        return f"Num({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, Num) and self.value == other.value


class Chr(Expr):
    __slots__ = ("value",)
    type_name = "character"

    def __init__(self, value: str):
        if len(value) != 1:
            raise ValueError(f"Chr holds exactly one character, got {value!r}")
        self.value = value

    def __repr__(self) -> str:
        return f"Chr({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, Chr) and self.value == other.value


class Pair(Expr):
    """A fixed two-element node, written `(a b)`."""
    __slots__ = ("first", "second")
    type_name = "pair"

    def __init__(self, first: Expr, second: Expr):
        self.first = first
        self.second = second

    def __repr__(self) -> str:
        return f"Pair({self.first!r}, {self.second!r})"

    def __eq__(self, other):
        return isinstance(other, Pair) and _compare(self, other, _same_object)


class Def(Expr):
    """A named binding. Inert on the stack; found by scanning when a `Word` is reduced.

    Python equality is identity: the language-level `=` refuses to compare
    definitions at all (see `equals`).
    """
    __slots__ = ("name", "body")
    type_name = "definition"

    def __init__(self, name: str, body: Iterable[Expr]):
        self.name = name
        self.body: Tuple[Expr, ...] = tuple(body)

    def __repr__(self) -> str:
        return f"Def({self.name!r}, {list(self.body)!r})"


class NativeOp(Expr):
    """A built-in transform over a Stack.

    `fn` receives the normalized stack beneath the operation and returns
    either an `Applied` result or `DEFERRED`.
    """
    __slots__ = ("name", "fn")
    type_name = "function"

    def __init__(self, name: str, fn: Callable[['Stack'], Any]):
        self.name = name
        self.fn = fn

    def __repr__(self) -> str:
        return f"NativeOp({self.name!r})"


class Comment(Expr):
    __slots__ = ("text",)
    type_name = "comment"

    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return f"Comment({self.text!r})"

    def __eq__(self, other):
        return isinstance(other, Comment) and self.text == other.text


def is_truthy(expr: Expr) -> bool:
    """Only `Bool(False)` is false."""
    return not (isinstance(expr, Bool) and expr.value is False)


# Marks a pending length check in the `_compare` work list.
_LENGTHS = object()


def _compare(a: Expr, b: Expr, opaque: Callable[[Expr, Expr], bool]) -> bool:
    """Structural comparison of nested quotations and pairs.

    Elements are compared left to right, depth first, stopping at the first
    difference; quotation lengths are checked only after their common prefix.
    `opaque` decides any comparison involving a native operation or a
    definition. Nesting is walked with an explicit work list, so depth is
    not limited by the Python call stack.
    """
    work = [(a, b)]
    while work:
        x, y = work.pop()
        if x is _LENGTHS:
            if y[0] != y[1]:
                return False
        elif isinstance(x, Quot) and isinstance(y, Quot):
            work.append((_LENGTHS, (len(x.items), len(y.items))))
            work.extend(reversed(list(zip(x.items, y.items))))
        elif isinstance(x, Pair) and isinstance(y, Pair):
            work.append((x.second, y.second))
            work.append((x.first, y.first))
        elif isinstance(x, (NativeOp, Def)) or isinstance(y, (NativeOp, Def)):
            if not opaque(x, y):
                return False
        elif x != y:
            return False
    return True


def _same_object(a: Expr, b: Expr) -> bool:
    return a is b


def _refuse_opaque(a: Expr, b: Expr) -> bool:
    if isinstance(a, NativeOp) and isinstance(b, NativeOp):
        raise IncomparableValues("Cannot compare functions")
    if isinstance(a, Def) and isinstance(b, Def):
        raise IncomparableValues("Cannot compare definitions")
    return False


def equals(a: Expr, b: Expr) -> bool:
    """Language-level structural equality, as used by the `=` primitive.

    Raises IncomparableValues when it reaches two native operations or two
    definitions, including when they are nested in quotations or pairs.
    A difference found earlier in the walk wins over a later refusal.
    """
    return _compare(a, b, _refuse_opaque)


# =================================================================
# Stack
# =================================================================

class Stack:
    """An immutable cons list of expressions; `head` is the top of the stack.

    Pushing returns a new Stack sharing this one as its tail, so every
    reduction step produces a fresh value without copying what lies beneath.
    """
    __slots__ = ("head", "tail")

    def __init__(self, head: Optional[Expr] = None, tail: Optional['Stack'] = None):
        self.head = head
        self.tail = tail

    @classmethod
    def from_list(cls, items: Iterable[Expr], base: Optional['Stack'] = None) -> 'Stack':
        """Builds a stack whose top is items[0], resting on `base`."""
        stack = EMPTY if base is None else base
        for item in reversed(list(items)):
            stack = stack.push(item)
        return stack

    def push(self, expr: Expr) -> 'Stack':
        return Stack(expr, self)

    def is_empty(self) -> bool:
        return self.tail is None

    def split(self, n: int) -> Tuple[List[Expr], 'Stack']:
        """Returns up to `n` expressions from the top and the stack beneath them."""
        items: List[Expr] = []
        node = self
        while len(items) < n and node.tail is not None:
            items.append(node.head)
            node = node.tail
        return items, node

    def find_def(self, name: str) -> Optional[Def]:
        """Nearest-first scan for a definition named `name`."""
        for expr in self:
            if isinstance(expr, Def) and expr.name == name:
                return expr
        return None

    def __iter__(self) -> Iterator[Expr]:
        node = self
        while node.tail is not None:
            yield node.head
            node = node.tail

    def __len__(self) -> int:
        count = 0
        node = self
        while node.tail is not None:
            count += 1
            node = node.tail
        return count

    def __bool__(self) -> bool:
        return self.tail is not None

    def to_list(self) -> List[Expr]:
        return list(self)

    def __eq__(self, other):
        if not isinstance(other, Stack):
            return NotImplemented
        a, b = self, other
        while a.tail is not None and b.tail is not None:
            if a is b:
                return True
            if a.head != b.head:
                return False
            a, b = a.tail, b.tail
        return a.tail is None and b.tail is None

    __hash__ = None

    def __repr__(self) -> str:
        return f"Stack({self.to_list()!r})"


EMPTY = Stack()


# =================================================================
# Native operation outcomes
# =================================================================

class Applied:
    """A native operation fired: the result is `reduce(front ++ base)`.

    `base` must be a suffix of the (already normalized) input stack; only
    `front` is fed back through the evaluator.
    """
    __slots__ = ("front", "base")

    def __init__(self, front: Iterable[Expr], base: Stack):
        self.front: List[Expr] = list(front)
        self.base = base

    def __repr__(self) -> str:
        return f"Applied({self.front!r}, {self.base!r})"


class _Deferred:
    """A native operation declined: it stays on the stack as a pending value."""
    __slots__ = ()

    def __repr__(self) -> str:
        return "DEFERRED"


DEFERRED = _Deferred()
