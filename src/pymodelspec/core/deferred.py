"""Deferred values — capture an argument now, evaluate it at fit/predict time.

A ``Deferred`` is either a *literal* (already concrete) or an *expression*
that is evaluated against a set of bindings later on. Expressions come in
two flavours:

- a Python expression string such as ``"n_preds // 3"`` or
  ``"object.predict(new_data)"``; its free names are its symbols.
- a callable such as ``lambda n_obs: n_obs // 10``; its parameter names are
  its symbols.

Nothing is evaluated until :meth:`Deferred.resolve` is called, so a spec can
refer to data (``new_data``) or objects (``object``) that do not exist yet.
"""

from __future__ import annotations

import ast
import builtins
import inspect
from typing import Any, Callable, Mapping

from pymodelspec.core.errors import UnresolvedSymbolError

_SAFE_BUILTINS: dict[str, Any] = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "dict", "enumerate", "float", "int",
        "isinstance", "len", "list", "max", "min", "pow", "range", "round",
        "set", "sorted", "str", "sum", "tuple", "zip",
    )
}

_FORBIDDEN_PATTERNS = (
    "__", "import", "exec", "eval", "compile", "open", "getattr",
    "setattr", "delattr", "globals", "locals", "vars", "dir",
    "breakpoint", "exit", "quit", "input", "print",
)

_LITERAL = "literal"
_SOURCE = "source"
_CALLABLE = "callable"
_THEN = "then"


def validate_expression(expr: str) -> None:
    """Reject expression strings containing dangerous patterns before eval()."""
    lowered = expr.lower().replace(" ", "")
    for pattern in _FORBIDDEN_PATTERNS:
        if pattern in lowered:
            raise ValueError(
                f"Expression {expr!r} contains forbidden pattern '{pattern}'. "
                "Only arithmetic on names and data descriptors is allowed."
            )


def _free_symbols(tree: ast.AST) -> frozenset[str]:
    """Names read by *tree* that are neither bound inside it nor builtins."""
    loaded: set[str] = set()
    bound: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Name):
            if isinstance(node.ctx, ast.Load):
                loaded.add(node.id)
            else:
                bound.add(node.id)
        elif isinstance(node, ast.arg):
            bound.add(node.arg)
    return frozenset(loaded - bound - set(_SAFE_BUILTINS))


def _callable_symbols(fn: Callable) -> tuple[frozenset[str], frozenset[str]]:
    """Return (all parameter names, required parameter names) of *fn*."""
    params = [
        p for p in inspect.signature(fn).parameters.values()
        if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
    ]
    names = frozenset(p.name for p in params)
    required = frozenset(p.name for p in params if p.default is p.empty)
    return names, required


class Deferred:
    """A value that is either concrete or evaluated on demand."""

    __slots__ = ("_kind", "_payload", "_env", "_symbols", "_required", "_source")

    def __init__(
        self,
        kind: str,
        payload: Any,
        env: Mapping[str, Any] | None = None,
        symbols: frozenset[str] = frozenset(),
        required: frozenset[str] | None = None,
        source: str = "",
    ) -> None:
        self._kind = kind
        self._payload = payload
        self._env = dict(env or {})
        self._symbols = symbols
        self._required = symbols if required is None else required
        self._source = source

    # -- construction -------------------------------------------------------

    @classmethod
    def literal(cls, value: Any) -> Deferred:
        return cls(_LITERAL, value)

    @classmethod
    def expression(cls, expr: str | Callable, env: Mapping[str, Any] | None = None) -> Deferred:
        """Wrap an unevaluated expression with the environment it was written in."""
        if isinstance(expr, str):
            source = expr.strip()
            validate_expression(source)
            try:
                tree = ast.parse(source, mode="eval")
            except SyntaxError as exc:
                raise ValueError(f"Invalid expression {expr!r}: {exc.msg}") from exc
            code = compile(tree, "<deferred>", "eval")
            return cls(_SOURCE, code, env, _free_symbols(tree), source=source)
        if callable(expr):
            names, required = _callable_symbols(expr)
            label = getattr(expr, "__name__", type(expr).__name__)
            return cls(_CALLABLE, expr, env, names, required, source=label)
        raise TypeError(
            f"Expected an expression string or a callable, got {type(expr).__name__}"
        )

    def then(self, fn: Callable[[Any], Any]) -> Deferred:
        """Return a deferred value applying *fn* to this one once resolved."""
        label = getattr(fn, "__name__", "fn")
        return Deferred(
            _THEN, (self, fn), symbols=self._symbols, required=self._required,
            source=f"{label}({self._source or self._kind})",
        )

    # -- inspection ---------------------------------------------------------

    def is_literal(self) -> bool:
        return self._kind == _LITERAL

    @property
    def symbols(self) -> frozenset[str]:
        """Free symbols that must be bound (or captured) to resolve."""
        return self._symbols

    @property
    def source(self) -> str:
        return self._source

    # -- evaluation ---------------------------------------------------------

    def resolve(self, bindings: Mapping[str, Any] | None = None, memo: dict[int, Any] | None = None) -> Any:
        """Evaluate against *bindings*, falling back to the captured environment.

        When *memo* is given, each expression is evaluated at most once per
        memo and later calls return the stored value.

        Raises UnresolvedSymbolError if a required symbol is bound nowhere.
        """
        if self._kind == _LITERAL:
            return self._payload
        if memo is not None and id(self) in memo:
            return memo[id(self)]
        value = self._evaluate(bindings or {}, memo)
        if memo is not None:
            memo[id(self)] = value
        return value

    def _evaluate(self, bindings: Mapping[str, Any], memo: dict[int, Any] | None) -> Any:
        if self._kind == _THEN:
            inner, fn = self._payload
            return fn(inner.resolve(bindings, memo))

        missing = [
            s for s in self._required if s not in bindings and s not in self._env
        ]
        if missing:
            raise UnresolvedSymbolError(missing, self._source)

        if self._kind == _CALLABLE:
            kwargs = {}
            for name in self._symbols:
                if name in bindings:
                    kwargs[name] = bindings[name]
                elif name in self._env:
                    kwargs[name] = self._env[name]
            return self._payload(**kwargs)

        namespace: dict[str, Any] = {"__builtins__": _SAFE_BUILTINS}
        namespace.update(self._env)
        namespace.update(bindings)
        return eval(self._payload, namespace)  # noqa: S307

    def __repr__(self) -> str:
        if self._kind == _LITERAL:
            return f"Deferred.literal({self._payload!r})"
        return f"Deferred.expression({self._source!r})"


def quote(expr: str | Callable, **env: Any) -> Deferred:
    """Capture *expr* without evaluating it.

    When no environment is passed, the caller's globals and locals are
    captured for the names the expression uses, so ``quote("k * 2")``
    remembers the current value of ``k``.
    """
    if not env and isinstance(expr, str):
        frame = inspect.currentframe()
        try:
            caller = frame.f_back if frame is not None else None
            if caller is not None:
                scope = {**caller.f_globals, **caller.f_locals}
                deferred = Deferred.expression(expr)
                env = {k: scope[k] for k in deferred.symbols if k in scope}
        finally:
            del frame
    return Deferred.expression(expr, env)


def as_deferred(value: Any) -> Deferred:
    """Wrap *value* as a literal unless it is already deferred."""
    if isinstance(value, Deferred):
        return value
    return Deferred.literal(value)
