from typing import Any, Tuple

import jmespath
from jmespath.exceptions import JMESPathError

from ..errors import InvalidPathSyntax, PathEvaluationError


class CompiledPath:
    """A JMESPath expression parsed once and evaluated against many documents."""

    __slots__ = ("expression", "_parsed")

    def __init__(self, expression: str) -> None:
        if not expression or not expression.strip():
            raise InvalidPathSyntax(expression, "expression is empty")
        try:
            self._parsed = jmespath.compile(expression)
        except JMESPathError as exc:
            raise InvalidPathSyntax(expression, str(exc)) from exc
        self.expression = expression

    def evaluate(self, document: Any) -> Tuple[Any, bool]:
        """Return ``(value, found)``.

        JMESPath already yields ``None`` for missing keys and for projections
        through scalars, so ``None`` (including an explicit JSON ``null``) is
        reported as not found.
        """
        try:
            value = self._parsed.search(document)
        except JMESPathError as exc:
            raise PathEvaluationError(f"{self.expression}: {exc}") from exc
        if value is None:
            return None, False
        return value, True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledPath):
            return NotImplemented
        return self.expression == other.expression

    def __hash__(self) -> int:
        return hash(self.expression)

    def __repr__(self) -> str:
        return f"CompiledPath({self.expression!r})"

    def __str__(self) -> str:
        return self.expression


def compile_path(expression: str) -> CompiledPath:
    return CompiledPath(expression)
