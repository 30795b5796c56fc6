# expression.py
"""
A small algebraic/boolean expression language over the coordinates x and y.

Field areas may describe their border as a string such as
``"x > 0 and x < 150"`` or ``"x^2 + y^2 <= 100"``. The string is parsed once
with Python's ``ast`` module, checked against a whitelist of node types and
names, and then evaluated over exact Fractions for every query.
"""
import ast
import logging
import math
import operator
from fractions import Fraction
from typing import Any, Dict

from errors import ExpressionError

# --- Data Contracts ---
#
# class BorderExpression:
#   - __init__(self, text: str):
#     - Inputs: the expression source. `^` means exponentiation.
#     - Errors: ExpressionError on syntax errors, unknown names, unsupported
#       operators, calls to anything but the whitelisted functions, and
#       exponents that are not number literals or whose combined size along
#       nested powers exceeds MAX_EXPONENT.
#   - __call__(self, x: Fraction, y: Fraction) -> bool:
#     - Outputs: truthiness of the expression at (x, y).
#     - Invariants: pure; literals are exact, functions evaluate in floats.

VARIABLES = ('x', 'y')

# Largest combined exponent of nested powers, e.g. (x^8)^8.
MAX_EXPONENT = 64

CONSTANTS: Dict[str, Any] = {
    'pi': math.pi,
    'e': math.e,
}

FUNCTIONS: Dict[str, Any] = {
    'abs': abs,
    'sqrt': math.sqrt,
    'sin': math.sin,
    'cos': math.cos,
    'tan': math.tan,
    'exp': math.exp,
    'log': math.log,
    'floor': math.floor,
    'ceil': math.ceil,
    'min': min,
    'max': max,
}

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARISONS = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}


def _literal_number(node: ast.AST) -> Any:
    """The value of a signed number literal, or None for anything else."""
    sign = 1
    while isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.UAdd, ast.USub)):
        if isinstance(node.op, ast.USub):
            sign = -sign
        node = node.operand
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return sign * node.value
    return None


class BorderExpression:
    """
    A compiled border predicate in x and y.
    """
    def __init__(self, text: str):
        self.text = text
        try:
            tree = ast.parse(text.replace('^', '**').strip(), mode='eval')
        except SyntaxError as e:
            raise ExpressionError(f"Border expression {text!r} is not valid: {e.msg}") from None
        self._check(tree.body)
        self._body = tree.body
        logging.debug(f"Compiled border expression {text!r}.")

    def __call__(self, x: Fraction, y: Fraction) -> bool:
        return bool(self._evaluate(self._body, {'x': x, 'y': y}))

    def __repr__(self) -> str:
        return f"BorderExpression({self.text!r})"

    def _check(self, node: ast.AST, power: float = 1) -> None:
        """
        Rejects every construct the evaluator does not understand.

        `power` is the product of the exponents of the powers enclosing
        `node`, so exact evaluation stays bounded.
        """
        if isinstance(node, ast.Constant):
            # bool is an int subclass, so True/False pass as well.
            if not isinstance(node.value, (int, float)):
                raise ExpressionError(
                    f"Border expression {self.text!r} contains an unsupported literal {node.value!r}"
                )
            return
        if isinstance(node, ast.Name):
            if node.id not in VARIABLES and node.id not in CONSTANTS:
                raise ExpressionError(f"Border expression {self.text!r} uses unknown name `{node.id}`")
            return
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.Pow):
            exponent = _literal_number(node.right)
            if exponent is None:
                raise ExpressionError(
                    f"Border expression {self.text!r} may only raise to a number literal"
                )
            power *= max(1, abs(exponent))
            if power > MAX_EXPONENT:
                raise ExpressionError(
                    f"Border expression {self.text!r} raises to a power above {MAX_EXPONENT}"
                )
            self._check(node.left, power)
            return
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
            self._check(node.left, power)
            self._check(node.right, power)
            return
        if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
            self._check(node.operand, power)
            return
        if isinstance(node, ast.BoolOp):
            for value in node.values:
                self._check(value, power)
            return
        if isinstance(node, ast.Compare) and all(type(op) in _COMPARISONS for op in node.ops):
            self._check(node.left, power)
            for comparator in node.comparators:
                self._check(comparator, power)
            return
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
                raise ExpressionError(f"Border expression {self.text!r} calls an unknown function")
            if node.keywords or not node.args:
                raise ExpressionError(
                    f"Border expression {self.text!r} passes unsupported arguments to `{node.func.id}`"
                )
            for arg in node.args:
                self._check(arg, power)
            return
        raise ExpressionError(
            f"Border expression {self.text!r} contains unsupported syntax `{type(node).__name__}`"
        )

    def _evaluate(self, node: ast.AST, scope: Dict[str, Fraction]) -> Any:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, (bool, int)):
                return node.value
            return Fraction(repr(node.value))
        if isinstance(node, ast.Name):
            if node.id in scope:
                return scope[node.id]
            return CONSTANTS[node.id]
        if isinstance(node, ast.BinOp):
            return _BINARY_OPERATORS[type(node.op)](
                self._evaluate(node.left, scope), self._evaluate(node.right, scope)
            )
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPERATORS[type(node.op)](self._evaluate(node.operand, scope))
        if isinstance(node, ast.BoolOp):
            # Short-circuit like Python's own `and` / `or`.
            if isinstance(node.op, ast.And):
                for value in node.values:
                    if not self._evaluate(value, scope):
                        return False
                return True
            for value in node.values:
                if self._evaluate(value, scope):
                    return True
            return False
        if isinstance(node, ast.Compare):
            left = self._evaluate(node.left, scope)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._evaluate(comparator, scope)
                if not _COMPARISONS[type(op)](left, right):
                    return False
                left = right
            return True
        # Only whitelisted calls survive _check.
        args = [self._evaluate(arg, scope) for arg in node.args]
        return FUNCTIONS[node.func.id](*args)
