"""
SketchScript Evaluator

Asynchronous tree-walking evaluator. Every evaluation step is a coroutine so
that builtins which suspend (delay, input) can be awaited in the middle of a
user function without blocking the event loop.

Name resolution for identifiers:
    1. parameters of the current call
    2. globals (one flat namespace; blocks never open a scope)
    3. read-only pseudo-variables (mouseX, frameCount, ...)
    4. constants (PI, leftMouse, math, ...)
    5. user functions, then builtins, as first-class values

Calls by name try user functions, then builtins, then a callable variable.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import DEFAULT_MAX_CALL_DEPTH
from .errors import (
    SketchError,
    bounds_error,
    E_NAME_ERROR,
    E_TYPE_ERROR,
    E_RUNTIME_ERROR,
    E_READONLY_ERROR,
)
from .nodes import (
    ASTNode, Literal, Variable, Unary, Binary, Logical, Call, Member, Index,
    ArrayLiteral, ObjectLiteral, Block, ExprStmt, Assign, FunctionDecl, If,
    While, For, CFor, Return,
)
from .parser import Program
from . import values

logger = logging.getLogger(__name__)

# Loops hand control back to the event loop this often so stop() can land
YIELD_INTERVAL = 1000


class ReturnSignal(Exception):
    """Unwinds a user function on 'return'"""

    def __init__(self, value: Any):
        self.value = value
        super().__init__()


@dataclass
class Frame:
    """One active function call"""
    name: str
    params: Dict[str, Any] = field(default_factory=dict)
    line: int = 0
    column: int = 0


class UserFunction:
    """A function declared in the sketch, bound to the evaluator that runs it"""

    def __init__(self, decl: FunctionDecl, evaluator: "SketchEvaluator"):
        self.decl = decl
        self.evaluator = evaluator

    @property
    def name(self) -> str:
        return self.decl.name

    @property
    def params(self) -> List[str]:
        return self.decl.params

    def __call__(self, *args):
        return self.evaluator.call_function(self, list(args))

    def __repr__(self) -> str:
        return f"<function {self.name}({', '.join(self.params)})>"


class SketchEvaluator:
    """Evaluate SketchScript programs"""

    def __init__(self,
                 builtins: Optional[Dict[str, Callable]] = None,
                 constants: Optional[Dict[str, Any]] = None,
                 pseudo_variables: Optional[Dict[str, Callable[[], Any]]] = None,
                 max_call_depth: int = DEFAULT_MAX_CALL_DEPTH):
        self.globals: Dict[str, Any] = {}
        self.functions: Dict[str, UserFunction] = {}
        self.builtins = builtins or {}
        self.constants = constants or {}
        self.pseudo_variables = pseudo_variables or {}
        self.max_call_depth = max_call_depth
        self.frames: List[Frame] = [Frame('<main>')]
        self._steps = 0

    # ------------------------------------------------------------------
    # Program entry points
    # ------------------------------------------------------------------

    def define_functions(self, program: Program):
        """Register hoisted top-level functions"""
        for name, decl in program.functions.items():
            self.functions[name] = UserFunction(decl, self)

    async def run_program(self, program: Program):
        """Register functions, then run top-level statements in order"""
        self.define_functions(program)
        for stmt in program.statements:
            await self.execute(stmt)

    async def call(self, name: str, args: Sequence[Any] = ()) -> Any:
        """Call a user function by name (setup, loop, ...)"""
        if name not in self.functions:
            raise SketchError(E_NAME_ERROR, f"Undefined function: {name}")
        logger.debug(f"Calling {name}()")
        return await self.call_function(self.functions[name], list(args))

    async def call_function(self, func: UserFunction, args: List[Any]) -> Any:
        """Call a user function; extra args are ignored, missing ones are null"""
        params = {
            param: args[i] if i < len(args) else None
            for i, param in enumerate(func.params)
        }
        # frames[0] is the top level, so len(frames) is the depth of the new call
        if len(self.frames) > self.max_call_depth:
            raise SketchError(E_RUNTIME_ERROR, f"Maximum call depth exceeded in '{func.name}'")
        frame = Frame(func.name, params, func.decl.line)
        self.frames.append(frame)
        try:
            await self.execute_block(func.decl.body)
        except ReturnSignal as ret:
            return ret.value
        except SketchError as err:
            err.add_frame(func.name, frame.line, frame.column)
            raise
        except RecursionError as exc:
            # Python stack exhausted before max_call_depth was reached
            err = SketchError(E_RUNTIME_ERROR, f"Maximum call depth exceeded in '{func.name}'",
                              frame.line or None, frame.column)
            err.add_frame(func.name, frame.line, frame.column)
            raise err from exc
        except Exception as exc:
            logger.exception(f"Unexpected error in {func.name}()")
            err = SketchError(E_RUNTIME_ERROR, str(exc), frame.line or None, frame.column)
            err.add_frame(func.name, frame.line, frame.column)
            raise err from exc
        finally:
            self.frames.pop()
        return None

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def lookup(self, name: str, line: int = 0, column: int = 0) -> Any:
        """Resolve an identifier to its value"""
        frame = self.frames[-1]
        if name in frame.params:
            return frame.params[name]
        if name in self.globals:
            return self.globals[name]
        if name in self.pseudo_variables:
            return self.pseudo_variables[name]()
        if name in self.constants:
            return self.constants[name]
        if name in self.functions:
            return self.functions[name]
        if name in self.builtins:
            return self.builtins[name]
        raise SketchError(E_NAME_ERROR, f"Undefined variable: {name}", line, column)

    def assign(self, name: str, value: Any):
        """Bind a name: the current call's parameter if it is one, else a global"""
        if name in self.pseudo_variables:
            raise SketchError(E_READONLY_ERROR, f"Cannot assign to read-only variable '{name}'")
        frame = self.frames[-1]
        if name in frame.params:
            frame.params[name] = value
        else:
            self.globals[name] = value

    def is_defined(self, name: str) -> bool:
        return name in self.frames[-1].params or name in self.globals

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    async def execute_block(self, block: Block):
        for stmt in block.statements:
            await self.execute(stmt)

    async def execute(self, stmt: ASTNode):
        """Execute one statement, tagging errors with its position"""
        frame = self.frames[-1]
        frame.line, frame.column = stmt.line, stmt.column
        try:
            await self._execute(stmt)
        except SketchError as err:
            err.locate(stmt.line, stmt.column)
            raise

    async def _execute(self, stmt: ASTNode):
        if isinstance(stmt, ExprStmt):
            await self.evaluate(stmt.expr)

        elif isinstance(stmt, Assign):
            await self._execute_assign(stmt)

        elif isinstance(stmt, If):
            if values.truthy(await self.evaluate(stmt.condition)):
                await self.execute_block(stmt.then_body)
            elif stmt.else_body is not None:
                await self.execute_block(stmt.else_body)

        elif isinstance(stmt, While):
            while values.truthy(await self.evaluate(stmt.condition)):
                await self.execute_block(stmt.body)
                await self._tick_step()

        elif isinstance(stmt, For):
            await self._execute_counted_for(stmt)

        elif isinstance(stmt, CFor):
            if stmt.init is not None:
                await self.execute(stmt.init)
            while stmt.condition is None or values.truthy(await self.evaluate(stmt.condition)):
                await self.execute_block(stmt.body)
                if stmt.update is not None:
                    await self.execute(stmt.update)
                await self._tick_step()

        elif isinstance(stmt, Return):
            value = await self.evaluate(stmt.value) if stmt.value is not None else None
            raise ReturnSignal(value)

        elif isinstance(stmt, FunctionDecl):
            # Top-level declarations are hoisted; nested ones bind when reached
            current = self.functions.get(stmt.name)
            if current is None or current.decl is not stmt:
                self.functions[stmt.name] = UserFunction(stmt, self)

        elif isinstance(stmt, Block):
            await self.execute_block(stmt)

        else:
            raise SketchError(E_RUNTIME_ERROR, f"Unknown statement type: {type(stmt).__name__}")

    async def _execute_counted_for(self, stmt: For):
        start = await self.evaluate(stmt.start)
        stop = await self.evaluate(stmt.stop)
        step = await self.evaluate(stmt.step) if stmt.step is not None else 1

        for label, value in (('start', start), ('stop', stop), ('step', step)):
            if not values.is_number(value):
                raise SketchError(E_TYPE_ERROR, f"'for' {label} must be a number, got {values.type_name(value)}")
        if step == 0:
            raise SketchError(E_RUNTIME_ERROR, "'for' step cannot be zero")

        counter = start
        while (step > 0 and counter <= stop) or (step < 0 and counter >= stop):
            self.assign(stmt.var, counter)
            await self.execute_block(stmt.body)
            await self._tick_step()
            counter += step

    async def _execute_assign(self, stmt: Assign):
        target = stmt.target

        if stmt.value is None:
            # 'var x' with no initializer leaves an existing value alone
            if not self.is_defined(target.name):
                self.assign(target.name, None)
            return

        value = await self.evaluate(stmt.value)

        if isinstance(target, Variable):
            if stmt.op != '=':
                value = self._combine(stmt.op, self.lookup(target.name, target.line, target.column), value)
            self.assign(target.name, value)

        elif isinstance(target, Member):
            container = await self.evaluate(target.target)
            if not isinstance(container, dict):
                raise SketchError(E_TYPE_ERROR,
                                  f"Cannot set property '{target.name}' of {values.type_name(container)}")
            if stmt.op != '=':
                value = self._combine(stmt.op, container.get(target.name), value)
            container[target.name] = value

        elif isinstance(target, Index):
            container = await self.evaluate(target.target)
            key = await self.evaluate(target.index)
            if stmt.op != '=':
                value = self._combine(stmt.op, self._get_index(container, key), value)
            self._set_index(container, key, value)

        else:
            raise SketchError(E_TYPE_ERROR, "Invalid assignment target")

    @staticmethod
    def _combine(op: str, current: Any, value: Any) -> Any:
        """Apply the arithmetic part of a compound assignment"""
        if op == '+=':
            return values.add(current, value)
        return values.arithmetic(op[0], current, value)

    async def _tick_step(self):
        self._steps += 1
        if self._steps % YIELD_INTERVAL == 0:
            await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    async def evaluate(self, node: ASTNode) -> Any:
        """Evaluate an expression node"""
        if isinstance(node, Literal):
            return node.value

        elif isinstance(node, Variable):
            return self.lookup(node.name, node.line, node.column)

        elif isinstance(node, Binary):
            left = await self.evaluate(node.left)
            right = await self.evaluate(node.right)
            return self._eval_binary_op(node.op, left, right)

        elif isinstance(node, Logical):
            left = await self.evaluate(node.left)
            if node.op == 'and':
                return await self.evaluate(node.right) if values.truthy(left) else left
            return left if values.truthy(left) else await self.evaluate(node.right)

        elif isinstance(node, Unary):
            operand = await self.evaluate(node.operand)
            return self._eval_unary_op(node.op, operand)

        elif isinstance(node, Call):
            return await self._eval_call(node)

        elif isinstance(node, Member):
            target = await self.evaluate(node.target)
            return self._get_member(target, node.name)

        elif isinstance(node, Index):
            target = await self.evaluate(node.target)
            key = await self.evaluate(node.index)
            return self._get_index(target, key)

        elif isinstance(node, ArrayLiteral):
            return [await self.evaluate(elem) for elem in node.elements]

        elif isinstance(node, ObjectLiteral):
            return {key: await self.evaluate(val) for key, val in node.fields.items()}

        else:
            raise SketchError(E_RUNTIME_ERROR, f"Unknown AST node type: {type(node).__name__}")

    def _eval_binary_op(self, op: str, left: Any, right: Any) -> Any:
        """Evaluate binary operation"""
        if op == '+':
            return values.add(left, right)
        elif op in ('-', '*', '/', '%'):
            return values.arithmetic(op, left, right)
        elif op == '==':
            return values.equals(left, right)
        elif op == '!=':
            return not values.equals(left, right)
        elif op in ('<', '<=', '>', '>='):
            return values.compare(op, left, right)
        else:
            raise SketchError(E_RUNTIME_ERROR, f"Unknown binary operator: {op}")

    def _eval_unary_op(self, op: str, operand: Any) -> Any:
        """Evaluate unary operation"""
        if op == '-':
            if not values.is_number(operand):
                raise SketchError(E_TYPE_ERROR, f"Cannot negate {values.type_name(operand)}")
            return -operand
        elif op == 'not':
            return not values.truthy(operand)
        else:
            raise SketchError(E_RUNTIME_ERROR, f"Unknown unary operator: {op}")

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _resolve_callee(self, node: Variable) -> Any:
        name = node.name
        if name in self.functions:
            return self.functions[name]
        if name in self.builtins:
            return self.builtins[name]
        try:
            func = self.lookup(name)
        except SketchError:
            raise SketchError(E_NAME_ERROR, f"Undefined function: {name}", node.line, node.column) from None
        if not callable(func):
            raise SketchError(E_TYPE_ERROR, f"'{name}' is not a function ({values.type_name(func)})",
                              node.line, node.column)
        return func

    async def _eval_call(self, node: Call) -> Any:
        if isinstance(node.callee, Variable):
            func = self._resolve_callee(node.callee)
            name = node.callee.name
        else:
            func = await self.evaluate(node.callee)
            name = node.callee.name if isinstance(node.callee, Member) else 'expression'
            if not callable(func):
                raise SketchError(E_TYPE_ERROR, f"Cannot call non-function: {values.type_name(func)}",
                                  node.line, node.column)

        args = [await self.evaluate(arg) for arg in node.args]

        if isinstance(func, UserFunction):
            return await self.call_function(func, args)
        return await self._call_builtin(name, func, args, node)

    async def _call_builtin(self, name: str, func: Callable, args: List[Any], node: Call) -> Any:
        """Call a host callable, awaiting it if it suspends"""
        try:
            result = func(*args)
            if inspect.isawaitable(result):
                result = await result
        except (SketchError, ReturnSignal):
            raise
        except TypeError as exc:
            raise SketchError(E_TYPE_ERROR, f"{name}(): {exc}", node.line, node.column) from exc
        except (ValueError, ArithmeticError, LookupError) as exc:
            raise SketchError(E_RUNTIME_ERROR, f"{name}(): {exc}", node.line, node.column) from exc
        return result

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    @staticmethod
    def _get_member(target: Any, name: str) -> Any:
        if isinstance(target, dict):
            return target.get(name)
        if isinstance(target, (list, str)) and name == 'length':
            return len(target)
        raise SketchError(E_TYPE_ERROR, f"Cannot read property '{name}' of {values.type_name(target)}")

    @staticmethod
    def _list_index(sequence: Any, key: Any) -> int:
        if not values.is_number(key) or not float(key).is_integer():
            raise SketchError(E_TYPE_ERROR, f"List index must be a whole number, got {values.display(key)}")
        index = int(key)
        if index < 0 or index >= len(sequence):
            raise bounds_error(index, len(sequence))
        return index

    @staticmethod
    def _map_key(key: Any) -> str:
        """Map keys are strings; m[1] and m["1"] are the same entry"""
        if isinstance(key, str):
            return key
        if isinstance(key, (list, dict)):
            raise SketchError(E_TYPE_ERROR, f"Map key must be a string or number, got {values.type_name(key)}")
        return values.display(key)

    def _get_index(self, target: Any, key: Any) -> Any:
        if isinstance(target, (list, str)):
            return target[self._list_index(target, key)]
        if isinstance(target, dict):
            return target.get(self._map_key(key))
        raise SketchError(E_TYPE_ERROR, f"Cannot index {values.type_name(target)}")

    def _set_index(self, target: Any, key: Any, value: Any):
        if isinstance(target, list):
            target[self._list_index(target, key)] = value
        elif isinstance(target, dict):
            target[self._map_key(key)] = value
        else:
            raise SketchError(E_TYPE_ERROR, f"Cannot set index on {values.type_name(target)}")


__all__ = [
    'SketchEvaluator',
    'UserFunction',
    'ReturnSignal',
    'Frame',
]
