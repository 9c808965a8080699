"""
SketchScript Parser

Recursive-descent parser turning the token stream into an AST.

Blocks come in two interchangeable forms and may be mixed in one sketch:

    function loop() {                 function loop()
      if (x > 400) {                    if x > 400 then
        x = 0                             x = 0
      } else if (x < 0) {               elseif x < 0 then
        x = 400                           x = 400
      }                                 end
    }                                 end

Expression precedence, low to high:
    or ||   and &&   == != ~=   < <= > >=   + -   * / %   - ! not   call . []
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field

from .config import FRAME_FUNCTION_NAMES
from .errors import SketchError, E_PARSE_ERROR
from .lexer import Token, TokenType, tokenize
from .nodes import (
    ASTNode, Literal, Variable, Unary, Binary, Logical, Call, Member, Index,
    ArrayLiteral, ObjectLiteral, Block, ExprStmt, Assign, FunctionDecl, If,
    While, For, CFor, Return,
)


ASSIGN_OPERATORS = ('=', '+=', '-=', '*=', '/=')
BUTTON_SUGAR_ARG = 'clicked'


# ============================================================================
# Program
# ============================================================================

@dataclass
class Program:
    """Parsed sketch: top-level statements plus hoisted function declarations"""
    statements: List[ASTNode]
    functions: Dict[str, FunctionDecl] = field(default_factory=dict)

    @property
    def setup(self) -> Optional[FunctionDecl]:
        return self.functions.get('setup')

    @property
    def loop(self) -> Optional[FunctionDecl]:
        """Frame function: loop, or draw when there is no loop"""
        return self.find_function(*FRAME_FUNCTION_NAMES)

    def find_function(self, *names: str) -> Optional[FunctionDecl]:
        """Return the first declared function among names"""
        for name in names:
            if name in self.functions:
                return self.functions[name]
        return None


# ============================================================================
# Parser
# ============================================================================

class SketchParser:
    """Parse SketchScript tokens into a Program"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.function_depth = 0

    def parse(self) -> Program:
        """Parse all top-level statements"""
        statements = []
        while not self._is_at_end():
            if self._match_punct(';'):
                continue
            statements.append(self._parse_statement())

        functions = {}
        for stmt in statements:
            if isinstance(stmt, FunctionDecl):
                functions[stmt.name] = stmt
        return Program(statements=statements, functions=functions)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _parse_statement(self) -> ASTNode:
        """Parse a single statement"""
        token = self._peek()

        if self._check_keyword('function'):
            stmt = self._parse_function()
        elif self._check_keyword('if'):
            stmt = self._parse_if(self._advance())
        elif self._check_keyword('while'):
            stmt = self._parse_while()
        elif self._check_keyword('for'):
            stmt = self._parse_for()
        elif self._check_keyword('return'):
            stmt = self._parse_return()
        elif self._check_keyword('var', 'let'):
            stmt = self._parse_declaration()
        elif self._check(TokenType.KEYWORD) and token.value in ('end', 'else', 'elseif', 'then', 'do'):
            raise self._error(f"Unexpected '{token.value}'", token)
        else:
            stmt = self._parse_expression_statement()

        # Consume optional semicolon
        self._match_punct(';')
        return stmt

    def _parse_function(self) -> FunctionDecl:
        """Parse 'function name(params) BLOCK'"""
        start = self._advance()
        name = self._expect_identifier("function name after 'function'").value
        self._expect_punct('(', f"'(' after function name '{name}'")

        params = []
        if not self._check_punct(')'):
            params.append(self._expect_identifier("parameter name").value)
            while self._match_punct(','):
                params.append(self._expect_identifier("parameter name").value)
        self._expect_punct(')', "')' after parameters")

        self.function_depth += 1
        try:
            body = self._parse_body(start, intro=None)
        finally:
            self.function_depth -= 1

        return FunctionDecl(name=name, params=params, body=body, line=start.line, column=start.column)

    def _parse_if(self, start: Token) -> If:
        """Parse the remainder of an if/elseif statement"""
        condition = self._parse_expression()

        if self._check_punct('{'):
            then_body = self._parse_braced_block()
            else_body = None
            if self._check_keyword('elseif'):
                nested = self._parse_if(self._advance())
                else_body = Block([nested], line=nested.line, column=nested.column)
            elif self._check_keyword('else') and self._braced_else_follows():
                self._advance()
                if self._check_keyword('if'):
                    nested = self._parse_if(self._advance())
                    else_body = Block([nested], line=nested.line, column=nested.column)
                else:
                    else_body = self._parse_braced_block()
            return If(condition=condition, then_body=then_body, else_body=else_body,
                      line=start.line, column=start.column)

        self._match_keyword('then')
        then_body = self._parse_statements_until(start, 'else', 'elseif', 'end')
        else_body = None
        if self._check_keyword('elseif'):
            # The nested if consumes the shared 'end'
            nested = self._parse_if(self._advance())
            else_body = Block([nested], line=nested.line, column=nested.column)
        elif self._match_keyword('else'):
            else_body = self._parse_statements_until(start, 'end')
            self._advance()
        else:
            self._advance()  # 'end'
        return If(condition=condition, then_body=then_body, else_body=else_body,
                  line=start.line, column=start.column)

    def _parse_while(self) -> While:
        start = self._advance()
        condition = self._parse_expression()
        body = self._parse_body(start, intro='do')
        return While(condition=condition, body=body, line=start.line, column=start.column)

    def _parse_for(self) -> ASTNode:
        """Parse a counted loop or a C-style loop"""
        start = self._advance()

        if self._match_punct('('):
            init = None
            if not self._check_punct(';'):
                if self._check_keyword('var', 'let'):
                    init = self._parse_declaration()
                else:
                    init = self._parse_expression_statement()
            self._expect_punct(';', "';' after for-loop initializer")
            condition = None if self._check_punct(';') else self._parse_expression()
            self._expect_punct(';', "';' after for-loop condition")
            update = None if self._check_punct(')') else self._parse_expression_statement()
            self._expect_punct(')', "')' after for-loop clauses")
            body = self._parse_body(start, intro='do')
            return CFor(init=init, condition=condition, update=update, body=body,
                        line=start.line, column=start.column)

        var = self._expect_identifier("loop variable after 'for'").value
        self._expect_op('=', f"'=' after loop variable '{var}'")
        first = self._parse_expression()
        self._expect_punct(',', "',' between loop start and stop")
        stop = self._parse_expression()
        step = self._parse_expression() if self._match_punct(',') else None
        body = self._parse_body(start, intro='do')
        return For(var=var, start=first, stop=stop, step=step, body=body,
                   line=start.line, column=start.column)

    def _parse_return(self) -> Return:
        start = self._advance()
        if self.function_depth == 0:
            raise self._error("'return' outside of a function", start)

        nxt = self._peek()
        ends_statement = (
            nxt.type == TokenType.EOF
            or nxt.line != start.line
            or (nxt.type == TokenType.PUNCT and nxt.value in ('}', ';'))
            or (nxt.type == TokenType.KEYWORD and nxt.value in ('end', 'else', 'elseif'))
        )
        value = None if ends_statement else self._parse_expression()
        return Return(value=value, line=start.line, column=start.column)

    def _parse_declaration(self) -> Assign:
        """Parse 'var name [= expr]' (no block scoping: writes the flat namespace)"""
        start = self._advance()
        name_token = self._expect_identifier(f"variable name after '{start.value}'")
        value = self._parse_expression() if self._match_op('=') else None
        target = Variable(name=name_token.value, line=name_token.line, column=name_token.column)
        return Assign(target=target, value=value, declare=True, line=start.line, column=start.column)

    def _parse_expression_statement(self) -> ASTNode:
        start = self._peek()
        expr = self._parse_expression()

        if self._check(TokenType.OPERATOR) and self._peek().value in ASSIGN_OPERATORS:
            op_token = self._advance()
            if not isinstance(expr, (Variable, Member, Index)):
                raise self._error("Invalid assignment target", op_token)
            value = self._parse_expression()
            return Assign(target=expr, value=value, op=op_token.value,
                          line=start.line, column=start.column)

        return ExprStmt(expr=expr, line=start.line, column=start.column)

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _parse_body(self, start: Token, intro: Optional[str]) -> Block:
        """Parse '{ ... }' or '[intro] ... end'"""
        if self._check_punct('{'):
            return self._parse_braced_block()
        if intro:
            self._match_keyword(intro)
        block = self._parse_statements_until(start, 'end')
        self._advance()  # 'end'
        return block

    def _parse_braced_block(self) -> Block:
        open_brace = self._expect_punct('{', "'{'")
        statements = []
        while not self._check_punct('}'):
            if self._is_at_end():
                raise self._error(
                    f"Expected '}}' to close block opened at line {open_brace.line}",
                    self._peek(),
                )
            if self._match_punct(';'):
                continue
            statements.append(self._parse_statement())
        self._advance()
        return Block(statements, line=open_brace.line, column=open_brace.column)

    def _parse_statements_until(self, start: Token, *terminators: str) -> Block:
        """Parse statements up to (not including) one of the terminator keywords"""
        statements = []
        while not self._check_keyword(*terminators):
            if self._is_at_end():
                raise self._error(
                    f"Expected 'end' to close '{start.value}' started at line {start.line}",
                    self._peek(),
                )
            if self._match_punct(';'):
                continue
            statements.append(self._parse_statement())
        return Block(statements, line=start.line, column=start.column)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _parse_expression(self) -> ASTNode:
        return self._parse_or()

    def _parse_or(self) -> ASTNode:
        """Parse logical OR"""
        left = self._parse_and()
        while self._match_op('||') or self._match_keyword('or'):
            token = self._previous()
            right = self._parse_and()
            left = Logical(op='or', left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_and(self) -> ASTNode:
        """Parse logical AND"""
        left = self._parse_equality()
        while self._match_op('&&') or self._match_keyword('and'):
            token = self._previous()
            right = self._parse_equality()
            left = Logical(op='and', left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_equality(self) -> ASTNode:
        """Parse equality operators"""
        left = self._parse_comparison()
        while self._match_op('==', '!=', '~='):
            token = self._previous()
            op = '!=' if token.value == '~=' else token.value
            right = self._parse_comparison()
            left = Binary(op=op, left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_comparison(self) -> ASTNode:
        """Parse comparison operators"""
        left = self._parse_additive()
        while self._match_op('<', '<=', '>', '>='):
            token = self._previous()
            right = self._parse_additive()
            left = Binary(op=token.value, left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_additive(self) -> ASTNode:
        """Parse addition and subtraction"""
        left = self._parse_multiplicative()
        while self._match_op('+', '-'):
            token = self._previous()
            right = self._parse_multiplicative()
            left = Binary(op=token.value, left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_multiplicative(self) -> ASTNode:
        """Parse multiplication, division, modulo"""
        left = self._parse_unary()
        while self._match_op('*', '/', '%'):
            token = self._previous()
            right = self._parse_unary()
            left = Binary(op=token.value, left=left, right=right, line=token.line, column=token.column)
        return left

    def _parse_unary(self) -> ASTNode:
        """Parse unary operators"""
        if self._match_op('-', '!') or self._match_keyword('not'):
            token = self._previous()
            op = '-' if token.value == '-' else 'not'
            operand = self._parse_unary()
            return Unary(op=op, operand=operand, line=token.line, column=token.column)
        return self._parse_postfix()

    def _parse_postfix(self) -> ASTNode:
        """Parse calls, member access and subscripts"""
        expr = self._parse_primary()

        while True:
            if self._match_punct('('):
                token = self._previous()
                args = []
                if not self._check_punct(')'):
                    args.append(self._parse_expression())
                    while self._match_punct(','):
                        args.append(self._parse_expression())
                self._expect_punct(')', "')' after function arguments")
                expr = self._make_call(expr, args, token)
            elif self._match_punct('.'):
                token = self._previous()
                name = self._peek()
                if name.type not in (TokenType.IDENTIFIER, TokenType.KEYWORD):
                    raise self._error("Expected property name after '.'", name)
                self._advance()
                expr = Member(target=expr, name=name.value, line=token.line, column=token.column)
            elif self._match_punct('['):
                token = self._previous()
                index = self._parse_expression()
                self._expect_punct(']', "']' after index")
                expr = Index(target=expr, index=index, line=token.line, column=token.column)
            else:
                break

        return expr

    def _make_call(self, callee: ASTNode, args: List[ASTNode], token: Token) -> Call:
        # start(clicked) is shorthand for buttonClicked("start")
        if (isinstance(callee, Variable) and len(args) == 1
                and isinstance(args[0], Variable) and args[0].name == BUTTON_SUGAR_ARG):
            button_id = Literal(value=callee.name, line=callee.line, column=callee.column)
            callee = Variable(name='buttonClicked', line=callee.line, column=callee.column)
            args = [button_id]
        return Call(callee=callee, args=args, line=callee.line or token.line,
                    column=callee.column or token.column)

    def _parse_primary(self) -> ASTNode:
        """Parse primary expression"""
        token = self._peek()

        if self._match(TokenType.NUMBER, TokenType.STRING):
            return Literal(value=token.value, line=token.line, column=token.column)

        if self._match_keyword('true', 'false'):
            return Literal(value=token.value == 'true', line=token.line, column=token.column)

        if self._match_keyword('nil', 'null'):
            return Literal(value=None, line=token.line, column=token.column)

        if self._match(TokenType.IDENTIFIER):
            return Variable(name=token.value, line=token.line, column=token.column)

        if self._match_punct('('):
            expr = self._parse_expression()
            self._expect_punct(')', "')' after expression")
            return expr

        if self._match_punct('['):
            elements = []
            if not self._check_punct(']'):
                elements.append(self._parse_expression())
                while self._match_punct(','):
                    if self._check_punct(']'):
                        break  # Allow trailing comma
                    elements.append(self._parse_expression())
            self._expect_punct(']', "']' after list elements")
            return ArrayLiteral(elements=elements, line=token.line, column=token.column)

        if self._match_punct('{'):
            return self._parse_object_literal(token)

        raise self._error(f"Unexpected token {self._describe(token)}", token)

    def _parse_object_literal(self, start: Token) -> ObjectLiteral:
        fields = {}
        while not self._check_punct('}'):
            key_token = self._peek()
            if key_token.type in (TokenType.IDENTIFIER, TokenType.KEYWORD, TokenType.STRING):
                self._advance()
                key = key_token.value
            else:
                raise self._error("Expected field name in object literal", key_token)

            self._expect_punct(':', f"':' after field name '{key}'")
            fields[key] = self._parse_expression()

            if not self._match_punct(','):
                break
        self._expect_punct('}', "'}' after object fields")
        return ObjectLiteral(fields=fields, line=start.line, column=start.column)

    # ------------------------------------------------------------------
    # Parser utilities
    # ------------------------------------------------------------------

    def _match(self, *types: str) -> bool:
        """Consume the current token if it has one of the given types"""
        if self._peek().type in types and not self._is_at_end():
            self._advance()
            return True
        return False

    def _match_value(self, type: str, values: Tuple[str, ...]) -> bool:
        if self._check_value(type, values):
            self._advance()
            return True
        return False

    def _match_op(self, *ops: str) -> bool:
        return self._match_value(TokenType.OPERATOR, ops)

    def _match_punct(self, *chars: str) -> bool:
        return self._match_value(TokenType.PUNCT, chars)

    def _match_keyword(self, *words: str) -> bool:
        return self._match_value(TokenType.KEYWORD, words)

    def _check(self, type: str) -> bool:
        """Check if current token is of given type"""
        return self._peek().type == type

    def _check_value(self, type: str, values: Tuple[str, ...]) -> bool:
        token = self._peek()
        return token.type == type and token.value in values

    def _check_punct(self, *chars: str) -> bool:
        return self._check_value(TokenType.PUNCT, chars)

    def _check_keyword(self, *words: str) -> bool:
        return self._check_value(TokenType.KEYWORD, words)

    def _expect_punct(self, char: str, what: str) -> Token:
        if not self._check_punct(char):
            raise self._error(f"Expected {what} but found {self._describe(self._peek())}", self._peek())
        return self._advance()

    def _expect_op(self, op: str, what: str) -> Token:
        if not self._check_value(TokenType.OPERATOR, (op,)):
            raise self._error(f"Expected {what} but found {self._describe(self._peek())}", self._peek())
        return self._advance()

    def _expect_identifier(self, what: str) -> Token:
        if not self._check(TokenType.IDENTIFIER):
            raise self._error(f"Expected {what} but found {self._describe(self._peek())}", self._peek())
        return self._advance()

    def _advance(self) -> Token:
        """Consume current token and return it"""
        if not self._is_at_end():
            self.pos += 1
        return self._previous()

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _peek_next(self) -> Token:
        return self.tokens[min(self.pos + 1, len(self.tokens) - 1)]

    def _braced_else_follows(self) -> bool:
        """An 'else' after '}' belongs to the brace if only when '{' or 'if' follows it"""
        token = self._peek_next()
        if token.type == TokenType.PUNCT:
            return token.value == '{'
        return token.type == TokenType.KEYWORD and token.value == 'if'

    def _previous(self) -> Token:
        return self.tokens[self.pos - 1]

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of input"
        return f"'{token.value}'"

    @staticmethod
    def _error(message: str, token: Token) -> SketchError:
        return SketchError(E_PARSE_ERROR, f"{message} (line {token.line})",
                           line=token.line, column=token.column)


def parse(source: str) -> Program:
    """Tokenize and parse sketch source"""
    return SketchParser(tokenize(source)).parse()


__all__ = [
    'Program',
    'SketchParser',
    'parse',
]
