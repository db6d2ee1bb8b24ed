## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import os
import ast

import lark
from .types import Statement, ProcedureDef
from .errors import StackPhyParseError, StackPhyIncompleteParse


GRAMMAR = r"""start: (definition | _item)*
definition: COLON NAME stack_effect? _item* SEMICOLON
stack_effect: LPAREN _label* ARROW _label* RPAREN
_label: NAME | NUMBER
_item: NUMBER | STRING | NAME | LSQB | RSQB

// COMMENTS
COMMENT.11: /\/\/[^\n]*/

// TOKENS
STRING.8: /"(?:[^"\\]|\\.)*"/
NUMBER.8: /[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?(?![^\s\[\]\(\)\:\;"])/
ARROW.9: "--"
COLON: ":"
SEMICOLON: ";"
LPAREN: "("
RPAREN: ")"
LSQB: "["
RSQB: "]"
NAME: /[^\s\[\]\(\)\:\;"]+/

// WHITESPACE
%import common.WS
%ignore WS
%ignore COMMENT
"""

_PARSER = None

def _get_parser() -> lark.Lark:
    global _PARSER
    if _PARSER is None:
        _PARSER = lark.Lark(GRAMMAR, start='start', parser="lalr", lexer="contextual", propagate_positions=True)
    return _PARSER


def parse(source: str, filename=None):
    """Turn source text into the statement stream the evaluator consumes."""

    def _meta(tok: lark.Token) -> dict:
        return {'filename': filename, 'line': tok.line, 'column': tok.column, 'end_column': tok.end_column}

    def _statement(tok: lark.Token) -> Statement:
        match tok.type:
            case 'NUMBER':
                return Statement.literal(float(tok.value), _meta(tok))
            case 'STRING':
                return Statement.literal(_decode_string(tok), _meta(tok))
            case 'NAME' | 'LSQB' | 'RSQB':
                return Statement.operator(tok.value, _meta(tok))
        raise NotImplementedError(f"Unexpected token type {tok.type} from parser.")

    def _decode_string(tok: lark.Token) -> str:
        try:
            return ast.literal_eval(tok.value)
        except (SyntaxError, ValueError) as exc:
            raise StackPhyParseError(f"Invalid string literal {tok.value}: {exc}", filename=filename,
                                     line=tok.line, column=tok.column, token=tok.value) from None

    def _stack_effect(tree: lark.Tree) -> tuple[list[str], list[str]]:
        labels = [ch for ch in tree.children if isinstance(ch, lark.Token) and ch.type in ('NAME', 'NUMBER', 'ARROW')]
        split = next(i for i, tok in enumerate(labels) if tok.type == 'ARROW')
        return [t.value for t in labels[:split]], [t.value for t in labels[split+1:]]

    def _definition(tree: lark.Tree) -> Statement:
        children = list(tree.children)
        name_token = next(ch for ch in children if isinstance(ch, lark.Token) and ch.type == 'NAME')
        inputs, outputs = [], []
        if (effect := next((ch for ch in children if isinstance(ch, lark.Tree)), None)) is not None:
            inputs, outputs = _stack_effect(effect)

        start = children.index(effect) + 1 if effect is not None else children.index(name_token) + 1
        body = [_statement(tok) for tok in children[start:] if isinstance(tok, lark.Token) and tok.type != 'SEMICOLON']
        meta = _meta(name_token) | {'end_line': tree.meta.end_line}
        return Statement.definition(ProcedureDef(name_token.value, inputs, outputs, body, meta), meta)

    try:
        tree = _get_parser().parse(source)
    except (lark.exceptions.ParseError, lark.exceptions.UnexpectedCharacters) as exc:
        def attr(k): return getattr(exc, k, None)
        token_val = getattr(token, 'value', '') if (token := attr('token')) is not None else ''
        error_class = StackPhyIncompleteParse if token_val == '' and not isinstance(exc, lark.exceptions.UnexpectedCharacters) \
                      else StackPhyParseError
        raise error_class(str(exc), filename=filename, line=attr('line'), column=attr('column'), token=token_val) from None

    for node in tree.children:
        if isinstance(node, lark.Tree):
            yield _definition(node)
        else:
            yield _statement(node)


def format_parse_error_context(filename, line, column, token_value, source=None):
    lines = source.splitlines(keepends=True) if source else open(filename, 'r').readlines()
    line = max(1, min(line or len(lines), len(lines)))
    start_line, end_line = max(0, line - 3), min(len(lines), line + 2)
    result = [f"\033[97m  File \"{filename}\", line {line}\033[0m"]

    for i in range(start_line, end_line):
        line_content = lines[i].rstrip('\n')
        line_color = '\033[90m'
        if i+1 == line:
            line_color = '\033[97m'
            if column is not None and 0 < column <= len(line_content):
                width = max(1, len(token_value or ''))
                line_content = (
                    line_content[:column-1] +
                    f"\033[48;5;30m\033[1;97m{line_content[column-1:column+width-1]}\033[0m" +
                    line_content[column+width-1:]
                )
        result.append(f"{line_color}{i+1:>5} |\033[0m {line_content}")
    return '\n' + '\n'.join(result) + '\n'


def format_source_context(meta: dict | None, identifier: str, source: str | None = None) -> str:
    """Header and highlighted line for an evaluation error, given the meta of the failing statement."""
    if not meta or meta.get('line') is None: return ""
    filename = meta.get('filename') or '<INPUT>'
    header = f"\033[97m  File \"{filename}\", line {meta['line']}, in {identifier}\033[0m\n"
    if source is None and filename and os.path.isfile(filename):
        source = open(filename, 'r', encoding='utf-8').read()
    if source is None: return header
    return header + format_parse_error_context(filename, meta['line'], meta.get('column'), identifier, source=source).split('\n', 2)[-1]
