## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import re

from .types import stack_list, Stack, nil, Statement, Category


def stack_to_list(stk: Stack) -> stack_list:
    """Items of the stack, top first."""
    result = []
    while stk is not nil:
        stk, head = stk
        result.append(head)
    return stack_list(result)

def list_to_stack(values: list, base=None) -> Stack:
    """Inverse of `stack_to_list`, so the first value ends up on top."""
    stack = nil if base is None else base
    for value in reversed(values):
        stack = Stack(stack, value)
    return stack


def write_without_ansi(write_fn):
    """Wrapper function that strips ANSI codes before calling the original writer."""
    ansi_re = re.compile(r'\033\[[0-9;]*m')
    return lambda text: write_fn(ansi_re.sub('', text))


def _format_item(it, abbreviate: bool = False) -> str:
    match it:
        case stack_list():
            return '<' + ' '.join(_format_item(i, abbreviate) for i in reversed(it)) + '>'
        case list() if abbreviate:
            return f'≪vector:{len(it)}≫'
        case list():
            return '[' + ' '.join(_format_item(i) for i in it) + ']'
        case str() if abbreviate and len(it) > 12:
            return f'≪text:{len(it)}≫'
        case str():
            return '"' + it.replace('"', '\\"') + '"'
        case Statement(kind=Statement.LITERAL, value=value):
            return _format_item(value, abbreviate)
        case Statement(kind=Statement.DEFINITION, value=proc):
            return f': {proc.name} … ;'
    return repr(it)

def format_item(it) -> str:
    return _format_item(it, abbreviate=False)

def format_stack(stack, width=72, abbreviate: bool = False) -> str:
    """Stack from bottom to top on one line; long renderings fall back to abbreviated vectors and text."""
    if stack is nil:
        return "∅"
    items = list(reversed(stack_to_list(stack)))
    stack_str = " ".join(_format_item(s) for s in items)
    if abbreviate and len(stack_str) > max(width or 0, 144):
        stack_str = " ".join(_format_item(s, abbreviate=True) for s in items)
    return stack_str

def show_stack(stack, width=72, end="\n", file=None, abbreviate: bool = False):
    text = format_stack(stack, width=width, abbreviate=abbreviate)
    if width is None:
        print(text, end=end, file=file)
        return
    if len(text) > width: text = '… ' + text[-width+2:]
    print(f"{text:>{width}}", end=end, file=file)

def show_program_and_stack(program, stack, width=72):
    """Trace line: the stack right-aligned, then the statements still to run."""
    remaining = ' '.join(format_item(p) for p in program) if program else '∅'
    if len(remaining) > width: remaining = remaining[:width-2] + ' …'
    show_stack(stack, width=width, end='')
    print(f" \033[36m <=> \033[0m {remaining:<{width}}")


_CATEGORY_COLORS = {
    Category.RANDOM_VARIABLE: '\033[33m~\033[0m',
    Category.DETERMINISTIC: '\033[36m=\033[0m',
    Category.CONSTRAINT: '\033[35m!\033[0m',
}

def format_environment(env, width=96) -> str:
    """One line per binding, in the order the model declared them."""
    lines = []
    for name, binding in env:
        text = format_item(binding.value)
        if len(text) > width: text = text[:width-2] + ' …'
        if (data := env.observation(name)) is not None:
            text += f"  \033[90mobserved {len(data.sequences)} taxa\033[0m"
        lines.append(f"  {_CATEGORY_COLORS[binding.category]} \033[97m{name}\033[0m  {text}")
    return '\n'.join(lines) if lines else '  ∅'
