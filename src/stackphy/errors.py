## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import lark


class StackPhyError(Exception):
    def __init__(self, message: str = "", *, sp_op=None, sp_token=None, sp_meta=None):
        """Base class for all StackPhy-raised errors."""
        super().__init__(message)
        self.sp_op: object = sp_op
        self.sp_token: str = sp_token
        self.sp_meta: dict = sp_meta

class StackPhyParseError(StackPhyError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message)
        self.filename = filename
        self.line = line
        self.column = column
        self.token = token

class StackPhyIncompleteParse(StackPhyParseError, lark.exceptions.ParseError):
    def __init__(self, message, *, filename=None, line=None, column=None, token=None):
        super().__init__(message, filename=filename, line=line, column=column, token=token)


class EvaluationError(StackPhyError):
    """Anything that aborts a run of the evaluator; carries the stack at the point of failure."""
    def __init__(self, message: str = "", *, sp_op=None, sp_token=None, sp_meta=None, sp_stack=None):
        super().__init__(message, sp_op=sp_op, sp_token=sp_token, sp_meta=sp_meta)
        self.sp_stack = sp_stack

class StackUnderflowError(EvaluationError, IndexError):
    def __init__(self, message: str = "", *, depth: int = 0, needed: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.depth = depth
        self.needed = needed

class IndexOutOfRangeError(EvaluationError, IndexError):
    pass

class UnknownOperationError(EvaluationError, NameError):
    pass

class UndefinedNameError(EvaluationError, NameError):
    pass

class TypeMismatchError(EvaluationError, TypeError):
    """Operand shape or type does not match what the operator's schema declares."""
    pass

class DomainError(TypeMismatchError, ArithmeticError):
    pass

class DuplicateBindingError(EvaluationError, ValueError):
    pass

class RecursiveProcedureError(EvaluationError, RecursionError):
    pass


class ExportError(StackPhyError):
    pass

class CyclicDependencyError(ExportError, ValueError):
    def __init__(self, message: str = "", *, cycle: list[str] = (), **kwargs):
        super().__init__(message, **kwargs)
        self.cycle = list(cycle)

class DanglingReferenceError(ExportError, NameError):
    def __init__(self, message: str = "", *, binding: str = None, target: str = None, **kwargs):
        super().__init__(message, **kwargs)
        self.binding = binding
        self.target = target
