## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# stackphy — A stack language for Bayesian phylogenetic models, exported as CodePhy documents.
#

import os
import sys
import time
import traceback
from pathlib import Path
from datetime import datetime, timezone
from dataclasses import dataclass
from importlib import metadata as importlib_metadata

import click

from .types import nil
from .errors import StackPhyError, StackPhyParseError, StackPhyIncompleteParse, UnknownOperationError, \
                    UndefinedNameError, StackUnderflowError, IndexOutOfRangeError, TypeMismatchError, \
                    DuplicateBindingError, RecursiveProcedureError, ExportError
from .parser import format_parse_error_context, format_source_context
from .formatting import write_without_ansi, format_item, format_environment, format_stack, show_stack, list_to_stack
from .runtime import Runtime


DEFAULT_TITLE = "Model exported from StackPhy"
DEFAULT_DESCRIPTION = "This model was automatically exported from a StackPhy script."


def software_version() -> str:
    try:
        return importlib_metadata.version('stackphy')
    except importlib_metadata.PackageNotFoundError:
        return "0+unknown"

def stamp_metadata(title: str, description: str, now: datetime | None = None) -> dict:
    timestamp = (now or datetime.now(timezone.utc)).isoformat(timespec='seconds')
    return {
        "title": title,
        "description": description,
        "created": timestamp,
        "modified": timestamp,
        "software": {"name": "stackphy", "version": software_version()},
    }


def resolve_source_path(name: str) -> Path:
    """Inputs are taken as given, then looked up along `STACKPHY_PATH` when not found."""
    path = Path(name)
    if path.exists() or path.is_absolute():
        return path
    for root in [p for p in os.environ.get("STACKPHY_PATH", "").split(os.pathsep) if p]:
        if (candidate := Path(os.path.expanduser(os.path.expandvars(root))) / name).exists():
            return candidate
    raise click.BadParameter(f"File `{name}` not found.")


@dataclass(frozen=True)
class RuntimeConfig:
    verbose: int
    isolated: bool
    stats: bool
    plain: bool


@dataclass
class ExecutionItem:
    source: str
    filename: str

    @classmethod
    def from_argument(cls, name: str) -> "ExecutionItem":
        if name == '-':
            return cls(sys.stdin.read(), '<STDIN>')
        path = resolve_source_path(name)
        return cls(path.read_text(encoding='utf-8'), str(path))


class StackPhyRunner:
    def __init__(self, config: RuntimeConfig):
        self.verbose = config.verbose
        self.stats_enabled = config.stats
        self.plain = config.plain

        if self.plain:
            writer = write_without_ansi(sys.stdout.write)
            sys.stdout.write, sys.stderr.write = writer, writer

        self.runtime = Runtime(isolated=config.isolated)
        self.total_stats = {'steps': 0, 'start': time.time()} if self.stats_enabled else None
        self.failure = False
        self.executed_items = 0

    def _fatal_error(self, message: str, detail: str, exc_type: str = None, context: str = '', is_repl: bool = False) -> None:
        header = detail if not exc_type else f"{detail} (Exception: \033[33m{exc_type}\033[0m)"
        print(f'\033[30;43m {message} \033[0m {header}\n{context}', file=sys.stderr)
        if os.environ.get('STACKPHY_DEBUG'): traceback.print_exc()
        self.failure = True
        if not is_repl: sys.exit(1)

    def _stack_context(self, exc) -> str:
        if (stack := getattr(exc, "sp_stack", None)) is None: return ""
        return f"\033[1;33m  Stack content is\033[0;33m\n    {format_stack(stack, width=None, abbreviate=True)}\033[0m\n"

    def _handle_exception(self, exc, filename: str, source: str, is_repl: bool = False) -> bool:
        """Report an error with a banner; returns True when the REPL should wait for more input instead."""
        token = getattr(exc, 'sp_token', None)
        where = format_source_context(getattr(exc, 'sp_meta', None), token or '?', source=source)

        if isinstance(exc, StackPhyParseError):
            if is_repl and isinstance(exc, StackPhyIncompleteParse): return True
            context = format_parse_error_context(filename, exc.line, exc.column, exc.token, source=source)
            context += f"\n\033[90m{str(exc).replace(chr(10), ' ').replace(chr(9), ' ')}\033[0m\n"
            self._fatal_error("SYNTAX ERROR.", f"Parsing `\033[97m{filename}\033[0m` caused a problem!", type(exc).__name__, context, is_repl)
        elif isinstance(exc, (UnknownOperationError, UndefinedNameError)):
            self._fatal_error("NAME ERROR.", f"{exc}", type(exc).__name__, '\n' + where, is_repl)
        elif isinstance(exc, (StackUnderflowError, IndexOutOfRangeError)):
            self._fatal_error("STACK ERROR.", f"{exc}", type(exc).__name__, where + self._stack_context(exc), is_repl)
        elif isinstance(exc, TypeMismatchError):
            self._fatal_error("TYPE ERROR.", f"{exc}", type(exc).__name__, where + self._stack_context(exc), is_repl)
        elif isinstance(exc, (DuplicateBindingError, RecursiveProcedureError)):
            self._fatal_error("BINDING ERROR.", f"{exc}", type(exc).__name__, '\n' + where, is_repl)
        elif isinstance(exc, ExportError):
            self._fatal_error("EXPORT ERROR.", f"Exporting `\033[97m{filename}\033[0m` failed: {exc}", type(exc).__name__, '', is_repl)
        else:
            print(f'\033[30;43m RUNTIME ERROR. \033[0m Statement \033[1;97m`{getattr(exc, "sp_op", None)}`\033[0m caused an error! (Exception: \033[33m{type(exc).__name__}\033[0m)', file=sys.stderr)
            traceback.print_exc()
            self.failure = True
            if not is_repl: sys.exit(1)
        return False

    def _warn_leftover(self, leftover: list, filename: str) -> None:
        if not leftover: return
        print(f'\033[30;43m STACK NOT EMPTY. \033[0m {len(leftover)} value(s) left unused at the end of `\033[97m{filename}\033[0m`:\n    ',
              end='', file=sys.stderr)
        show_stack(list_to_stack(list(reversed(leftover))), width=None, file=sys.stderr, abbreviate=True)

    def evaluate_item(self, item: ExecutionItem):
        stats = {}
        try:
            env = self.runtime.run(item.source, filename=item.filename, verbosity=self.verbose, stats=stats)
        except (StackPhyError, Exception) as exc:
            self._handle_exception(exc, item.filename, item.source, is_repl=False)
            return None
        if self.total_stats is not None:
            self.total_stats['steps'] += stats['steps']
        self._warn_leftover(stats['leftover'], item.filename)
        self.executed_items += 1
        return env

    def export_item(self, item: ExecutionItem, output: str | None, metadata: dict) -> None:
        if (env := self.evaluate_item(item)) is None: return
        try:
            # Serialize fully before touching the output, so failures never leave partial files behind.
            text = self.runtime.to_json(self.runtime.export(env, metadata=metadata)) + '\n'
        except (StackPhyError, Exception) as exc:
            self._handle_exception(exc, item.filename, item.source, is_repl=False)
            return
        if output is None or output == '-':
            sys.stdout.write(text)
        else:
            Path(output).write_text(text, encoding='utf-8')
            print(f"\033[90mExported {len(env)} binding(s) from `{item.filename}` to `{output}`.\033[0m", file=sys.stderr)

    def run_items(self, items: list[ExecutionItem]) -> None:
        for item in items:
            if (env := self.evaluate_item(item)) is not None:
                print(format_environment(env))

    def repl(self) -> None:
        if sys.platform != "win32": import readline

        print('stackphy - Phylogenetic model stack language REPL; type Ctrl+C to exit.')
        context = self.runtime.context(verbosity=self.verbose)
        source = ""

        while True:
            try:
                prompt = "\033[36m<<< \033[0m" if not source.strip() else "\033[36m... \033[0m"
                line = input(prompt)
                if len(line.strip()) == 0: continue
                if line.strip() in ('quit', 'exit'): break
                if not source and (command := line.strip()) in (':env', ':export', ':stack'):
                    self._repl_command(command, context)
                    continue
                source += line + "\n"

                try:
                    self.runtime.run(source, filename='<REPL>', context=context)
                    if context.stack is not nil: print("\033[90m>>>\033[0m", format_item(context.stack.head))
                    source = ""
                except (StackPhyError, Exception) as exc:
                    if not self._handle_exception(exc, '<REPL>', source, is_repl=True):
                        source = ""

            except (KeyboardInterrupt, EOFError):
                print(""); break

    def _repl_command(self, command: str, context) -> None:
        match command:
            case ':env':
                print(format_environment(context.environment))
            case ':stack':
                show_stack(context.stack, width=None)
            case ':export':
                try:
                    print(self.runtime.to_json(self.runtime.export(context.environment)))
                except ExportError as exc:
                    self._handle_exception(exc, '<REPL>', '', is_repl=True)

    def finalize(self) -> int:
        if self.total_stats and self.executed_items > 0:
            elapsed_time = time.time() - self.total_stats['start']
            print(f"\n\033[97m\033[48;5;30m STATISTICS. \033[0m", file=sys.stderr)
            print(f"step\t\033[97m{self.total_stats['steps']:,}\033[0m", file=sys.stderr)
            print(f"time\t\033[97m{elapsed_time:.3f}s\033[0m", file=sys.stderr)
        return 1 if self.failure else 0


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', default=0, count=True, help='Trace the program and stack while evaluating.')
@click.option('--isolated', is_flag=True, help='Run each procedure call on its own stack, seeded with its declared inputs.')
@click.option('--stats', is_flag=True, help='Display execution statistics (e.g., number of steps).')
@click.option('--plain', '-p', is_flag=True, help='Strip ANSI color codes and redirect stderr to stdout.')
@click.pass_context
def cli(ctx: click.Context, verbose: int, isolated: bool, stats: bool, plain: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj['config'] = RuntimeConfig(verbose=verbose, isolated=isolated, stats=stats, plain=plain)

    if ctx.invoked_subcommand is not None:
        return

    # No command: evaluate piped input, or start an interactive session.
    runner = StackPhyRunner(ctx.obj['config'])
    if sys.stdin.isatty():
        runner.repl()
    else:
        runner.run_items([ExecutionItem.from_argument('-')])
    ctx.exit(runner.finalize())


@cli.command('export')
@click.argument("script")
@click.argument('output', required=False)
@click.option('--title', default=DEFAULT_TITLE, show_default=True, help='Title stamped into the document metadata.')
@click.option('--description', default=DEFAULT_DESCRIPTION, help='Description stamped into the document metadata.')
@click.pass_context
def export_command(ctx: click.Context, script: str, output: str | None, title: str, description: str) -> None:
    """Evaluate SCRIPT and write its CodePhy JSON document to OUTPUT, or stdout."""
    if output is not None and output != '-' and not output.endswith('.json'):
        raise click.BadParameter(f"Expected `.json` output file, got `{output}`.", param_hint='OUTPUT')
    item = ExecutionItem.from_argument(script)
    runner = StackPhyRunner(ctx.obj['config'])
    runner.export_item(item, output, stamp_metadata(title, description))
    ctx.exit(runner.finalize())


@cli.command('run')
@click.argument('inputs', nargs=-1, required=True)
@click.pass_context
def run_command(ctx: click.Context, inputs: tuple[str, ...]) -> None:
    """Evaluate each of INPUTS and print the bindings it declares."""
    items = [ExecutionItem.from_argument(name) for name in inputs]
    runner = StackPhyRunner(ctx.obj['config'])
    runner.run_items(items)
    ctx.exit(runner.finalize())


@cli.command('repl')
@click.pass_context
def repl_command(ctx: click.Context) -> None:
    runner = StackPhyRunner(ctx.obj['config'])
    runner.repl()
    ctx.exit(runner.finalize())


def main(argv: list[str] | None = None) -> None:
    cli.main(args=argv, prog_name='stackphy')


if __name__ == "__main__":
    main()
