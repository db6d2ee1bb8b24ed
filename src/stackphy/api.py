## stackphy — Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘
#
# Module-level access to a default runtime, e.g. `stackphy.api.run(source)` or `stackphy.api.export(env)`.
#

from .types import Statement, Stack, nil
from .errors import *
from .runtime import Runtime

_RUNTIME = Runtime()


def export_source(source: str, filename: str | None = None, metadata: dict | None = None) -> str:
    """Evaluate a whole script and return its CodePhy document as JSON text."""
    env = _RUNTIME.run(source, filename=filename)
    return _RUNTIME.to_json(_RUNTIME.export(env, metadata=metadata))


def __getattr__(name):
    return getattr(_RUNTIME, name)
