"""Script evaluation for the SCRIPT dispatcher."""

from __future__ import annotations

import textwrap
from typing import Any, Protocol

_ENTRYPOINT = "__dispatch__"


class ScriptEvaluationError(Exception):
    """Raised when a dispatch script fails or returns a non-string value."""


class ScriptEvaluator(Protocol):
    def evaluate(self, script: str, bindings: dict[str, Any]) -> str | None: ...


class PythonScriptEvaluator:
    """Runs dispatcher rules as the body of a Python function.

    Bindings become globals of a namespace created for each call, so
    nothing leaks between requests. The script may ``return`` its result
    or assign it to ``result``. Scripts are trusted input.
    """

    def evaluate(self, script: str, bindings: dict[str, Any]) -> str | None:
        if not script or not script.strip():
            raise ScriptEvaluationError("script is empty")

        source = (
            f"def {_ENTRYPOINT}():\n"
            f"{textwrap.indent(textwrap.dedent(script), '    ')}\n"
            "    return locals().get('result')\n"
        )
        namespace: dict[str, Any] = {"__builtins__": __builtins__}
        namespace.update(bindings)
        try:
            code = compile(source, "<dispatch-script>", "exec")
            exec(code, namespace)  # noqa: S102
            value = namespace[_ENTRYPOINT]()
        except Exception as exc:
            raise ScriptEvaluationError(f"{exc.__class__.__name__}: {exc}") from exc

        if value is None or isinstance(value, str):
            return value
        raise ScriptEvaluationError(f"script returned {type(value).__name__}, expected str")
