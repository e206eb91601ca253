"""Utility-CSS compiler capability backed by the Tailwind CSS CLI.

The pipeline only ever asks for CSS covering an explicit class set, never the
whole framework. :class:`TailwindCompiler` feeds that set to the standalone
``tailwindcss`` executable through an ``@source inline(...)`` directive with
automatic source detection disabled, so the output contains exactly the
requested utilities plus the framework preflight.
"""

from __future__ import annotations

import collections.abc as cabc
import logging
import shutil
import subprocess
import tempfile
import typing as typ
from pathlib import Path

from pagemint.errors import StyleResolutionError

logger = logging.getLogger(__name__)

DEFAULT_TAILWIND_EXECUTABLE = "tailwindcss"


class UtilityCompiler(typ.Protocol):
    """Turn a set of utility class names into CSS text."""

    def compile(self, classes: cabc.Set[str], theme_css: str | None = None) -> str:
        """Return CSS rules covering exactly ``classes``."""
        ...


def build_input_stylesheet(classes: cabc.Iterable[str], theme_css: str | None = None) -> str:
    """Return the Tailwind entry stylesheet for an explicit class set.

    Examples
    --------
    >>> print(build_input_stylesheet(["p-4", "flex"]))
    @import "tailwindcss" source(none);
    @source inline("flex p-4");
    <BLANKLINE>
    """
    joined = " ".join(sorted(classes))
    escaped = joined.replace("\\", "\\\\").replace('"', '\\"')
    lines = ['@import "tailwindcss" source(none);', f'@source inline("{escaped}");']
    if theme_css:
        lines.append(theme_css.strip())
    return "\n".join(lines) + "\n"


class TailwindCompiler:
    """Compile utility classes with the Tailwind CSS command-line tool."""

    def __init__(
        self,
        executable: str = DEFAULT_TAILWIND_EXECUTABLE,
        *,
        minify: bool = False,
        timeout: float = 60.0,
    ) -> None:
        """Configure the compiler.

        Parameters
        ----------
        executable : str, optional
            Name or path of the ``tailwindcss`` binary. Bare names are looked
            up on ``PATH`` at compile time.
        minify : bool, optional
            Pass ``--minify`` to the CLI.
        timeout : float, optional
            Seconds to wait for the CLI before giving up.
        """
        self.executable = executable
        self.minify = minify
        self.timeout = timeout

    def compile(self, classes: cabc.Set[str], theme_css: str | None = None) -> str:
        """Run the CLI for ``classes`` and return the generated CSS.

        Raises
        ------
        StyleResolutionError
            If the executable is missing or exits unsuccessfully.
        """
        if not classes:
            return ""
        binary = self._resolve_executable()
        with tempfile.TemporaryDirectory(prefix="pagemint-tw-") as workdir:
            input_path = Path(workdir) / "input.css"
            output_path = Path(workdir) / "output.css"
            input_path.write_text(build_input_stylesheet(classes, theme_css), encoding="utf-8")
            command = [binary, "--input", str(input_path), "--output", str(output_path)]
            if self.minify:
                command.append("--minify")
            try:
                subprocess.run(  # noqa: S603 - command built from configured binary
                    command,
                    cwd=workdir,
                    check=True,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.CalledProcessError as exc:
                msg = f"tailwindcss exited with status {exc.returncode}: {exc.stderr.strip()}"
                raise StyleResolutionError(msg) from exc
            except subprocess.TimeoutExpired as exc:
                msg = f"tailwindcss did not finish within {self.timeout:g}s"
                raise StyleResolutionError(msg) from exc
            css = output_path.read_text(encoding="utf-8")
        logger.debug("Compiled %d bytes of CSS for %d classes", len(css), len(classes))
        return css

    def _resolve_executable(self) -> str:
        resolved = shutil.which(self.executable)
        if not resolved:
            msg = f"Unable to locate '{self.executable}' on PATH"
            raise StyleResolutionError(msg, path=self.executable)
        return resolved


__all__ = [
    "DEFAULT_TAILWIND_EXECUTABLE",
    "TailwindCompiler",
    "UtilityCompiler",
    "build_input_stylesheet",
]
