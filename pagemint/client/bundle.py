"""Bundle detected client components into self-mounting scripts.

Each distinct module source is wrapped once into a CommonJS-style factory
that registers its exports in a page-global module registry; these shared
modules are deduplicated across every entry. Each detected component then
gets its own small entry script that looks up the registered module, calls
its ``mount(container, props)`` export with the serialised props, and flags
the placeholder with a readiness attribute once mounting has finished.

Failures are per component: a module that cannot be read, or props that do
not serialise to JSON, produce a :class:`~pagemint.errors.ClientBundleError`
in :attr:`ClientBundleSet.errors` and no entry, leaving that placeholder
empty while the rest of the document renders normally.

Example
-------
>>> from pagemint.client.bundle import ClientBundler
>>> from pagemint.client.detect import detect_client_components
>>> detection = detect_client_components(tree)  # doctest: +SKIP
>>> bundles = ClientBundler().bundle(detection.components)  # doctest: +SKIP
>>> len(bundles.entries), len(bundles.shared)  # doctest: +SKIP
(2, 1)
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
from pathlib import Path

import msgspec

from pagemint._constants import (
    CLIENT_ERRORS_GLOBAL,
    MODULE_REGISTRY_GLOBAL,
    MOUNTED_ATTR,
)
from pagemint.client.detect import ClientComponentInfo
from pagemint.errors import ClientBundleError

logger = logging.getLogger(__name__)

_JSON_ENCODER = msgspec.json.Encoder()
_ESCAPED_CLOSE = "<\\/"

RUNTIME_SCRIPT = f"""
window.{MODULE_REGISTRY_GLOBAL} = window.{MODULE_REGISTRY_GLOBAL} || {{}};
window.{CLIENT_ERRORS_GLOBAL} = window.{CLIENT_ERRORS_GLOBAL} || [];
window.pagemintMount = function (id, containerId, moduleKey, exportName, props) {{
  var container = document.getElementById(containerId);
  function done(state) {{
    if (container) {{ container.setAttribute("{MOUNTED_ATTR}", state); }}
  }}
  function fail(err) {{
    window.{CLIENT_ERRORS_GLOBAL}.push({{
      id: id,
      message: String((err && err.message) || err)
    }});
    done("error");
  }}
  try {{
    if (!container) {{ throw new Error("missing container #" + containerId); }}
    var mod = window.{MODULE_REGISTRY_GLOBAL}[moduleKey];
    if (!mod) {{ throw new Error("module not registered: " + moduleKey); }}
    var target = exportName === "default" ? (mod["default"] || mod) : mod[exportName];
    var mount = typeof target === "function" ? target : target && target.mount;
    if (typeof mount !== "function") {{
      throw new Error("export '" + exportName + "' has no mount function");
    }}
    var result = mount(container, props);
    if (result && typeof result.then === "function") {{
      result.then(function () {{ done("true"); }}, fail);
    }} else {{
      done("true");
    }}
  }} catch (err) {{
    fail(err);
  }}
}};
""".strip()


@dc.dataclass(frozen=True, slots=True)
class ClientBundle:
    """Mount script for one detected client component."""

    id: str
    identity: str
    module_key: str
    container_id: str
    script: str


@dc.dataclass(slots=True)
class ClientBundleSet:
    """Everything needed to mount the client components of one document.

    Attributes
    ----------
    shared : dict[str, str]
        Module key to registration script; one entry per distinct source.
    entries : dict[str, ClientBundle]
        Component id to its mount script.
    errors : list[ClientBundleError]
        Components that could not be bundled.
    """

    shared: dict[str, str] = dc.field(default_factory=dict)
    entries: dict[str, ClientBundle] = dc.field(default_factory=dict)
    errors: list[ClientBundleError] = dc.field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def scripts(self) -> list[str]:
        """Return scripts in execution order: runtime, shared modules, entries."""
        if self.is_empty:
            return []
        return [RUNTIME_SCRIPT, *self.shared.values(), *(entry.script for entry in self.entries.values())]

    def standalone(self, component_id: str) -> str:
        """Return one self-contained script that mounts a single component."""
        entry = self.entries[component_id]
        return "\n".join([RUNTIME_SCRIPT, self.shared[entry.module_key], entry.script])


class ClientBundler:
    """Produce a :class:`ClientBundleSet` from detected components."""

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def bundle(self, components: cabc.Iterable[ClientComponentInfo]) -> ClientBundleSet:
        """Bundle every component, collecting per-component failures."""
        result = ClientBundleSet()
        for info in components:
            try:
                module_key = self._register_module(info, result.shared)
                props_json = _encode_props(info)
            except ClientBundleError as exc:
                logger.warning("%s", exc)
                result.errors.append(exc)
                continue
            result.entries[info.id] = ClientBundle(
                id=info.id,
                identity=info.identity,
                module_key=module_key,
                container_id=info.container_id,
                script=_entry_script(info, module_key, props_json),
            )
        logger.debug(
            "Bundled %d client component(s) from %d module(s); %d failed",
            len(result.entries),
            len(result.shared),
            len(result.errors),
        )
        return result

    def _register_module(self, info: ClientComponentInfo, shared: dict[str, str]) -> str:
        path = Path(info.source)
        module_key = path.as_posix()
        if module_key in shared:
            return module_key
        if not path.is_file():
            raise ClientBundleError(info.id, info.source, "module source not found")
        try:
            code = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise ClientBundleError(info.id, info.source, f"module unreadable: {exc}") from exc
        shared[module_key] = _module_script(module_key, code)
        return module_key


def _encode_json(value: object) -> str:
    return _JSON_ENCODER.encode(value).decode("utf-8").replace("</", _ESCAPED_CLOSE)


def _encode_props(info: ClientComponentInfo) -> str:
    try:
        return _encode_json(info.props)
    except (TypeError, msgspec.EncodeError) as exc:
        raise ClientBundleError(info.id, info.source, f"props are not JSON serialisable: {exc}") from exc


def _module_script(module_key: str, code: str) -> str:
    key = _encode_json(module_key)
    return (
        "(function (registry) {\n"
        f"  if (registry[{key}]) {{ return; }}\n"
        "  var module = { exports: {} };\n"
        "  (function (module, exports) {\n"
        + code.replace("</script", _ESCAPED_CLOSE + "script")
        + "\n"
        "  })(module, module.exports);\n"
        f"  registry[{key}] = module.exports;\n"
        f"}})(window.{MODULE_REGISTRY_GLOBAL} = window.{MODULE_REGISTRY_GLOBAL} || {{}});"
    )


def _entry_script(info: ClientComponentInfo, module_key: str, props_json: str) -> str:
    args = ", ".join(
        [
            _encode_json(info.id),
            _encode_json(info.container_id),
            _encode_json(module_key),
            _encode_json(info.export),
            props_json,
        ]
    )
    return f"window.pagemintMount({args});"


__all__ = ["RUNTIME_SCRIPT", "ClientBundle", "ClientBundleSet", "ClientBundler"]
