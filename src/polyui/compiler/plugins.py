"""Plugin hooks applied around code generation.

A plugin may hook any of four points, always invoked in this order during a
generation call:

* ``pre_json``  - IR in, IR out, before any generator-specific IR mutation
* ``post_json`` - IR in, IR out, after generator-specific IR mutation
* ``pre_code``  - source in, source out, before formatting
* ``post_code`` - source in, source out, after formatting

Plugins run in list order, each receiving the previous one's result. A hook
returning None leaves the value unchanged. Exceptions raised by a plugin
propagate to the caller.
"""

import logging
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, Optional, Sequence

from polyui.compiler.ast_nodes import Component

log = logging.getLogger(__name__)

JsonHook = Callable[[Component], Optional[Component]]
CodeHook = Callable[[str], Optional[str]]


@dataclass
class Plugin:
    name: str = "plugin"
    pre_json: Optional[JsonHook] = None
    post_json: Optional[JsonHook] = None
    pre_code: Optional[CodeHook] = None
    post_code: Optional[CodeHook] = None


def _run(hook_name: str, value: Any, plugins: Optional[Sequence[Plugin]]) -> Any:
    if not plugins:
        return value

    def apply(current: Any, plugin: Plugin) -> Any:
        hook = getattr(plugin, hook_name)
        if hook is None:
            return current
        log.debug("Running %s hook of plugin %s", hook_name, plugin.name)
        result = hook(current)
        return current if result is None else result

    return reduce(apply, plugins, value)


def run_pre_json_plugins(
    component: Component, plugins: Optional[Sequence[Plugin]]
) -> Component:
    return _run("pre_json", component, plugins)


def run_post_json_plugins(
    component: Component, plugins: Optional[Sequence[Plugin]]
) -> Component:
    return _run("post_json", component, plugins)


def run_pre_code_plugins(code: str, plugins: Optional[Sequence[Plugin]]) -> str:
    return _run("pre_code", code, plugins)


def run_post_code_plugins(code: str, plugins: Optional[Sequence[Plugin]]) -> str:
    return _run("post_code", code, plugins)
