"""React generator (DOM and native flavours)."""

import json as jsonlib
import logging
import textwrap
from dataclasses import dataclass
from typing import Dict, List, Optional

from polyui.compiler.ast_nodes import Binding, Component, Import, Node, fast_clone
from polyui.compiler.bindings import BindingRewriter, remove_surrounding_block
from polyui.compiler.codegen.base import (
    GenerationContext,
    GeneratorOptions,
    GeneratorOutput,
    OutputFile,
)
from polyui.compiler.codegen.template import JsxTemplate
from polyui.compiler.escape import escape_template_literal
from polyui.compiler.formatting import format_code
from polyui.compiler.helpers import (
    get_component_name,
    get_state_object_string,
    render_imports,
)
from polyui.compiler.plugins import (
    run_post_code_plugins,
    run_post_json_plugins,
    run_pre_code_plugins,
    run_pre_json_plugins,
)
from polyui.compiler.styles import collect_css, collect_react_native_styles, render_css
from polyui.compiler.traverse import walk

log = logging.getLogger(__name__)

SET_STATE_MARKER = "setState({ ...state })"
SUPPORTED_HOOKS = {"onMount", "onUnMount"}

DOM_ATTRIBUTES = {"class": "className", "for": "htmlFor"}

NATIVE_PRIMITIVES = (
    "View",
    "Text",
    "Image",
    "TextInput",
    "ScrollView",
    "Button",
    "TouchableOpacity",
)


@dataclass
class ReactOptions(GeneratorOptions):
    styles_type: str = "styled-jsx"
    state_type: str = "useState"
    type: str = "dom"

    CHOICES = {
        "styles_type": ("emotion", "styled-jsx", "react-native"),
        "state_type": ("useState", "mobx"),
        "type": ("dom", "native"),
    }


def react_binding_rewriter(options: ReactOptions) -> BindingRewriter:
    # mobx observables track their own writes
    marker = SET_STATE_MARKER if options.state_type == "useState" else None
    return BindingRewriter(rewriter=options.rewriter, dirty_marker=marker)


class ReactTemplate(JsxTemplate):
    empty_value = "null"

    @property
    def native(self) -> bool:
        return self.context.options.type == "native"

    def attribute_name(self, key: str) -> str:
        if self.native:
            return key
        return DOM_ATTRIBUTES.get(key, key)

    def render_text(self, node: Node, text: str) -> str:
        # raw strings are not renderable outside <Text> on native
        if self.native:
            return f"<Text>{text}</Text>" if text.strip() else ""
        return text

    def render_events(self, node: Node, events: Dict[str, Binding]) -> List[str]:
        attrs = []
        for key, binding in events.items():
            code = self.process(binding.code)
            if binding.is_arrow_function:
                attrs.append(f" {key}={{{code}}}")
            else:
                body = remove_surrounding_block(code)
                attrs.append(f" {key}={{(event) => {{\n{body}\n}}}}")
        return attrs


def _rewrite_component_import(item: Import) -> Import:
    if not item.path.endswith(".lite"):
        return item
    clone = fast_clone(item)
    clone.path = clone.path[: -len(".lite")]
    return clone


def _native_imports(json: Component, has_styles: bool) -> List[str]:
    used = {node.name for node in walk(json)}
    # text nodes are wrapped in <Text> at render time
    if any(node.properties.get("_text") or node.bindings.get("_text") for node in walk(json)):
        used.add("Text")
    names = [name for name in NATIVE_PRIMITIVES if name in used]
    if has_styles:
        names.append("StyleSheet")
    return names


def _hooks_code(json: Component, context: GenerationContext) -> str:
    for hook in json.hooks:
        if hook not in SUPPORTED_HOOKS:
            log.warning("Skipping unsupported hook for react: %s", hook)

    blocks: List[str] = []
    on_mount = json.hooks.get("onMount")
    if on_mount:
        body = remove_surrounding_block(context.bindings.process(on_mount))
        blocks.append(f"useEffect(() => {{\n{textwrap.indent(body, '  ')}\n}}, []);")
    on_unmount = json.hooks.get("onUnMount")
    if on_unmount:
        body = remove_surrounding_block(context.bindings.process(on_unmount))
        blocks.append(
            f"useEffect(() => () => {{\n{textwrap.indent(body, '  ')}\n}}, []);"
        )
    return "\n\n".join(blocks)


def _state_code(json: Component, context: GenerationContext) -> str:
    if not json.state:
        return ""
    state = get_state_object_string(json, value_mapper=context.bindings.process)
    if context.options.state_type == "mobx":
        return f"const state = useLocalObservable(() => ({state}));"
    return f"const [state, setState] = useState(() => ({state}));"


def _component_file(
    json: Component, context: GenerationContext, css: str, native_styles: Dict
) -> str:
    options = context.options
    assert isinstance(options, ReactOptions)
    component_name = get_component_name(json)
    native = options.type == "native"

    template = ReactTemplate(context)
    body_parts = [template.render(child) for child in json.children]
    body_parts = [part for part in body_parts if part]
    if css.strip():
        body_parts.append(f"<style jsx>{{`\n{escape_template_literal(css.strip())}\n`}}</style>")
    body = "\n".join(body_parts) or "null"
    if len(body_parts) > 1:
        body = f"<>\n{body}\n</>"

    state = _state_code(json, context)
    hooks = _hooks_code(json, context)

    header: List[str] = []
    if options.styles_type == "emotion":
        header.append("/** @jsx jsx */")
        header.append("import { jsx } from '@emotion/react';")
    react_hooks = [
        name
        for name, used in (
            ("useState", bool(state) and options.state_type == "useState"),
            ("useEffect", bool(hooks)),
        )
        if used
    ]
    header.append("import * as React from 'react';")
    if react_hooks:
        header.append(f"import {{ {', '.join(react_hooks)} }} from 'react';")
    if native:
        primitives = _native_imports(json, bool(native_styles))
        if primitives:
            header.append(f"import {{ {', '.join(primitives)} }} from 'react-native';")
    mobx = options.state_type == "mobx"
    if mobx:
        mobx_names = ["observer", "useLocalObservable"] if state else ["observer"]
        header.append(f"import {{ {', '.join(mobx_names)} }} from 'mobx-react-lite';")
    imports = render_imports([_rewrite_component_import(i) for i in json.imports])
    if imports:
        header.append(imports)

    statements = "\n\n".join(part for part in (state, hooks) if part)
    function = (
        f"function {component_name}(props) {{\n"
        + (textwrap.indent(statements, "  ") + "\n\n" if statements else "")
        + f"  return (\n{textwrap.indent(body, '    ')}\n  );\n"
        "}"
    )

    code = "\n".join(header) + "\n\n"
    if native_styles:
        code += f"const styles = StyleSheet.create({jsonlib.dumps(native_styles, indent=2)});\n\n"
    if mobx:
        code += f"export default observer({function});\n"
    else:
        code += f"export default {function}\n"
    return code


def component_to_react(
    component: Component, options: Optional[ReactOptions] = None
) -> GeneratorOutput:
    """Generate a single ``<Comp>.jsx`` module for component."""
    options = options or ReactOptions()
    json = run_pre_json_plugins(fast_clone(component), options.plugins)
    context = GenerationContext(
        component=json, options=options, bindings=react_binding_rewriter(options)
    )

    css = ""
    native_styles: Dict = {}
    if options.styles_type == "styled-jsx":
        css = render_css(collect_css(json, class_property="class"))
        if css:
            css = format_code(css, options, "css")
    elif options.styles_type == "react-native":
        native_styles = collect_react_native_styles(json)

    json = run_post_json_plugins(json, options.plugins)
    context.component = json
    component_name = get_component_name(json)

    code = _component_file(json, context, css, native_styles)
    code = run_pre_code_plugins(code, options.plugins)
    code = format_code(code, options, "javascript")
    code = run_post_code_plugins(code, options.plugins)

    log.debug("Generated react file for %s (%s)", component_name, options.type)
    return GeneratorOutput(
        files=[OutputFile(path=f"{component_name}.jsx", contents=code)],
        component_name=component_name,
    )
