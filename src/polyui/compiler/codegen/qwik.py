"""Qwik generator.

Emits a template module, a component declaration, a component class and one
module per event handler. Event handlers are never inlined: the template
references them through QRL locator strings so the Qwik runtime can load
each one lazily.
"""

import logging
import re
import textwrap
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional

from polyui.compiler.ast_nodes import Binding, Component, Import, Node, fast_clone
from polyui.compiler.bindings import BindingRewriter, remove_surrounding_block
from polyui.compiler.codegen.base import (
    GenerationContext,
    GeneratorOptions,
    GeneratorOutput,
    OutputFile,
)
from polyui.compiler.codegen.template import JsxTemplate, is_event_binding
from polyui.compiler.escape import escape_template_literal
from polyui.compiler.formatting import format_code
from polyui.compiler.helpers import (
    camel_case,
    capitalize,
    get_component_name,
    get_state_object_string,
    kebab_case,
    render_imports,
)
from polyui.compiler.ids import get_id
from polyui.compiler.plugins import (
    run_post_code_plugins,
    run_post_json_plugins,
    run_pre_code_plugins,
    run_pre_json_plugins,
)
from polyui.compiler.styles import collect_css, minify_css, render_css
from polyui.compiler.traverse import walk

if TYPE_CHECKING:
    from polyui.compiler.bundler import Bundler

log = logging.getLogger(__name__)

DEFAULT_QWIK_LIB = "@builder.io/qwik"
DIRTY_MARKER = "markDirty(this)"
SUPPORTED_HOOKS = {"onMount"}


@dataclass
class QwikOptions(GeneratorOptions):
    qwik_lib: Optional[str] = None
    qrl_prefix: str = "ui:"
    qrl_suffix: str = ""
    css_namespace: Optional[str] = None
    minify_styles: bool = False
    bundle: bool = False
    bundler: Optional["Bundler"] = None
    format: str = "default"

    CHOICES = {"format": ("default", "builder")}

    @property
    def lib(self) -> str:
        return self.qwik_lib or DEFAULT_QWIK_LIB


def qwik_binding_rewriter(options: QwikOptions) -> BindingRewriter:
    return BindingRewriter(
        rewriter=options.rewriter,
        dirty_marker=DIRTY_MARKER,
        reference_prefix="this.",
    )


def template_locator(component_name: str, options: QwikOptions) -> str:
    """QRL path of the template module (or of the bundle export)."""
    if options.bundle:
        return f"{options.qrl_prefix}/{component_name}/bundle{options.qrl_suffix}.template"
    return f"{options.qrl_prefix}/{component_name}_template{options.qrl_suffix}"


def event_locator(context: GenerationContext, node: Node, key: str) -> str:
    """QRL string referencing the out-of-line handler for node's key event."""
    options = context.options
    assert isinstance(options, QwikOptions)
    component_name = get_component_name(context.component)
    handler = f"{get_id(node, context.registry)}{key[2:]}"
    if options.bundle:
        return (
            f"QRL`{options.qrl_prefix}/{component_name}/bundle"
            f"{options.qrl_suffix}.on{handler}`"
        )
    return f"QRL`{options.qrl_prefix}/{component_name}_on{handler}{options.qrl_suffix}`"


class QwikTemplate(JsxTemplate):
    empty_value = "undefined"

    def render_events(self, node: Node, events: Dict[str, Binding]) -> List[str]:
        attrs = []
        for key in events:
            event_key = key.replace("on", "on:", 1).lower()
            attrs.append(f" {event_key}={{{event_locator(self.context, node, key)}}}")
        return attrs


def _rewrite_component_import(item: Import) -> Import:
    """Point imports of other components at their public module."""
    if not item.path.endswith(".lite"):
        return item
    clone = fast_clone(item)
    name = re.split(r"[./]", clone.path)[-2]
    pascal_name = capitalize(camel_case(name))
    clone.path = f"../{pascal_name}/public.js"
    for key, value in clone.imports.items():
        if value == "default":
            clone.imports[key] = pascal_name
    return clone


def _handler_body(context: GenerationContext, binding: Binding) -> str:
    code = context.bindings.process(binding.code)
    if binding.is_arrow_function:
        return f"return ({code})(event);"
    return remove_surrounding_block(code)


def event_handler_files(context: GenerationContext) -> List[OutputFile]:
    """One module per event binding, in document order."""
    options = context.options
    assert isinstance(options, QwikOptions)
    component_name = get_component_name(context.component)
    files: List[OutputFile] = []

    for node in walk(context.component):
        for key, binding in node.bindings.items():
            if not is_event_binding(key):
                continue
            handler_name = f"{get_id(node, context.registry)}{key[2:]}"
            export = f"const on{handler_name} =" if options.bundle else "default"
            body = textwrap.indent(_handler_body(context, binding), " " * 8)
            code = (
                "import {\n"
                "  injectEventHandler,\n"
                "  provideEvent,\n"
                "  markDirty\n"
                f"}} from '{options.lib}';\n"
                f"import {{ {component_name}Component }} from './{component_name}_component.js';\n"
                "\n"
                f"export {export} injectEventHandler(\n"
                f"  {component_name}Component,\n"
                "  provideEvent(),\n"
                f"  async function (this: {component_name}Component, event: Event) {{\n"
                f"{body}\n"
                "  }\n"
                ");\n"
            )
            files.append(
                OutputFile(
                    path=f"{component_name}_on{handler_name}.ts",
                    contents=format_code(code, options),
                )
            )
    return files


def _style_element(css: str) -> str:
    indented = "".join(
        "\n" + " " * 12 + line for line in escape_template_literal(css.strip()).split("\n")
    )
    return f"<style>{{`{indented}`}}</style>"


def _template_file(
    json: Component, context: GenerationContext, css: str, add_wrapper: bool
) -> str:
    options = context.options
    assert isinstance(options, QwikOptions)
    component_name = get_component_name(json)
    imports = render_imports([_rewrite_component_import(i) for i in json.imports])
    export = "const template =" if options.bundle else "default"

    template = QwikTemplate(context)
    body_parts = []
    if css.strip():
        body_parts.append(_style_element(css))
    body_parts.extend(template.render(child) for child in json.children)
    body = "\n".join(body_parts) or "null"
    if add_wrapper:
        body = f"<>\n{body}\n</>"

    return (
        f"import {{ injectMethod, QRL, jsxFactory }} from '{options.lib}';\n"
        f"import {{ {component_name}Component }} from './{component_name}_component.js';\n"
        f"{imports}\n"
        "\n"
        f"export {export} injectMethod({component_name}Component, function (this: {component_name}Component) {{\n"
        f"  return (\n{textwrap.indent(body, '    ')}\n  );\n"
        "});\n"
    )


def _declaration_file(component_name: str, options: QwikOptions) -> str:
    return (
        f"import {{ jsxDeclareComponent, QRL }} from '{options.lib}';\n"
        "\n"
        f"export const {component_name} = jsxDeclareComponent("
        f"QRL`{template_locator(component_name, options)}`, "
        f"'{kebab_case(component_name)}');\n"
    )


def _component_file(json: Component, context: GenerationContext) -> str:
    options = context.options
    assert isinstance(options, QwikOptions)
    component_name = get_component_name(json)
    builder = options.format == "builder"
    locator = template_locator(component_name, options)

    members: List[str] = []
    if not builder:
        members.append(f"static $templateQRL = '{locator}';")

    state = get_state_object_string(
        json, format="class", value_mapper=context.bindings.process
    )
    if state:
        members.append(state)

    for hook in json.hooks:
        if hook not in SUPPORTED_HOOKS:
            log.warning("Skipping unsupported hook for qwik: %s", hook)

    on_mount = json.hooks.get("onMount")
    if on_mount:
        members.append(
            "constructor(...args) {\n"
            "  super(...args);\n"
            f"{textwrap.indent(context.bindings.process(on_mount), '  ')}\n"
            "}"
        )
    members.append("$newState() {\n  return {};\n}")

    class_name = f"_{component_name}Component" if builder else f"{component_name}Component"
    class_source = (
        f"{'' if builder else 'export '}class {class_name} extends Component<any, any> {{\n"
        + textwrap.indent("\n\n".join(members), "  ")
        + "\n}\n"
    )
    if builder:
        class_source += (
            f"\nexport const {component_name}Component = new Proxy({class_name}, {{\n"
            "  get(target, prop) {\n"
            "    if (prop === '$templateQRL') {\n"
            f"      return '{locator}';\n"
            "    }\n"
            "    return Reflect.get(...arguments);\n"
            "  }\n"
            "});\n"
        )

    lib_imports = "Component, QRL, markDirty" if "markDirty(" in class_source else "Component, QRL"
    return f"import {{ {lib_imports} }} from '{options.lib}';\n\n{class_source}"


def component_to_qwik(
    component: Component, options: Optional[QwikOptions] = None
) -> GeneratorOutput:
    """Generate Qwik modules for component.

    The bundle file itself is produced by polyui.compiler.bundler; with
    ``options.bundle`` set this only switches locators and exports to the
    bundled shape.
    """
    options = options or QwikOptions()
    json = run_pre_json_plugins(fast_clone(component), options.plugins)
    context = GenerationContext(
        component=json, options=options, bindings=qwik_binding_rewriter(options)
    )

    style_map = collect_css(json, class_property="class", prefix=options.css_namespace)
    css = render_css(style_map)
    if options.minify_styles:
        css = minify_css(css)
    elif css:
        css = format_code(css, options, "css")
    add_wrapper = len(json.children) > 1 or bool(css.strip())

    json = run_post_json_plugins(json, options.plugins)
    context.component = json
    component_name = get_component_name(json)

    template = _template_file(json, context, css, add_wrapper)
    template = run_pre_code_plugins(template, options.plugins)
    template = format_code(template, options)
    template = run_post_code_plugins(template, options.plugins)

    files = [
        OutputFile(path=f"{component_name}_template.tsx", contents=template),
        OutputFile(
            path=f"{component_name}.ts",
            contents=format_code(_declaration_file(component_name, options), options),
        ),
        OutputFile(
            path=f"{component_name}_component.ts",
            contents=format_code(_component_file(json, context), options),
        ),
    ]
    files.extend(event_handler_files(context))

    log.debug("Generated qwik files for %s: %s", component_name, [f.path for f in files])
    return GeneratorOutput(files=files, component_name=component_name)
