import unittest

from polyui.compiler.ast_nodes import (
    FUNCTION_PREFIX,
    METHOD_PREFIX,
    Binding,
    Component,
    Import,
    create_node,
    create_text,
)
from polyui.compiler.codegen.base import GenerationContext
from polyui.compiler.codegen.qwik import (
    QwikOptions,
    QwikTemplate,
    component_to_qwik,
    qwik_binding_rewriter,
)
from polyui.compiler.codegen.template import JsxTemplate


def counter_component() -> Component:
    button = create_node(
        "button",
        bindings={"onClick": "state.count++"},
        children=[create_text("Click")],
    )
    label = create_node("span", children=[create_node("div", bindings={"_text": "state.count"})])
    return Component(name="my-counter", state={"count": 0}, children=[button, label])


class TestQwikTemplate(unittest.TestCase):
    def setUp(self) -> None:
        self.options = QwikOptions(prettier=False)
        self.context = GenerationContext(
            component=Component(name="Comp"),
            options=self.options,
            bindings=qwik_binding_rewriter(self.options),
        )
        self.template = QwikTemplate(self.context)

    def test_base_template_requires_event_rendering(self) -> None:
        with self.assertRaises(TypeError):
            JsxTemplate(self.context)

    def test_event_becomes_locator(self) -> None:
        node = create_node("button", bindings={"onClick": "state.count++"})
        self.assertEqual(
            self.template.render(node),
            "<button on:click={QRL`ui:/Comp_onButtonClick`}></button>",
        )

    def test_event_ids_are_allocated_per_node(self) -> None:
        first = create_node("button", bindings={"onClick": "a()"})
        second = create_node("button", bindings={"onClick": "b()"})
        html = self.template.render(create_node("div", children=[first, second]))
        self.assertIn("QRL`ui:/Comp_onButtonClick`", html)
        self.assertIn("QRL`ui:/Comp_onButton2Click`", html)

    def test_text_binding_is_rewritten(self) -> None:
        node = create_node("div", bindings={"_text": "state.count + props.step"})
        self.assertEqual(self.template.render(node), "{this.count + this.step}")

    def test_for_lowering(self) -> None:
        node = create_node(
            "For",
            properties={"_forName": "todo", "_indexName": "i"},
            bindings={"each": "state.todos"},
            children=[create_text("  "), create_node("div", bindings={"_text": "todo.title"})],
        )
        self.assertEqual(
            self.template.render(node),
            "{this.todos.map((todo, i) => (\n<>{todo.title}</>\n))}",
        )

    def test_for_default_item_name(self) -> None:
        node = create_node("For", bindings={"each": "props.items"})
        self.assertEqual(self.template.render(node), "{this.items.map(item => (\n<></>\n))}")

    def test_show_lowering(self) -> None:
        node = create_node("Show", bindings={"when": "state.open"}, children=[create_text("Hi")])
        self.assertEqual(self.template.render(node), "{this.open ? (\n<>Hi</>\n) : undefined}")

    def test_show_else_branch(self) -> None:
        node = create_node(
            "Show",
            bindings={"when": "state.open"},
            children=[create_text("Open")],
            meta={"else": create_text("Closed")},
        )
        self.assertEqual(
            self.template.render(node),
            "{this.open ? (\n<>Open</>\n) : (\n<>Closed</>\n)}",
        )

    def test_fragment(self) -> None:
        node = create_node("Fragment", children=[create_text("a"), create_text("b")])
        self.assertEqual(self.template.render(node), "<>a\nb</>")

    def test_invalid_attribute_is_skipped_with_warning(self) -> None:
        node = create_node("div", properties={"data-x": "1", "1bad": "2"})
        with self.assertLogs("polyui", level="WARNING") as logs:
            html = self.template.render(node)
        self.assertEqual(html, '<div data-x="1"></div>')
        self.assertIn("Skipping invalid attribute name: 1bad", logs.output[0])

    def test_attribute_values_are_escaped(self) -> None:
        node = create_node("input", properties={"title": 'say "hi"', "_private": "x", "$name": "y"})
        self.assertEqual(self.template.render(node), '<input title="say &quot;hi&quot;" />')

    def test_spread_and_bound_attributes(self) -> None:
        node = create_node("a", bindings={"_spread": "props.attrs", "href": "state.url"})
        self.assertEqual(self.template.render(node), "<a {...(this.attrs)} href={this.url}></a>")

    def test_unknown_names_use_element_path(self) -> None:
        self.assertEqual(self.template.render(create_node("MyWidget")), "<MyWidget></MyWidget>")


class TestComponentToQwik(unittest.TestCase):
    def generate(self, component: Component, **options):
        return component_to_qwik(component, QwikOptions(prettier=False, **options))

    def test_output_files(self) -> None:
        output = self.generate(counter_component())
        self.assertEqual(
            output.paths,
            [
                "MyCounter_template.tsx",
                "MyCounter.ts",
                "MyCounter_component.ts",
                "MyCounter_onButtonClick.ts",
            ],
        )
        self.assertEqual(output.component_name, "MyCounter")

    def test_template_file(self) -> None:
        template = self.generate(counter_component()).get("MyCounter_template.tsx").contents
        self.assertIn("import { injectMethod, QRL, jsxFactory } from '@builder.io/qwik';", template)
        self.assertIn("export default injectMethod(MyCounterComponent", template)
        self.assertIn("<button on:click={QRL`ui:/MyCounter_onButtonClick`}>Click</button>", template)
        self.assertIn("<span>{this.count}</span>", template)
        # two root children need a wrapper
        self.assertIn("<>", template)
        self.assertNotIn("state.", template)

    def test_event_handler_file(self) -> None:
        handler = self.generate(counter_component()).get("MyCounter_onButtonClick.ts").contents
        self.assertIn("import { MyCounterComponent } from './MyCounter_component.js';", handler)
        self.assertIn("export default injectEventHandler(", handler)
        self.assertIn("provideEvent(),", handler)
        self.assertIn("this.count++;\n        markDirty(this)", handler)
        self.assertNotIn("onClick", handler)

    def test_arrow_function_handler(self) -> None:
        button = create_node("button")
        button.bindings["onClick"] = Binding(code="(e) => state.last = e", is_arrow_function=True)
        handler = self.generate(Component(name="A", children=[button])).get("A_onButtonClick.ts")
        self.assertIn("return ((e) => (() => { const _temp = this.last = e; markDirty(this); return _temp; })())(event);", handler.contents)

    def test_declaration_file(self) -> None:
        declaration = self.generate(counter_component()).get("MyCounter.ts").contents
        self.assertIn(
            "export const MyCounter = jsxDeclareComponent(QRL`ui:/MyCounter_template`, 'my-counter');",
            declaration,
        )

    def test_component_file(self) -> None:
        component = counter_component()
        component.state["inc"] = METHOD_PREFIX + "inc() { state.count++ }"
        component.state["format"] = FUNCTION_PREFIX + "(n) => `#${n}`"
        component.hooks["onMount"] = "state.count = 1"
        source = self.generate(component).get("MyCounter_component.ts").contents

        self.assertIn("import { Component, QRL, markDirty } from '@builder.io/qwik';", source)
        self.assertIn("export class MyCounterComponent extends Component<any, any> {", source)
        self.assertIn("static $templateQRL = 'ui:/MyCounter_template';", source)
        self.assertIn("count = 0;", source)
        self.assertIn("inc() { this.count++;\n  markDirty(this) }", source)
        self.assertIn("format = (n) => `#${n}`;", source)
        self.assertIn("super(...args);\n    this.count = 1;\n    markDirty(this)", source)
        self.assertIn("$newState() {", source)

    def test_method_marks_before_return(self) -> None:
        component = counter_component()
        component.state["inc"] = (
            METHOD_PREFIX + "inc() {\n  state.count++\n  return state.count\n}"
        )
        source = self.generate(component).get("MyCounter_component.ts").contents
        self.assertIn(
            "this.count++;\n  markDirty(this)\n    return this.count\n  }", source
        )

    def test_mark_dirty_import_only_when_used(self) -> None:
        source = self.generate(Component(name="Plain", state={"a": 1})).get("Plain_component.ts").contents
        self.assertIn("import { Component, QRL } from '@builder.io/qwik';", source)

    def test_unsupported_hook_warns(self) -> None:
        component = Component(name="Hooked", hooks={"onUnMount": "cleanup()"})
        with self.assertLogs("polyui", level="WARNING") as logs:
            self.generate(component)
        self.assertIn("Skipping unsupported hook for qwik: onUnMount", logs.output[0])

    def test_builder_format(self) -> None:
        source = self.generate(counter_component(), format="builder").get("MyCounter_component.ts").contents
        self.assertIn("class _MyCounterComponent extends Component<any, any> {", source)
        self.assertNotIn("export class", source)
        self.assertIn("export const MyCounterComponent = new Proxy(_MyCounterComponent, {", source)
        self.assertIn("return 'ui:/MyCounter_template';", source)

    def test_css_is_extracted(self) -> None:
        first = create_node("div", bindings={"css": "{ color: 'red' }"}, children=[create_text("a")])
        second = create_node("div", bindings={"css": "{ fontSize: '12px' }"})
        output = self.generate(Component(name="Styled", children=[first, second]))
        template = output.get("Styled_template.tsx").contents

        self.assertIn('<div class="div">a</div>', template)
        self.assertIn('<div class="div2"></div>', template)
        self.assertIn("<style>{`", template)
        self.assertIn(".div {", template)
        self.assertIn("font-size: 12px;", template)
        self.assertNotIn("css=", template)

    def test_css_namespace_and_minify(self) -> None:
        node = create_node("div", bindings={"css": "{ color: 'red' }"})
        template = self.generate(
            Component(name="Styled", children=[node]), css_namespace="app", minify_styles=True
        ).get("Styled_template.tsx").contents
        self.assertIn('class="app-div"', template)
        self.assertIn(".app-div { color: red; }", template)

    def test_lite_imports_are_rewritten(self) -> None:
        component = Component(
            name="Page",
            imports=[
                Import(path="./my-button.lite", imports={"MyButton": "default"}),
                Import(path="lodash", imports={"debounce": "debounce"}),
            ],
        )
        template = self.generate(component).get("Page_template.tsx").contents
        self.assertIn("import { MyButton } from '../MyButton/public.js';", template)
        self.assertIn("import { debounce } from 'lodash';", template)

    def test_empty_component_renders_null(self) -> None:
        template = self.generate(Component(name="Empty")).get("Empty_template.tsx").contents
        self.assertIn("return (\n    null\n  );", template)

    def test_qrl_prefix_suffix_and_lib(self) -> None:
        output = self.generate(
            counter_component(), qrl_prefix="app:", qrl_suffix=".js", qwik_lib="@custom/qwik"
        )
        template = output.get("MyCounter_template.tsx").contents
        self.assertIn("QRL`app:/MyCounter_onButtonClick.js`", template)
        self.assertIn("from '@custom/qwik';", template)

    def test_bundle_shape(self) -> None:
        output = self.generate(counter_component(), bundle=True)
        template = output.get("MyCounter_template.tsx").contents
        handler = output.get("MyCounter_onButtonClick.ts").contents
        declaration = output.get("MyCounter.ts").contents

        self.assertIn("QRL`ui:/MyCounter/bundle.onButtonClick`", template)
        self.assertIn("export const template = injectMethod(", template)
        self.assertIn("export const onButtonClick = injectEventHandler(", handler)
        self.assertIn("QRL`ui:/MyCounter/bundle.template`", declaration)

    def test_input_is_not_mutated(self) -> None:
        component = counter_component()
        self.generate(component)
        self.assertEqual(component.children[0].meta, {})
        self.assertIn("onClick", component.children[0].bindings)

    def test_deterministic(self) -> None:
        component = counter_component()
        first = self.generate(component)
        second = self.generate(component)
        self.assertEqual(
            [(f.path, f.contents) for f in first], [(f.path, f.contents) for f in second]
        )

    def test_handler_ids_match_template_locators(self) -> None:
        buttons = [
            create_node("button", bindings={"onClick": "a()"}),
            create_node("button", bindings={"onMouseOver": "b()"}),
        ]
        output = self.generate(Component(name="Two", children=buttons))
        template = output.get("Two_template.tsx").contents
        self.assertIn("on:mouseover={QRL`ui:/Two_onButton2MouseOver`}", template)
        self.assertIn("Two_onButton2MouseOver.ts", output.paths)
        self.assertIn("Two_onButtonClick.ts", output.paths)

    def test_formatter_kinds(self) -> None:
        kinds = []

        class Recorder:
            def format(self, text, kind):
                kinds.append(kind)
                return text

        node = create_node("div", bindings={"css": "{ color: 'red' }"})
        component_to_qwik(Component(name="F", children=[node]), QwikOptions(formatter=Recorder()))
        self.assertEqual(kinds[0], "css")
        self.assertTrue(all(kind == "typescript" for kind in kinds[1:]))

