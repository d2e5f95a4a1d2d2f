from polyui.compiler.ast_nodes import Component, create_node, create_text
from polyui.compiler.traverse import filter_nodes, is_node, traverse_nodes, walk


def build_tree():
    else_branch = create_node("span", properties={"$name": "fallback"})
    show = create_node("Show", bindings={"when": "state.open"}, meta={"else": else_branch})
    show.children = [create_text("open")]
    root = create_node("div", children=[create_node("h1"), show])
    return Component(children=[root]), else_branch


def test_walk_is_pre_order_and_finds_meta_nodes():
    component, else_branch = build_tree()
    names = [node.name for node in walk(component)]
    assert names == ["div", "h1", "Show", "div", "span"]
    assert else_branch in list(walk(component))


def test_walk_on_plain_containers():
    nodes = [create_node("a"), {"nested": [create_node("b")]}]
    assert [n.name for n in walk(nodes)] == ["a", "b"]


def test_traverse_allows_mutating_visited_node():
    component, _ = build_tree()

    def add_child(node):
        if node.name == "h1":
            node.children = [create_node("em")]

    traverse_nodes(component, add_child)
    assert [n.name for n in walk(component)][:3] == ["div", "h1", "em"]


def test_filter_nodes():
    component, _ = build_tree()
    shows = filter_nodes(component, lambda n: n.name == "Show")
    assert len(shows) == 1
    assert shows[0].get_binding("when") == "state.open"


def test_is_node():
    assert is_node(create_node())
    assert not is_node({"name": "div"})
