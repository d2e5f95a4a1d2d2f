import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from polyui.compiler.ast_nodes import Component, create_node, create_text
from polyui.compiler.bundler import (
    ENTRY_MODULE,
    Bundler,
    EsbuildBundler,
    bundle_qwik_output,
    component_to_qwik_bundle,
    module_key,
)
from polyui.compiler.codegen.base import GeneratorOutput
from polyui.compiler.codegen.qwik import QwikOptions, component_to_qwik
from polyui.compiler.exceptions import BundleError


class RecordingBundler(Bundler):
    def __init__(self, result="/* bundled */"):
        self.result = result
        self.calls = []

    async def bundle(self, modules, entry, external):
        self.calls.append((modules, entry, external))
        return self.result


class FailingBundler(Bundler):
    async def bundle(self, modules, entry, external):
        raise BundleError("esbuild exited with 1")


def clicker():
    button = create_node("button", bindings={"onClick": "state.n++"}, children=[create_text("+")])
    return Component(name="Clicker", state={"n": 0}, children=[button])


def test_module_key():
    assert module_key("Clicker_template.tsx") == "./Clicker_template.js"
    assert module_key("Clicker_onButtonClick.ts") == "./Clicker_onButtonClick.js"


@pytest.mark.asyncio
async def test_bundle_appends_bundle_file():
    bundler = RecordingBundler()
    options = QwikOptions(prettier=False, bundle=True, bundler=bundler)
    output = await bundle_qwik_output(component_to_qwik(clicker(), options), options)

    assert output.paths[-1] == "Clicker/bundle.js"
    assert output.get("Clicker/bundle.js").contents == "/* bundled */"
    assert output.component_name == "Clicker"


@pytest.mark.asyncio
async def test_bundle_module_graph():
    bundler = RecordingBundler()
    options = QwikOptions(prettier=False, bundle=True, bundler=bundler)
    await bundle_qwik_output(component_to_qwik(clicker(), options), options)

    modules, entry, external = bundler.calls[0]
    assert entry == ENTRY_MODULE
    assert external == ["@builder.io/qwik"]
    assert sorted(modules) == [
        "./Clicker_component.js",
        "./Clicker_onButtonClick.js",
        "./Clicker_template.js",
        "./entry.js",
    ]
    assert "export * from './Clicker_template.js';" in modules[ENTRY_MODULE]
    assert "./Clicker.js" not in modules[ENTRY_MODULE]


@pytest.mark.asyncio
async def test_component_to_qwik_bundle_forces_bundle_shape():
    bundler = RecordingBundler()
    output = await component_to_qwik_bundle(
        clicker(), QwikOptions(prettier=False, bundler=bundler)
    )
    template = output.get("Clicker_template.tsx").contents
    assert "QRL`ui:/Clicker/bundle.onButtonClick`" in template
    assert "Clicker/bundle.js" in output.paths


@pytest.mark.asyncio
async def test_bundler_failure_propagates():
    options = QwikOptions(prettier=False, bundle=True, bundler=FailingBundler())
    with pytest.raises(BundleError, match="esbuild exited with 1"):
        await component_to_qwik_bundle(clicker(), options)


@pytest.mark.asyncio
async def test_unexpected_bundler_error_is_wrapped():
    bundler = RecordingBundler()
    bundler.bundle = AsyncMock(side_effect=RuntimeError("disk full"))
    options = QwikOptions(prettier=False, bundle=True, bundler=bundler)
    with pytest.raises(BundleError, match="disk full"):
        await component_to_qwik_bundle(clicker(), options)


@pytest.mark.asyncio
async def test_output_without_component_name():
    with pytest.raises(BundleError):
        await bundle_qwik_output(GeneratorOutput(), QwikOptions(bundler=RecordingBundler()))


@pytest.mark.asyncio
async def test_esbuild_missing():
    with patch("polyui.compiler.bundler.shutil.which", return_value=None):
        with pytest.raises(BundleError, match="not found on PATH"):
            await EsbuildBundler().bundle({ENTRY_MODULE: ""}, ENTRY_MODULE, [])


def fake_process(stdout=b"", stderr=b"", returncode=0):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    process.returncode = returncode
    return process


@pytest.mark.asyncio
async def test_esbuild_command_uses_qwik_jsx_factory():
    process = fake_process(stdout=b"/* out */")
    with patch("polyui.compiler.bundler.shutil.which", return_value="/bin/esbuild"), patch(
        "polyui.compiler.bundler.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=process),
    ) as create:
        result = await EsbuildBundler().bundle(
            {ENTRY_MODULE: "export {};"}, ENTRY_MODULE, ["@builder.io/qwik"]
        )

    assert result == "/* out */"
    args = create.call_args.args
    assert args[0] == "/bin/esbuild"
    assert args[1].endswith("entry.js")
    assert "--jsx-factory=jsxFactory" in args
    assert "--jsx-fragment=null" in args
    assert "--external:@builder.io/qwik" in args


@pytest.mark.asyncio
async def test_esbuild_nonzero_exit():
    process = fake_process(stderr=b"Could not resolve './x.js'", returncode=1)
    with patch("polyui.compiler.bundler.shutil.which", return_value="/bin/esbuild"), patch(
        "polyui.compiler.bundler.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=process),
    ):
        with pytest.raises(BundleError, match="Could not resolve"):
            await EsbuildBundler().bundle({ENTRY_MODULE: ""}, ENTRY_MODULE, [])


@pytest.mark.asyncio
async def test_esbuild_timeout_kills_process():
    async def hang():
        await asyncio.Event().wait()

    process = fake_process()
    process.communicate = hang
    with patch("polyui.compiler.bundler.shutil.which", return_value="/bin/esbuild"), patch(
        "polyui.compiler.bundler.asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=process),
    ):
        with pytest.raises(BundleError, match="timed out"):
            await EsbuildBundler(timeout=0.05).bundle({ENTRY_MODULE: ""}, ENTRY_MODULE, [])

    process.kill.assert_called_once()
    process.wait.assert_awaited_once()
