"""Optional bundling of Qwik output into a single module."""

import asyncio
import dataclasses
import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from polyui.compiler.ast_nodes import Component
from polyui.compiler.codegen.base import GeneratorOutput, OutputFile
from polyui.compiler.codegen.qwik import QwikOptions, component_to_qwik
from polyui.compiler.exceptions import BundleError

log = logging.getLogger(__name__)

ENTRY_MODULE = "./entry.js"


class Bundler(ABC):
    """Bundles a virtual module graph into one module's source."""

    @abstractmethod
    async def bundle(
        self, modules: Dict[str, str], entry: str, external: List[str]
    ) -> str:
        """Return the bundled source of entry.

        modules maps ``./<name>.js`` keys to module source. Imports of
        anything listed in external are left in place.
        """


class EsbuildBundler(Bundler):
    """Runs the esbuild executable over the graph written to a temp dir."""

    def __init__(self, executable: str = "esbuild", timeout: Optional[float] = 60) -> None:
        self.executable = executable
        self.timeout = timeout

    async def bundle(
        self, modules: Dict[str, str], entry: str, external: List[str]
    ) -> str:
        esbuild_bin = shutil.which(self.executable)
        if not esbuild_bin:
            raise BundleError(f"{self.executable} not found on PATH")

        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for key, source in modules.items():
                path = root / os.path.normpath(key)
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(source, "utf-8")

            cmd = [
                esbuild_bin,
                str(root / os.path.normpath(entry)),
                "--bundle",
                "--format=esm",
                # generated modules are TypeScript with JSX behind .js keys
                "--loader:.js=tsx",
                "--jsx-factory=jsxFactory",
                "--jsx-fragment=null",
                *[f"--external:{name}" for name in external],
            ]
            log.debug(f"Running command: {cmd}")
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    cwd=tmpdir,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise BundleError(f"esbuild failed to run: {e}") from e

            try:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self.timeout
                )
            except asyncio.TimeoutError as e:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
                raise BundleError(f"esbuild timed out after {self.timeout}s") from e

        if process.returncode != 0:
            raise BundleError(
                f"esbuild exited with {process.returncode}: {stderr.decode().strip()}"
            )
        return stdout.decode()


def module_key(path: str) -> str:
    stem = path.rsplit(".", 1)[0]
    return f"./{stem}.js"


async def bundle_qwik_output(
    output: GeneratorOutput, options: QwikOptions
) -> GeneratorOutput:
    """Append ``<Comp>/bundle.js`` to output.

    The declaration module stays outside the bundle since it is what
    consumers import. Bundler failures propagate as BundleError.
    """
    component_name = output.component_name
    if not component_name:
        raise BundleError("Generator output does not name its component")

    declaration = f"{component_name}.ts"
    modules: Dict[str, str] = {}
    exports: List[str] = []
    for f in output:
        if f.path == declaration:
            continue
        key = module_key(f.path)
        modules[key] = f.contents
        exports.append(f"export * from '{key}';")
    modules[ENTRY_MODULE] = "\n".join(exports) + "\n"

    bundler = options.bundler or EsbuildBundler()
    try:
        source = await bundler.bundle(modules, ENTRY_MODULE, [options.lib])
    except BundleError:
        raise
    except Exception as e:
        raise BundleError(f"Bundling {component_name} failed: {e}") from e

    log.debug("Bundled %d modules for %s", len(modules) - 1, component_name)
    return GeneratorOutput(
        files=[*output.files, OutputFile(path=f"{component_name}/bundle.js", contents=source)],
        component_name=component_name,
    )


async def component_to_qwik_bundle(
    component: Component, options: Optional[QwikOptions] = None
) -> GeneratorOutput:
    """Generate Qwik modules in bundle shape and bundle them."""
    options = dataclasses.replace(options or QwikOptions(), bundle=True)
    return await bundle_qwik_output(component_to_qwik(component, options), options)
