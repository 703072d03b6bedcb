import unittest
from pathlib import Path
from unittest.mock import patch
import sys
import os
import py_compile
import subprocess
import tempfile

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from transform.builtin import decorator_attribute, method_attribute, placeholder_attribute
from transform.cache import hash_extracted, is_extracted_modified, read_extract_hash
from transform.config import TransformConfig
from transform.context import TransformContext
from transform.errors import BuildError, ExtractionError, LoadError, ModuleOpenError
from transform.extract import (
    collect_imports,
    extract_as_module,
    extracted_source_path,
    load_extracted_function,
    module_path_for,
    synthesize_module,
)
from transform.offsets import line_starts
from transform.state import FileState
from utils import ToolState


class FakeRunner:
    """Stands in for utils.run_cmd; the "compiler" just touches its output file."""

    def __init__(self, returncode=0):
        self.calls = []
        self.returncode = returncode

    def __call__(self, cmd, *, cwd, warnings, tools):
        self.calls.append(list(cmd))
        if self.returncode == 0:
            Path(cmd[-1]).write_bytes(b"")
        return subprocess.CompletedProcess(list(cmd), self.returncode, "", "boom")


def handler_source(body):
    return (
        "import os\n"
        "from . import sibling\n"
        "\n"
        "\n"
        "def rename(ctx):\n"
        f"    {body}\n"
    )


def context_for(source, state):
    wrapper = MetadataWrapper(cst.parse_module(source))
    positions = wrapper.resolve(PositionProvider)
    node = next(n for n in positions if isinstance(n, cst.FunctionDef))
    return TransformContext(
        node,
        wrapper.module,
        source,
        positions=positions,
        line_starts=line_starts(source),
        state=state,
    )


class TestSynthesis(unittest.TestCase):
    def test_collect_imports_skips_relative_and_comments(self):
        module = cst.parse_module(
            "# header\nimport os\nfrom . import sibling\nfrom typing import List  # typing\n\nx = 1\n"
        )
        self.assertEqual(collect_imports(module), ["import os", "from typing import List"])

    def test_synthesize_module(self):
        text = synthesize_module("def f():\n    return 1\n", ["import os"])
        self.assertEqual(text, "import os\n\n\ndef f():\n    return 1\n")

    def test_hash_depends_on_category(self):
        self.assertNotEqual(hash_extracted("methods", "x"), hash_extracted("decorators", "x"))


class TestExtractAsModule(unittest.TestCase):
    def test_writes_source_and_hash(self):
        with tempfile.TemporaryDirectory() as tmp:
            build_dir = Path(tmp)
            runner = FakeRunner()
            with patch("transform.extract.run_cmd", runner):
                artifact = extract_as_module(
                    "rename",
                    "def rename(ctx):\n    pass\n",
                    "decorators",
                    ["import os"],
                    "abc",
                    build_dir=build_dir,
                    config=TransformConfig(formatter=[]),
                    tools=ToolState(),
                    warnings=[],
                )
            self.assertEqual(artifact.module_path, module_path_for(build_dir, "decorators", "rename"))
            self.assertTrue(artifact.module_path.exists())
            source = extracted_source_path(build_dir, "rename").read_text(encoding="utf-8")
            self.assertTrue(source.startswith("import os\n"))
            self.assertEqual(read_extract_hash(build_dir, "rename"), "abc")
            self.assertEqual(len(runner.calls), 1)

    def test_compiler_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch("transform.extract.run_cmd", FakeRunner(returncode=1)):
                with self.assertRaises(BuildError):
                    extract_as_module(
                        "rename",
                        "def rename(ctx):\n    pass\n",
                        "decorators",
                        [],
                        "abc",
                        build_dir=Path(tmp),
                        config=TransformConfig(formatter=[]),
                        tools=ToolState(),
                        warnings=[],
                    )
            self.assertTrue(is_extracted_modified(Path(tmp), "rename", "abc"))

    def test_formatter_failure(self):
        with tempfile.TemporaryDirectory() as tmp:
            with patch("transform.extract.run_cmd", FakeRunner(returncode=1)):
                with self.assertRaises(ExtractionError):
                    extract_as_module(
                        "rename",
                        "def rename(ctx):\n    pass\n",
                        "decorators",
                        [],
                        "abc",
                        build_dir=Path(tmp),
                        config=TransformConfig(formatter=["fmt"]),
                        tools=ToolState(),
                        warnings=[],
                    )


class TestIncrementalBuild(unittest.TestCase):
    def make_state(self, tmp):
        base = Path(tmp)
        return FileState(
            path=base / "handlers.py",
            base_dir=base,
            build_dir=base / ".attrgen",
            config=TransformConfig(formatter=[]),
        )

    def test_unchanged_source_skips_compiler(self):
        with tempfile.TemporaryDirectory() as tmp:
            state = self.make_state(tmp)
            runner = FakeRunner()
            with patch("transform.extract.run_cmd", runner):
                decorator_attribute(context_for(handler_source("return None"), state))
                decorator_attribute(context_for(handler_source("return None"), state))
                self.assertEqual(len(runner.calls), 1)

                decorator_attribute(context_for(handler_source("return Nonf"), state))
                self.assertEqual(len(runner.calls), 2)

            self.assertEqual(state.exported_decorators, ["rename"])
            source = extracted_source_path(state.build_dir, "rename").read_text(encoding="utf-8")
            self.assertIn("import os", source)
            self.assertNotIn("sibling", source)

    def test_category_is_part_of_the_hash(self):
        with tempfile.TemporaryDirectory() as tmp:
            state = self.make_state(tmp)
            runner = FakeRunner()
            with patch("transform.extract.run_cmd", runner):
                decorator_attribute(context_for(handler_source("return None"), state))
                method_attribute(context_for(handler_source("return None"), state))
            self.assertEqual(len(runner.calls), 2)
            self.assertEqual(state.exported_methods, ["rename"])

    def test_non_function_target_is_ignored(self):
        with tempfile.TemporaryDirectory() as tmp:
            state = self.make_state(tmp)
            source = "class Thing:\n    pass\n"
            wrapper = MetadataWrapper(cst.parse_module(source))
            positions = wrapper.resolve(PositionProvider)
            node = next(n for n in positions if isinstance(n, cst.ClassDef))
            ctx = TransformContext(node, wrapper.module, source, positions=positions, state=state)
            decorator_attribute(ctx)
            self.assertEqual(state.exported_decorators, [])
            self.assertEqual(len(state.warnings), 1)

    def test_placeholder_deletes(self):
        with tempfile.TemporaryDirectory() as tmp:
            ctx = context_for(handler_source("return None"), self.make_state(tmp))
            placeholder_attribute(ctx)
            self.assertTrue(ctx.is_deleted())


class TestLoadExtractedFunction(unittest.TestCase):
    def compile(self, tmp, category, name, source):
        src = Path(tmp) / f"{name}.py"
        src.write_text(source, encoding="utf-8")
        dst = module_path_for(Path(tmp), category, name)
        dst.parent.mkdir(parents=True, exist_ok=True)
        py_compile.compile(str(src), cfile=str(dst), doraise=True)
        return dst

    def test_loads_method(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.compile(tmp, "methods", "double", "def double(x):\n    return x * 2\n")
            fn = load_extracted_function(path, "methods")
            self.assertEqual(fn(3), 6)

    def test_missing_symbol(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.compile(tmp, "methods", "double", "def triple(x):\n    return x * 3\n")
            with self.assertRaises(LoadError):
                load_extracted_function(path, "methods")

    def test_decorator_must_take_context(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.compile(tmp, "decorators", "noargs", "def noargs():\n    return None\n")
            with self.assertRaises(LoadError):
                load_extracted_function(path, "decorators")

    def test_missing_module_is_fatal(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(ModuleOpenError):
                load_extracted_function(Path(tmp) / "methods" / "gone.pyc", "methods")

    def test_failing_module_is_fatal(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self.compile(tmp, "methods", "broken", "raise RuntimeError('no')\n")
            with self.assertRaises(ModuleOpenError):
                load_extracted_function(path, "methods")


if __name__ == "__main__":
    unittest.main()
