import unittest
from pathlib import Path
import sys
import os
import json
import tempfile

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from transform.config import (
    IMPORT_FIXER,
    TransformConfig,
    default_compiler,
    load_config,
    normalize_argv,
    normalize_str_list,
)


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            warnings = []
            config, filename = load_config(Path(tmp), warnings)
            self.assertIsNone(filename)
            self.assertEqual(warnings, [])
            self.assertEqual(config.build_dir, ".attrgen")
            self.assertEqual(config.generated_tag, "generated")
            self.assertEqual(config.formatter, IMPORT_FIXER)
            self.assertEqual(config.compiler, default_compiler())
            self.assertEqual(config.build_path(Path(tmp)), Path(tmp) / ".attrgen")

    def test_loads_values(self):
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            (base / "attrgen.json").write_text(
                json.dumps(
                    {
                        "build_dir": "out",
                        "generated_tag": "expanded",
                        "formatter": [],
                        "import_fixer": "isort --quiet",
                        "exclude_dirs": ["fixtures"],
                    }
                ),
                encoding="utf-8",
            )
            warnings = []
            config, filename = load_config(base, warnings)
            self.assertEqual(filename, "attrgen.json")
            self.assertEqual(warnings, [])
            self.assertEqual(config.build_dir, "out")
            self.assertEqual(config.generated_tag, "expanded")
            self.assertEqual(config.formatter, [])
            self.assertEqual(config.import_fixer, ["isort", "--quiet"])
            self.assertIn("fixtures", config.exclude_dirs)
            self.assertIn("__pycache__", config.exclude_dirs)

    def test_hidden_config_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            (base / ".attrgen.json").write_text('{"generated_suffix": "_gen"}', encoding="utf-8")
            config, filename = load_config(base, [])
            self.assertEqual(filename, ".attrgen.json")
            self.assertEqual(config.generated_suffix, "_gen")

    def test_invalid_values_warn(self):
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            (base / "attrgen.json").write_text('{"compiler": [], "build_dir": 3}', encoding="utf-8")
            warnings = []
            config, _ = load_config(base, warnings)
            self.assertEqual(len(warnings), 2)
            self.assertEqual(config, TransformConfig())

    def test_broken_json_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            (base / "attrgen.json").write_text("{not json", encoding="utf-8")
            warnings = []
            config, filename = load_config(base, warnings)
            self.assertEqual(filename, "attrgen.json")
            self.assertEqual(len(warnings), 1)
            self.assertEqual(config, TransformConfig())

    def test_normalizers(self):
        self.assertEqual(normalize_argv("ruff format"), ["ruff", "format"])
        self.assertIsNone(normalize_argv(3))
        self.assertEqual(normalize_str_list(" dist "), ["dist"])
        self.assertEqual(normalize_str_list([" a ", "", 1]), ["a"])


if __name__ == "__main__":
    unittest.main()
