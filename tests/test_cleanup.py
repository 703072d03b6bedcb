import unittest
import sys
import os

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from transform.cleanup import cleanup_source, rewrite_build_comment
from transform.errors import ParseError


class TestRewriteBuildComment(unittest.TestCase):
    def test_satisfied_constraint_is_kept(self):
        self.assertEqual(rewrite_build_comment("# attrgen:build generated"), "# attrgen:build generated")
        self.assertEqual(
            rewrite_build_comment("# attrgen:build linux || generated"),
            "# attrgen:build linux || generated",
        )

    def test_negated_tag_is_stripped(self):
        self.assertEqual(
            rewrite_build_comment("# attrgen:build linux && !generated"),
            "# attrgen:build linux",
        )

    def test_only_negated_tag_is_dropped(self):
        self.assertIsNone(rewrite_build_comment("# attrgen:build !generated"))

    def test_unrelated_constraint_gets_tag(self):
        self.assertEqual(
            rewrite_build_comment("# attrgen:build linux"),
            "# attrgen:build linux && generated",
        )
        self.assertEqual(
            rewrite_build_comment("# attrgen:build a || b"),
            "# attrgen:build (a || b) && generated",
        )

    def test_empty_constraint(self):
        self.assertEqual(rewrite_build_comment("# attrgen:build"), "# attrgen:build generated")

    def test_plain_comment(self):
        self.assertIsNone(rewrite_build_comment("# just a note"))

    def test_custom_tag(self):
        self.assertEqual(
            rewrite_build_comment("# attrgen:build !expanded", "expanded"),
            None,
        )
        self.assertEqual(
            rewrite_build_comment("# attrgen:build linux", "expanded"),
            "# attrgen:build linux && expanded",
        )


class TestCleanupSource(unittest.TestCase):
    def test_adds_header_when_missing(self):
        source = "# a note\nx = 1  # trailing\n"
        self.assertEqual(cleanup_source(source), "# attrgen:build generated\nx = 1\n")

    def test_rewrites_existing_constraint(self):
        source = "# attrgen:build linux\n\nx = 1\n"
        self.assertEqual(cleanup_source(source), "# attrgen:build linux && generated\n\nx = 1\n")

    def test_negated_constraint_is_replaced_by_header(self):
        source = "# attrgen:build !generated\n\nx = 1\n"
        self.assertEqual(cleanup_source(source), "# attrgen:build generated\n\nx = 1\n")

    def test_removes_nested_comments(self):
        source = (
            "def f():\n"
            "    # explain\n"
            "    return 1  # one\n"
        )
        cleaned = cleanup_source(source)
        self.assertNotIn("explain", cleaned)
        self.assertNotIn("one", cleaned)
        self.assertIn("    return 1\n", cleaned)

    def test_parse_error(self):
        with self.assertRaises(ParseError):
            cleanup_source("def broken(:\n", path="broken.py")


if __name__ == "__main__":
    unittest.main()
