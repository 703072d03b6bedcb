import unittest
import sys
import os

# Add scripts/ to path to import modules
sys.path.append(os.path.join(os.path.dirname(__file__), "../scripts"))

from transform.errors import ParseError
from transform.usages import AttributeUsage, extract_attribute_usages
from transform.parse import AttributeInstruction

SOURCE = '''# attrgen:build !generated
import sys

# Normal comment
# Another normal comment

# @[Foo]
class Bar:
    pass


def main():
    # More comments
    # More comments
    # More comments

    # @[Foo]
    print("hello")


# @[decorator]
def foo(ctx):
    return None
'''


class TestExtractAttributeUsages(unittest.TestCase):
    def test_usages_in_order(self):
        usages = extract_attribute_usages(SOURCE)
        names = [attr.name for usage in usages for attr in usage.attributes]
        self.assertEqual(names, ["Foo", "Foo", "decorator"])

    def test_anchor_is_end_of_comment(self):
        usages = extract_attribute_usages(SOURCE)
        first = usages[0]
        comment = "# @[Foo]"
        self.assertEqual(SOURCE[first.anchor_offset - len(comment) : first.anchor_offset], comment)
        self.assertTrue(all(a.anchor_offset < b.anchor_offset for a, b in zip(usages, usages[1:])))

    def test_trailing_comment_is_collected(self):
        usages = extract_attribute_usages("x = 1  # @[placeholder]\n")
        self.assertEqual(len(usages), 1)
        self.assertTrue(usages[0].attributes[0].is_builtin)

    def test_no_usages(self):
        self.assertEqual(extract_attribute_usages("x = 1  # note\n"), [])

    def test_parse_error(self):
        with self.assertRaises(ParseError) as caught:
            extract_attribute_usages("class (:\n", "bad.py")
        self.assertIn("bad.py", str(caught.exception))


class TestAttributeUsage(unittest.TestCase):
    def test_mark_dispatched(self):
        usage = AttributeUsage(0, [AttributeInstruction("a"), AttributeInstruction("b")])
        self.assertEqual(usage.pending(), [0, 1])
        usage.mark_dispatched(1)
        self.assertFalse(usage.applied)
        self.assertEqual(usage.pending(), [0])
        usage.mark_dispatched(0)
        self.assertTrue(usage.applied)


if __name__ == "__main__":
    unittest.main()
