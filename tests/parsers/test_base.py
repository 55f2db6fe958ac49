"""
BaseParser 单元测试（通过 ImageParser 子类调用基类方法）
"""
import unittest

from config import ExtractorConfig
from parsers.base import SNIPPET_MAX_LENGTH, BaseParser
from parsers.image_parser import ImageParser


class TestSplitSrcset(unittest.TestCase):
    def test_descriptors_dropped(self):
        self.assertEqual(BaseParser.split_srcset("/a.jpg 1x, /b.jpg 2x"), ["/a.jpg", "/b.jpg"])

    def test_width_descriptors_and_spacing(self):
        self.assertEqual(BaseParser.split_srcset("  a.jpg 480w ,b.jpg   800w"), ["a.jpg", "b.jpg"])

    def test_empty(self):
        self.assertEqual(BaseParser.split_srcset(None), [])
        self.assertEqual(BaseParser.split_srcset(" , "), [])


class TestParseInt(unittest.TestCase):
    def test_leading_digits(self):
        self.assertEqual(BaseParser.parse_int("300px"), 300)
        self.assertEqual(BaseParser.parse_int(" 42 "), 42)
        self.assertEqual(BaseParser.parse_int(640), 640)

    def test_rejected_values(self):
        self.assertIsNone(BaseParser.parse_int("100%"))
        self.assertIsNone(BaseParser.parse_int("auto"))
        self.assertIsNone(BaseParser.parse_int("0"))
        self.assertIsNone(BaseParser.parse_int(None))
        self.assertIsNone(BaseParser.parse_int(True))


class TestSizesAndViewBox(unittest.TestCase):
    def test_parse_sizes(self):
        self.assertEqual(BaseParser.parse_sizes("32x32"), (32, 32))
        self.assertEqual(BaseParser.parse_sizes("16X16 32x32"), (16, 16))
        self.assertEqual(BaseParser.parse_sizes("any"), (None, None))
        self.assertEqual(BaseParser.parse_sizes(None), (None, None))

    def test_parse_viewbox(self):
        self.assertEqual(BaseParser.parse_viewbox("0 0 24 24"), (24, 24))
        self.assertEqual(BaseParser.parse_viewbox("0,0,100.6,50"), (101, 50))
        self.assertEqual(BaseParser.parse_viewbox("0 0 24"), (None, None))


class TestSnippetAndHash(unittest.TestCase):
    def test_bound_snippet_default(self):
        parser = ImageParser()
        self.assertEqual(len(parser.bound_snippet("x" * 1000)), SNIPPET_MAX_LENGTH)
        self.assertIsNone(parser.bound_snippet(""))

    def test_bound_snippet_from_config(self):
        parser = ImageParser(ExtractorConfig(snippet_max_length=10))
        self.assertEqual(parser.bound_snippet("abcdefghijklmnop"), "abcdefghij")

    def test_stable_hash(self):
        self.assertEqual(BaseParser.stable_hash("<svg/>"), BaseParser.stable_hash("<svg/>"))
        self.assertNotEqual(BaseParser.stable_hash("<svg/>"), BaseParser.stable_hash("<svg></svg>"))
        self.assertEqual(len(BaseParser.stable_hash("<svg/>")), 12)


if __name__ == "__main__":
    unittest.main()
